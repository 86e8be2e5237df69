from archflow.classify import LAYER_ORDER, SERVICES, UTILITIES
from archflow.model import CallSite, DecisionPoint, FunctionRecord, IncomingCall
from archflow.scoring import rank_functions, score_function, score_functions, select_functions


def _scored(fid, importance, layers):
	return FunctionRecord(
		id=fid,
		name=fid,
		file="f.py",
		line=1,
		importance=importance,
		layers=layers,
		layer=layers[0],
	)


def _layer_map(records):
	layers = {label: [] for label in LAYER_ORDER}
	for record in records:
		for label in record.layers:
			layers[label].append(record.id)
	return layers


def test_score_adds_every_weight():
	record = FunctionRecord(
		id="a.js:run",
		name="run",
		file="a.js",
		line=1,
		kind="async-function",
		is_exported=True,
		is_entry_point=True,
		is_event_handler=True,
		is_business_logic=True,
		incoming_calls=[IncomingCall(caller_id="x", caller_name="x", file="a.js", line=3)] * 2,
		decision_points=[DecisionPoint(kind="conditional", file="a.js", line=2, snippet="if (a)")],
		outgoing_calls=[CallSite(callee_name="b", line=2)],
	)
	assert score_function(record) == 10 + 5 + 4 + 3 + 3 + 4 + 3 + 15


def test_plain_function_scores_zero():
	assert score_function(FunctionRecord(id="a", name="compute", file="a.py", line=1)) == 0


def test_lifecycle_names_are_exact():
	assert score_function(FunctionRecord(id="a", name="Main", file="a.py", line=1)) == 15
	assert score_function(FunctionRecord(id="b", name="mainly", file="a.py", line=1)) == 0


def test_score_functions_returns_copies():
	original = FunctionRecord(id="a", name="main", file="a.py", line=1, is_entry_point=True)
	(scored,) = score_functions([original])
	assert scored.importance == 25
	assert original.importance == 0


def test_rank_is_stable_on_ties():
	records = [_scored("a", 5, [UTILITIES]), _scored("b", 9, [UTILITIES]), _scored("c", 5, [UTILITIES])]
	assert [r.id for r in rank_functions(records)] == ["b", "a", "c"]


def test_select_respects_cap_and_total():
	few = [_scored(f"u{i}", 10 - i, [UTILITIES]) for i in range(5)]
	assert len(select_functions(few, _layer_map(few))) == 5

	many = [_scored(f"u{i}", 100 - i, [UTILITIES]) for i in range(30)]
	selected = select_functions(many, _layer_map(many))
	assert [r.id for r in selected] == [f"u{i}" for i in range(12)]

	assert len(select_functions(many, _layer_map(many), cap=3)) == 3
	assert select_functions([], _layer_map([])) == []


def test_uncovered_layer_is_backfilled():
	utilities = [_scored(f"u{i}", 100 - i, [UTILITIES]) for i in range(15)]
	service = _scored("svc", 1, [SERVICES])
	records = utilities + [service]
	selected = select_functions(records, _layer_map(records))

	ids = [r.id for r in selected]
	assert len(ids) == 12
	assert len(set(ids)) == 12
	assert ids[:8] == [f"u{i}" for i in range(8)]
	assert ids[8] == "svc"
	assert ids[9:] == ["u8", "u9", "u10"]


def test_every_nonempty_layer_is_represented_when_room():
	labels = LAYER_ORDER
	records = [_scored(f"top{i}", 100 - i, [labels[0]]) for i in range(10)]
	records += [_scored(f"low_{label}", 1, [label]) for label in labels[1:]]
	layers = _layer_map(records)
	selected = select_functions(records, layers, cap=14)

	covered = {label for r in selected for label in r.layers}
	assert covered == set(labels)
	assert len(selected) == 14
