"""Importance scoring and the top-K plus layer-backfill selection policy."""

from __future__ import annotations

from typing import Dict, List, Sequence, Set

from .log import get_logger
from .model import FunctionRecord


logger = get_logger(__name__)

ENTRY_POINT_WEIGHT = 10
EXPORTED_WEIGHT = 5
INCOMING_CALL_WEIGHT = 2
DECISION_POINT_WEIGHT = 3
ASYNC_WEIGHT = 3
BUSINESS_LOGIC_WEIGHT = 4
EVENT_HANDLER_WEIGHT = 3
LIFECYCLE_WEIGHT = 15

LIFECYCLE_NAMES = frozenset({"main", "init", "activate", "start", "run"})

DEFAULT_SELECTION_CAP = 12
PRIMARY_SELECTION = 8


class SelectionInvariantError(RuntimeError):
	"""The selector produced a result that breaks its own bounds (a programming error)."""


def score_function(record: FunctionRecord) -> int:
	score = 0
	if record.is_entry_point:
		score += ENTRY_POINT_WEIGHT
	if record.is_exported:
		score += EXPORTED_WEIGHT
	score += len(record.incoming_calls) * INCOMING_CALL_WEIGHT
	score += len(record.decision_points) * DECISION_POINT_WEIGHT
	if record.kind == "async-function":
		score += ASYNC_WEIGHT
	if record.is_business_logic:
		score += BUSINESS_LOGIC_WEIGHT
	if record.is_event_handler:
		score += EVENT_HANDLER_WEIGHT
	if record.name.lower() in LIFECYCLE_NAMES:
		score += LIFECYCLE_WEIGHT
	return score


def score_functions(functions: Sequence[FunctionRecord]) -> List[FunctionRecord]:
	return [record.model_copy(update={"importance": score_function(record)}) for record in functions]


def rank_functions(functions: Sequence[FunctionRecord]) -> List[FunctionRecord]:
	"""Descending importance; ties keep scan order (``sorted`` is stable)."""
	return sorted(functions, key=lambda record: -record.importance)


def select_functions(
	functions: Sequence[FunctionRecord],
	layers: Dict[str, List[str]],
	cap: int = DEFAULT_SELECTION_CAP,
) -> List[FunctionRecord]:
	"""Pick the functions worth drawing.

	The top ``PRIMARY_SELECTION`` by importance come first. Each non-empty layer
	with no member among them then contributes its best-scoring member, in layer
	order, while room remains under ``cap``. Any room left after that is filled
	from the ranking so the result holds ``min(cap, len(functions))`` records.
	"""
	ranked = rank_functions(functions)
	by_id = {record.id: record for record in functions}
	rank_of = {record.id: index for index, record in enumerate(ranked)}

	selected: List[FunctionRecord] = []
	chosen: Set[str] = set()

	def take(record: FunctionRecord) -> None:
		if record.id not in chosen:
			chosen.add(record.id)
			selected.append(record)

	for record in ranked[: min(PRIMARY_SELECTION, cap)]:
		take(record)

	covered = {label for record in selected for label in record.layers}
	for label, member_ids in layers.items():
		if len(selected) >= cap:
			break
		if label in covered or not member_ids:
			continue
		members = [by_id[fid] for fid in member_ids if fid in by_id and fid not in chosen]
		if not members:
			continue
		best = min(members, key=lambda record: rank_of[record.id])
		take(best)
		covered.update(best.layers)
		logger.debug("Backfilled layer %s with %s", label, best.id)

	for record in ranked:
		if len(selected) >= min(cap, len(ranked)):
			break
		take(record)

	if len(selected) > cap:
		raise SelectionInvariantError(f"selected {len(selected)} functions, cap is {cap}")
	if len(selected) != len(chosen):
		raise SelectionInvariantError("selection contains duplicate function ids")
	return selected
