import pytest

from archflow.classify import (
	BUSINESS_LOGIC,
	ENTRY_POINTS,
	EVENT_HANDLERS,
	LAYER_ORDER,
	MODELS,
	SERVICES,
	UTILITIES,
	classify_function,
	classify_functions,
	is_business_logic,
	is_entry_point,
	is_event_handler,
	name_words,
)
from archflow.model import FunctionRecord


def _fn(name, owning_class=None):
	return FunctionRecord(id=f"f.py:{name}", name=name, file="f.py", line=1, owning_class=owning_class)


def test_name_words():
	assert name_words("onClickButton") == ["on", "click", "button"]
	assert name_words("load_user_data") == ["load", "user", "data"]
	assert name_words("parseHTTPResponse") == ["parse", "http", "response"]


@pytest.mark.parametrize(
	"name, entry, event, business",
	[
		("activate", True, False, False),
		("runServer", True, False, False),
		("onSubmit", False, True, False),
		("handleClick", False, True, False),
		("configureApp", True, False, False),
		("json_loader", False, True, False),
		("calculateTotal", False, False, True),
		("render", False, False, False),
	],
)
def test_vocabulary_flags(name, entry, event, business):
	assert is_entry_point(name) is entry
	assert is_event_handler(name) is event
	assert is_business_logic(name) is business


def test_on_only_matches_as_a_word():
	assert is_event_handler("on_message")
	assert not is_event_handler("json")
	assert not is_event_handler("monitor")


def test_layers_follow_names_and_owning_class():
	assert classify_function(_fn("fetch", "UserService")).layers == [SERVICES]
	assert classify_function(_fn("formatDate_helper")).layers == [UTILITIES, BUSINESS_LOGIC]
	assert classify_function(_fn("compute")).layers == [UTILITIES]
	assert classify_function(_fn("handleClick")).layers == [EVENT_HANDLERS]

	record = classify_function(_fn("validate_model"))
	assert record.layers == [MODELS, BUSINESS_LOGIC]
	assert record.layer == MODELS
	assert record.is_business_logic


def test_layer_map_lists_every_layer():
	records, layers = classify_functions([_fn("main"), _fn("processOrder"), _fn("compute")])
	assert list(layers) == LAYER_ORDER
	assert layers[ENTRY_POINTS] == ["f.py:main"]
	assert layers[BUSINESS_LOGIC] == ["f.py:processOrder"]
	assert layers[UTILITIES] == ["f.py:compute"]
	assert layers[MODELS] == []
	assert [r.layer for r in records] == [ENTRY_POINTS, BUSINESS_LOGIC, UTILITIES]
	for record in records:
		for label in record.layers:
			assert record.id in layers[label]
