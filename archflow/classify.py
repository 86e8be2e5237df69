"""Naming-convention classification of functions into architectural layers."""

from __future__ import annotations

import re
from typing import Callable, Dict, List, Sequence, Tuple

from .model import FunctionRecord


ENTRY_POINTS = "Entry Points"
CONTROLLERS = "Controllers"
SERVICES = "Services"
MODELS = "Models"
UTILITIES = "Utilities"
EVENT_HANDLERS = "Event Handlers"
BUSINESS_LOGIC = "Business Logic"

ENTRY_VOCABULARY = (
	"main", "init", "activate", "start", "run", "execute",
	"constructor", "create", "register", "setup", "configure",
)
EVENT_VOCABULARY = (
	"handle", "on", "click", "submit", "change", "load", "ready",
	"resize", "scroll", "hover", "focus", "blur", "keypress",
)
BUSINESS_VOCABULARY = (
	"process", "calculate", "validate", "transform", "convert",
	"analyze", "generate", "build", "parse", "format", "filter",
)

# Too short to match as a substring; these must be a whole word of the name.
_WORD_ONLY = frozenset({"on"})
_WORD_SPLIT = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")


def name_words(name: str) -> List[str]:
	"""Split a camelCase / snake_case name into lowercase words."""
	return [w.lower() for w in _WORD_SPLIT.findall(name)]


def matches_vocabulary(name: str, vocabulary: Sequence[str]) -> bool:
	lowered = name.lower()
	words = None
	for term in vocabulary:
		if term in _WORD_ONLY:
			if words is None:
				words = name_words(name)
			if term in words:
				return True
		elif term in lowered:
			return True
	return False


def is_entry_point(name: str) -> bool:
	return matches_vocabulary(name, ENTRY_VOCABULARY)


def is_event_handler(name: str) -> bool:
	return matches_vocabulary(name, EVENT_VOCABULARY)


def is_business_logic(name: str) -> bool:
	return matches_vocabulary(name, BUSINESS_VOCABULARY)


def _named(*terms: str) -> Callable[[FunctionRecord], bool]:
	def predicate(record: FunctionRecord) -> bool:
		candidates = [record.name.lower()]
		if record.owning_class:
			candidates.append(record.owning_class.lower())
		return any(term in candidate for term in terms for candidate in candidates)

	return predicate


LAYER_PREDICATES: List[Tuple[str, Callable[[FunctionRecord], bool]]] = [
	(ENTRY_POINTS, lambda r: r.is_entry_point),
	(CONTROLLERS, _named("controller")),
	(SERVICES, _named("service")),
	(MODELS, _named("model")),
	(UTILITIES, _named("util", "helper")),
	(EVENT_HANDLERS, lambda r: r.is_event_handler),
	(BUSINESS_LOGIC, lambda r: r.is_business_logic),
]

LAYER_ORDER: List[str] = [label for label, _ in LAYER_PREDICATES]


def layers_for(record: FunctionRecord) -> List[str]:
	"""Every layer whose predicate the (flagged) record satisfies, in layer order."""
	layers = [label for label, predicate in LAYER_PREDICATES if predicate(record)]
	return layers or [UTILITIES]


def classify_function(record: FunctionRecord) -> FunctionRecord:
	flagged = record.model_copy(
		update={
			"is_entry_point": is_entry_point(record.name),
			"is_event_handler": is_event_handler(record.name),
			"is_business_logic": is_business_logic(record.name),
		}
	)
	layers = layers_for(flagged)
	return flagged.model_copy(update={"layers": layers, "layer": layers[0]})


def classify_functions(
	functions: Sequence[FunctionRecord],
) -> Tuple[List[FunctionRecord], Dict[str, List[str]]]:
	"""Classify every function and build the layer map ``{label: [function ids]}``.

	Every label appears in the map, in layer order, even when empty.
	"""
	classified = [classify_function(record) for record in functions]
	layer_map: Dict[str, List[str]] = {label: [] for label in LAYER_ORDER}
	for record in classified:
		for label in record.layers:
			layer_map[label].append(record.id)
	return classified, layer_map
