"""Deterministic layered flow diagram synthesis and Mermaid rendering.

The diagram reads top to bottom: an entry node, the initialization chain, the
main execution chain with decision branches, and a closing result node.
Nodes of functions sharing a primary layer are grouped into subgraphs.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from .classify import CONTROLLERS, LAYER_ORDER, MODELS, SERVICES, UTILITIES, matches_vocabulary
from .model import DiagramEdge, DiagramGraph, DiagramNode, DiagramSubgraph, FunctionRecord
from .scoring import rank_functions


INIT_VOCABULARY = ("init", "setup", "create", "load", "config", "register")
DECISION_VOCABULARY = ("validate", "check", "verify", "handle")
DECISION_IMPORTANCE_THRESHOLD = 8
MIN_SUBGRAPH_MEMBERS = 2

DEFAULT_ENTRY_LABEL = "Start"
RESULT_LABEL = "Return result"
ALTERNATIVE_LABEL = "Handle alternative"

_SERVICE_LAYERS = frozenset({SERVICES, CONTROLLERS, MODELS})

STYLE_DEFINITIONS: Dict[str, str] = {
	"entry": "fill:rgba(128,128,128,0.2),stroke:rgba(128,128,128,0.8),stroke-width:3px,color:rgba(200,200,200,0.95),font-weight:600",
	"process": "fill:rgba(112,112,112,0.12),stroke:rgba(128,128,128,0.6),stroke-width:2px,color:rgba(200,200,200,0.9),font-weight:500",
	"decision": "fill:rgba(96,96,96,0.15),stroke:rgba(128,128,128,0.7),stroke-width:2px,color:rgba(200,200,200,0.9),font-weight:500",
	"service": "fill:rgba(120,120,120,0.12),stroke:rgba(128,128,128,0.6),stroke-width:2px,color:rgba(200,200,200,0.9),font-weight:500",
	"result": "fill:rgba(104,104,104,0.15),stroke:rgba(128,128,128,0.7),stroke-width:2px,color:rgba(200,200,200,0.9),font-weight:500",
}

_DECISION_QUESTIONS = (
	("validate", "Valid input?"),
	("check", "Check passed?"),
	("verify", "Verification OK?"),
	("handle", "Handle request?"),
	("process", "Process data?"),
)


def node_id(index: int) -> str:
	"""Sequential node ids: A..Z, then AA, AB, ..."""
	letters = ""
	index += 1
	while index:
		index, remainder = divmod(index - 1, 26)
		letters = chr(65 + remainder) + letters
	return letters


def clean_function_name(name: str) -> str:
	"""``process_user_data`` / ``processUserData`` -> ``Process User Data``."""
	text = re.sub(r"^_+|_+$", "", name) or name
	text = text.replace("_", " ")
	text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text)
	return " ".join(word[:1].upper() + word[1:] for word in text.split())


def decision_label(name: str) -> str:
	lowered = name.lower()
	for term, question in _DECISION_QUESTIONS:
		if term in lowered:
			return question
	return "Continue execution?"


def is_initializer(record: FunctionRecord) -> bool:
	return matches_vocabulary(record.name, INIT_VOCABULARY)


def has_decision_logic(record: FunctionRecord) -> bool:
	"""Drawn as a Yes/No decision: important functions with branching, or checker-style names."""
	if record.importance > DECISION_IMPORTANCE_THRESHOLD and record.decision_points:
		return True
	return matches_vocabulary(record.name, DECISION_VOCABULARY)


def primary_layer(record: FunctionRecord, layers: Optional[Dict[str, List[str]]] = None) -> str:
	if record.layer:
		return record.layer
	for label in LAYER_ORDER:
		if layers and record.id in layers.get(label, []):
			return label
	return UTILITIES


class _GraphBuilder:
	def __init__(self) -> None:
		self.nodes: List[DiagramNode] = []
		self.edges: List[DiagramEdge] = []

	def add_node(
		self,
		label: str,
		style_class: str,
		shape: str = "box",
		function_id: Optional[str] = None,
	) -> str:
		nid = node_id(len(self.nodes))
		self.nodes.append(
			DiagramNode(id=nid, label=label, style_class=style_class, shape=shape, function_id=function_id)
		)
		return nid

	def add_edge(self, source: str, target: str, label: Optional[str] = None) -> None:
		self.edges.append(DiagramEdge(source=source, target=target, label=label))


def synthesize_diagram(
	selected: Sequence[FunctionRecord],
	layers: Optional[Dict[str, List[str]]] = None,
) -> DiagramGraph:
	"""Build the flow graph for the selected functions.

	Node ids depend only on emission order, so a fixed selection always gives
	the same graph.
	"""
	builder = _GraphBuilder()
	ranked = rank_functions(selected)
	node_of: Dict[str, str] = {}

	entry_fn = next((record for record in ranked if record.is_entry_point), None)
	if entry_fn is None and selected:
		entry_fn = selected[0]

	if entry_fn is not None:
		entry = builder.add_node(clean_function_name(entry_fn.name), "entry", function_id=entry_fn.id)
		node_of[entry_fn.id] = entry
	else:
		entry = builder.add_node(DEFAULT_ENTRY_LABEL, "entry")

	remaining = [record for record in ranked if entry_fn is None or record.id != entry_fn.id]
	initializers = [record for record in remaining if is_initializer(record)]
	execution = [record for record in remaining if not is_initializer(record)]

	previous = entry
	for record in initializers:
		nid = builder.add_node(clean_function_name(record.name), "process", function_id=record.id)
		node_of[record.id] = nid
		builder.add_edge(previous, nid)
		previous = nid

	pending_label: Optional[str] = None
	for record in execution:
		name = clean_function_name(record.name)
		if has_decision_logic(record):
			nid = builder.add_node(
				f"{name}: {decision_label(record.name)}", "decision", shape="diamond", function_id=record.id
			)
			builder.add_edge(previous, nid, pending_label)
			alternative = builder.add_node(ALTERNATIVE_LABEL, "process")
			builder.add_edge(nid, alternative, "No")
			pending_label = "Yes"
		else:
			style = "service" if primary_layer(record, layers) in _SERVICE_LAYERS else "process"
			nid = builder.add_node(name, style, function_id=record.id)
			builder.add_edge(previous, nid, pending_label)
			pending_label = None
		node_of[record.id] = nid
		previous = nid

	result = builder.add_node(RESULT_LABEL, "result")
	builder.add_edge(previous, result, pending_label)

	members: Dict[str, List[str]] = {}
	for record in selected:
		members.setdefault(primary_layer(record, layers), []).append(record.id)
	subgraphs: List[DiagramSubgraph] = []
	for label in LAYER_ORDER:
		ids = members.get(label, [])
		if len(ids) < MIN_SUBGRAPH_MEMBERS:
			continue
		node_ids = sorted((node_of[fid] for fid in ids), key=lambda nid: (len(nid), nid))
		subgraphs.append(DiagramSubgraph(layer_label=label, node_ids=node_ids))

	return DiagramGraph(nodes=builder.nodes, edges=builder.edges, subgraphs=subgraphs)


def _escape(label: str) -> str:
	return label.replace('"', "#quot;").replace("\n", " ")


def _declaration(node: DiagramNode) -> str:
	if node.shape == "diamond":
		return f'{node.id}{{"{_escape(node.label)}"}}'
	return f'{node.id}["{_escape(node.label)}"]'


def render_mermaid(graph: DiagramGraph) -> str:
	"""Serialize a graph as Mermaid ``flowchart TD`` text, one statement per line."""
	lines: List[str] = ["flowchart TD"]
	lines.append("    %% Nodes")
	for node in graph.nodes:
		lines.append(f"    {_declaration(node)}")

	lines.append("")
	lines.append("    %% Flow")
	for edge in graph.edges:
		arrow = f"-->|{_escape(edge.label)}|" if edge.label else "-->"
		lines.append(f"    {edge.source} {arrow} {edge.target}")

	if graph.subgraphs:
		lines.append("")
		lines.append("    %% Architectural layers")
		for subgraph in graph.subgraphs:
			safe = re.sub(r"\W", "", subgraph.layer_label)
			lines.append(f'    subgraph {safe}["{_escape(subgraph.layer_label)}"]')
			for nid in subgraph.node_ids:
				lines.append(f"        {nid}")
			lines.append("    end")

	lines.append("")
	lines.append("    %% Styles")
	for style, definition in STYLE_DEFINITIONS.items():
		lines.append(f"    classDef {style} {definition}")
	for style in STYLE_DEFINITIONS:
		ids = [node.id for node in graph.nodes if node.style_class == style]
		if ids:
			lines.append(f"    class {','.join(ids)} {style}")
	return "\n".join(lines) + "\n"
