from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict


Dialect = Literal["brace", "indent", "generic"]
FunctionKind = Literal["function", "method", "arrow", "async-function", "constructor"]
DecisionKind = Literal["conditional", "switch", "loop", "ternary", "logical"]
StyleClass = Literal["entry", "process", "decision", "service", "result"]
NodeShape = Literal["box", "diamond"]
ServiceErrorKind = Literal[
	"insufficient-credit",
	"rate-limit",
	"authentication",
	"quota-exceeded",
	"generic",
]


class SourceFile(BaseModel):
	model_config = ConfigDict(frozen=True)

	path: str
	rel_path: str
	dialect: Dialect


class CallSite(BaseModel):
	model_config = ConfigDict(frozen=True)

	callee_name: str
	line: int


class IncomingCall(BaseModel):
	model_config = ConfigDict(frozen=True)

	caller_id: str
	caller_name: str
	file: str
	line: int


class DecisionPoint(BaseModel):
	model_config = ConfigDict(frozen=True)

	kind: DecisionKind
	file: str
	line: int
	snippet: str
	owning_function: Optional[str] = None
	weight: int = 1


class FunctionRecord(BaseModel):
	"""A function-like declaration found by the extractor.

	Identity fields are fixed at extraction. ``incoming_calls`` is filled by the
	call graph builder, the classification flags and ``layers``/``layer`` by the
	classifier, and ``importance`` by the scorer. Each phase hands out new copies.
	"""

	model_config = ConfigDict(frozen=True)

	id: str
	name: str
	file: str
	line: int
	owning_class: Optional[str] = None
	kind: FunctionKind = "function"
	is_exported: bool = False
	is_entry_point: bool = False
	is_event_handler: bool = False
	is_business_logic: bool = False
	cyclomatic_weight: int = 1
	outgoing_calls: List[CallSite] = []
	incoming_calls: List[IncomingCall] = []
	decision_points: List[DecisionPoint] = []
	importance: int = 0
	layers: List[str] = []
	layer: Optional[str] = None


class ClassRecord(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	file: str
	line: int
	method_names: List[str] = []
	is_exported: bool = False


class ImportReference(BaseModel):
	model_config = ConfigDict(frozen=True)

	file: str
	line: int
	target: str


class RepositoryStats(BaseModel):
	"""Counts over every non-ignored entry of the walk, not only source files.

	``total_lines`` covers the source files that were read for extraction.
	"""

	total_files: int = 0
	total_directories: int = 0
	total_lines: int = 0
	file_types: Dict[str, int] = {}


class ExtractionResult(BaseModel):
	files: List[SourceFile] = []
	stats: RepositoryStats = RepositoryStats()
	classes: List[ClassRecord] = []
	functions: List[FunctionRecord] = []
	imports: List[ImportReference] = []
	decision_points: List[DecisionPoint] = []


class CallEdge(BaseModel):
	model_config = ConfigDict(frozen=True)

	caller_id: str
	callee_id: str
	line: int


class DiagramNode(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	label: str
	style_class: StyleClass
	shape: NodeShape = "box"
	function_id: Optional[str] = None


class DiagramEdge(BaseModel):
	model_config = ConfigDict(frozen=True)

	source: str
	target: str
	label: Optional[str] = None


class DiagramSubgraph(BaseModel):
	model_config = ConfigDict(frozen=True)

	layer_label: str
	node_ids: List[str]


class DiagramGraph(BaseModel):
	model_config = ConfigDict(frozen=True)

	nodes: List[DiagramNode] = []
	edges: List[DiagramEdge] = []
	subgraphs: List[DiagramSubgraph] = []

	def node(self, node_id: str) -> Optional[DiagramNode]:
		for n in self.nodes:
			if n.id == node_id:
				return n
		return None

	def decision_nodes(self) -> List[DiagramNode]:
		return [n for n in self.nodes if n.style_class == "decision"]

	def edges_from(self, node_id: str) -> List[DiagramEdge]:
		return [e for e in self.edges if e.source == node_id]


class FunctionBrief(BaseModel):
	id: str
	name: str
	file: str
	layer: Optional[str] = None
	importance: int = 0
	kind: FunctionKind = "function"
	is_entry_point: bool = False


class AnalysisSummary(BaseModel):
	root: str
	analyzed_at: str
	total_files: int
	total_functions: int
	total_classes: int
	total_imports: int
	total_decision_points: int
	layer_counts: Dict[str, int]
	important_functions: List[FunctionBrief]
	decision_highlights: List[str] = []
	stats: RepositoryStats = RepositoryStats()


class AnalysisResult(BaseModel):
	root: str
	files: List[SourceFile]
	classes: List[ClassRecord]
	functions: List[FunctionRecord]
	imports: List[ImportReference]
	decision_points: List[DecisionPoint]
	call_edges: List[CallEdge]
	layers: Dict[str, List[str]]
	selected: List[FunctionRecord]
	diagram: DiagramGraph
	diagram_text: str
	summary: AnalysisSummary


class ServiceErrorEvent(BaseModel):
	kind: ServiceErrorKind
	title: str
	message: str
	detail: str = ""
	status_code: Optional[int] = None


class DiagramResult(BaseModel):
	text: str
	source: Literal["deterministic", "generated"] = "deterministic"
	error: Optional[ServiceErrorEvent] = None
