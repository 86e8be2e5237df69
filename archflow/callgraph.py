from __future__ import annotations

from collections import deque
from typing import Dict, List, Sequence

from .log import get_logger
from .model import CallEdge, FunctionRecord, IncomingCall


logger = get_logger(__name__)


class CallGraph:
	"""Resolved call relations between extracted functions, keyed by function id.

	Built once after every file has been extracted; ``nodes`` hold copies of the
	extracted records with ``incoming_calls`` filled in.
	"""

	def __init__(self) -> None:
		self.nodes: Dict[str, FunctionRecord] = {}
		self.edges: List[CallEdge] = []
		self._callees: Dict[str, List[str]] = {}
		self._callers: Dict[str, List[str]] = {}

	def add_node(self, record: FunctionRecord) -> None:
		self.nodes[record.id] = record
		self._callees.setdefault(record.id, [])
		self._callers.setdefault(record.id, [])

	def add_edge(self, caller_id: str, callee_id: str, line: int) -> None:
		if caller_id in self.nodes and callee_id in self.nodes:
			self.edges.append(CallEdge(caller_id=caller_id, callee_id=callee_id, line=line))
			if callee_id not in self._callees[caller_id]:
				self._callees[caller_id].append(callee_id)
			if caller_id not in self._callers[callee_id]:
				self._callers[callee_id].append(caller_id)

	@property
	def functions(self) -> List[FunctionRecord]:
		return list(self.nodes.values())

	def callees_of(self, function_id: str) -> List[str]:
		return list(self._callees.get(function_id, []))

	def callers_of(self, function_id: str) -> List[str]:
		return list(self._callers.get(function_id, []))

	def find(self, symbol: str) -> List[str]:
		"""Ids matching ``symbol`` as an exact id or as a bare function name."""
		if symbol in self.nodes:
			return [symbol]
		return [fid for fid, record in self.nodes.items() if record.name == symbol]

	def get_reachable_from(self, start_id: str, max_depth: int = 5) -> Dict[str, int]:
		"""Breadth-first reachability from ``start_id``: id -> call depth."""
		if start_id not in self.nodes:
			return {}

		visited: Dict[str, int] = {}
		queue = deque([(start_id, 0)])
		while queue:
			current, depth = queue.popleft()
			if current in visited or depth > max_depth:
				continue
			visited[current] = depth
			for callee in self._callees.get(current, []):
				if callee not in visited:
					queue.append((callee, depth + 1))
		return visited

	def get_paths_between(self, start_id: str, end_id: str, max_depth: int = 5) -> List[List[str]]:
		"""All acyclic call paths from ``start_id`` to ``end_id`` up to ``max_depth`` hops."""
		if start_id not in self.nodes or end_id not in self.nodes:
			return []

		paths: List[List[str]] = []
		queue = deque([[start_id]])
		while queue:
			path = queue.popleft()
			if len(path) - 1 > max_depth:
				continue
			current = path[-1]
			if current == end_id:
				paths.append(path)
				continue
			for callee in self._callees.get(current, []):
				if callee not in path:
					queue.append(path + [callee])
		return paths


def build_call_graph(functions: Sequence[FunctionRecord]) -> CallGraph:
	"""Resolve every outgoing call to every function of the same name.

	Matching is global and unscoped: a call to ``process`` links to each
	``process`` in the tree. Calls matching no known function are dropped.
	"""
	by_name: Dict[str, List[FunctionRecord]] = {}
	for record in functions:
		by_name.setdefault(record.name, []).append(record)

	incoming: Dict[str, List[IncomingCall]] = {record.id: [] for record in functions}
	pending_edges = []
	for caller in functions:
		for call in caller.outgoing_calls:
			for target in by_name.get(call.callee_name, []):
				incoming[target.id].append(
					IncomingCall(
						caller_id=caller.id,
						caller_name=caller.name,
						file=caller.file,
						line=call.line,
					)
				)
				pending_edges.append((caller.id, target.id, call.line))

	graph = CallGraph()
	for record in functions:
		graph.add_node(record.model_copy(update={"incoming_calls": incoming[record.id]}))
	for caller_id, callee_id, line in pending_edges:
		graph.add_edge(caller_id, callee_id, line)

	logger.debug("Resolved %d call edges across %d functions", len(graph.edges), len(graph.nodes))
	return graph
