from __future__ import annotations

import os
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from archflow.augment import CollectingNotificationSink, create_augmenter
from archflow.config import AnalyzerConfig
from archflow.model import AnalysisResult, DiagramResult
from archflow.pipeline import analyze_repository, resolve_repository


app = FastAPI(title="Architecture Flow Analyzer")


class AnalyzeRequest(BaseModel):
	root_path: str
	config: Optional[AnalyzerConfig] = None


class DiagramRequest(AnalyzeRequest):
	augment: bool = False


class CallGraphRequest(AnalyzeRequest):
	symbol: str
	max_depth: int = 5


class ReachableFunction(BaseModel):
	id: str
	name: str
	file: str
	depth: int
	importance: int


class CallGraphResponse(BaseModel):
	symbol: str
	matches: List[str]
	callers: Dict[str, List[str]]
	reachable: List[ReachableFunction]
	edges: List[Dict[str, str]]


def _root(root_path: str) -> str:
	root = os.path.abspath(root_path)
	if not os.path.isdir(root):
		raise HTTPException(status_code=400, detail=f"Invalid root_path: {root}")
	return root


@app.post("/analyze", response_model=AnalysisResult)
def analyze(req: AnalyzeRequest) -> AnalysisResult:
	return analyze_repository(_root(req.root_path), req.config or AnalyzerConfig())


@app.post("/diagram", response_model=DiagramResult)
def diagram(req: DiagramRequest) -> DiagramResult:
	root = _root(req.root_path)
	config = req.config or AnalyzerConfig()
	if req.augment:
		config.generative_augmentation.enabled = True
	analysis = analyze_repository(root, config)
	# Errors are returned in the response body rather than pushed elsewhere.
	augmenter = create_augmenter(config.generative_augmentation, CollectingNotificationSink())
	return augmenter.augment(analysis.summary, analysis.diagram_text)


@app.post("/callgraph", response_model=CallGraphResponse)
def callgraph(req: CallGraphRequest) -> CallGraphResponse:
	graph = resolve_repository(_root(req.root_path), req.config or AnalyzerConfig())
	matches = graph.find(req.symbol)
	if not matches:
		raise HTTPException(status_code=404, detail=f"Unknown symbol: {req.symbol}")

	depths: Dict[str, int] = {}
	for fid in matches:
		for rid, depth in graph.get_reachable_from(fid, req.max_depth).items():
			depths[rid] = min(depth, depths.get(rid, depth))

	reachable = [
		ReachableFunction(
			id=rid,
			name=graph.nodes[rid].name,
			file=graph.nodes[rid].file,
			depth=depth,
			importance=graph.nodes[rid].importance,
		)
		for rid, depth in depths.items()
	]
	edges = [
		{"source": e.caller_id, "target": e.callee_id}
		for e in graph.edges
		if e.caller_id in depths and e.callee_id in depths
	]
	return CallGraphResponse(
		symbol=req.symbol,
		matches=matches,
		callers={fid: graph.callers_of(fid) for fid in matches},
		reachable=reachable,
		edges=edges,
	)


class PathsRequest(AnalyzeRequest):
	start: str
	end: str
	max_depth: int = 5


class PathsResponse(BaseModel):
	start: str
	end: str
	paths: List[List[str]]
	path_count: int
	max_depth: int


def _single_match(graph, symbol: str) -> str:
	matches = graph.find(symbol)
	if not matches:
		raise HTTPException(status_code=404, detail=f"Unknown symbol: {symbol}")
	return matches[0]


@app.post("/callgraph/paths", response_model=PathsResponse)
def callgraph_paths(req: PathsRequest) -> PathsResponse:
	graph = resolve_repository(_root(req.root_path), req.config or AnalyzerConfig())
	start = _single_match(graph, req.start)
	end = _single_match(graph, req.end)
	paths = graph.get_paths_between(start, end, req.max_depth)
	return PathsResponse(start=start, end=end, paths=paths, path_count=len(paths), max_depth=req.max_depth)


def create_app() -> FastAPI:
	return app
