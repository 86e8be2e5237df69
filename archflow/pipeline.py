"""End-to-end analysis: scan, extract, resolve, classify, score, select, draw.

Each call owns all of its state. Extraction of every file finishes before call
resolution starts.
"""

from __future__ import annotations

import os
from typing import Dict, List, Optional, Tuple

from .augment import GenerativeAugmenter, NotificationSink, create_augmenter
from .callgraph import CallGraph, build_call_graph
from .classify import classify_functions
from .config import AnalyzerConfig
from .diagram import render_mermaid, synthesize_diagram
from .extract import extract_file
from .fs_scan import read_source, walk_repository
from .log import get_logger
from .model import AnalysisResult, DiagramResult, ExtractionResult
from .scoring import score_functions, select_functions
from .summarize import summarize_analysis


logger = get_logger(__name__)


def extract_repository(root: str, config: Optional[AnalyzerConfig] = None) -> ExtractionResult:
	config = config or AnalyzerConfig()
	files, stats = walk_repository(root, config)
	merged = ExtractionResult(files=files)
	total_lines = 0
	for source in files:
		text = read_source(source)
		if text is None:
			continue
		total_lines += text.count("\n") + 1
		result = extract_file(source.rel_path, text, source.dialect)
		merged.classes.extend(result.classes)
		merged.functions.extend(result.functions)
		merged.imports.extend(result.imports)
		merged.decision_points.extend(result.decision_points)
	merged.stats = stats.model_copy(update={"total_lines": total_lines})
	logger.info(
		"Extracted %d functions and %d classes from %d files",
		len(merged.functions),
		len(merged.classes),
		len(files),
	)
	return merged


def _scored_graph(extraction: ExtractionResult) -> Tuple[CallGraph, Dict[str, List[str]]]:
	graph = build_call_graph(extraction.functions)
	classified, layers = classify_functions(graph.functions)
	for record in score_functions(classified):
		graph.nodes[record.id] = record
	return graph, layers


def resolve_repository(root: str, config: Optional[AnalyzerConfig] = None) -> CallGraph:
	"""Extracted, resolved, classified and scored functions as a call graph."""
	graph, _ = _scored_graph(extract_repository(root, config))
	return graph


def analyze_repository(root: str, config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
	config = config or AnalyzerConfig()
	root = os.path.abspath(root)
	extraction = extract_repository(root, config)

	graph, layers = _scored_graph(extraction)
	functions = graph.functions
	selected = select_functions(functions, layers, config.selection_cap)

	diagram = synthesize_diagram(selected, layers)
	summary = summarize_analysis(root, extraction, selected, layers)
	return AnalysisResult(
		root=root,
		files=extraction.files,
		classes=extraction.classes,
		functions=functions,
		imports=extraction.imports,
		decision_points=extraction.decision_points,
		call_edges=graph.edges,
		layers=layers,
		selected=selected,
		diagram=diagram,
		diagram_text=render_mermaid(diagram),
		summary=summary,
	)


def generate_diagram(
	root: str,
	config: Optional[AnalyzerConfig] = None,
	augmenter: Optional[GenerativeAugmenter] = None,
	sink: Optional[NotificationSink] = None,
) -> DiagramResult:
	"""Diagram text for ``root``; the deterministic diagram unless augmentation succeeds."""
	config = config or AnalyzerConfig()
	analysis = analyze_repository(root, config)
	augmenter = augmenter or create_augmenter(config.generative_augmentation, sink)
	return augmenter.augment(analysis.summary, analysis.diagram_text)
