"""Analyzer package that scans source trees and synthesizes architecture flow diagrams.

Modules:
- fs_scan.py: Depth-bounded directory scanning and dialect detection.
- extract.py: Line-oriented extraction of functions, classes, imports and decision points.
- callgraph.py: Name-based call resolution and call graph queries.
- classify.py: Naming-convention flags and architectural layers.
- scoring.py: Importance scores and function selection.
- diagram.py: Layered flow graph synthesis and Mermaid rendering.
- augment.py: Optional generative rewrite of the diagram with deterministic fallback.
- summarize.py: Analysis summaries and the generative service prompt.
- pipeline.py: The end-to-end analysis run.
- config.py, log.py, model.py: Configuration, logging and data records.
"""

__all__ = [
	"fs_scan",
	"extract",
	"callgraph",
	"classify",
	"scoring",
	"diagram",
	"augment",
	"summarize",
	"pipeline",
	"config",
	"log",
	"model",
]
