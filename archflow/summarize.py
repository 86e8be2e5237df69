from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .model import AnalysisSummary, ExtractionResult, FunctionBrief, FunctionRecord


DECISION_HIGHLIGHTS = 5
PROMPT_FUNCTIONS = 8


def brief(record: FunctionRecord) -> FunctionBrief:
	return FunctionBrief(
		id=record.id,
		name=record.name,
		file=record.file,
		layer=record.layer,
		importance=record.importance,
		kind=record.kind,
		is_entry_point=record.is_entry_point,
	)


def summarize_analysis(
	root: str,
	extraction: ExtractionResult,
	selected: Sequence[FunctionRecord],
	layers: Dict[str, List[str]],
	analyzed_at: Optional[datetime] = None,
) -> AnalysisSummary:
	analyzed_at = analyzed_at or datetime.now(timezone.utc)
	selected_ids = {record.id for record in selected}
	highlights = [
		f"{dp.kind} in {dp.owning_function or 'global'}: {dp.snippet}"
		for dp in extraction.decision_points
		if dp.owning_function in selected_ids
	][:DECISION_HIGHLIGHTS]
	return AnalysisSummary(
		root=root,
		analyzed_at=analyzed_at.isoformat(),
		total_files=len(extraction.files),
		total_functions=len(extraction.functions),
		total_classes=len(extraction.classes),
		total_imports=len(extraction.imports),
		total_decision_points=len(extraction.decision_points),
		layer_counts={label: len(ids) for label, ids in layers.items()},
		important_functions=[brief(record) for record in selected],
		decision_highlights=highlights,
		stats=extraction.stats,
	)


def format_summary(summary: AnalysisSummary) -> str:
	parts: List[str] = []
	parts.append(
		f"Repository at {summary.root}: {summary.total_files} source files, "
		f"{summary.total_functions} functions, {summary.total_classes} classes"
	)
	stats = summary.stats
	if stats.total_files:
		parts.append(
			f"  Repository: {stats.total_files} files in {stats.total_directories} directories, "
			f"{stats.total_lines} lines of source"
		)
	layers = ", ".join(f"{label} {count}" for label, count in summary.layer_counts.items() if count)
	if layers:
		parts.append(f"  Layers: {layers}")
	if summary.important_functions:
		parts.append(
			"  Important: "
			+ ", ".join(f"{fn.name} ({fn.importance})" for fn in summary.important_functions)
		)
	return "\n".join(parts)


def build_augmentation_prompt(summary: AnalysisSummary, deterministic_text: str) -> str:
	"""Request text for the generative service: analysis facts plus the local diagram."""
	functions = "\n".join(
		f"- {fn.name} (importance: {fn.importance}) [{fn.kind}] in {fn.file}"
		+ (" (ENTRY)" if fn.is_entry_point else "")
		for fn in summary.important_functions[:PROMPT_FUNCTIONS]
	)
	decisions = "\n".join(f"- {line}" for line in summary.decision_highlights) or "- none detected"
	file_types = ", ".join(
		f"{ext} {count}" for ext, count in sorted(summary.stats.file_types.items())
	)
	layers = "\n".join(
		f"- {label}: {count} functions" for label, count in summary.layer_counts.items() if count
	)
	return f"""Create a clean flowchart of the code execution flow and architecture.

REQUIREMENTS:
1. Use 'flowchart TD' syntax
2. Text labels only, no icons or emojis
3. Monotone gray styling
4. Square subgraphs for architectural layers
5. Focus on logic flow and decision points
6. Include only the most important functions (at most 12)

ANALYSIS:
- Source files: {summary.total_files}
- Functions: {summary.total_functions}
- Classes: {summary.total_classes}
- Files in repository: {summary.stats.total_files}
- Directories: {summary.stats.total_directories}
- Lines of source: {summary.stats.total_lines}
- File types: {file_types or "none"}

KEY FUNCTIONS:
{functions or "- none detected"}

DECISION POINTS:
{decisions}

ARCHITECTURAL LAYERS:
{layers or "- none detected"}

CURRENT DIAGRAM:
```mermaid
{deterministic_text.rstrip()}
```

Return ONLY the improved Mermaid flowchart in a ```mermaid code block."""
