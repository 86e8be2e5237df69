from __future__ import annotations

import os
from typing import Dict, List, Optional, Tuple

from .config import AnalyzerConfig
from .log import get_logger
from .model import RepositoryStats, SourceFile


logger = get_logger(__name__)

NO_EXTENSION = "no-extension"

EXTENSION_DIALECT: Dict[str, str] = {
	".js": "brace",
	".jsx": "brace",
	".mjs": "brace",
	".cjs": "brace",
	".ts": "brace",
	".tsx": "brace",
	".py": "indent",
	".java": "generic",
	".cs": "generic",
	".cpp": "generic",
	".cc": "generic",
	".c": "generic",
	".h": "generic",
	".hpp": "generic",
	".go": "generic",
	".rs": "generic",
	".kt": "generic",
	".swift": "generic",
}


def detect_dialect(filename: str) -> Optional[str]:
	"""Dialect for a file name, or None when the extension is not scanned."""
	_, ext = os.path.splitext(filename)
	return EXTENSION_DIALECT.get(ext.lower())


def should_ignore(name: str, config: AnalyzerConfig) -> bool:
	if name in config.ignored_directory_names:
		return True
	return config.ignored_dot_prefixes and name.startswith(".")


def _depth(root: str, dirpath: str) -> int:
	rel = os.path.relpath(dirpath, root)
	if rel == os.curdir:
		return 0
	return len(rel.split(os.sep))


def _log_walk_error(error: OSError) -> None:
	logger.warning("Skipping unreadable directory %s: %s", error.filename, error.strerror or error)


def walk_repository(
	root: str, config: Optional[AnalyzerConfig] = None
) -> Tuple[List[SourceFile], RepositoryStats]:
	"""Walk ``root`` and return the source files worth extracting plus walk counts.

	Directories deeper than ``config.max_depth`` are treated as empty and
	unreadable directories are logged and skipped. Order follows the directory
	listing. The counts cover every non-ignored file and directory seen, and
	leave ``total_lines`` at zero for the caller that reads the files.
	"""
	config = config or AnalyzerConfig()
	files: List[SourceFile] = []
	file_types: Dict[str, int] = {}
	total_files = 0
	total_directories = 0
	for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
		dirnames[:] = [d for d in dirnames if not should_ignore(d, config)]
		total_directories += len(dirnames)
		if _depth(root, dirpath) >= config.max_depth:
			dirnames[:] = []
		for filename in filenames:
			if should_ignore(filename, config):
				continue
			total_files += 1
			ext = os.path.splitext(filename)[1] or NO_EXTENSION
			file_types[ext] = file_types.get(ext, 0) + 1
			dialect = detect_dialect(filename)
			if dialect is None:
				continue
			path = os.path.join(dirpath, filename)
			files.append(
				SourceFile(
					path=path,
					rel_path=os.path.relpath(path, root).replace(os.sep, "/"),
					dialect=dialect,
				)
			)
	logger.debug("Scanned %s: %d source files of %d files", root, len(files), total_files)
	stats = RepositoryStats(
		total_files=total_files,
		total_directories=total_directories,
		file_types=file_types,
	)
	return files, stats


def scan_repository(root: str, config: Optional[AnalyzerConfig] = None) -> List[SourceFile]:
	files, _ = walk_repository(root, config)
	return files


def read_source(source: SourceFile) -> Optional[str]:
	"""File text, or None (logged) when the file cannot be read."""
	try:
		with open(source.path, "r", encoding="utf-8", errors="replace") as fh:
			return fh.read()
	except OSError as e:
		logger.warning("Skipping unreadable file %s: %s", source.rel_path, e)
		return None
