import logging
import os

import pytest

from archflow.config import AnalyzerConfig
from archflow.fs_scan import detect_dialect, read_source, scan_repository
from archflow.model import SourceFile

from conftest import write_tree


def test_detect_dialect():
	assert detect_dialect("app.ts") == "brace"
	assert detect_dialect("Main.JS") == "brace"
	assert detect_dialect("models.py") == "indent"
	assert detect_dialect("server.go") == "generic"
	assert detect_dialect("README.md") is None


def test_scan_filters_ignored_and_unknown(tmp_path):
	write_tree(
		tmp_path,
		{
			"src/app.ts": "export function main() {}\n",
			"src/util.py": "def helper():\n    pass\n",
			"node_modules/lib/index.js": "function x() {}\n",
			".hidden/secret.js": "function y() {}\n",
			".eslintrc.js": "module.exports = {};\n",
			"README.md": "# docs\n",
		},
	)
	files = scan_repository(str(tmp_path))
	rel_paths = sorted(f.rel_path for f in files)
	assert rel_paths == ["src/app.ts", "src/util.py"]
	dialects = {f.rel_path: f.dialect for f in files}
	assert dialects["src/app.ts"] == "brace"
	assert dialects["src/util.py"] == "indent"


def test_dot_prefixes_can_be_included(tmp_path):
	write_tree(tmp_path, {".tools/build.js": "function build() {}\n"})
	config = AnalyzerConfig(ignored_dot_prefixes=False)
	assert [f.rel_path for f in scan_repository(str(tmp_path), config)] == [".tools/build.js"]


def test_depth_cap_treats_deeper_directories_as_empty(tmp_path):
	tree = {}
	path = ""
	for level in range(6):
		tree[f"{path}f{level}.py"] = "def f():\n    pass\n"
		path += f"d{level + 1}/"
	write_tree(tmp_path, tree)

	files = scan_repository(str(tmp_path), AnalyzerConfig(max_depth=2))
	assert sorted(f.rel_path for f in files) == ["d1/d2/f2.py", "d1/f1.py", "f0.py"]

	files = scan_repository(str(tmp_path))
	assert len(files) == 6


def test_missing_root_is_logged_not_raised(tmp_path, caplog):
	with caplog.at_level(logging.WARNING):
		files = scan_repository(str(tmp_path / "missing"))
	assert files == []
	assert "Skipping unreadable directory" in caplog.text


def test_empty_directory(tmp_path):
	assert scan_repository(str(tmp_path)) == []


def test_read_source_unreadable_returns_none(tmp_path, caplog):
	source = SourceFile(path=str(tmp_path / "gone.py"), rel_path="gone.py", dialect="indent")
	with caplog.at_level(logging.WARNING):
		assert read_source(source) is None
	assert "gone.py" in caplog.text


@pytest.mark.skipif(
	hasattr(os, "geteuid") and os.geteuid() == 0, reason="root can read any directory"
)
def test_unreadable_subdirectory_is_skipped_with_warning(tmp_path, caplog):
	write_tree(tmp_path, {"open/ok.py": "def ok():\n    pass\n", "locked/hidden.py": "def h():\n    pass\n"})
	locked = tmp_path / "locked"
	locked.chmod(0)
	try:
		with caplog.at_level(logging.WARNING):
			files = scan_repository(str(tmp_path))
	finally:
		locked.chmod(0o755)
	assert [f.rel_path for f in files] == ["open/ok.py"]
	assert "Skipping unreadable directory" in caplog.text
	assert "locked" in caplog.text
