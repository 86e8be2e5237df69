import os

from archflow.config import AnalyzerConfig
from archflow.pipeline import analyze_repository, extract_repository, generate_diagram
from archflow.summarize import build_augmentation_prompt, format_summary

from conftest import write_tree


def _mixed_tree(root):
	return write_tree(
		root,
		{
			"src/app.js": """
				import { loadUsers } from './users';

				export function main() {
					const users = loadUsers();
					if (users.length > 0 && ready) {
						renderUsers(users);
					}
				}

				function renderUsers(users) {
					for (const u of users) {
						formatUser(u);
					}
				}
			""",
			"src/users.py": """
				import json


				class UserModel:
					def to_dict(self):
						return {}


				def loadUsers():
					return [UserModel()]


				def formatUser(user):
					return json.dumps(user.to_dict())
			""",
			"node_modules/dep/index.js": "export function main() {}\n",
		},
	)


def test_extract_repository_merges_files(tmp_path):
	extraction = extract_repository(str(_mixed_tree(tmp_path)))
	assert sorted(f.rel_path for f in extraction.files) == ["src/app.js", "src/users.py"]
	names = sorted(fn.name for fn in extraction.functions)
	assert names == ["formatUser", "loadUsers", "main", "renderUsers", "to_dict"]
	assert [c.name for c in extraction.classes] == ["UserModel"]
	assert sorted(i.target for i in extraction.imports) == ["./users", "json"]
	assert len(extraction.decision_points) == 2


def test_analysis_links_across_files(tmp_path):
	result = analyze_repository(str(_mixed_tree(tmp_path)))
	assert result.root == os.path.abspath(str(tmp_path))
	by_name = {fn.name: fn for fn in result.functions}
	assert [ic.caller_name for ic in by_name["loadUsers"].incoming_calls] == ["main"]
	assert [ic.caller_name for ic in by_name["formatUser"].incoming_calls] == ["renderUsers"]
	assert by_name["to_dict"].layer == "Models"

	summary = result.summary
	assert summary.total_files == 2
	assert summary.total_functions == 5
	assert summary.total_classes == 1
	assert summary.layer_counts["Entry Points"] == 1
	assert len(summary.important_functions) == len(result.selected) == 5
	assert result.selected[0].name == "main"


def test_analysis_is_deterministic(tmp_path):
	root = str(_mixed_tree(tmp_path))
	first = analyze_repository(root)
	second = analyze_repository(root)
	assert first.diagram_text == second.diagram_text
	assert first.diagram == second.diagram
	assert [f.id for f in first.selected] == [f.id for f in second.selected]


def test_selection_cap_from_config(tmp_path):
	files = {f"m{i}.py": f"def fn{i}():\n\treturn {i}\n" for i in range(20)}
	write_tree(tmp_path, files)
	result = analyze_repository(str(tmp_path), AnalyzerConfig(selection_cap=6))
	assert len(result.functions) == 20
	assert len(result.selected) == 6


def test_generate_diagram_without_augmentation(scenario_root):
	result = generate_diagram(str(scenario_root))
	assert result.source == "deterministic"
	assert result.error is None
	assert result.text == analyze_repository(str(scenario_root)).diagram_text


def test_repository_stats_cover_every_non_ignored_entry(tmp_path):
	root = _mixed_tree(tmp_path)
	write_tree(root, {"README.md": "# users\n", "docs/notes/Makefile": "all:\n"})

	stats = extract_repository(str(root)).stats
	assert stats.total_files == 4
	assert stats.total_directories == 3
	assert stats.file_types == {".js": 1, ".py": 1, ".md": 1, "no-extension": 1}
	source_lines = sum(
		(root / rel).read_text().count("\n") + 1 for rel in ("src/app.js", "src/users.py")
	)
	assert stats.total_lines == source_lines

	summary = analyze_repository(str(root)).summary
	assert summary.total_files == 2
	assert summary.stats == stats
	assert f"4 files in 3 directories, {source_lines} lines of source" in format_summary(summary)
	prompt = build_augmentation_prompt(summary, "flowchart TD\n")
	assert "- Directories: 3" in prompt
	assert "- File types: .js 1, .md 1, .py 1, no-extension 1" in prompt
