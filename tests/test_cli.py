import json

import pytest

from cli import main


def test_diagram_command(scenario_root, capsys):
	main(["diagram", str(scenario_root)])
	out = capsys.readouterr().out
	assert out.startswith("flowchart TD\n")
	assert '{"Run: Continue execution?"}' in out


def test_diagram_to_file(scenario_root, tmp_path):
	target = tmp_path / "out.mmd"
	main(["diagram", str(scenario_root), "-o", str(target)])
	assert target.read_text().startswith("flowchart TD")


def test_analyze_command(scenario_root, capsys):
	main(["analyze", str(scenario_root), "--max-depth", "1"])
	data = json.loads(capsys.readouterr().out)
	assert data["summary"]["total_functions"] == 4
	assert data["layers"]["Entry Points"] == [
		"extension.js:activate",
		"extension.js:setup",
		"extension.js:run",
	]


def test_callgraph_command(scenario_root, capsys):
	main(["callgraph", str(scenario_root), "run", "--depth", "1"])
	report = json.loads(capsys.readouterr().out)
	entry = report["extension.js:run"]
	assert entry["callers"] == ["extension.js:activate"]
	assert [r["id"] for r in entry["reachable"]] == ["extension.js:run", "extension.js:process"]


def test_bad_root_exits(tmp_path):
	with pytest.raises(SystemExit):
		main(["analyze", str(tmp_path / "missing")])


def test_bad_config_exits(scenario_root, tmp_path):
	config = tmp_path / "bad.json"
	config.write_text("{not json")
	with pytest.raises(SystemExit):
		main(["analyze", str(scenario_root), "--config", str(config)])


def test_analyze_summary(scenario_root, capsys):
	main(["analyze", str(scenario_root), "--summary"])
	out = capsys.readouterr().out
	assert "1 source files, 4 functions, 0 classes" in out
	assert "activate (33)" in out
