from pathlib import Path
from textwrap import dedent
from typing import Dict

import pytest


SCENARIO_JS = dedent(
	"""
	export async function activate(context) {
		setup();
		run();
	}

	function setup() {
		return 1;
	}

	function run() {
		if (ready) {
			process();
		}
	}

	export function process() {
		return true;
	}
	"""
)


def write_tree(root: Path, files: Dict[str, str]) -> Path:
	for rel, text in files.items():
		path = root / rel
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(dedent(text))
	return root


@pytest.fixture
def scenario_root(tmp_path: Path) -> Path:
	"""activate -> setup, run; run -> process (inside one if)."""
	return write_tree(tmp_path, {"extension.js": SCENARIO_JS})
