import json

import pytest
from pydantic import ValidationError

from archflow.config import DEFAULT_IGNORED_DIRECTORIES, AnalyzerConfig, load_config


def test_defaults():
	config = load_config()
	assert config.max_depth == 5
	assert config.selection_cap == 12
	assert config.ignored_directory_names == DEFAULT_IGNORED_DIRECTORIES
	assert config.generative_augmentation.enabled is False
	assert config.generative_augmentation.timeout_ms == 30000


def test_load_camel_case_file(tmp_path):
	path = tmp_path / "archflow.json"
	path.write_text(
		json.dumps(
			{
				"maxDepth": 2,
				"ignoredDirectoryNames": ["vendor"],
				"generativeAugmentation": {"enabled": True, "timeoutMs": 5000, "model": "claude-test"},
			}
		)
	)
	config = load_config(path)
	assert config.max_depth == 2
	assert config.ignored_directory_names == {"vendor"}
	assert config.generative_augmentation.enabled is True
	assert config.generative_augmentation.timeout_ms == 5000
	assert config.generative_augmentation.model == "claude-test"


def test_snake_case_is_accepted():
	config = AnalyzerConfig.model_validate({"max_depth": 1, "selection_cap": 4})
	assert (config.max_depth, config.selection_cap) == (1, 4)


def test_invalid_values_are_rejected(tmp_path):
	path = tmp_path / "bad.json"
	path.write_text(json.dumps({"generativeAugmentation": {"timeoutMs": 0}}))
	with pytest.raises(ValidationError):
		load_config(path)
	with pytest.raises(OSError):
		load_config(tmp_path / "missing.json")


def test_api_key_resolution(monkeypatch):
	monkeypatch.delenv("ARCHFLOW_API_KEY", raising=False)
	monkeypatch.setenv("ANTHROPIC_API_KEY", "fallback")
	config = AnalyzerConfig()
	assert config.generative_augmentation.resolved_api_key() == "fallback"
	monkeypatch.setenv("ARCHFLOW_API_KEY", "primary")
	assert config.generative_augmentation.resolved_api_key() == "primary"
	config.generative_augmentation.api_key = "explicit"
	assert config.generative_augmentation.resolved_api_key() == "explicit"
