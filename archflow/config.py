"""Analyzer configuration.

Options may be given in snake_case or in the camelCase form used by JSON config
files (``ignoredDirectoryNames``, ``generativeAugmentation.timeoutMs``, ...).
The service API key can also come from ``ARCHFLOW_API_KEY`` or
``ANTHROPIC_API_KEY``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEFAULT_IGNORED_DIRECTORIES: Set[str] = {
	"node_modules",
	".git",
	".vscode",
	"dist",
	"build",
	".next",
	".nuxt",
	"coverage",
	".nyc_output",
	"logs",
	"__pycache__",
}

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_ENDPOINT = "https://api.anthropic.com/v1/messages"


class _CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AugmentationConfig(_CamelModel):
	enabled: bool = False
	timeout_ms: int = Field(default=30000, gt=0)
	model: str = DEFAULT_MODEL
	max_tokens: int = Field(default=4000, gt=0)
	temperature: float = 0.3
	api_key: Optional[str] = None
	endpoint: str = DEFAULT_ENDPOINT

	def resolved_api_key(self) -> Optional[str]:
		return self.api_key or os.getenv("ARCHFLOW_API_KEY") or os.getenv("ANTHROPIC_API_KEY")


class AnalyzerConfig(_CamelModel):
	ignored_directory_names: Set[str] = Field(default_factory=lambda: set(DEFAULT_IGNORED_DIRECTORIES))
	ignored_dot_prefixes: bool = True
	max_depth: int = Field(default=5, ge=0)
	selection_cap: int = Field(default=12, ge=1)
	generative_augmentation: AugmentationConfig = Field(default_factory=AugmentationConfig)


def load_config(path: Optional[Union[str, Path]] = None) -> AnalyzerConfig:
	"""Load a JSON config file; no path means defaults.

	Raises ``OSError`` for unreadable files and ``pydantic.ValidationError`` for
	malformed content.
	"""
	if path is None:
		return AnalyzerConfig()
	text = Path(path).read_text(encoding="utf-8")
	return AnalyzerConfig.model_validate_json(text)
