"""Optional rewrite of the diagram by an external generative-text service.

The core pipeline never imports a service client directly; it goes through
``GenerativeAugmenter``, which always hands back usable diagram text. Any
failure is classified, pushed to a ``NotificationSink`` and answered with the
deterministic diagram.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

import requests

from .config import AugmentationConfig
from .log import get_logger
from .model import AnalysisSummary, DiagramResult, ServiceErrorEvent
from .summarize import build_augmentation_prompt


logger = get_logger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

REMEDIATIONS: Dict[str, Tuple[str, str]] = {
	"insufficient-credit": (
		"Insufficient API credits",
		"The service account does not have enough credit. Add credits or configure another key; "
		"the locally generated diagram is shown instead.",
	),
	"rate-limit": (
		"Rate limit exceeded",
		"The service rate limit was hit. This is temporary; the locally generated diagram is shown for now.",
	),
	"authentication": (
		"Authentication failed",
		"The API key is missing, invalid or expired. Reconfigure the key; "
		"the locally generated diagram is shown instead.",
	),
	"quota-exceeded": (
		"Usage quota exceeded",
		"The usage quota for this period is exhausted. The locally generated diagram is shown until it resets.",
	),
	"generic": (
		"Diagram generation failed",
		"The generative service could not produce a diagram. The locally generated diagram is shown instead.",
	),
}

_MERMAID_BLOCK = re.compile(r"```(?:mermaid)?\s*\n?(flowchart\s+TD[\s\S]*?)```", re.IGNORECASE)
_BARE_FLOWCHART = re.compile(r"^\s*(flowchart\s+TD\b[\s\S]*)$", re.IGNORECASE)


class GenerativeServiceError(Exception):
	def __init__(self, message: str, status_code: Optional[int] = None, error_type: Optional[str] = None):
		super().__init__(message)
		self.status_code = status_code
		self.error_type = error_type


class GenerativeClient:
	"""Narrow interface to a text-generation service."""

	def complete(self, prompt: str, timeout_seconds: float) -> str:
		raise NotImplementedError


class AnthropicClient(GenerativeClient):
	"""Anthropic Messages API over ``requests``."""

	def __init__(
		self,
		api_key: str,
		model: str,
		max_tokens: int = 4000,
		temperature: float = 0.3,
		endpoint: str = "https://api.anthropic.com/v1/messages",
		session: Optional[requests.Session] = None,
	):
		self.api_key = api_key
		self.model = model
		self.max_tokens = max_tokens
		self.temperature = temperature
		self.endpoint = endpoint
		self.session = session

	def complete(self, prompt: str, timeout_seconds: float) -> str:
		post = self.session.post if self.session is not None else requests.post
		response = post(
			self.endpoint,
			headers={
				"Content-Type": "application/json",
				"x-api-key": self.api_key,
				"anthropic-version": ANTHROPIC_VERSION,
			},
			json={
				"model": self.model,
				"max_tokens": self.max_tokens,
				"temperature": self.temperature,
				"messages": [{"role": "user", "content": prompt}],
			},
			timeout=timeout_seconds,
		)
		if response.status_code >= 400:
			message, error_type = _error_details(response)
			raise GenerativeServiceError(message, status_code=response.status_code, error_type=error_type)

		body = response.json()
		parts = [block.get("text", "") for block in body.get("content", []) if block.get("type") == "text"]
		if not parts:
			raise GenerativeServiceError("response contained no text content", status_code=response.status_code)
		return "".join(parts)


def _error_details(response: requests.Response) -> Tuple[str, Optional[str]]:
	try:
		error = response.json().get("error", {})
	except ValueError:
		return response.text or response.reason or "request failed", None
	if not isinstance(error, dict):
		return str(error), None
	return error.get("message") or response.reason or "request failed", error.get("type")


def _status_code(error: BaseException) -> Optional[int]:
	status = getattr(error, "status_code", None)
	if status is None and isinstance(error, requests.HTTPError) and error.response is not None:
		status = error.response.status_code
	return status


def classify_service_error(error: BaseException) -> str:
	"""Map a service failure to one of the user-facing error kinds."""
	status = _status_code(error)
	text = f"{getattr(error, 'error_type', None) or ''} {error}".lower()

	if status == 402 or any(
		term in text for term in ("credit balance", "insufficient credit", "insufficient balance", "billing")
	):
		return "insufficient-credit"
	if "quota" in text or "usage limit" in text:
		return "quota-exceeded"
	if status == 429 or any(term in text for term in ("rate limit", "rate_limit", "too many requests")):
		return "rate-limit"
	if status in (401, 403) or any(
		term in text for term in ("authentication", "unauthorized", "invalid x-api-key", "api key", "permission")
	):
		return "authentication"
	return "generic"


def service_error_event(error: BaseException) -> ServiceErrorEvent:
	kind = classify_service_error(error)
	title, message = REMEDIATIONS[kind]
	return ServiceErrorEvent(
		kind=kind,
		title=title,
		message=message,
		detail=str(error),
		status_code=_status_code(error),
	)


def extract_mermaid(reply: str) -> Optional[str]:
	"""The ``flowchart TD`` block of a reply, or None when there is none."""
	match = _MERMAID_BLOCK.search(reply) or _BARE_FLOWCHART.match(reply)
	if not match:
		return None
	return match.group(1).strip() + "\n"


class NotificationSink:
	"""Receives classified service errors for display; must not block."""

	def notify(self, event: ServiceErrorEvent) -> None:
		raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
	def notify(self, event: ServiceErrorEvent) -> None:
		logger.warning("%s: %s", event.title, event.message)


class CollectingNotificationSink(NotificationSink):
	def __init__(self) -> None:
		self.events: List[ServiceErrorEvent] = []

	def notify(self, event: ServiceErrorEvent) -> None:
		self.events.append(event)


class GenerativeAugmenter:
	def __init__(
		self,
		client: Optional[GenerativeClient],
		config: AugmentationConfig,
		sink: Optional[NotificationSink] = None,
	):
		self.client = client
		self.config = config
		self.sink = sink or LoggingNotificationSink()

	def augment(self, summary: AnalysisSummary, deterministic_text: str) -> DiagramResult:
		"""Ask the service for an alternative diagram; fall back on any failure."""
		if not self.config.enabled:
			return DiagramResult(text=deterministic_text)
		if self.client is None:
			return self._fallback(
				GenerativeServiceError("no API key configured for diagram generation", status_code=401),
				deterministic_text,
			)

		prompt = build_augmentation_prompt(summary, deterministic_text)
		try:
			reply = self.client.complete(prompt, self.config.timeout_ms / 1000.0)
			diagram = extract_mermaid(reply)
			if diagram is None:
				raise GenerativeServiceError("response did not contain a flowchart")
		except Exception as exc:
			return self._fallback(exc, deterministic_text)

		logger.info("Diagram generated by %s", self.config.model)
		return DiagramResult(text=diagram, source="generated")

	def _fallback(self, error: BaseException, deterministic_text: str) -> DiagramResult:
		event = service_error_event(error)
		logger.warning("Diagram generation failed (%s): %s", event.kind, error)
		try:
			self.sink.notify(event)
		except Exception:
			logger.exception("Notification sink rejected %s event", event.kind)
		return DiagramResult(text=deterministic_text, error=event)


def create_augmenter(config: AugmentationConfig, sink: Optional[NotificationSink] = None) -> GenerativeAugmenter:
	client: Optional[GenerativeClient] = None
	api_key = config.resolved_api_key()
	if config.enabled and api_key:
		client = AnthropicClient(
			api_key=api_key,
			model=config.model,
			max_tokens=config.max_tokens,
			temperature=config.temperature,
			endpoint=config.endpoint,
		)
	return GenerativeAugmenter(client, config, sink)
