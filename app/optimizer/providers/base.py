from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List


class MalformedEnvelope(ValueError):
	"""Vendor response did not contain a usable text payload."""


class ProviderAdapter(ABC):
	"""One AI vendor behind a plain-text contract.

	Adapters own their vendor client and absorb every envelope difference
	(choices, content blocks, candidates). Callers only ever see the text.
	"""

	provider: str = ""

	@abstractmethod
	def invoke(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
		raise NotImplementedError


def field_of(item: Any, name: str) -> Any:
	value = getattr(item, name, None)
	if value is None and isinstance(item, dict):
		value = item.get(name)
	return value


def join_text_parts(parts: Any) -> str:
	if not isinstance(parts, list):
		return ""
	texts: List[str] = []
	for part in parts:
		kind = field_of(part, "type")
		if kind not in (None, "text"):
			continue
		text = field_of(part, "text")
		if isinstance(text, str) and text.strip():
			texts.append(text.strip())
	return "\n".join(texts).strip()


def require_text(provider: str, text: Any) -> str:
	if not isinstance(text, str) or not text.strip():
		raise MalformedEnvelope(f"{provider} returned an empty response.")
	return text.strip()
