from __future__ import annotations

from typing import Any

from openai import OpenAI

from app.optimizer.providers.base import MalformedEnvelope, ProviderAdapter, field_of, require_text


def _build_openai_client(*, api_key: str, timeout_s: float | None) -> OpenAI:
	return OpenAI(api_key=api_key, timeout=timeout_s)


def _extract_choice_text(response: Any) -> str:
	choices = field_of(response, "choices")
	if not isinstance(choices, list) or not choices:
		raise MalformedEnvelope("openai response has no choices.")
	message = field_of(choices[0], "message")
	if message is None:
		raise MalformedEnvelope("openai choice has no message.")
	return require_text("openai", field_of(message, "content"))


class OpenAIAdapter(ProviderAdapter):
	provider = "openai"

	def __init__(self, *, api_key: str = "", timeout_s: float | None = None, client: Any = None):
		self._client = client if client is not None else _build_openai_client(api_key=api_key, timeout_s=timeout_s)

	def invoke(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
		response = self._client.chat.completions.create(
			model=model,
			messages=[{"role": "user", "content": prompt}],
			temperature=temperature,
			max_tokens=max_tokens,
		)
		return _extract_choice_text(response)
