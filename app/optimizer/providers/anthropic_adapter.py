from __future__ import annotations

from typing import Any

import anthropic

from app.optimizer.providers.base import ProviderAdapter, field_of, join_text_parts, require_text


class AnthropicAdapter(ProviderAdapter):
	provider = "anthropic"

	def __init__(self, *, api_key: str = "", timeout_s: float | None = None, client: Any = None):
		if client is None:
			client = anthropic.Anthropic(api_key=api_key, timeout=timeout_s)
		self._client = client

	def invoke(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
		response = self._client.messages.create(
			model=model,
			max_tokens=max_tokens,
			temperature=temperature,
			messages=[{"role": "user", "content": prompt}],
		)
		return require_text(self.provider, join_text_parts(field_of(response, "content")))
