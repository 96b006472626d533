from __future__ import annotations

from typing import Any

import httpx

from app.optimizer.providers.base import MalformedEnvelope, ProviderAdapter, join_text_parts, require_text


_COHERE_BASE_URL = "https://api.cohere.com"


def _build_cohere_client(*, api_key: str, timeout_s: float | None) -> httpx.Client:
	return httpx.Client(
		base_url=_COHERE_BASE_URL,
		headers={
			"Authorization": f"Bearer {api_key}",
			"Content-Type": "application/json",
		},
		timeout=timeout_s,
	)


class CohereAdapter(ProviderAdapter):
	provider = "cohere"

	def __init__(self, *, api_key: str = "", timeout_s: float | None = None, client: Any = None):
		self._client = client if client is not None else _build_cohere_client(api_key=api_key, timeout_s=timeout_s)

	def invoke(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
		response = self._client.post(
			"/v2/chat",
			json={
				"model": model,
				"messages": [{"role": "user", "content": prompt}],
				"max_tokens": max_tokens,
				"temperature": temperature,
			},
		)
		response.raise_for_status()
		try:
			payload = response.json()
		except ValueError as exc:
			raise MalformedEnvelope("cohere returned a non-JSON envelope.") from exc
		message = payload.get("message") if isinstance(payload, dict) else None
		if not isinstance(message, dict):
			raise MalformedEnvelope("cohere envelope has no message.")
		return require_text(self.provider, join_text_parts(message.get("content")))
