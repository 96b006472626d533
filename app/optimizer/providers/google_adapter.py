from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types as genai_types

from app.optimizer.providers.base import ProviderAdapter, field_of, join_text_parts, require_text


def _candidate_text(response: Any) -> str:
	candidates = field_of(response, "candidates")
	if not isinstance(candidates, list) or not candidates:
		return ""
	content = field_of(candidates[0], "content")
	return join_text_parts(field_of(content, "parts"))


class GoogleAdapter(ProviderAdapter):
	provider = "google"

	def __init__(self, *, api_key: str = "", timeout_s: float | None = None, client: Any = None):
		if client is None:
			http_options = None
			if timeout_s is not None:
				# HttpOptions.timeout is in milliseconds.
				http_options = genai_types.HttpOptions(timeout=int(timeout_s * 1000))
			client = genai.Client(api_key=api_key, http_options=http_options)
		self._client = client

	def invoke(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
		response = self._client.models.generate_content(
			model=model,
			contents=prompt,
			config=genai_types.GenerateContentConfig(
				temperature=temperature,
				max_output_tokens=max_tokens,
			),
		)
		# .text raises on blocked candidates in some SDK versions.
		try:
			text = response.text
		except ValueError:
			text = None
		if not isinstance(text, str) or not text.strip():
			text = _candidate_text(response)
		return require_text(self.provider, text)
