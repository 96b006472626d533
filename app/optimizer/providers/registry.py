from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Iterator, Mapping

from app.optimizer import constants, settings
from app.optimizer.errors import ProviderUnavailable
from app.optimizer.providers.base import ProviderAdapter


logger = logging.getLogger(__name__)

AdapterFactory = Callable[[str, float], ProviderAdapter]


def _openai_factory(api_key: str, timeout_s: float) -> ProviderAdapter:
	from app.optimizer.providers.openai_adapter import OpenAIAdapter

	return OpenAIAdapter(api_key=api_key, timeout_s=timeout_s)


def _anthropic_factory(api_key: str, timeout_s: float) -> ProviderAdapter:
	from app.optimizer.providers.anthropic_adapter import AnthropicAdapter

	return AnthropicAdapter(api_key=api_key, timeout_s=timeout_s)


def _google_factory(api_key: str, timeout_s: float) -> ProviderAdapter:
	from app.optimizer.providers.google_adapter import GoogleAdapter

	return GoogleAdapter(api_key=api_key, timeout_s=timeout_s)


def _cohere_factory(api_key: str, timeout_s: float) -> ProviderAdapter:
	from app.optimizer.providers.cohere_adapter import CohereAdapter

	return CohereAdapter(api_key=api_key, timeout_s=timeout_s)


_FACTORIES: Dict[str, AdapterFactory] = {
	"openai": _openai_factory,
	"anthropic": _anthropic_factory,
	"google": _google_factory,
	"cohere": _cohere_factory,
}


class ProviderRegistry:
	"""Adapters keyed by provider tag. Built once, never mutated."""

	def __init__(self, adapters: Mapping[str, ProviderAdapter] | None = None):
		self._adapters: Mapping[str, ProviderAdapter] = MappingProxyType(dict(adapters or {}))

	@classmethod
	def from_env(cls) -> ProviderRegistry:
		timeout_s = settings.provider_timeout_s()
		adapters: Dict[str, ProviderAdapter] = {}
		for provider in constants.PROVIDER_PRIORITY:
			api_key = settings.provider_api_key(provider)
			if not api_key:
				continue
			try:
				adapters[provider] = _FACTORIES[provider](api_key, timeout_s)
			except Exception:
				logger.exception("Failed to initialize %s adapter; provider disabled", provider)
		logger.info("AI providers initialized: %s", ", ".join(adapters) or "none")
		return cls(adapters)

	def configured(self) -> FrozenSet[str]:
		return frozenset(self._adapters)

	def get(self, provider: str) -> ProviderAdapter:
		adapter = self._adapters.get(provider)
		if adapter is None:
			raise ProviderUnavailable(provider)
		return adapter

	def __contains__(self, provider: object) -> bool:
		return provider in self._adapters

	def __iter__(self) -> Iterator[str]:
		return iter(self._adapters)

	def __len__(self) -> int:
		return len(self._adapters)
