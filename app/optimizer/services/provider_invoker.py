from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from app.optimizer import constants, settings
from app.optimizer.errors import PromptTooLarge, ProviderError
from app.optimizer.providers.registry import ProviderRegistry
from app.optimizer.services.rate_limiter import RateLimiter
from app.optimizer.types import ModelSelection


logger = logging.getLogger(__name__)


def estimate_tokens(prompt: str) -> int:
	return math.ceil(len(prompt) / constants.CHARS_PER_TOKEN)


def context_ceiling(model: str) -> int:
	return constants.MODEL_CONTEXT_CEILINGS.get(model, constants.DEFAULT_CONTEXT_CEILING)


def _error_cause(exc: BaseException) -> str:
	name = exc.__class__.__name__
	if isinstance(exc, TimeoutError) or name in {"APITimeoutError", "TimeoutException", "ReadTimeout"}:
		return "timeout"
	message = str(exc).strip()
	return f"{name}: {message}" if message else name


class ProviderInvoker:
	def __init__(
		self,
		registry: ProviderRegistry,
		rate_limiter: RateLimiter,
		*,
		max_tokens: int | None = None,
		temperature: float | None = None,
		max_workers: int | None = None,
	):
		self._registry = registry
		self._rate_limiter = rate_limiter
		self._max_tokens = max_tokens if max_tokens is not None else settings.max_tokens()
		self._temperature = temperature if temperature is not None else settings.temperature()
		self._executor = ThreadPoolExecutor(
			max_workers=max_workers or settings.workers(),
			thread_name_prefix="provider-call",
		)

	@property
	def max_tokens(self) -> int:
		return self._max_tokens

	def check_prompt_size(self, selection: ModelSelection, prompt: str) -> None:
		estimated = estimate_tokens(prompt)
		ceiling = context_ceiling(selection.model)
		# The completion budget shares the context window with the prompt.
		if estimated + self._max_tokens > ceiling:
			raise PromptTooLarge(selection.model, estimated + self._max_tokens, ceiling)

	def invoke(
		self,
		selection: ModelSelection,
		prompt: str,
		timeout_s: float,
		identity: str,
	) -> str:
		self.check_prompt_size(selection, prompt)
		adapter = self._registry.get(selection.provider)
		self._rate_limiter.try_consume(identity)

		future: Future = self._executor.submit(
			adapter.invoke,
			selection.model,
			prompt,
			self._max_tokens,
			self._temperature,
		)
		try:
			text = future.result(timeout=timeout_s)
		except FutureTimeoutError:
			# A call still queued never starts; one already running is left to finish and dropped.
			if not future.cancel():
				future.add_done_callback(_discard_late_result(selection.provider))
			logger.error("AI model call timed out for %s after %.1fs", selection.provider, timeout_s)
			raise ProviderError(selection.provider, "timeout") from None
		except Exception as exc:
			cause = _error_cause(exc)
			logger.error("AI model call failed for %s: %s", selection.provider, cause)
			raise ProviderError(selection.provider, cause) from exc

		if not isinstance(text, str) or not text.strip():
			logger.error("AI model call for %s returned no text", selection.provider)
			raise ProviderError(selection.provider, "empty response")
		return text

	def shutdown(self) -> None:
		self._executor.shutdown(wait=False, cancel_futures=True)


def _discard_late_result(provider: str):
	def _callback(future: Future) -> None:
		if future.cancelled():
			return
		exc = future.exception()
		if exc is not None:
			logger.info("Discarded late failure from %s: %s", provider, _error_cause(exc))
		else:
			logger.info("Discarded late response from %s", provider)

	return _callback
