from __future__ import annotations


class OptimizerError(Exception):
	status_code = 500
	code = "optimizer_error"

	def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None):
		super().__init__(message)
		self.message = message
		if status_code is not None:
			self.status_code = status_code
		if code is not None:
			self.code = code

	def as_dict(self) -> dict:
		return {"code": self.code, "message": self.message}


class RateLimited(OptimizerError):
	status_code = 429
	code = "rate_limited"

	def __init__(self, identity: str, retry_after_s: float):
		super().__init__(f"Rate limit exceeded for {identity}; retry in {retry_after_s:.1f}s.")
		self.identity = identity
		self.retry_after_s = retry_after_s


class ProviderUnavailable(OptimizerError):
	status_code = 503
	code = "provider_unavailable"

	def __init__(self, provider: str):
		super().__init__(f"Provider '{provider}' is not configured.")
		self.provider = provider


class NoProviderConfigured(OptimizerError):
	status_code = 503
	code = "no_provider_configured"

	def __init__(self):
		super().__init__("No AI provider is configured.")


class PromptTooLarge(OptimizerError):
	status_code = 413
	code = "prompt_too_large"

	def __init__(self, model: str, estimated_tokens: int, ceiling: int):
		super().__init__(
			f"Prompt needs ~{estimated_tokens} tokens but '{model}' accepts at most {ceiling}."
		)
		self.model = model
		self.estimated_tokens = estimated_tokens
		self.ceiling = ceiling


class ProviderError(OptimizerError):
	status_code = 502
	code = "provider_error"

	def __init__(self, provider: str, cause: str):
		super().__init__(f"Provider '{provider}' failed: {cause}")
		self.provider = provider
		self.cause = cause
		if cause == "timeout":
			self.status_code = 504
			self.code = "provider_timeout"


class SessionBusy(OptimizerError):
	status_code = 409
	code = "session_busy"

	def __init__(self, session_id: str):
		super().__init__(f"Session '{session_id}' is already running.")
		self.session_id = session_id


class DuplicateSession(OptimizerError):
	status_code = 409
	code = "duplicate_session"

	def __init__(self, session_id: str):
		super().__init__(f"Session '{session_id}' already exists.")
		self.session_id = session_id


class NotFound(OptimizerError):
	status_code = 404
	code = "session_not_found"

	def __init__(self, session_id: str):
		super().__init__(f"Session '{session_id}' not found.")
		self.session_id = session_id


class Cancelled(OptimizerError):
	status_code = 499
	code = "session_cancelled"

	def __init__(self, session_id: str):
		super().__init__(f"Session '{session_id}' was cancelled.")
		self.session_id = session_id


class InternalFault(OptimizerError):
	status_code = 500
	code = "internal_error"

	def __init__(self, message: str = "Internal pipeline fault."):
		super().__init__(message)
