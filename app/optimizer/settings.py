from __future__ import annotations

import os

from app.optimizer import constants


_DEFAULT_RATE_LIMIT_POINTS = 100
_DEFAULT_RATE_LIMIT_WINDOW_S = 60.0
_DEFAULT_SESSION_TTL_S = 60 * 60
_DEFAULT_SWEEP_INTERVAL_S = 60.0
_DEFAULT_PROVIDER_TIMEOUT_S = 30.0
_DEFAULT_STEP_DELAY_S = 0.0
_DEFAULT_MAX_TOKENS = 2000
_DEFAULT_TEMPERATURE = 0.7
_DEFAULT_WORKERS = 8
_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def _int_env(name: str, default: int, minimum: int = 1) -> int:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def rate_limit_points() -> int:
	return _int_env("OPTIMIZER_RATE_LIMIT_POINTS", _DEFAULT_RATE_LIMIT_POINTS)


def rate_limit_window_s() -> float:
	return _float_env("OPTIMIZER_RATE_LIMIT_WINDOW_S", _DEFAULT_RATE_LIMIT_WINDOW_S, minimum=1.0)


def session_ttl_s() -> int:
	return _int_env("OPTIMIZER_SESSION_TTL_S", _DEFAULT_SESSION_TTL_S, minimum=60)


def sweep_interval_s() -> float:
	return _float_env("OPTIMIZER_SWEEP_INTERVAL_S", _DEFAULT_SWEEP_INTERVAL_S, minimum=1.0)


def provider_timeout_s() -> float:
	return _float_env("OPTIMIZER_PROVIDER_TIMEOUT_S", _DEFAULT_PROVIDER_TIMEOUT_S, minimum=0.1)


def step_delay_s() -> float:
	return _float_env("OPTIMIZER_STEP_DELAY_S", _DEFAULT_STEP_DELAY_S)


def max_tokens() -> int:
	return _int_env("OPTIMIZER_MAX_TOKENS", _DEFAULT_MAX_TOKENS, minimum=16)


def temperature() -> float:
	return _float_env("OPTIMIZER_TEMPERATURE", _DEFAULT_TEMPERATURE)


def workers() -> int:
	return _int_env("OPTIMIZER_WORKERS", _DEFAULT_WORKERS)


def db_path() -> str:
	return os.getenv("OPTIMIZER_DB_PATH", "").strip() or constants.DEFAULT_DB_PATH


def log_level() -> str:
	level = os.getenv("LOG_LEVEL", "").strip().upper()
	return level if level in _LOG_LEVELS else "INFO"


def provider_api_key(provider: str) -> str:
	env_name = constants.PROVIDER_ENV_KEYS.get(provider)
	if not env_name:
		return ""
	return os.getenv(env_name, "").strip()


def host() -> str:
	return os.getenv("OPTIMIZER_HOST", "").strip() or constants.DEFAULT_HOST


def port() -> int:
	return _int_env("OPTIMIZER_PORT", constants.DEFAULT_PORT)
