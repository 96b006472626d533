from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Callable, Optional, Tuple

from app.optimizer import constants
from app.optimizer.errors import NoProviderConfigured, ProviderUnavailable
from app.optimizer.schemas import ProfileSnapshot
from app.optimizer.types import ModelSelection


@dataclass(frozen=True)
class ProfileSignals:
	tech: bool
	executive: bool


@dataclass(frozen=True)
class SelectionRule:
	name: str
	predicate: Callable[[ProfileSignals, AbstractSet[str]], bool]
	provider: Optional[str]


def _selection_for(model_id: str) -> ModelSelection:
	provider, model = constants.MODEL_TABLE[model_id]
	return ModelSelection(provider=provider, model=model)


def _first_configured(configured: AbstractSet[str]) -> Optional[str]:
	for provider in constants.PROVIDER_PRIORITY:
		if provider in configured:
			return provider
	return None


def detect_signals(profile: ProfileSnapshot) -> ProfileSignals:
	content = f"{profile.headline} {profile.summary}".lower()
	return ProfileSignals(
		tech=any(keyword in content for keyword in constants.TECH_KEYWORDS),
		executive=any(keyword in content for keyword in constants.EXECUTIVE_KEYWORDS),
	)


# Evaluated top-down; the first matching rule wins. A provider of None means
# "first configured in priority order".
AUTO_RULES: Tuple[SelectionRule, ...] = (
	SelectionRule("technology_profile", lambda s, c: s.tech and "google" in c, "google"),
	SelectionRule("executive_profile", lambda s, c: s.executive and "anthropic" in c, "anthropic"),
	SelectionRule("openai_default", lambda s, c: "openai" in c, "openai"),
	SelectionRule("priority_fallback", lambda s, c: bool(c), None),
)


def is_auto(model_id: str | None) -> bool:
	if model_id is None:
		return True
	cleaned = model_id.strip().lower()
	return not cleaned or cleaned in constants.AUTO_MODEL_IDS


def matching_rule(signals: ProfileSignals, configured: AbstractSet[str]) -> Optional[SelectionRule]:
	for rule in AUTO_RULES:
		if rule.predicate(signals, configured):
			return rule
	return None


def select(
	model_id: str | None,
	profile: ProfileSnapshot,
	configured_providers: AbstractSet[str],
) -> ModelSelection:
	configured = frozenset(configured_providers)
	if not is_auto(model_id):
		key = model_id.strip() if model_id else ""
		if key not in constants.MODEL_TABLE:
			key = constants.DEFAULT_MODEL_ID
		selection = _selection_for(key)
		if selection.provider not in configured:
			raise ProviderUnavailable(selection.provider)
		return selection

	rule = matching_rule(detect_signals(profile), configured)
	if rule is None:
		raise NoProviderConfigured()
	provider = rule.provider or _first_configured(configured)
	if provider is None:
		raise NoProviderConfigured()
	return _selection_for(constants.PROVIDER_DEFAULT_MODEL_ID[provider])
