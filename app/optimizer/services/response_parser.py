"""Normalize raw model text into strict analysis/optimization results.

Both entry points are total: malformed, partial or out-of-range output is
either repaired (clamped, defaulted) or replaced by a fixed fallback value.
Callers never see a parse error.
"""
from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from app.optimizer import constants
from app.optimizer.schemas import (
	AnalysisResult,
	Improvement,
	OptimizationResult,
	ProfileSnapshot,
	ScoreImprovement,
	SectionScores,
)


logger = logging.getLogger(__name__)

FALLBACK_SECTION_SCORES = {
	"headline": 80,
	"summary": 70,
	"experience": 75,
	"skills": 80,
	"completeness": 70,
	"engagement": 75,
}
FALLBACK_OVERALL_SCORE = 75
FALLBACK_STRENGTHS = ["Clear professional title", "Relevant experience"]
FALLBACK_WEAKNESSES = ["Summary could be more compelling", "Missing key skills"]
FALLBACK_RECOMMENDATIONS = ["Enhance summary with achievements", "Add trending skills"]
FALLBACK_KEYWORDS = ["leadership", "innovation", "results-driven"]
FALLBACK_HEADLINE_SUFFIX = " | Expert in Modern Technologies"
FALLBACK_SCORE_IMPROVEMENT = {"before": 75, "after": 85, "increase": 10}

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


class _InvalidPayload(ValueError):
	pass


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _decode(raw: Any) -> Any:
	if not isinstance(raw, str):
		raise _InvalidPayload("response is not text")
	candidate = raw.strip()
	if candidate.startswith("```"):
		candidate = _FENCE_OPEN.sub("", candidate)
		candidate = _FENCE_CLOSE.sub("", candidate)
	if not candidate:
		raise _InvalidPayload("response is empty")
	return json.loads(candidate)


def _is_number(value: Any) -> bool:
	if isinstance(value, bool):
		return False
	if isinstance(value, int):
		return True
	return isinstance(value, float) and math.isfinite(value)


def clamp_score(value: Any) -> int:
	if not _is_number(value):
		return 0
	if isinstance(value, int):
		return min(constants.MAX_SCORE, max(0, value))
	return int(round(min(float(constants.MAX_SCORE), max(0.0, float(value)))))


def _string_list(value: Any) -> List[str]:
	if not isinstance(value, list):
		return []
	result: List[str] = []
	for item in value:
		if isinstance(item, str):
			cleaned = " ".join(item.split()).strip()
			if cleaned:
				result.append(cleaned)
	return result


def normalize_impact(value: Any) -> str:
	if isinstance(value, str):
		lowered = value.strip().lower()
		if lowered in constants.IMPACT_LEVELS:
			return lowered
	return "low"


def score_improvement(improvement_count: int) -> ScoreImprovement:
	before = constants.BASE_SCORE
	after = min(constants.MAX_SCORE, before + constants.POINTS_PER_IMPROVEMENT * improvement_count)
	return ScoreImprovement(before=before, after=after, increase=after - before)


def fallback_analysis(profile: ProfileSnapshot) -> AnalysisResult:
	return AnalysisResult(
		overall_score=FALLBACK_OVERALL_SCORE,
		section_scores=SectionScores(**FALLBACK_SECTION_SCORES),
		strengths=list(FALLBACK_STRENGTHS),
		weaknesses=list(FALLBACK_WEAKNESSES),
		recommendations=list(FALLBACK_RECOMMENDATIONS),
		keywords=list(FALLBACK_KEYWORDS),
		timestamp=_now_iso(),
		profile_id=profile.id,
	)


def fallback_optimization(profile: ProfileSnapshot) -> OptimizationResult:
	return OptimizationResult(
		improvements=[
			Improvement(
				section="headline",
				current=profile.headline,
				optimized=f"{profile.headline}{FALLBACK_HEADLINE_SUFFIX}",
				reasoning="Adding specific expertise increases visibility",
				impact="high",
				keywords=["expert", "modern", "technologies"],
			)
		],
		score_improvement=ScoreImprovement(**FALLBACK_SCORE_IMPROVEMENT),
		timestamp=_now_iso(),
		profile_id=profile.id,
	)


def _analysis_from_payload(payload: Any, profile: ProfileSnapshot) -> AnalysisResult:
	if not isinstance(payload, dict):
		raise _InvalidPayload("analysis payload is not an object")
	if not _is_number(payload.get("overallScore")):
		raise _InvalidPayload("overallScore is missing or not numeric")
	raw_sections = payload.get("sectionScores")
	if not isinstance(raw_sections, dict):
		raw_sections = {}
	sections: Dict[str, int] = {
		key: clamp_score(raw_sections.get(key)) for key in constants.SECTION_SCORE_KEYS
	}
	return AnalysisResult(
		overall_score=clamp_score(payload["overallScore"]),
		section_scores=SectionScores(**sections),
		strengths=_string_list(payload.get("strengths")),
		weaknesses=_string_list(payload.get("weaknesses")),
		recommendations=_string_list(payload.get("recommendations")),
		keywords=_string_list(payload.get("keywords")),
		timestamp=_now_iso(),
		profile_id=profile.id,
	)


def _improvement_from_item(item: Any) -> Improvement:
	if not isinstance(item, dict):
		raise _InvalidPayload("improvement is not an object")
	section = item.get("section")
	optimized = item.get("optimized")
	if not isinstance(section, str) or not section.strip():
		raise _InvalidPayload("improvement.section is missing")
	if not isinstance(optimized, str):
		raise _InvalidPayload("improvement.optimized is missing")
	current = item.get("current")
	reasoning = item.get("reasoning")
	return Improvement(
		section=section.strip(),
		current=current if isinstance(current, str) else "",
		optimized=optimized,
		reasoning=reasoning if isinstance(reasoning, str) else "",
		impact=normalize_impact(item.get("impact")),
		keywords=_string_list(item.get("keywords")),
	)


def _optimization_from_payload(payload: Any, profile: ProfileSnapshot) -> OptimizationResult:
	items = payload.get("improvements") if isinstance(payload, dict) else payload
	if not isinstance(items, list):
		raise _InvalidPayload("improvements is not a list")
	improvements = [_improvement_from_item(item) for item in items]
	# Model-supplied score arithmetic is never trusted.
	return OptimizationResult(
		improvements=improvements,
		score_improvement=score_improvement(len(improvements)),
		timestamp=_now_iso(),
		profile_id=profile.id,
	)


def parse_analysis(raw: Any, profile: ProfileSnapshot) -> AnalysisResult:
	try:
		return _analysis_from_payload(_decode(raw), profile)
	except (ValueError, TypeError, OverflowError, RecursionError) as exc:
		logger.warning("Analysis response unusable, returning fallback: %s", exc)
		return fallback_analysis(profile)


def parse_optimization(raw: Any, profile: ProfileSnapshot) -> OptimizationResult:
	try:
		return _optimization_from_payload(_decode(raw), profile)
	except (ValueError, TypeError, OverflowError, RecursionError) as exc:
		logger.warning("Optimization response unusable, returning fallback: %s", exc)
		return fallback_optimization(profile)
