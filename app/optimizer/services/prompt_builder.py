from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from app.optimizer.schemas import ProfileSnapshot


_ANALYSIS_SCHEMA = """
{
  "overallScore": number,
  "sectionScores": {
    "headline": number,
    "summary": number,
    "experience": number,
    "skills": number,
    "completeness": number,
    "engagement": number
  },
  "strengths": [string],
  "weaknesses": [string],
  "recommendations": [string],
  "keywords": [string]
}
""".strip()

_OPTIMIZATION_SCHEMA = """
{
  "improvements": [
    {
      "section": string,
      "current": string,
      "optimized": string,
      "reasoning": string,
      "impact": "high" | "medium" | "low",
      "keywords": [string]
    }
  ]
}
""".strip()


def _json(value: Any) -> str:
	return json.dumps(value, ensure_ascii=False, default=str)


def _skills_text(profile: ProfileSnapshot) -> str:
	return ", ".join(str(skill) for skill in profile.skills)


def build_analysis_prompt(profile: ProfileSnapshot) -> str:
	return "\n".join(
		[
			"Analyze this LinkedIn profile and provide a comprehensive optimization score.",
			"",
			"Profile Data:",
			f"- Headline: {profile.headline}",
			f"- Summary: {profile.summary}",
			f"- Experience: {_json(list(profile.experience))}",
			f"- Skills: {_skills_text(profile)}",
			f"- Education: {_json(list(profile.education))}",
			"",
			"Please provide:",
			"1. Overall optimization score (0-100)",
			"2. Individual section scores (headline, summary, experience, skills, completeness, engagement), each 0-100",
			"3. Key strengths and weaknesses",
			"4. Industry-specific recommendations",
			"5. Keyword optimization suggestions",
			"",
			"Return ONLY valid JSON (no markdown) with exactly this structure:",
			_ANALYSIS_SCHEMA,
		]
	)


def build_optimization_prompt(
	profile: ProfileSnapshot,
	mode: str,
	preferences: Mapping[str, Any] | None = None,
) -> str:
	prefs: Dict[str, Any] = dict(preferences or {})
	return "\n".join(
		[
			"Optimize this LinkedIn profile based on the specified mode and preferences.",
			"",
			"Profile Data:",
			f"- Headline: {profile.headline}",
			f"- Summary: {profile.summary}",
			f"- Experience: {_json(list(profile.experience))}",
			f"- Skills: {_skills_text(profile)}",
			"",
			f"Mode: {mode or ''}",
			f"Preferences: {_json(prefs)}",
			"",
			"Provide specific optimization suggestions for each section with:",
			"1. Current content",
			"2. Optimized content",
			"3. Reasoning for changes",
			"4. Expected impact level (high/medium/low)",
			"",
			"Return ONLY valid JSON (no markdown) with exactly this structure:",
			_OPTIMIZATION_SCHEMA,
		]
	)
