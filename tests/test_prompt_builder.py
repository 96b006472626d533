from unittest import TestCase

from app.optimizer.schemas import ProfileSnapshot
from app.optimizer.services.prompt_builder import build_analysis_prompt, build_optimization_prompt


class PromptBuilderTests(TestCase):
	def setUp(self) -> None:
		self.profile = ProfileSnapshot(
			id=7,
			headline="Data Scientist",
			summary="Turning data into decisions.",
			experience=[{"title": "Analyst", "company": "Initech"}],
			education=[{"school": "State U"}],
			skills=["Python", "SQL"],
		)

	def test_analysis_prompt_embeds_profile_and_schema(self) -> None:
		prompt = build_analysis_prompt(self.profile)
		self.assertIn("- Headline: Data Scientist", prompt)
		self.assertIn("- Summary: Turning data into decisions.", prompt)
		self.assertIn('"company": "Initech"', prompt)
		self.assertIn("- Skills: Python, SQL", prompt)
		self.assertIn('"school": "State U"', prompt)
		self.assertIn('"overallScore": number', prompt)
		self.assertIn('"engagement": number', prompt)

	def test_optimization_prompt_embeds_mode_and_preferences(self) -> None:
		prompt = build_optimization_prompt(self.profile, "manual", {"tone": "formal"})
		self.assertIn("Mode: manual", prompt)
		self.assertIn('Preferences: {"tone": "formal"}', prompt)
		self.assertIn('"impact": "high" | "medium" | "low"', prompt)
		self.assertNotIn("Education", prompt)

	def test_empty_profile_still_builds(self) -> None:
		prompt = build_optimization_prompt(ProfileSnapshot(), "auto", None)
		self.assertIn("- Headline: ", prompt)
		self.assertIn("- Experience: []", prompt)
		self.assertIn("Preferences: {}", prompt)

	def test_prompts_are_deterministic(self) -> None:
		self.assertEqual(build_analysis_prompt(self.profile), build_analysis_prompt(self.profile))
