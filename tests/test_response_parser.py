import json
from unittest import TestCase

from app.optimizer.schemas import ProfileSnapshot
from app.optimizer.services import response_parser


def _improvement(section: str, impact: str = "high") -> dict:
	return {
		"section": section,
		"current": "old",
		"optimized": "new",
		"reasoning": "clearer",
		"impact": impact,
		"keywords": ["k1"],
	}


class ResponseParserTests(TestCase):
	def setUp(self) -> None:
		self.profile = ProfileSnapshot(id="p-1", headline="Product Manager")

	def test_non_json_analysis_yields_documented_fallback(self) -> None:
		result = response_parser.parse_analysis("Sure! Here is my analysis...", self.profile)
		self.assertEqual(result.overall_score, 75)
		self.assertEqual(
			result.section_scores.model_dump(),
			{
				"headline": 80,
				"summary": 70,
				"experience": 75,
				"skills": 80,
				"completeness": 70,
				"engagement": 75,
			},
		)
		self.assertEqual(result.strengths, ["Clear professional title", "Relevant experience"])
		self.assertEqual(result.weaknesses, ["Summary could be more compelling", "Missing key skills"])
		self.assertEqual(result.recommendations, ["Enhance summary with achievements", "Add trending skills"])
		self.assertEqual(result.keywords, ["leadership", "innovation", "results-driven"])
		self.assertEqual(result.profile_id, "p-1")

	def test_well_formed_analysis_is_clamped(self) -> None:
		raw = json.dumps(
			{
				"overallScore": 120,
				"sectionScores": {"headline": -5, "summary": 66.6, "experience": "high"},
				"strengths": ["  Strong   network ", "", 3],
				"keywords": ["saas"],
			}
		)
		result = response_parser.parse_analysis(raw, self.profile)
		self.assertEqual(result.overall_score, 100)
		self.assertEqual(result.section_scores.headline, 0)
		self.assertEqual(result.section_scores.summary, 67)
		self.assertEqual(result.section_scores.experience, 0)
		self.assertEqual(result.section_scores.engagement, 0)
		self.assertEqual(result.strengths, ["Strong network"])
		self.assertEqual(result.weaknesses, [])
		self.assertEqual(result.keywords, ["saas"])

	def test_code_fenced_json_is_accepted(self) -> None:
		raw = '```json\n{"overallScore": 88, "sectionScores": {}}\n```'
		self.assertEqual(response_parser.parse_analysis(raw, self.profile).overall_score, 88)

	def test_analysis_without_numeric_overall_falls_back(self) -> None:
		for raw in ('{"overallScore": "90"}', '{"overallScore": true}', "[1, 2]", "null", "", "NaN"):
			with self.subTest(raw=raw):
				self.assertEqual(response_parser.parse_analysis(raw, self.profile).overall_score, 75)

	def test_score_improvement_is_recomputed_from_count(self) -> None:
		raw = json.dumps(
			{
				"improvements": [_improvement("headline"), _improvement("summary"), _improvement("skills")],
				"scoreImprovement": {"before": 10, "after": 99, "increase": 3},
			}
		)
		result = response_parser.parse_optimization(raw, self.profile)
		self.assertEqual(len(result.improvements), 3)
		self.assertEqual(result.score_improvement.model_dump(), {"before": 75, "after": 84, "increase": 9})

	def test_score_improvement_caps_at_hundred(self) -> None:
		improvement = response_parser.score_improvement(20)
		self.assertEqual((improvement.before, improvement.after, improvement.increase), (75, 100, 25))

	def test_unknown_impact_defaults_to_low(self) -> None:
		raw = json.dumps({"improvements": [_improvement("headline", "HIGH"), _improvement("summary", "huge")]})
		result = response_parser.parse_optimization(raw, self.profile)
		self.assertEqual([item.impact for item in result.improvements], ["high", "low"])

	def test_bare_improvement_list_is_accepted(self) -> None:
		raw = json.dumps([_improvement("headline")])
		result = response_parser.parse_optimization(raw, self.profile)
		self.assertEqual(result.improvements[0].section, "headline")
		self.assertEqual(result.score_improvement.after, 78)

	def test_empty_improvement_list_is_valid(self) -> None:
		result = response_parser.parse_optimization('{"improvements": []}', self.profile)
		self.assertEqual(result.improvements, [])
		self.assertEqual(result.score_improvement.after, 75)

	def test_malformed_improvement_falls_back(self) -> None:
		raw = json.dumps({"improvements": [{"current": "x"}]})
		result = response_parser.parse_optimization(raw, self.profile)
		self.assertEqual(len(result.improvements), 1)
		self.assertEqual(result.improvements[0].optimized, "Product Manager | Expert in Modern Technologies")
		self.assertEqual(result.score_improvement.model_dump(), {"before": 75, "after": 85, "increase": 10})

	def test_parsers_never_raise(self) -> None:
		nested = "[" * 5000 + "]" * 5000
		huge = "1" + "0" * 400
		inputs = (
			None,
			42,
			b"{}",
			"{",
			"```",
			nested,
			'{"improvements": "none"}',
			'{"overallScore": ' + huge + "}",
			'{"overallScore": 50, "sectionScores": {"headline": ' + huge + "}}",
			'{"improvements": ' + huge + "}",
		)
		for raw in inputs:
			with self.subTest(raw=str(raw)[:20]):
				response_parser.parse_analysis(raw, self.profile)
				response_parser.parse_optimization(raw, self.profile)

	def test_huge_integer_scores_are_clamped(self) -> None:
		huge = "1" + "0" * 400
		raw = '{"overallScore": ' + huge + ', "sectionScores": {"headline": -' + huge + ', "skills": ' + huge + "}}"
		result = response_parser.parse_analysis(raw, self.profile)
		self.assertEqual(result.overall_score, 100)
		self.assertEqual(result.section_scores.headline, 0)
		self.assertEqual(result.section_scores.skills, 100)
		self.assertEqual(result.strengths, [])
