import json
from unittest import TestCase

from fastapi.testclient import TestClient

from app.optimizer.main import create_app
from app.optimizer.providers import ProviderAdapter, ProviderRegistry
from app.optimizer.services.optimizer_service import OptimizerService
from app.optimizer.services.rate_limiter import RateLimiter
from app.optimizer.services.session_registry import SessionRegistry


ANALYSIS_REPLY = json.dumps(
	{
		"overallScore": 82,
		"sectionScores": {
			"headline": 90,
			"summary": 70,
			"experience": 85,
			"skills": 80,
			"completeness": 75,
			"engagement": 60,
		},
		"strengths": ["Clear headline"],
		"weaknesses": ["Short summary"],
		"recommendations": ["Quantify results"],
		"keywords": ["cloud"],
	}
)

OPTIMIZATION_REPLY = json.dumps(
	{
		"improvements": [
			{"section": "headline", "current": "Chef", "optimized": "Head Chef", "reasoning": "r", "impact": "high"},
		]
	}
)


class _ScriptedAdapter(ProviderAdapter):
	provider = "openai"

	def invoke(self, model, prompt, max_tokens, temperature):
		if "comprehensive optimization score" in prompt:
			return ANALYSIS_REPLY
		return OPTIMIZATION_REPLY


def _build_client(testcase: TestCase, capacity: int = 100) -> TestClient:
	service = OptimizerService(
		ProviderRegistry({"openai": _ScriptedAdapter()}),
		rate_limiter=RateLimiter(capacity=capacity, window_s=60.0),
		sessions=SessionRegistry(ttl_s=3600),
		step_delay_s=0,
		timeout_s=5.0,
		max_workers=2,
	)
	testcase.addCleanup(service.shutdown)
	return TestClient(create_app(service=service))


class ApiContractsTests(TestCase):
	def setUp(self) -> None:
		self.client = _build_client(self)

	def test_health_lists_configured_providers(self) -> None:
		response = self.client.get("/health")
		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertEqual(payload["status"], "healthy")
		self.assertEqual(payload["models"], ["openai"])
		self.assertIn("timestamp", payload)

	def test_models_returns_only_available_catalog_entries(self) -> None:
		response = self.client.get("/api/mcp/models")
		self.assertEqual(response.status_code, 200)
		payload = response.json()
		self.assertTrue(payload["ok"])
		models = payload["data"]["models"]
		self.assertEqual([model["id"] for model in models], ["gpt-4"])
		self.assertIn("strengths", models[0])

	def test_analyze_returns_camel_case_result(self) -> None:
		response = self.client.post(
			"/api/mcp/analyze",
			json={"profileData": {"id": 11, "headline": "Chef", "summary": "Cooks"}, "modelId": "gpt-4"},
		)
		self.assertEqual(response.status_code, 200)
		analysis = response.json()["data"]["analysis"]
		self.assertEqual(analysis["overallScore"], 82)
		self.assertEqual(analysis["sectionScores"]["engagement"], 60)
		self.assertEqual(analysis["profileId"], 11)
		self.assertIn("X-Request-ID", response.headers)

	def test_optimize_recomputes_score(self) -> None:
		response = self.client.post(
			"/api/mcp/optimize",
			json={"profileData": {"headline": "Chef"}, "mode": "manual", "preferences": {"tone": "warm"}},
		)
		self.assertEqual(response.status_code, 200)
		optimization = response.json()["data"]["optimization"]
		self.assertEqual(optimization["improvements"][0]["optimized"], "Head Chef")
		self.assertEqual(optimization["scoreImprovement"], {"before": 75, "after": 78, "increase": 3})

	def test_unconfigured_model_returns_503(self) -> None:
		response = self.client.post(
			"/api/mcp/analyze",
			json={"profileData": {"headline": "Chef"}, "modelId": "claude-3"},
		)
		self.assertEqual(response.status_code, 503)
		payload = response.json()
		self.assertFalse(payload["ok"])
		self.assertEqual(payload["error"]["code"], "provider_unavailable")
		self.assertEqual(payload["error"]["message"], "Provider 'anthropic' is not configured.")
		self.assertEqual(payload["error"]["evidence"], [])

	def test_missing_profile_returns_validation_error(self) -> None:
		response = self.client.post("/api/mcp/analyze", json={"modelId": "auto"})
		self.assertEqual(response.status_code, 422)
		payload = response.json()
		self.assertEqual(payload["error"]["code"], "validation_error")
		self.assertTrue(any("profileData" in item for item in payload["error"]["evidence"]))

	def test_invalid_mode_returns_validation_error(self) -> None:
		response = self.client.post(
			"/api/mcp/optimize",
			json={"profileData": {"headline": "Chef"}, "mode": "turbo"},
		)
		self.assertEqual(response.status_code, 422)

	def test_rate_limit_returns_429(self) -> None:
		client = _build_client(self, capacity=1)
		body = {"profileData": {"headline": "Chef"}}
		self.assertEqual(client.post("/api/mcp/analyze", json=body).status_code, 200)
		response = client.post("/api/mcp/analyze", json=body)
		self.assertEqual(response.status_code, 429)
		self.assertEqual(response.json()["error"]["code"], "rate_limited")

	def test_unknown_session_status_returns_404(self) -> None:
		response = self.client.get("/api/mcp/status/missing")
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.json()["error"]["code"], "session_not_found")

	def test_unknown_route_uses_error_envelope(self) -> None:
		response = self.client.get("/api/mcp/nope")
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.json()["error"]["code"], "http_404")
