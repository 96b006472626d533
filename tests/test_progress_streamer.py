import json
from unittest import TestCase
from unittest.mock import patch

from app.optimizer.providers import ProviderAdapter, ProviderRegistry
from app.optimizer.schemas import ProfileSnapshot
from app.optimizer.services.progress_streamer import ProgressChannel, ProgressStreamer, build_record
from app.optimizer.services.provider_invoker import ProviderInvoker
from app.optimizer.services.rate_limiter import RateLimiter
from app.optimizer.services.session_registry import SessionRegistry
from app.optimizer.types import OptimizationRequest


IMPROVEMENTS = json.dumps(
	{
		"improvements": [
			{"section": "headline", "current": "a", "optimized": "b", "reasoning": "r", "impact": "high"},
			{"section": "summary", "current": "a", "optimized": "b", "reasoning": "r", "impact": "medium"},
		]
	}
)


class _FakeAdapter(ProviderAdapter):
	provider = "openai"

	def __init__(self, reply=IMPROVEMENTS, on_invoke=None):
		self.reply = reply
		self.on_invoke = on_invoke
		self.calls = 0

	def invoke(self, model, prompt, max_tokens, temperature):
		self.calls += 1
		if self.on_invoke is not None:
			self.on_invoke()
		return self.reply


def _drain(channel: ProgressChannel):
	events = []
	while True:
		event = channel.get(timeout=0)
		if event is None:
			return events
		events.append(event)


class ProgressStreamerTests(TestCase):
	def setUp(self) -> None:
		self.records = []
		self.sessions = SessionRegistry(ttl_s=3600)

	def _streamer(self, adapters):
		registry = ProviderRegistry(adapters)
		invoker = ProviderInvoker(
			registry,
			RateLimiter(capacity=100, window_s=60.0),
			max_tokens=500,
			temperature=0.7,
			max_workers=2,
		)
		self.addCleanup(invoker.shutdown)
		return ProgressStreamer(
			registry,
			invoker,
			record_sink=self.records.append,
			step_delay_s=0,
			timeout_s=5.0,
		)

	def _session(self, session_id="s1", kind="optimization"):
		request = OptimizationRequest(
			profile=ProfileSnapshot(headline="Chef"),
			session_id=session_id,
			kind=kind,
		)
		session = self.sessions.create(session_id, request)
		session.begin()
		return session

	def test_completed_run_emits_monotonic_progress_then_result(self) -> None:
		streamer = self._streamer({"openai": _FakeAdapter()})
		session = self._session()
		channel = ProgressChannel(session.id)
		streamer.run(session, channel)

		events = _drain(channel)
		progress = [event.data["progress"] for event in events if event.event == "progress"]
		self.assertEqual(progress, [0, 0, 20, 45, 75, 100])
		self.assertEqual(progress, sorted(progress))
		self.assertEqual(events[0].data["status"], "Starting analysis...")
		self.assertEqual(events[-2].data["status"], "complete")
		self.assertEqual(events[-2].data["currentStep"], "Finalizing results")
		self.assertEqual(events[-1].event, "result")
		self.assertEqual(events[-1].data["model"], "gpt-4")
		self.assertEqual(
			events[-1].data["result"]["scoreImprovement"],
			{"before": 75, "after": 81, "increase": 6},
		)
		self.assertEqual(session.status, "completed")
		self.assertEqual(len(self.records), 1)
		self.assertEqual(self.records[0].status, "completed")
		self.assertEqual(self.records[0].improvement_count, 2)

	def test_analysis_run_returns_analysis_result(self) -> None:
		reply = json.dumps({"overallScore": 64, "sectionScores": {"headline": 50}})
		streamer = self._streamer({"openai": _FakeAdapter(reply=reply)})
		session = self._session(kind="analysis")
		channel = ProgressChannel(session.id)
		streamer.run(session, channel)
		events = _drain(channel)
		self.assertEqual(events[-1].data["kind"], "analysis")
		self.assertEqual(events[-1].data["result"]["overallScore"], 64)
		self.assertEqual(self.records[0].mode, "analysis")
		self.assertEqual(self.records[0].score_before, 64)

	def test_failure_emits_error_and_never_reaches_hundred(self) -> None:
		streamer = self._streamer({})
		session = self._session()
		channel = ProgressChannel(session.id)
		streamer.run(session, channel)

		events = _drain(channel)
		self.assertEqual(events[-1].event, "error")
		self.assertEqual(events[-1].data["code"], "no_provider_configured")
		self.assertNotIn(100, [event.data.get("progress") for event in events])
		self.assertEqual(session.status, "failed")
		self.assertEqual(self.records[0].status, "failed")

	def test_disconnect_during_call_cancels_and_discards_response(self) -> None:
		session = self._session()
		channel = ProgressChannel(session.id)
		adapter = _FakeAdapter(on_invoke=channel.close)
		streamer = self._streamer({"openai": adapter})
		streamer.run(session, channel)

		events = _drain(channel)
		self.assertEqual(adapter.calls, 1)
		self.assertEqual(session.status, "cancelled")
		self.assertIsNone(session.result)
		self.assertFalse(any(event.event == "result" for event in events))
		self.assertEqual(self.records[0].status, "cancelled")

	def test_closed_channel_before_start_cancels_without_calling_provider(self) -> None:
		adapter = _FakeAdapter()
		streamer = self._streamer({"openai": adapter})
		session = self._session()
		channel = ProgressChannel(session.id)
		channel.close()
		streamer.run(session, channel)
		self.assertEqual(adapter.calls, 0)
		self.assertEqual(session.status, "cancelled")

	def test_unexpected_fault_fails_with_internal_error(self) -> None:
		streamer = self._streamer({"openai": _FakeAdapter()})
		session = self._session()
		channel = ProgressChannel(session.id)
		with patch(
			"app.optimizer.services.response_parser.parse_optimization",
			side_effect=RuntimeError("boom"),
		):
			streamer.run(session, channel)
		events = _drain(channel)
		self.assertEqual(events[-1].event, "error")
		self.assertEqual(events[-1].data["code"], "internal_error")
		self.assertEqual(session.status, "failed")

	def test_sink_failure_does_not_change_outcome(self) -> None:
		streamer = self._streamer({"openai": _FakeAdapter()})

		def broken_sink(record):
			raise OSError("disk full")

		streamer._record_sink = broken_sink
		session = self._session()
		channel = ProgressChannel(session.id)
		streamer.run(session, channel)
		self.assertEqual(session.status, "completed")
		self.assertEqual(_drain(channel)[-1].event, "result")

	def test_build_record_for_pending_session_has_zero_scores(self) -> None:
		request = OptimizationRequest(profile=ProfileSnapshot(), session_id="s9", mode="manual")
		session = self.sessions.create("s9", request)
		record = build_record(session)
		self.assertEqual(record.mode, "manual")
		self.assertEqual((record.score_before, record.score_after), (0, 0))
		self.assertEqual(record.model_used, "auto")
