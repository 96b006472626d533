from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, cast

from app.optimizer import constants, settings
from app.optimizer.errors import Cancelled, InternalFault
from app.optimizer.providers.registry import ProviderRegistry
from app.optimizer.schemas import (
	AnalysisResult,
	ModelInfo,
	OptimizationMode,
	OptimizationResult,
	ProfileSnapshot,
	RequestKind,
)
from app.optimizer.services.progress_streamer import ProgressChannel, ProgressStreamer, RecordSink
from app.optimizer.services.provider_invoker import ProviderInvoker
from app.optimizer.services.rate_limiter import RateLimiter
from app.optimizer.services.session_registry import PipelineResult, SessionRegistry, Sweeper
from app.optimizer.types import OptimizationRequest


logger = logging.getLogger(__name__)


def new_session_id(prefix: str = "opt") -> str:
	return f"{prefix}_{uuid.uuid4().hex}"


class OptimizerService:
	"""Inbound operations of the optimizer core.

	Synchronous and streaming forms share one pipeline: the synchronous form
	runs it on the caller's thread and returns the terminal result, the
	streaming form runs it on the worker pool and hands back the channel.
	"""

	def __init__(
		self,
		registry: ProviderRegistry,
		*,
		rate_limiter: RateLimiter | None = None,
		sessions: SessionRegistry | None = None,
		record_sink: RecordSink | None = None,
		invoker: ProviderInvoker | None = None,
		step_delay_s: float | None = None,
		timeout_s: float | None = None,
		max_workers: int | None = None,
	):
		self.registry = registry
		self.rate_limiter = rate_limiter or RateLimiter()
		self.sessions = sessions or SessionRegistry()
		self.invoker = invoker or ProviderInvoker(registry, self.rate_limiter, max_workers=max_workers)
		self.streamer = ProgressStreamer(
			registry,
			self.invoker,
			record_sink=record_sink,
			step_delay_s=step_delay_s,
			timeout_s=timeout_s,
		)
		self._executor = ThreadPoolExecutor(
			max_workers=max_workers or settings.workers(),
			thread_name_prefix="optimizer-session",
		)
		self._sweeper = Sweeper([self.sessions.sweep, self.rate_limiter.prune])

	def start(self) -> None:
		self._sweeper.start()

	def shutdown(self) -> None:
		self._sweeper.stop()
		self._executor.shutdown(wait=False, cancel_futures=True)
		self.invoker.shutdown()

	def analyze(self, profile: ProfileSnapshot, model_id: str = "auto", *, identity: str = "anonymous") -> AnalysisResult:
		request = OptimizationRequest(
			profile=profile,
			session_id=new_session_id("ana"),
			kind="analysis",
			model_id=model_id,
			identity=identity,
		)
		return cast(AnalysisResult, self._run_sync(request))

	def optimize(
		self,
		profile: ProfileSnapshot,
		mode: OptimizationMode = "auto",
		model_id: str = "auto",
		preferences: Mapping[str, Any] | None = None,
		*,
		identity: str = "anonymous",
	) -> OptimizationResult:
		request = OptimizationRequest(
			profile=profile,
			session_id=new_session_id(),
			kind="optimization",
			mode=mode,
			model_id=model_id,
			preferences=dict(preferences or {}),
			identity=identity,
		)
		return cast(OptimizationResult, self._run_sync(request))

	def start_streaming(
		self,
		session_id: str | None,
		profile: ProfileSnapshot,
		kind: RequestKind = "optimization",
		mode: OptimizationMode = "auto",
		model_id: str = "auto",
		preferences: Mapping[str, Any] | None = None,
		*,
		identity: str = "anonymous",
	) -> ProgressChannel:
		request = OptimizationRequest(
			profile=profile,
			session_id=session_id or new_session_id(),
			kind=kind,
			mode=mode,
			model_id=model_id,
			preferences=dict(preferences or {}),
			identity=identity,
		)
		session = self.sessions.get_or_create(request.session_id, request)
		session.begin()
		channel = ProgressChannel(session.id)
		try:
			self._executor.submit(self.streamer.run, session, channel)
		except RuntimeError as exc:
			fault = InternalFault("Optimizer is shutting down.")
			session.fail(fault)
			raise fault from exc
		logger.info("Streaming session %s started (%s, model=%s)", session.id, kind, model_id)
		return channel

	def poll_status(self, session_id: str) -> Dict[str, object]:
		session = self.sessions.get(session_id)
		status = session.snapshot()
		if session.error is not None:
			status["error"] = session.error.as_dict()
		return status

	def list_models(self) -> List[Dict[str, Any]]:
		configured = self.registry.configured()
		return [
			ModelInfo(**entry).model_dump()
			for entry in constants.MODEL_CATALOG
			if entry["provider"] in configured
		]

	def _run_sync(self, request: OptimizationRequest) -> PipelineResult:
		session = self.sessions.create(request.session_id, request)
		session.begin()
		self.streamer.run(session, ProgressChannel(session.id))
		if session.status == "completed" and session.result is not None:
			return session.result
		if session.error is not None:
			raise session.error
		raise Cancelled(session.id)
