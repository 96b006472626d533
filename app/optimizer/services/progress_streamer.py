from __future__ import annotations

import logging
import queue
import time
from datetime import datetime, timezone
from threading import Event
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from app.optimizer import constants, settings
from app.optimizer.errors import InternalFault, OptimizerError
from app.optimizer.providers.registry import ProviderRegistry
from app.optimizer.schemas import AnalysisResult, OptimizationResult, ProgressEvent
from app.optimizer.services import model_selector, prompt_builder, response_parser
from app.optimizer.services.provider_invoker import ProviderInvoker
from app.optimizer.services.session_registry import PipelineResult, Session
from app.optimizer.types import SessionRecord, StreamEvent


logger = logging.getLogger(__name__)

RecordSink = Callable[[SessionRecord], None]


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ProgressChannel:
	"""Single-producer channel carrying one session's stream events.

	The transport drains it; closing it signals that the consumer went away.
	"""

	def __init__(self, session_id: str):
		self.session_id = session_id
		self._queue: "queue.Queue[StreamEvent]" = queue.Queue()
		self._closed = Event()

	@property
	def closed(self) -> bool:
		return self._closed.is_set()

	def close(self) -> None:
		self._closed.set()

	def put(self, event: StreamEvent) -> bool:
		if self.closed:
			return False
		self._queue.put(event)
		return True

	def get(self, timeout: float | None = None) -> Optional[StreamEvent]:
		try:
			return self._queue.get(timeout=timeout)
		except queue.Empty:
			return None

	def __iter__(self) -> Iterator[StreamEvent]:
		while True:
			event = self._queue.get()
			yield event
			if event.terminal:
				return


class ProgressStreamer:
	def __init__(
		self,
		registry: ProviderRegistry,
		invoker: ProviderInvoker,
		*,
		record_sink: RecordSink | None = None,
		steps: Sequence[Tuple[str, int]] = constants.PROGRESS_STEPS,
		step_delay_s: float | None = None,
		timeout_s: float | None = None,
		sleep: Callable[[float], None] = time.sleep,
	):
		self._registry = registry
		self._invoker = invoker
		self._record_sink = record_sink
		self._steps: List[Tuple[str, int]] = list(steps)
		self._step_delay_s = step_delay_s if step_delay_s is not None else settings.step_delay_s()
		self._timeout_s = timeout_s if timeout_s is not None else settings.provider_timeout_s()
		self._sleep = sleep

	def run(self, session: Session, channel: ProgressChannel) -> None:
		try:
			self._run(session, channel)
		except Exception:
			logger.exception("Unexpected fault in session %s", session.id)
			self._fail(session, channel, InternalFault())

	def _run(self, session: Session, channel: ProgressChannel) -> None:
		if not self._emit(session, channel, 0, constants.PROGRESS_START_STATUS, None):
			return
		cumulative = 0
		last_index = len(self._steps) - 1
		for index, (name, weight) in enumerate(self._steps):
			if not self._emit(session, channel, cumulative, name, name):
				return
			if index < last_index:
				if self._step_delay_s > 0:
					self._sleep(self._step_delay_s)
				cumulative += weight

		try:
			result = self._execute(session)
		except OptimizerError as exc:
			self._fail(session, channel, exc)
			return

		if channel.closed:
			logger.info("Discarding provider response for cancelled session %s", session.id)
			self._cancel(session)
			return
		if not self._emit(
			session,
			channel,
			100,
			constants.PROGRESS_COMPLETE_STATUS,
			constants.PROGRESS_FINAL_STEP,
		):
			return
		if session.complete(result):
			channel.put(
				StreamEvent(
					event="result",
					data={
						"sessionId": session.id,
						"kind": session.request.kind,
						"model": session.model_used,
						"result": result.model_dump(by_alias=True),
					},
				)
			)
			logger.info("Session %s completed with %s", session.id, session.model_used)
			self._persist(session)

	def _execute(self, session: Session) -> PipelineResult:
		request = session.request
		selection = model_selector.select(request.model_id, request.profile, self._registry.configured())
		session.model_used = selection.model
		if request.kind == "analysis":
			prompt = prompt_builder.build_analysis_prompt(request.profile)
		else:
			prompt = prompt_builder.build_optimization_prompt(request.profile, request.mode, request.preferences)
		raw = self._invoker.invoke(selection, prompt, self._timeout_s, request.identity)
		if request.kind == "analysis":
			return response_parser.parse_analysis(raw, request.profile)
		return response_parser.parse_optimization(raw, request.profile)

	def _emit(
		self,
		session: Session,
		channel: ProgressChannel,
		progress: int,
		status: str,
		current_step: str | None,
	) -> bool:
		if channel.closed:
			self._cancel(session)
			return False
		event = ProgressEvent(
			session_id=session.id,
			progress=progress,
			status=status,
			current_step=current_step,
			timestamp=_now_iso(),
		)
		if not session.record_progress(event):
			return False
		if not channel.put(StreamEvent(event="progress", data=event.model_dump(by_alias=True))):
			self._cancel(session)
			return False
		return True

	def _fail(self, session: Session, channel: ProgressChannel, error: OptimizerError) -> None:
		if channel.closed:
			self._cancel(session)
			return
		if not session.fail(error):
			return
		logger.warning("Session %s failed: %s (%s)", session.id, error.code, error.message)
		channel.put(StreamEvent(event="error", data={"sessionId": session.id, **error.as_dict()}))
		self._persist(session)

	def _cancel(self, session: Session) -> None:
		if session.cancel():
			logger.info("Session %s cancelled by consumer disconnect", session.id)
			self._persist(session)

	def _persist(self, session: Session) -> None:
		if self._record_sink is None:
			return
		try:
			self._record_sink(build_record(session))
		except Exception:
			logger.exception("Failed to persist record for session %s", session.id)


def build_record(session: Session) -> SessionRecord:
	request = session.request
	mode = request.mode if request.kind == "optimization" else "analysis"
	score_before = 0
	score_after = 0
	improvements: List[Dict[str, Any]] = []
	result = session.result
	if isinstance(result, OptimizationResult):
		score_before = result.score_improvement.before
		score_after = result.score_improvement.after
		improvements = [item.model_dump() for item in result.improvements]
	elif isinstance(result, AnalysisResult):
		score_before = result.overall_score
		score_after = result.overall_score
	return SessionRecord(
		session_id=session.id,
		mode=mode,
		model_used=session.model_used or request.model_id,
		score_before=score_before,
		score_after=score_after,
		improvement_count=len(improvements),
		improvements_payload=improvements,
		status=session.status,
	)
