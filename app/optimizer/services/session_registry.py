from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Event, Lock, Thread
from typing import Callable, Dict, List, Optional, Union

from app.optimizer import settings
from app.optimizer.errors import DuplicateSession, NotFound, OptimizerError, SessionBusy
from app.optimizer.schemas import AnalysisResult, OptimizationResult, ProgressEvent
from app.optimizer.types import TERMINAL_STATUSES, OptimizationRequest, SessionStatus


logger = logging.getLogger(__name__)

Clock = Callable[[], float]
PipelineResult = Union[AnalysisResult, OptimizationResult]


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Session:
	id: str
	request: OptimizationRequest
	created_at: float
	status: SessionStatus = "pending"
	last_event: Optional[ProgressEvent] = None
	result: Optional[PipelineResult] = None
	error: Optional[OptimizerError] = None
	model_used: str = ""
	lock: Lock = field(default_factory=Lock, repr=False, compare=False)

	@property
	def terminal(self) -> bool:
		return self.status in TERMINAL_STATUSES

	@property
	def progress(self) -> int:
		return self.last_event.progress if self.last_event is not None else 0

	def begin(self) -> None:
		with self.lock:
			if self.status == "running":
				raise SessionBusy(self.id)
			if self.status != "pending":
				raise DuplicateSession(self.id)
			self.status = "running"

	def record_progress(self, event: ProgressEvent) -> bool:
		with self.lock:
			if self.status != "running":
				return False
			if self.last_event is not None and event.progress < self.last_event.progress:
				return False
			self.last_event = event
			return True

	def complete(self, result: PipelineResult) -> bool:
		with self.lock:
			if self.status != "running":
				return False
			self.status = "completed"
			self.result = result
			return True

	def fail(self, error: OptimizerError) -> bool:
		with self.lock:
			if self.status != "running":
				return False
			self.status = "failed"
			self.error = error
			return True

	def cancel(self) -> bool:
		with self.lock:
			if self.terminal:
				return False
			self.status = "cancelled"
			return True

	def snapshot(self) -> Dict[str, object]:
		with self.lock:
			event = self.last_event
			return {
				"sessionId": self.id,
				"status": self.status,
				"progress": event.progress if event is not None else 0,
				"timestamp": event.timestamp if event is not None else _now_iso(),
			}


class SessionRegistry:
	"""In-memory session table with TTL eviction measured from creation."""

	def __init__(self, *, ttl_s: float | None = None, clock: Clock = time.monotonic):
		self.ttl_s = ttl_s if ttl_s is not None else float(settings.session_ttl_s())
		self._clock = clock
		self._sessions: Dict[str, Session] = {}
		self._lock = Lock()

	def create(self, session_id: str, request: OptimizationRequest) -> Session:
		with self._lock:
			if session_id in self._sessions:
				raise DuplicateSession(session_id)
			session = Session(id=session_id, request=request, created_at=self._clock())
			self._sessions[session_id] = session
		logger.info("Session %s created (%s)", session_id, request.kind)
		return session

	def get(self, session_id: str) -> Session:
		with self._lock:
			session = self._sessions.get(session_id)
		if session is None:
			raise NotFound(session_id)
		return session

	def get_or_create(self, session_id: str, request: OptimizationRequest) -> Session:
		with self._lock:
			session = self._sessions.get(session_id)
			if session is None:
				session = Session(id=session_id, request=request, created_at=self._clock())
				self._sessions[session_id] = session
				logger.info("Session %s created (%s)", session_id, request.kind)
			return session

	def sweep(self) -> int:
		cutoff = self._clock() - self.ttl_s
		with self._lock:
			expired: List[str] = [key for key, session in self._sessions.items() if session.created_at <= cutoff]
			for key in expired:
				self._sessions.pop(key, None)
		if expired:
			logger.info("Evicted %d expired session(s)", len(expired))
		return len(expired)

	def __len__(self) -> int:
		with self._lock:
			return len(self._sessions)


class Sweeper:
	"""Daemon thread running periodic maintenance callbacks."""

	def __init__(self, tasks: List[Callable[[], object]], *, interval_s: float | None = None):
		self._tasks = tasks
		self._interval_s = interval_s if interval_s is not None else settings.sweep_interval_s()
		self._stop = Event()
		self._thread: Optional[Thread] = None

	def start(self) -> None:
		if self._thread is not None:
			return
		self._thread = Thread(target=self._run, name="session-sweeper", daemon=True)
		self._thread.start()

	def stop(self) -> None:
		self._stop.set()
		if self._thread is not None:
			self._thread.join(timeout=self._interval_s)
			self._thread = None

	def _run(self) -> None:
		while not self._stop.wait(self._interval_s):
			for task in self._tasks:
				try:
					task()
				except Exception:
					logger.exception("Sweep task failed")
