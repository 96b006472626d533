from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, List

from app.optimizer import settings
from app.optimizer.errors import RateLimited


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class _Bucket:
	remaining: int
	reset_at: float
	retired: bool = False
	lock: Lock = field(default_factory=Lock)


class RateLimiter:
	"""Fixed-window token bucket keyed by caller identity.

	Each bucket holds ``capacity`` tokens and is refilled in full once
	``window_s`` has elapsed since it was created or last reset. The
	check-and-decrement runs under the bucket's own lock, so identities
	never contend with each other.
	"""

	def __init__(
		self,
		*,
		capacity: int | None = None,
		window_s: float | None = None,
		clock: Clock = time.monotonic,
	):
		self.capacity = capacity if capacity is not None else settings.rate_limit_points()
		self.window_s = window_s if window_s is not None else settings.rate_limit_window_s()
		self._clock = clock
		self._buckets: Dict[str, _Bucket] = {}
		self._lock = Lock()

	def _bucket(self, identity: str, now: float) -> _Bucket:
		with self._lock:
			bucket = self._buckets.get(identity)
			if bucket is None:
				bucket = _Bucket(remaining=self.capacity, reset_at=now + self.window_s)
				self._buckets[identity] = bucket
			return bucket

	def try_consume(self, identity: str) -> None:
		now = self._clock()
		while True:
			bucket = self._bucket(identity, now)
			with bucket.lock:
				if bucket.retired:
					continue
				if now >= bucket.reset_at:
					bucket.remaining = self.capacity
					bucket.reset_at = now + self.window_s
				if bucket.remaining <= 0:
					retry_after = max(0.0, bucket.reset_at - now)
					logger.warning("Rate limit exceeded for %s (retry in %.1fs)", identity, retry_after)
					raise RateLimited(identity, retry_after)
				bucket.remaining -= 1
				return

	def remaining(self, identity: str) -> int:
		now = self._clock()
		with self._lock:
			bucket = self._buckets.get(identity)
		if bucket is None:
			return self.capacity
		with bucket.lock:
			if now >= bucket.reset_at:
				return self.capacity
			return bucket.remaining

	def prune(self) -> int:
		now = self._clock()
		pruned: List[str] = []
		with self._lock:
			for key, bucket in list(self._buckets.items()):
				if not bucket.lock.acquire(blocking=False):
					continue
				try:
					if now >= bucket.reset_at:
						# Consumers holding a stale reference re-resolve the bucket.
						bucket.retired = True
						del self._buckets[key]
						pruned.append(key)
				finally:
					bucket.lock.release()
		return len(pruned)
