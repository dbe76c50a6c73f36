"""Per-profile fixed-window request quota.

Windows live only as long as the limiter instance. A window is reset lazily on the
first call at or after its reset time; there is no background expiry, so bursts of
up to 2N are possible across a window boundary.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger("askdora.rate_limiter")


@dataclass
class RateWindow:
	count: int
	reset_at: float


@dataclass(frozen=True)
class Admission:
	allowed: bool
	remaining: int
	retry_after: float = 0.0


class RateLimiter:
	def __init__(
		self,
		max_requests: int = 20,
		window_seconds: float = 3600.0,
		*,
		clock: Callable[[], float] = time.monotonic,
	) -> None:
		if max_requests < 0:
			raise ValueError("max_requests must be >= 0")
		if window_seconds <= 0:
			raise ValueError("window_seconds must be > 0")
		self.max_requests = max_requests
		self.window_seconds = window_seconds
		self._clock = clock
		self._windows: Dict[str, RateWindow] = {}
		# Guards the check-and-increment so two callers never both see room in a full window
		self._lock = threading.Lock()

	def admit(self, profile_id: str) -> Admission:
		with self._lock:
			now = self._clock()
			window = self._windows.get(profile_id)
			if window is None or now >= window.reset_at:
				window = RateWindow(count=0, reset_at=now + self.window_seconds)
				self._windows[profile_id] = window
			if window.count < self.max_requests:
				window.count += 1
				return Admission(allowed=True, remaining=self.max_requests - window.count)
			retry_after = window.reset_at - now
		logger.info("rate limit reached for profile %s, retry in %.1fs", profile_id, retry_after)
		return Admission(allowed=False, remaining=0, retry_after=retry_after)
