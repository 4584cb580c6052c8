"""
Catalog Rate Limiter

Paces outgoing catalog calls so that every client sharing one limiter
stays under the upstream quota. A token bucket absorbs short bursts;
optional sliding windows cap calls per minute and per hour.
"""

import asyncio
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

# Longest window kept in the call history, used for usage statistics.
HISTORY_SECONDS = 3600


class _TokenBucket:
    """Refills ``rate`` tokens per second up to ``capacity``."""

    def __init__(self, rate: float, capacity: int):
        self.rate = rate
        self.capacity = capacity
        self.tokens = float(capacity)
        self.updated_at = time.time()

    def delay(self, now: float) -> float:
        self.tokens = min(self.capacity, self.tokens + (now - self.updated_at) * self.rate)
        self.updated_at = now
        if self.tokens >= 1:
            return 0.0
        return (1.0 - self.tokens) / self.rate

    def take(self) -> None:
        self.tokens = max(self.tokens - 1, 0.0)

    def reset(self) -> None:
        self.tokens = float(self.capacity)
        self.updated_at = time.time()


class _SlidingWindow:
    """At most ``max_calls`` calls inside any ``length``-second window."""

    def __init__(self, length: int, max_calls: int):
        self.length = length
        self.max_calls = max_calls

    def delay(self, now: float, history: Deque[float]) -> float:
        recent = [t for t in history if t > now - self.length]
        if len(recent) < self.max_calls:
            return 0.0
        # Wait until the oldest call that still counts leaves the window
        oldest = recent[-self.max_calls]
        return max(0.0, self.length - (now - oldest))


class UnifiedRateLimiter:
    """
    Rate limiter shared by every client that talks to the same upstream.

    Calls are serialized through an ``asyncio.Lock`` so concurrent strategies
    queue up instead of racing past the limit.
    """

    def __init__(
        self,
        calls_per_second: Optional[float] = None,
        calls_per_minute: Optional[int] = None,
        calls_per_hour: Optional[int] = None,
        burst_size: Optional[int] = None,
        service_name: str = "api"
    ):
        """
        Args:
            calls_per_second: Sustained call rate (token bucket refill rate)
            calls_per_minute: Cap per sliding minute
            calls_per_hour: Cap per sliding hour
            burst_size: Bucket capacity (defaults to twice the per-second rate)
            service_name: Upstream name for logging
        """
        self.calls_per_second = calls_per_second
        self.calls_per_minute = calls_per_minute
        self.calls_per_hour = calls_per_hour
        self.service_name = service_name

        self._bucket: Optional[_TokenBucket] = None
        self.burst_size: Optional[int] = None
        if calls_per_second:
            self.burst_size = burst_size or max(int(calls_per_second * 2), 1)
            self._bucket = _TokenBucket(calls_per_second, self.burst_size)

        self._windows: List[_SlidingWindow] = []
        if calls_per_minute:
            self._windows.append(_SlidingWindow(60, calls_per_minute))
        if calls_per_hour:
            self._windows.append(_SlidingWindow(3600, calls_per_hour))

        self._history: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self.logger = logger.bind(service=f"RateLimiter-{service_name}")

        self.logger.info(
            "Rate limiter initialized",
            calls_per_second=calls_per_second,
            calls_per_minute=calls_per_minute,
            calls_per_hour=calls_per_hour,
            burst_size=self.burst_size
        )

    @classmethod
    def for_spotify(cls, calls_per_second: float = 10.0) -> "UnifiedRateLimiter":
        """Preset for the Spotify Web API (rolling 30-second quota, paced per second)."""
        return cls(calls_per_second=calls_per_second, service_name="Spotify")

    async def wait_if_needed(self) -> None:
        """Block until one more call is allowed, then record it."""
        async with self._lock:
            now = time.time()
            self._forget_before(now - HISTORY_SECONDS)

            wait_time = self._required_delay(now)
            if wait_time > 0:
                self.logger.debug(
                    "Rate limit wait required",
                    wait_time=round(wait_time, 3),
                    recent_calls=len(self._history)
                )
                await asyncio.sleep(wait_time)
                now = time.time()
                if self._bucket:
                    self._bucket.delay(now)

            if self._bucket:
                self._bucket.take()
            self._history.append(now)

    def _required_delay(self, now: float) -> float:
        delays = [window.delay(now, self._history) for window in self._windows]
        if self._bucket:
            delays.append(self._bucket.delay(now))
        return max(delays, default=0.0)

    def _forget_before(self, cutoff: float) -> None:
        while self._history and self._history[0] < cutoff:
            self._history.popleft()

    def get_current_usage(self) -> Dict[str, Any]:
        """Call counts and remaining capacity, for monitoring."""
        now = time.time()
        usage: Dict[str, Any] = {
            "timestamp": now,
            "total_requests_tracked": len(self._history),
            "requests_last_minute": sum(1 for t in self._history if t > now - 60),
            "requests_last_hour": sum(1 for t in self._history if t > now - 3600),
        }

        if self._bucket:
            usage["tokens_available"] = self._bucket.tokens
            usage["burst_capacity"] = self.burst_size
            usage["calls_per_second_limit"] = self.calls_per_second
        if self.calls_per_minute:
            usage["calls_per_minute_limit"] = self.calls_per_minute
        if self.calls_per_hour:
            usage["calls_per_hour_limit"] = self.calls_per_hour

        return usage

    def reset(self) -> None:
        """Forget all recorded calls and refill the bucket."""
        self._history.clear()
        if self._bucket:
            self._bucket.reset()
        self.logger.info("Rate limiter reset")
