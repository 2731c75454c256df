"""Process-wide token-bucket rate limiting keyed by wallet or session."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: float  # Seconds until the next token, 0 when allowed


class RateLimiter:
    """``max_requests`` tokens per ``window_seconds``, refilled continuously."""

    def __init__(self, max_requests: int = 10, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._lock = threading.Lock()
        self._buckets: Dict[str, _Bucket] = {}
        self._last_sweep = clock()
        self.configure(max_requests, window_seconds)

    def configure(self, max_requests: int, window_seconds: float) -> None:
        if max_requests < 1 or window_seconds <= 0:
            raise ValueError("Rate limit needs at least one request per positive window")
        with self._lock:
            self.max_requests = max_requests
            self.window_seconds = window_seconds
            self._buckets.clear()

    @property
    def refill_rate(self) -> float:
        return self.max_requests / self.window_seconds

    def check(self, key: str) -> RateLimitResult:
        """Take a token for ``key`` if one is available."""
        with self._lock:
            now = self.clock()
            self._sweep(now)

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = _Bucket(tokens=float(self.max_requests), updated_at=now)
                self._buckets[key] = bucket
            else:
                elapsed = now - bucket.updated_at
                bucket.tokens = min(float(self.max_requests), bucket.tokens + elapsed * self.refill_rate)
                bucket.updated_at = now

            if bucket.tokens < 1.0:
                retry_after = (1.0 - bucket.tokens) / self.refill_rate
                return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

            bucket.tokens -= 1.0
            return RateLimitResult(allowed=True, remaining=int(bucket.tokens), retry_after=0.0)

    def acquire(self, key: str) -> RateLimitResult:
        """Like ``check`` but raises RateLimited when the bucket is empty."""
        result = self.check(key)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {key}; retry in {result.retry_after:.1f}s")
            raise RateLimited(details={"retry_after": result.retry_after})
        return result

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)

    def _sweep(self, now: float) -> None:
        # Buckets idle for a full window are back at capacity and can go
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [key for key, bucket in self._buckets.items()
                   if now - bucket.updated_at >= self.window_seconds]
        for key in expired:
            del self._buckets[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)


rate_limiter = RateLimiter()
