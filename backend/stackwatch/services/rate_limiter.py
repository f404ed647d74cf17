"""Rate limiter - fixed-window request counters keyed by arbitrary strings."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

logger = logging.getLogger(__name__)

# Expired windows are swept after this many take() calls
SWEEP_EVERY = 1000


@dataclass
class RateLimitWindow:
    """Counter for one key within the current window."""
    count: int
    reset_at: float  # epoch milliseconds


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a take() call."""
    allowed: bool
    remaining: int
    reset_at: float  # epoch milliseconds

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds until the window resets, for a Retry-After header."""
        remaining_ms = max(0.0, self.reset_at - time.time() * 1000)
        return int(-(-remaining_ms // 1000))


class RateLimiter:
    """In-memory fixed-window limiter.

    Keys look like ``purpose:client`` (e.g. ``internal:10.0.0.4``). Each
    take() is an atomic read-check-increment under a single lock, so the
    limiter is safe to share between request handlers running in threads
    or on the event loop.
    """

    def __init__(self, clock: Callable[[], float] | None = None):
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: time.time() * 1000)
        self._takes = 0

    def take(self, key: str, max_count: int, window_ms: int) -> RateLimitDecision:
        """Consume one slot for key, opening a new window if the old one expired."""
        with self._lock:
            now = self._clock()
            self._takes += 1
            if self._takes % SWEEP_EVERY == 0:
                self._sweep_locked(now)

            current = self._windows.get(key)

            # A limit of zero or less admits nothing
            if max_count <= 0:
                reset_at = current.reset_at if current and current.reset_at > now else now + window_ms
                return RateLimitDecision(allowed=False, remaining=0, reset_at=reset_at)

            if current is None or current.reset_at <= now:
                reset_at = now + window_ms
                self._windows[key] = RateLimitWindow(count=1, reset_at=reset_at)
                return RateLimitDecision(allowed=True, remaining=max_count - 1, reset_at=reset_at)

            if current.count >= max_count:
                return RateLimitDecision(allowed=False, remaining=0, reset_at=current.reset_at)

            current.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=max_count - current.count,
                reset_at=current.reset_at,
            )

    def sweep(self) -> int:
        """Drop every expired window. Returns the number removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired rate limit windows")
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


# Global instance
rate_limiter = RateLimiter()
