"""Sliding-window rate limiting keyed by caller identity."""
import logging
import time
from collections import deque
from threading import Lock
from typing import Any, Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Counts accepted requests per caller over the trailing window.

    Check-then-record: an attempt is recorded only when it fits in the quota,
    so rejected attempts never extend a caller's lockout.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        name: str = "default",
        clock: Optional[Callable[[], float]] = None,
    ):
        self._lock = Lock()
        self._limit = max(int(limit), 0)
        self._window = float(window_seconds)
        self._name = name
        self._clock = clock or time.monotonic
        self._windows: Dict[str, Deque[float]] = {}
        self._last_sweep = self._clock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window

    def _evict_expired(self, timestamps: Deque[float], now: float) -> None:
        cutoff = now - self._window
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def _sweep_locked(self, now: float) -> int:
        removed = 0
        for caller_id in list(self._windows):
            timestamps = self._windows[caller_id]
            self._evict_expired(timestamps, now)
            if not timestamps:
                del self._windows[caller_id]
                removed += 1
        self._last_sweep = now
        return removed

    def allow(self, caller_id: str) -> bool:
        """
        Returns True and records the attempt if the caller is within quota.
        Returns False otherwise, leaving the window untouched.

        Idle callers are swept at most once per window, so the table only
        holds callers seen during the last two windows.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._sweep_locked(now)

            timestamps = self._windows.get(caller_id)
            if timestamps is not None:
                self._evict_expired(timestamps, now)

            if len(timestamps or ()) >= self._limit:
                allowed = False
                if timestamps is not None and not timestamps:
                    del self._windows[caller_id]
            else:
                if timestamps is None:
                    timestamps = self._windows[caller_id] = deque()
                timestamps.append(now)
                allowed = True

        if not allowed:
            logger.info(
                "Rate limit exceeded limiter=%s caller=%s limit=%d window=%.0fs",
                self._name,
                caller_id,
                self._limit,
                self._window,
            )
        return allowed

    def remaining(self, caller_id: str) -> int:
        """Requests left for the caller inside the current window."""
        now = self._clock()
        with self._lock:
            timestamps = self._windows.get(caller_id)
            if not timestamps:
                return self._limit
            self._evict_expired(timestamps, now)
            return max(self._limit - len(timestamps), 0)

    def prune(self) -> int:
        """
        Drops callers whose whole window has expired.
        Returns number of removed callers.
        """
        now = self._clock()
        with self._lock:
            removed = self._sweep_locked(now)

        logger.info("Pruned %d idle rate-limit windows limiter=%s", removed, self._name)
        return removed

    def reset(self, caller_id: str) -> bool:
        """Forgets a single caller. Returns True if it was tracked."""
        with self._lock:
            existed = self._windows.pop(caller_id, None) is not None
        if existed:
            logger.info("Rate-limit window reset limiter=%s caller=%s", self._name, caller_id)
        return existed

    def clear(self) -> None:
        """Forgets every caller."""
        with self._lock:
            self._windows.clear()
        logger.info("Rate-limit windows cleared limiter=%s", self._name)

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of tracked callers and their usage in the current window."""
        now = self._clock()
        with self._lock:
            callers = []
            for caller_id, timestamps in self._windows.items():
                self._evict_expired(timestamps, now)
                callers.append(
                    {
                        "caller": caller_id,
                        "used": len(timestamps),
                        "remaining": max(self._limit - len(timestamps), 0),
                    }
                )

        return {
            "name": self._name,
            "limit": self._limit,
            "window_seconds": self._window,
            "tracked_callers": len(callers),
            "callers": callers,
        }
