"""In-process sliding-window rate limiter."""

import math
import threading
import time
from collections import deque
from collections.abc import Callable


class RateLimiter:
    """Allow at most max_requests per client within a sliding window.

    Safe to share between threads. State lives in memory only and is lost on
    restart. Clients with no requests left in the window are forgotten.

    Example:
        >>> limiter = RateLimiter(max_requests=2, window_seconds=60)
        >>> limiter.allow("10.0.0.1"), limiter.allow("10.0.0.1"), limiter.allow("10.0.0.1")
        (True, True, False)
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        with self._lock:
            return len(self._hits)

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """Drop idle clients, at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        cutoff = now - self.window_seconds
        for client in [c for c, hits in self._hits.items() if hits[-1] <= cutoff]:
            del self._hits[client]

    def allow(self, client: str) -> bool:
        """Record a request from client if it is within the limit.

        Returns:
            True if the request is allowed, False if the client is over the limit
        """
        if self.max_requests <= 0:
            return True

        with self._lock:
            now = self._clock()
            self._sweep(now)
            hits = self._hits.get(client, deque())
            self._prune(hits, now)
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            self._hits[client] = hits
            return True

    def retry_after(self, client: str) -> int:
        """Seconds until client may send another request (0 if allowed now)."""
        with self._lock:
            now = self._clock()
            hits = self._hits.get(client)
            if not hits:
                return 0
            self._prune(hits, now)
            if not hits:
                del self._hits[client]
                return 0
            if len(hits) < self.max_requests:
                return 0
            return max(1, math.ceil(hits[0] + self.window_seconds - now))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
