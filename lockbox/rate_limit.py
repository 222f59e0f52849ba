"""Simple in-memory sliding-window rate limiter (per key)."""
import threading
import time
from collections import defaultdict

from .errors import TooManyRequests


class RateLimiter:
    """One instance per app; keys are caller-chosen, e.g. "login:<email>"."""

    def __init__(self, window_seconds: float = 60):
        self.window_seconds = window_seconds
        # key -> list of timestamps in window
        self._store: defaultdict[str, list[float]] = defaultdict(list)
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._store)

    def _sweep(self, cutoff: float) -> None:
        """Drop every key whose newest hit is outside the window. Caller holds the lock."""
        stale = [k for k, hits in self._store.items() if not hits or hits[-1] <= cutoff]
        for k in stale:
            del self._store[k]

    def check(self, key: str, max_per_window: int) -> None:
        """Raise TooManyRequests if key has reached max_per_window hits in the current window."""
        if max_per_window <= 0:
            return
        now = time.monotonic()
        cutoff = now - self.window_seconds
        with self._lock:
            # At most one full sweep per window keeps the store bounded by recent keys
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = [t for t in self._store.get(key, ()) if t > cutoff]
            if len(hits) >= max_per_window:
                self._store[key] = hits
                raise TooManyRequests("Too many attempts. Please try again in a minute.")
            hits.append(now)
            self._store[key] = hits

    def reset(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)
