import time
import threading
from typing import Dict, List

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Sliding-window limiter local to one process."""

    def __init__(self) -> None:
        self._store: Dict[str, List[float]] = {}
        self._lock = threading.Lock()
        self._longest_window = 0
        self._last_sweep = 0.0

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            self._longest_window = max(self._longest_window, window_seconds)
            if now - self._last_sweep >= self._longest_window:
                self._sweep(now)
            times = [t for t in self._store.get(key, []) if t > window_start]
            if len(times) >= max_requests:
                self._store[key] = times
                return False
            times.append(now)
            self._store[key] = times
            return True

    def _sweep(self, now: float) -> None:
        # Drop clients with no hit inside any window
        cutoff = now - self._longest_window
        for key in [k for k, times in self._store.items() if not times or times[-1] <= cutoff]:
            del self._store[key]
        self._last_sweep = now
