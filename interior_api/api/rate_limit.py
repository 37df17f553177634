"""Fixed-window request limiter keyed by client address.

Process-local: with several workers each one counts separately.
"""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class _Window:
    started: float
    count: int


class FixedWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: dict[str, _Window] = {}
        self._last_sweep: float | None = None

    def hit(self, key: str, now: float | None = None) -> tuple[bool, int]:
        """Count one request. Returns (allowed, seconds until the window resets)."""
        now = time.monotonic() if now is None else now
        if self._last_sweep is None or now - self._last_sweep >= self.window_seconds:
            self._sweep(now)
        window = self._windows.get(key)
        if window is None or now - window.started >= self.window_seconds:
            window = _Window(started=now, count=0)
            self._windows[key] = window
        window.count += 1
        retry_after = max(0, int(window.started + self.window_seconds - now))
        return window.count <= self.max_requests, retry_after

    def _sweep(self, now: float) -> None:
        """Drop every window that has already elapsed. Runs at most once per window."""
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
