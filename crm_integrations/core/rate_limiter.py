"""Fixed-window request limiter keyed by (provider, caller)."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

ANONYMOUS_CALLER = "anonymous"


class RateLimiter(Protocol):
    def allow(self, provider: str, caller_id: Optional[str]) -> bool:
        ...


@dataclass
class RateWindow:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """In-process limiter.

    The first request for a key opens a window of ``window_seconds``. Inside a
    window at most ``max_requests`` calls are allowed; once the window has
    elapsed it is replaced by a fresh one rather than decayed.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[Tuple[str, str], RateWindow] = {}
        self._lock = threading.Lock()

    def allow(self, provider: str, caller_id: Optional[str]) -> bool:
        key = (str(getattr(provider, "value", provider)), caller_id or ANONYMOUS_CALLER)
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or now >= window.reset_at:
                self._windows[key] = RateWindow(count=1, reset_at=now + self.window_seconds)
                return True

            if window.count >= self.max_requests:
                logger.info("Rate limit reached for provider=%s caller=%s", key[0], key[1])
                return False

            window.count += 1
            return True

    def get_window(self, provider: str, caller_id: Optional[str]) -> Optional[RateWindow]:
        key = (str(getattr(provider, "value", provider)), caller_id or ANONYMOUS_CALLER)
        with self._lock:
            window = self._windows.get(key)
            return RateWindow(window.count, window.reset_at) if window else None
