"""
Rate limiting for comp acquisition.

An explicit limiter instance is injected into the acquisition driver;
there is no module-level counter state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from utils.config import Config


DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_SECONDS = 60.0


class RateLimitExceeded(Exception):
    """Raised when an identifier has used up its requests for the window."""

    def __init__(self, identifier: str, retry_after: float):
        self.identifier = identifier
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {identifier}; retry in {retry_after:.1f}s"
        )


@dataclass
class _Window:
    count: int
    resets_at: float


class RateLimiter:
    """
    Fixed-window request limiter keyed by identifier.

    Each identifier may make max_requests calls per window_seconds; the
    window starts at its first call. Thread-safe.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_requests: Calls allowed per window
            window_seconds: Window length
            clock: Monotonic time source (injectable for tests)
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "RateLimiter":
        """Limiter using the configured requests per window."""
        return cls(
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )

    def check(self, identifier: str) -> bool:
        """Record a call and return whether it is allowed."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(identifier)
            if window is None or now >= window.resets_at:
                self._windows[identifier] = _Window(count=1, resets_at=now + self._window_seconds)
                return True
            if window.count >= self._max_requests:
                return False
            window.count += 1
            return True

    def acquire(self, identifier: str) -> None:
        """
        Record a call, raising if the identifier is over its limit.

        Raises:
            RateLimitExceeded: With the seconds until the window resets
        """
        if not self.check(identifier):
            raise RateLimitExceeded(identifier, self.retry_after(identifier))

    def remaining(self, identifier: str) -> int:
        """Calls left in the identifier's current window."""
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or self._clock() >= window.resets_at:
                return self._max_requests
            return max(0, self._max_requests - window.count)

    def retry_after(self, identifier: str) -> float:
        with self._lock:
            window = self._windows.get(identifier)
            if window is None:
                return 0.0
            return max(0.0, window.resets_at - self._clock())

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one identifier's window, or all of them."""
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)
