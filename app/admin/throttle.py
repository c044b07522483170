"""In-process sliding-window throttle for operator login attempts."""

import math
import threading
import time
from collections import deque
from collections.abc import Callable
from functools import lru_cache

from app.core.exceptions import RateLimitError


class LoginThrottle:
    """Allow at most `max_attempts` per `window_seconds` for each client key.

    Every attempt counts, successful or not. State is per process and is lost
    on restart.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_attempts = max_attempts
        self._window = window_seconds
        self._clock = clock
        self._attempts: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        """Record an attempt for `key`.

        Raises:
            RateLimitError: If `key` has used up its attempts in the window;
                the rejected attempt is not recorded
        """
        now = self._clock()
        with self._lock:
            self._prune(now)
            attempts = self._attempts.setdefault(key, deque())
            if len(attempts) >= self._max_attempts:
                retry_after = math.ceil(attempts[0] + self._window - now)
                raise RateLimitError(
                    "Too many login attempts, please try again later",
                    retry_after=max(retry_after, 1),
                )
            attempts.append(now)

    def tracked_keys(self) -> int:
        """Number of clients with attempts still inside the window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._attempts)

    def _prune(self, now: float) -> None:
        # Drops expired attempts, and clients left with none
        cutoff = now - self._window
        for key in list(self._attempts):
            attempts = self._attempts[key]
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if not attempts:
                del self._attempts[key]

    def reset(self, key: str | None = None) -> None:
        """Forget attempts for `key`, or for every client."""
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)


@lru_cache
def get_login_throttle() -> LoginThrottle:
    from app.core.settings import get_settings

    settings = get_settings()
    return LoginThrottle(
        max_attempts=settings.admin_login_max_attempts,
        window_seconds=settings.admin_login_window_seconds,
    )
