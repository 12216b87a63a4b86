import time
from dataclasses import dataclass, field
from threading import Lock

from fastapi import Request

from localmarket.core.config import settings


@dataclass
class _LockoutState:
    failures: list[float] = field(default_factory=list)
    locked_until: float = 0.0


class LoginRateLimiter:
    """Locks a login key out after repeated failures inside a rolling window."""

    def __init__(self, *, max_attempts: int, window_seconds: int, lock_seconds: int):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lock_seconds = lock_seconds
        self._states: dict[str, _LockoutState] = {}
        self._lock = Lock()

    def check(self, key: str) -> int:
        """Returns retry-after seconds when locked out, otherwise 0."""
        now = time.time()
        with self._lock:
            state = self._states.get(key)
            if state is None:
                return 0
            state.failures = _within_window(state.failures, now, self.window_seconds)
            if state.locked_until > now:
                return int(state.locked_until - now) + 1
            return 0

    def register_failure(self, key: str) -> None:
        now = time.time()
        with self._lock:
            state = self._states.setdefault(key, _LockoutState())
            state.failures = _within_window(state.failures, now, self.window_seconds)
            state.failures.append(now)
            if len(state.failures) >= self.max_attempts:
                state.locked_until = now + self.lock_seconds

    def register_success(self, key: str) -> None:
        with self._lock:
            self._states.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._states.clear()


class SlidingWindowRateLimiter:
    def __init__(self, *, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, list[float]] = {}
        self._lock = Lock()

    def check_and_consume(self, key: str) -> int:
        """Consume one request for the key; returns retry-after seconds when blocked."""
        now = time.time()
        with self._lock:
            hits = _within_window(self._hits.get(key, []), now, self.window_seconds)
            if len(hits) >= self.max_requests:
                self._hits[key] = hits
                return max(int((min(hits) + self.window_seconds) - now) + 1, 1)
            hits.append(now)
            self._hits[key] = hits
            return 0

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


def _within_window(timestamps: list[float], now: float, window_seconds: int) -> list[float]:
    cutoff = now - window_seconds
    return [ts for ts in timestamps if ts >= cutoff]


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


login_rate_limiter = LoginRateLimiter(
    max_attempts=settings.auth_rate_limit_max_attempts,
    window_seconds=settings.auth_rate_limit_window_seconds,
    lock_seconds=settings.auth_rate_limit_lock_seconds,
)

geocode_rate_limiter = SlidingWindowRateLimiter(
    max_requests=settings.geocode_rate_limit_requests,
    window_seconds=settings.geocode_rate_limit_window_seconds,
)
