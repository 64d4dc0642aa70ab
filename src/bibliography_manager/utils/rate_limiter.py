"""Sliding-window rate limiting for the metadata services."""
import logging
import time
from collections import deque
from functools import wraps
from typing import Any, Callable, Deque, Dict, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


class RateLimiter:
    """
    Allow at most ``max_calls`` requests per ``period`` seconds.

    Works as a context manager around a single request or as a decorator.
    The call is recorded when the block exits, so a slow request still
    counts from the moment it finished.
    """

    def __init__(self, max_calls: int, period: float, name: str = ""):
        self.max_calls = max_calls
        self.period = period
        self.name = name
        self._timestamps: Deque[float] = deque()

    def __enter__(self) -> 'RateLimiter':
        self.wait()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._timestamps.append(time.time())

    def __call__(self, func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return cast(F, wrapper)

    def _expire(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.period:
            self._timestamps.popleft()

    def wait(self) -> float:
        """Block until another call fits in the window; return the seconds slept."""
        now = time.time()
        self._expire(now)
        if len(self._timestamps) < self.max_calls:
            return 0.0

        delay = self._timestamps[0] + self.period - now
        if delay <= 0:
            return 0.0
        logger.debug(f"Rate limit for {self.name or 'service'} reached, waiting {delay:.2f}s")
        time.sleep(delay)
        return delay


_LIMITERS: Dict[str, RateLimiter] = {}


def get_rate_limiter(name: str, max_calls: int, period: float) -> RateLimiter:
    """Shared limiter for a service, created on first use."""
    if name not in _LIMITERS:
        _LIMITERS[name] = RateLimiter(max_calls, period, name)
    return _LIMITERS[name]


# CrossRef asks polite clients to stay well under 50 requests per second
CROSSREF_RATE_LIMITER = get_rate_limiter("crossref", 10, 1)
GOOGLE_BOOKS_RATE_LIMITER = get_rate_limiter("google-books", 100, 100)
OPEN_LIBRARY_RATE_LIMITER = get_rate_limiter("openlibrary", 5, 1)
WEB_RATE_LIMITER = get_rate_limiter("web", 5, 1)
