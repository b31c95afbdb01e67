"""Per-user sliding-window rate limiting.

Each (operation, user) key holds the timestamps of admitted requests in the
trailing window. Admission prunes expired timestamps, rejects when the
remaining count has reached the ceiling, and otherwise records the request.
That prune-count-append sequence is a single atomic ``admit`` call on the
counter store, so limits hold across workers and processes.

Two limiters exist:
- find_match: hard admission gate; store failures surface as InternalError
- llm: advisory model budget; store failures fail open
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable
from typing import Protocol

import redis
from loguru import logger

from boxmatch.config.settings import Settings, settings
from boxmatch.core.errors import InternalError, ResourceExhaustedError

WINDOW_SECONDS = 60.0

FIND_MATCH_OPERATION = "findMatch"
LLM_OPERATION = "llm"


class CounterStore(Protocol):
    """Store offering one atomic sliding-window admission operation."""

    def admit(self, key: str, now: float, window_seconds: float, max_requests: int) -> bool:
        """Prune entries at or before ``now - window_seconds``, then record ``now``
        unless ``max_requests`` entries remain. Returns True when recorded."""
        ...


# KEYS[1] = window key; ARGV = now, window_seconds, max_requests, member
_ADMIT_SCRIPT = """
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', tostring(now - window))
if redis.call('ZCARD', KEYS[1]) >= limit then
    return 0
end
redis.call('ZADD', KEYS[1], ARGV[1], ARGV[4])
redis.call('EXPIRE', KEYS[1], tostring(math.ceil(window)))
return 1
"""


class RedisCounterStore:
    """Redis-backed counter store shared across all workers.

    Windows are sorted sets scored by request timestamp. The admission
    sequence runs as one Lua script, which Redis executes atomically.
    """

    def __init__(self, client: redis.Redis | None = None, redis_url: str | None = None) -> None:
        self.redis = client or redis.from_url(redis_url or settings.redis_url, decode_responses=True)
        self._admit = self.redis.register_script(_ADMIT_SCRIPT)

    def admit(self, key: str, now: float, window_seconds: float, max_requests: int) -> bool:
        member = f"{now:.6f}:{uuid.uuid4().hex}"
        result = self._admit(keys=[key], args=[now, window_seconds, max_requests, member])
        return int(result) == 1


class InMemoryCounterStore:
    """Process-local counter store for single-worker runs and tests."""

    def __init__(self) -> None:
        self._windows: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def admit(self, key: str, now: float, window_seconds: float, max_requests: int) -> bool:
        with self._lock:
            window_start = now - window_seconds
            recent = [ts for ts in self._windows.get(key, []) if ts > window_start]
            if len(recent) >= max_requests:
                self._windows[key] = recent
                return False
            recent.append(now)
            self._windows[key] = recent
            return True


class RateLimiter:
    """Sliding-window limiter for one operation.

    Args:
        store: Atomic counter store
        operation: Operation name, part of the window key
        max_requests: Ceiling per window
        window_seconds: Window length
        fail_open: Admit the request when the store itself fails
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        store: CounterStore,
        operation: str,
        max_requests: int,
        window_seconds: float = WINDOW_SECONDS,
        fail_open: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.operation = operation
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.fail_open = fail_open
        self.clock = clock

    def key_for(self, user_id: str) -> str:
        return f"ratelimit:{self.operation}:{user_id}"

    def check(self, user_id: str) -> bool:
        """Try to admit one request for the user.

        Returns:
            True if admitted, False if the window is full

        Raises:
            InternalError: Store failure on a fail-closed limiter
        """
        try:
            allowed = self.store.admit(self.key_for(user_id), self.clock(), self.window_seconds, self.max_requests)
        except Exception as e:
            if self.fail_open:
                logger.warning(
                    f"Rate limit check failed for {self.operation}, allowing request",
                    user_id=user_id,
                    error=str(e),
                )
                return True
            logger.error(f"Rate limit check failed for {self.operation}", user_id=user_id, error=str(e))
            raise InternalError("Rate limit check failed") from e

        if not allowed:
            logger.info(f"Rate limit reached for {self.operation}", user_id=user_id, limit=self.max_requests)
        return allowed

    def enforce(self, user_id: str) -> None:
        """Admit one request or raise ResourceExhaustedError."""
        if not self.check(user_id):
            raise ResourceExhaustedError(f"Rate limit exceeded. Maximum {self.max_requests} requests per minute.")


def build_counter_store(config: Settings = settings) -> CounterStore:
    if config.rate_limit_backend == "memory":
        return InMemoryCounterStore()
    return RedisCounterStore(redis_url=config.redis_url)


def create_find_match_limiter(store: CounterStore, config: Settings = settings) -> RateLimiter:
    return RateLimiter(store, FIND_MATCH_OPERATION, config.find_match_rate_limit_per_minute)


def create_llm_limiter(store: CounterStore, config: Settings = settings) -> RateLimiter:
    return RateLimiter(store, LLM_OPERATION, config.llm_rate_limit_per_minute, fail_open=True)
