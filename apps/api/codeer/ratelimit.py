from __future__ import annotations

import time
from collections import defaultdict, deque
from threading import Lock

from redis import Redis
from redis.exceptions import RedisError

from codeer.config import REDIS_URL
from codeer.observability import get_logger, log_event

logger = get_logger("codeer.ratelimit")

redis_conn = Redis.from_url(REDIS_URL)


def check_redis_connection() -> bool:
    try:
        return bool(redis_conn.ping())
    except RedisError:
        return False


def increment_rate_limit(key: str, window_seconds: int) -> int:
    """Count one hit against ``key``; returns -1 when Redis is unreachable."""
    pipe = redis_conn.pipeline(transaction=True)
    try:
        pipe.incr(key)
        pipe.expire(key, window_seconds, nx=True)
        current, _ = pipe.execute()
    except RedisError as exc:
        log_event(logger, "ratelimit.redis_unavailable", key=key, error=str(exc))
        return -1
    return int(current)


class AttemptLimiter:
    """Fixed window counter in Redis with an in-process sliding window fallback.

    The fallback is per worker process, so limits loosen while Redis is down.
    """

    def __init__(self, prefix: str, attempts: int, window_seconds: int) -> None:
        self.prefix = prefix
        self.attempts = attempts
        self.window_seconds = window_seconds
        self._local: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def _key(self, subject: str) -> str:
        return f"{self.prefix}:{subject}"

    def hit(self, subject: str) -> bool:
        """Record an attempt and return True when ``subject`` is over the limit."""
        count = increment_rate_limit(self._key(subject), self.window_seconds)
        if count >= 0:
            return count > self.attempts

        now = time.time()
        with self._lock:
            attempts = self._local[subject]
            while attempts and now - attempts[0] > self.window_seconds:
                attempts.popleft()
            if len(attempts) >= self.attempts:
                return True
            attempts.append(now)
            return False
