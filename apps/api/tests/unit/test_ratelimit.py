from __future__ import annotations

import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from codeer import ratelimit
from codeer.ratelimit import AttemptLimiter


class _FakePipeline:
    def __init__(self, store: dict[str, int], fail: bool) -> None:
        self.store = store
        self.fail = fail
        self.ops: list[tuple] = []

    def incr(self, key: str) -> None:
        self.ops.append(("incr", key))

    def expire(self, key: str, seconds: int, nx: bool = False) -> None:
        self.ops.append(("expire", key, seconds, nx))

    def execute(self) -> list:
        if self.fail:
            raise RedisConnectionError("redis down")
        key = self.ops[0][1]
        self.store[key] = self.store.get(key, 0) + 1
        return [self.store[key], True]


class _FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.store: dict[str, int] = {}
        self.fail = fail

    def pipeline(self, transaction: bool = True) -> _FakePipeline:
        return _FakePipeline(self.store, self.fail)


def test_limiter_counts_in_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeRedis()
    monkeypatch.setattr(ratelimit, "redis_conn", fake)
    limiter = AttemptLimiter("pages:publish-attempts", attempts=2, window_seconds=60)

    outcomes = [limiter.hit("7") for _ in range(3)]

    assert outcomes == [False, False, True]
    assert fake.store == {"pages:publish-attempts:7": 3}


def test_limiter_falls_back_to_memory_without_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ratelimit, "redis_conn", _FakeRedis(fail=True))
    clock = [1000.0]
    monkeypatch.setattr(ratelimit, "time", SimpleNamespace(time=lambda: clock[0]))
    limiter = AttemptLimiter("pages:publish-attempts", attempts=2, window_seconds=60)

    outcomes = [limiter.hit("7") for _ in range(3)]
    other = limiter.hit("8")
    clock[0] += 61

    assert outcomes == [False, False, True]
    assert other is False
    assert limiter.hit("7") is False
