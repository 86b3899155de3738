"""Redis reconnect backoff in :func:`storefront.cache.get_redis`."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront import cache


@dataclass
class _StubRedis:
    """Tiny Redis stand-in that can emulate connection failures."""

    should_fail: bool
    closed: bool = False

    async def ping(self) -> None:
        if self.should_fail:
            raise RedisConnectionError("Redis unavailable for test")

    async def aclose(self) -> None:
        self.closed = True


class _StubRedisFactory:
    """Mimics :meth:`redis.asyncio.Redis.from_url` with queued ping outcomes."""

    failures: ClassVar[list[bool]] = []
    created_clients: ClassVar[list[_StubRedis]] = []
    on_instantiate: ClassVar[Callable[[], None] | None] = None

    @classmethod
    def from_url(cls, *_: object, **__: object) -> _StubRedis:
        if cls.on_instantiate is not None:
            cls.on_instantiate()
        client = _StubRedis(should_fail=cls.failures.pop(0))
        cls.created_clients.append(client)
        return client


@pytest.fixture
def stub_factory(monkeypatch: pytest.MonkeyPatch) -> type[_StubRedisFactory]:
    _StubRedisFactory.failures = []
    _StubRedisFactory.created_clients = []
    _StubRedisFactory.on_instantiate = None
    monkeypatch.setattr(cache.RedisClient, "from_url", _StubRedisFactory.from_url)
    return _StubRedisFactory


@pytest.mark.asyncio
async def test_get_redis_retries_after_cooldown(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    stub_factory: type[_StubRedisFactory],
) -> None:
    """Connection attempts resume once the configured cool-down expires."""

    monkeypatch.setenv("REDIS_RETRY_BACKOFF_SECONDS", "30")
    stub_factory.failures = [True, False]
    attempts = {"count": 0}

    def _increment_attempts() -> None:
        attempts["count"] += 1

    stub_factory.on_instantiate = _increment_attempts

    current_time = {"value": 0.0}
    monkeypatch.setattr(cache.time, "monotonic", lambda: current_time["value"])
    caplog.set_level(logging.DEBUG)

    # First attempt fails and schedules a backoff window.
    assert await cache.get_redis() is None
    assert attempts["count"] == 1
    assert cache._redis_disabled == 30.0
    assert "Retrying after" in " ".join(caplog.messages)
    assert stub_factory.created_clients[0].closed is True

    # Inside the window no new client is built.
    current_time["value"] = 5.0
    assert await cache.get_redis() is None
    assert attempts["count"] == 1

    current_time["value"] = 45.0
    assert await cache.get_redis() is not None
    assert attempts["count"] == 2
    assert cache._redis_disabled is None

    await cache.close_redis()
    assert stub_factory.created_clients[-1].closed is True


@pytest.mark.asyncio
async def test_close_redis_clears_backoff(
    monkeypatch: pytest.MonkeyPatch, stub_factory: type[_StubRedisFactory]
) -> None:
    stub_factory.failures = [True]
    monkeypatch.setattr(cache.time, "monotonic", lambda: 0.0)

    await cache.get_redis()
    assert cache._redis_disabled is not None

    await cache.close_redis()
    assert cache._redis_disabled is None


@pytest.mark.asyncio
async def test_get_cache_client_degrades_when_redis_is_down(
    stub_factory: type[_StubRedisFactory],
) -> None:
    stub_factory.failures = [True]

    client = await cache.get_cache_client()

    assert client.available is False
    assert await client.get_json("storefront:acme") is None


@pytest.mark.asyncio
async def test_get_redis_reuses_the_connected_client(
    stub_factory: type[_StubRedisFactory],
) -> None:
    stub_factory.failures = [False]

    first = await cache.get_redis()
    second = await cache.get_redis()

    assert first is second
    assert len(stub_factory.created_clients) == 1
    await cache.close_redis()
