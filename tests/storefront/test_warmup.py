"""Startup warmup routines never fail application startup."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

import storefront.warmup as warmup


class _DummyConnection:
    def __init__(self) -> None:
        self.connection = AsyncMock()

    async def __aenter__(self) -> AsyncMock:
        return self.connection

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


@pytest.mark.asyncio
async def test_warmup_database_executes_ping(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    dummy = _DummyConnection()
    engine = MagicMock()
    engine.connect.return_value = dummy

    await warmup.warmup_database(lambda: engine)

    dummy.connection.execute.assert_awaited_once()
    statement = dummy.connection.execute.await_args.args[0]
    assert str(statement) == "SELECT 1"
    assert "Database connection warmed up" in caplog.text


@pytest.mark.asyncio
async def test_warmup_database_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    def _broken_engine():
        raise RuntimeError("no database")

    await warmup.warmup_database(_broken_engine)

    assert "Database warmup failed: no database" in caplog.text


@pytest.mark.asyncio
async def test_warmup_redis_skips_when_unavailable(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO)
    monkeypatch.setattr(warmup, "get_redis", AsyncMock(return_value=None))

    await warmup.warmup_redis()

    assert "Redis warmup skipped" in caplog.text


@pytest.mark.asyncio
async def test_warmup_redis_pings(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO)
    redis = AsyncMock()
    monkeypatch.setattr(warmup, "get_redis", AsyncMock(return_value=redis))

    await warmup.warmup_all(lambda: MagicMock(connect=MagicMock(return_value=_DummyConnection())))

    redis.ping.assert_awaited_once()
    assert "Warmup complete" in caplog.text
