"""Shared fixtures: cache doubles and in-memory SQLite sessions."""

from __future__ import annotations

import fnmatch
from collections.abc import AsyncIterator, Iterator
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront import cache as cache_module
from storefront.db.models import Base, Product, SocialLink, Store, StoreCustomization
from storefront.settings import get_settings


class InMemoryRedis:
    """Lightweight async Redis double used by cache client tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._ttl: dict[str, int | None] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._store[key] = value
        self._ttl[key] = ex

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)
            self._ttl.pop(key, None)

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        for key in list(self._store.keys()):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self) -> None:
        self._store.clear()
        self._ttl.clear()


class MemoryCache:
    """In-memory double of :class:`storefront.cache.CacheClient`."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int | None] = {}
        self.deleted: list[str] = []
        self.deleted_patterns: list[str] = []
        self.gets = 0
        self.sets = 0

    async def get_json(self, key: str) -> Any:
        self.gets += 1
        return self.store.get(key)

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.sets += 1
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.store.pop(key, None)
            self.deleted.append(key)

    async def delete_pattern(self, pattern: str) -> None:
        self.deleted_patterns.append(pattern)
        for key in [key for key in self.store if fnmatch.fnmatch(key, pattern)]:
            await self.delete(key)


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Iterator[None]:
    """Drop cached settings so monkeypatched environment variables take effect."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_redis_state() -> Iterator[None]:
    cache_module._redis_client = None
    cache_module._redis_disabled = None
    yield
    cache_module._redis_client = None
    cache_module._redis_disabled = None


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Provide a session factory bound to a fresh in-memory SQLite database."""

    # StaticPool keeps every session on the connection that owns the database.
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Provide an in-memory SQLite session for integration-style tests."""

    async with session_factory() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()


@pytest_asyncio.fixture
async def acme_store(session: AsyncSession) -> Store:
    """Seed the ``acme`` tenant with products, social links, and a design."""

    store = Store(slug="acme", name="Acme", bio="Everything for coyotes")
    session.add(store)
    await session.flush()

    session.add_all(
        [
            Product(
                store_id=store.id, name="Rocket Skates", position=1, price=Decimal("49.90")
            ),
            Product(store_id=store.id, name="Giant Magnet", position=0),
            Product(store_id=store.id, name="Dehydrated Boulders", position=2),
            SocialLink(
                store_id=store.id, platform="twitter", url="https://x.com/acme", position=1
            ),
            SocialLink(
                store_id=store.id,
                platform="instagram",
                url="https://instagram.com/acme",
                position=0,
            ),
            StoreCustomization(
                store_id=store.id, theme="desert", layout="hero", colors={"accent": "#ff8800"}
            ),
        ]
    )
    await session.commit()
    return store
