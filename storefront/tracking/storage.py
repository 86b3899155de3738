"""Tab-scoped persistence for the visitor's analytics session."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from pydantic import BaseModel, Field

from storefront.schemas.analytics import UtmParams

SESSION_STORAGE_KEY = "storefront_analytics_session"


class TabStorage(Protocol):
    """String key/value storage that lives as long as the browser tab."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryTabStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class PersistedSession(BaseModel):
    """The session record written once per tab and never updated afterwards."""

    session_id: str
    store_id: str
    referrer: str | None = None
    utm_params: UtmParams = Field(default_factory=UtmParams)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
