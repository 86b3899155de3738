"""Per-tab analytics session lifecycle.

The manager is a small state machine::

    UNINITIALIZED --initialize()--> INITIALIZING --> READY

The transition happens once per tab lifetime. The session identifier, the
referrer, and the UTM parameters are captured on the first transition and
persisted in tab storage; later page loads in the same tab (including
reloads, which build a fresh manager over the same storage) reuse the stored
record and never re-capture attribution. This is first-touch attribution.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid

from pydantic import ValidationError

from storefront.schemas.analytics import SessionCreate, UtmParams
from storefront.tracking.attribution import (
    NavigationContext,
    extract_utm_params,
    normalize_referrer,
)
from storefront.tracking.ingress import TrackingIngress
from storefront.tracking.storage import SESSION_STORAGE_KEY, PersistedSession, TabStorage

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class AnalyticsSessionManager:
    def __init__(
        self,
        store_id: str,
        storage: TabStorage,
        ingress: TrackingIngress | None = None,
        *,
        storage_key: str = SESSION_STORAGE_KEY,
    ) -> None:
        self._store_id = store_id
        self._storage = storage
        self._ingress = ingress
        self._storage_key = storage_key
        self._state = SessionState.UNINITIALIZED
        self._session: PersistedSession | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is SessionState.INITIALIZING

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY and self._session is not None

    @property
    def store_id(self) -> str:
        return self._store_id

    @property
    def session(self) -> PersistedSession | None:
        return self._session

    @property
    def session_id(self) -> str | None:
        return self._session.session_id if self._session is not None else None

    @property
    def referrer(self) -> str | None:
        return self._session.referrer if self._session is not None else None

    @property
    def utm_params(self) -> UtmParams:
        return self._session.utm_params if self._session is not None else UtmParams()

    async def initialize(self, context: NavigationContext) -> PersistedSession | None:
        """Load or create the tab's session and move to ``READY``.

        Safe to call on every page load and from concurrent tasks; only the
        first call does any work. Returns ``None`` (state back to
        ``UNINITIALIZED``) if the session could not be established, in which
        case no page views are tracked.
        """

        if self.is_ready:
            return self._session

        async with self._lock:
            if self.is_ready:
                return self._session

            self._state = SessionState.INITIALIZING
            try:
                session = self._load_persisted()
                if session is None:
                    session = self._start_session(context)
                    await self._register(session)
                self._session = session
            except Exception:
                logger.exception("Error initializing analytics session for store %s", self._store_id)
                self._session = None
            finally:
                self._state = (
                    SessionState.READY if self._session is not None else SessionState.UNINITIALIZED
                )

        return self._session

    def _load_persisted(self) -> PersistedSession | None:
        raw = self._storage.get_item(self._storage_key)
        if raw is None:
            return None

        try:
            persisted = PersistedSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable analytics session from tab storage")
            self._storage.remove_item(self._storage_key)
            return None

        if persisted.store_id != self._store_id:
            logger.debug(
                "Tab session %s belongs to store %s; starting a new one for %s",
                persisted.session_id,
                persisted.store_id,
                self._store_id,
            )
            return None
        return persisted

    def _start_session(self, context: NavigationContext) -> PersistedSession:
        session = PersistedSession(
            session_id=str(uuid.uuid4()),
            store_id=self._store_id,
            referrer=normalize_referrer(context.referrer),
            utm_params=extract_utm_params(context.url),
        )
        self._storage.set_item(self._storage_key, session.model_dump_json())
        logger.debug("Started analytics session %s for store %s", session.session_id, self._store_id)
        return session

    async def _register(self, session: PersistedSession) -> None:
        """Tell the ingress about the new session; failures leave the session usable."""

        if self._ingress is None:
            return
        try:
            payload = SessionCreate(
                store_id=session.store_id,
                session_id=session.session_id,
                referrer=session.referrer,
                **session.utm_params.utm_dict(),
            )
            result = await self._ingress.create_session(payload)
        except Exception as exc:
            logger.warning("Session registration failed for %s: %s", session.session_id, exc)
            return
        if not result.success:
            logger.warning(
                "Session registration rejected for %s: %s", session.session_id, result.error
            )


__all__ = ["AnalyticsSessionManager", "SessionState"]
