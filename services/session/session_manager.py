"""Process-wide session manager shared by every request through `app.state`."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from models.errors import SessionExpired
from models.session_models import SessionInfo
from services.session.session_refresher import SessionRefresher
from services.session.session_store import SessionStore
from services.session.token_codec import is_token_valid, token_needs_refresh

LOGGER = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = (
    "Session expired. Provide a fresh session token via POST /session "
    "or the Z_IMAGE_SESSION environment variable."
)


class SessionManager:
    """Guard the access token lifecycle and coalesce concurrent refreshes.

    Only one refresh runs at a time; callers arriving while it is in flight
    await the same task and receive its result.
    """

    def __init__(self, store: SessionStore, refresher: SessionRefresher) -> None:
        self.store = store
        self.refresher = refresher
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def access_token(self) -> Optional[str]:
        return self.store.access_token

    @property
    def has_exchange_token(self) -> bool:
        return bool(self.store.exchange_token)

    def info(self) -> SessionInfo:
        return self.store.info()

    def set_access_token(self, token: str) -> SessionInfo:
        self.store.set_access_token(token)
        return self.store.info()

    def set_exchange_token(self, token: str) -> None:
        self.store.set_exchange_token(token)

    async def initialize(self) -> SessionInfo:
        """Load the cache and refresh up front when the token is stale."""
        self.store.load()
        if token_needs_refresh(self.store.access_token) and self.has_exchange_token:
            await self.refresh()
        return self.store.info()

    async def refresh(self) -> bool:
        """Run a refresh, joining the one already in flight if there is one."""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self.refresher.refresh())
            self._refresh_task = task
        else:
            LOGGER.debug("Joining in-flight session refresh")
        return await asyncio.shield(task)

    async def ensure_session(self) -> None:
        """Make sure a usable access token is present before an upstream call.

        Raises:
            SessionExpired: If the token is expired and could not be refreshed.
        """
        if not self.store.access_token:
            self.store.load()

        token = self.store.access_token
        if is_token_valid(token) and not token_needs_refresh(token):
            return

        refreshed = await self.refresh()
        if not refreshed and not is_token_valid(self.store.access_token):
            raise SessionExpired(SESSION_EXPIRED_MESSAGE)
        if not refreshed:
            LOGGER.info("Session refresh failed; continuing with the current token until it expires")
