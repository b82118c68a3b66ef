"""Mint a new access token from the exchange token via the OAuth code flow."""

from __future__ import annotations

import base64
import logging
import secrets
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from services.session.session_store import SessionStore
from services.zimage.endpoints import (
    AUTHORIZE_PATH,
    CHAT_BASE_URL,
    IMAGE_BASE_URL,
    OAUTH_CLIENT_ID,
    OAUTH_REDIRECT_URI,
    TOKEN_EXCHANGE_PATH,
    generate_request_id,
)

LOGGER = logging.getLogger(__name__)


def _error_message(exc: Exception) -> str:
    """Prefer the upstream `message` field over the transport error text."""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return str(exc)


def _extract_code(redirect_url: str) -> Optional[str]:
    codes = parse_qs(urlparse(redirect_url).query).get("code")
    return codes[0] if codes else None


class SessionRefresher:
    """Two-step exchange: authorize with the exchange token, then redeem the code."""

    def __init__(
        self,
        store: SessionStore,
        http_client: httpx.AsyncClient,
        chat_base_url: str = CHAT_BASE_URL,
        image_base_url: str = IMAGE_BASE_URL,
    ) -> None:
        self.store = store
        self.http_client = http_client
        self.chat_base_url = chat_base_url.rstrip("/")
        self.image_base_url = image_base_url.rstrip("/")

    async def refresh(self) -> bool:
        """Replace the stored access token with a freshly minted one.

        Returns:
            True when a new token was obtained and persisted; False when no
            exchange token is configured or either step fails. Never raises.
        """
        exchange_token = self.store.exchange_token
        if not exchange_token:
            LOGGER.info("No exchange token available; skipping session refresh")
            return False

        LOGGER.info("Refreshing upstream session token")
        try:
            code = await self._authorize(exchange_token)
            if not code:
                return False
            new_token = await self._redeem(code)
            if not new_token:
                return False
            self.store.set_access_token(new_token)
        except (httpx.HTTPError, ValueError, OSError) as exc:
            LOGGER.warning("Session refresh failed: %s", _error_message(exc))
            return False

        LOGGER.info("Session refreshed successfully")
        return True

    async def _authorize(self, exchange_token: str) -> Optional[str]:
        state = base64.b64encode(secrets.token_bytes(12)).decode("ascii")
        response = await self.http_client.post(
            f"{self.chat_base_url}{AUTHORIZE_PATH}",
            data={
                "action": "approve",
                "client_id": OAUTH_CLIENT_ID,
                "redirect_uri": OAUTH_REDIRECT_URI,
                "response_type": "code",
                "state": state,
            },
            headers={"Authorization": f"Bearer {exchange_token}"},
        )
        response.raise_for_status()
        body: Any = response.json()
        redirect_url = body.get("redirect_url") if isinstance(body, dict) else None
        if not redirect_url or not isinstance(redirect_url, str):
            LOGGER.warning("Session refresh failed: no redirect URL in authorize response")
            return None
        code = _extract_code(redirect_url)
        if not code:
            LOGGER.warning("Session refresh failed: redirect URL carries no code")
        return code

    async def _redeem(self, code: str) -> Optional[str]:
        response = await self.http_client.post(
            f"{self.image_base_url}{TOKEN_EXCHANGE_PATH}",
            json={"code": code},
            headers={"X-Request-ID": generate_request_id()},
        )
        response.raise_for_status()
        body: Any = response.json()
        token = body.get("token") if isinstance(body, dict) else None
        if not token or not isinstance(token, str):
            LOGGER.warning("Session refresh failed: no token in exchange response")
            return None
        return token
