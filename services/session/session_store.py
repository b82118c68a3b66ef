"""File-backed store for the upstream access and exchange tokens."""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.session_models import SessionInfo, SessionRecord
from services.session.token_codec import decode_token, token_needs_refresh

LOGGER = logging.getLogger(__name__)

# Keys written by earlier releases of the cache file.
LEGACY_KEYS = {"accessToken": "sessionToken", "exchangeToken": "chatToken"}


def _round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


class SessionStore:
	"""Hold the current session record and mirror it to a JSON cache file."""

	def __init__(
		self,
		cache_path: Path | str,
		access_token: Optional[str] = None,
		exchange_token: Optional[str] = None,
	) -> None:
		self.cache_path = Path(cache_path)
		self.record = SessionRecord(access_token=access_token or None, exchange_token=exchange_token or None)

	@property
	def access_token(self) -> Optional[str]:
		return self.record.access_token

	@property
	def exchange_token(self) -> Optional[str]:
		return self.record.exchange_token

	def load(self) -> bool:
		"""Merge the cache file into the record; cached non-empty values win.

		Returns:
			True when a cache file was read, False when it is missing or unreadable.
		"""
		try:
			data = json.loads(self.cache_path.read_text(encoding="utf-8"))
		except (OSError, ValueError) as exc:
			LOGGER.debug("No usable session cache at %s: %s", self.cache_path, exc)
			return False
		if not isinstance(data, dict):
			LOGGER.debug("Ignoring session cache at %s: not a JSON object", self.cache_path)
			return False

		access = data.get("accessToken") or data.get(LEGACY_KEYS["accessToken"])
		exchange = data.get("exchangeToken") or data.get(LEGACY_KEYS["exchangeToken"])
		if isinstance(access, str) and access:
			self.record.access_token = access
		if isinstance(exchange, str) and exchange:
			self.record.exchange_token = exchange
		return True

	def save(self) -> None:
		"""Atomically overwrite the cache file with the current record."""
		payload = {
			"accessToken": self.record.access_token,
			"exchangeToken": self.record.exchange_token,
			"savedAt": datetime.now(timezone.utc).isoformat(),
		}
		directory = self.cache_path.parent
		directory.mkdir(parents=True, exist_ok=True)
		fd, tmp_path = tempfile.mkstemp(prefix=self.cache_path.name, suffix=".tmp", dir=directory)
		try:
			with os.fdopen(fd, "w", encoding="utf-8") as handle:
				json.dump(payload, handle, indent=2)
			os.replace(tmp_path, self.cache_path)
		except BaseException:
			if os.path.exists(tmp_path):
				os.unlink(tmp_path)
			raise

	def _set_and_save(self, field: str, value: Optional[str]) -> None:
		"""Update one record field; the previous value is restored if the save fails."""
		previous = getattr(self.record, field)
		setattr(self.record, field, value or None)
		try:
			self.save()
		except OSError:
			setattr(self.record, field, previous)
			raise

	def set_access_token(self, token: Optional[str]) -> None:
		self._set_and_save("access_token", token)

	def set_exchange_token(self, token: Optional[str]) -> None:
		self._set_and_save("exchange_token", token)

	def info(self, now: Optional[float] = None) -> SessionInfo:
		"""Return a snapshot of the access token state; never raises."""
		token = self.record.access_token
		if not token:
			return SessionInfo(valid=False, error="No session token provided")
		claims = decode_token(token)
		if claims is None:
			return SessionInfo(valid=False, error="Invalid token format")
		if claims.expires_at is None:
			return SessionInfo(valid=False, error="Token has no expiry claim")

		try:
			expires_at = datetime.fromtimestamp(claims.expires_at, tz=timezone.utc).isoformat()
		except (OverflowError, OSError, ValueError):
			return SessionInfo(valid=False, error="Token expiry is out of range")

		current = time.time() if now is None else now
		expires_in_ms = claims.expires_at * 1000 - current * 1000
		return SessionInfo(
			valid=expires_in_ms > 0,
			subject=claims.subject,
			client_id=claims.client_id,
			expires_at=expires_at,
			expires_in_days=_round_half_up(expires_in_ms / (1000 * 60 * 60 * 24)),
			expires_in_hours=_round_half_up(expires_in_ms / (1000 * 60 * 60)),
			needs_refresh=token_needs_refresh(token, now=current),
		)
