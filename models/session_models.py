"""Session domain models for the upstream access token lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class SessionRecord:
	"""Credentials currently held by the process."""

	access_token: Optional[str] = None
	exchange_token: Optional[str] = None


@dataclass(frozen=True)
class TokenClaims:
	"""Claims decoded from the middle segment of an access token.

	`expires_at` is seconds since the epoch, or None when the token carries no
	usable `exp` claim.
	"""

	subject: Optional[str]
	client_id: Optional[str]
	expires_at: Optional[float]


@dataclass(frozen=True)
class SessionInfo:
	"""Read-only snapshot of the session returned by `/session` and `/health`."""

	valid: bool
	subject: Optional[str] = None
	client_id: Optional[str] = None
	expires_at: Optional[str] = None
	expires_in_days: Optional[int] = None
	expires_in_hours: Optional[int] = None
	needs_refresh: bool = True
	error: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		if self.error is not None:
			return {"valid": False, "error": self.error}
		return {
			"valid": self.valid,
			"subject": self.subject,
			"clientId": self.client_id,
			"expiresAt": self.expires_at,
			"expiresInDays": self.expires_in_days,
			"expiresInHours": self.expires_in_hours,
			"needsRefresh": self.needs_refresh,
		}
