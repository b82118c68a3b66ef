"""Decode upstream access tokens without verifying their signature.

Tokens are three dot-separated segments; only the middle (claims) segment is
read. Every helper here treats a malformed token as "absent" and never raises.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from typing import Optional

from models.session_models import TokenClaims

REFRESH_WINDOW_MS = 24 * 60 * 60 * 1000


def _now_ms(now: Optional[float]) -> float:
    return (time.time() if now is None else now) * 1000


def _b64decode_segment(segment: str) -> bytes:
    """Decode a base64 segment written with either alphabet, padded or not."""
    normalized = segment.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized)


def decode_token(token: Optional[str]) -> Optional[TokenClaims]:
    """Return the claims carried by `token`, or None if it cannot be read.

    Args:
        token: Compact three-segment token string.

    Returns:
        A `TokenClaims` instance, or None when the token does not have exactly
        three segments or its middle segment is not base64-encoded JSON object.
    """
    if not token or not isinstance(token, str):
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        payload = json.loads(_b64decode_segment(parts[1]).decode("utf-8"))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(payload, dict):
        return None

    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        exp = None
    subject = payload.get("sub")
    client_id = payload.get("client_id")
    return TokenClaims(
        subject=str(subject) if subject is not None else None,
        client_id=str(client_id) if client_id is not None else None,
        expires_at=float(exp) if exp is not None else None,
    )


def is_token_valid(token: Optional[str], now: Optional[float] = None) -> bool:
    """True when the token decodes and its expiry lies in the future."""
    claims = decode_token(token)
    if claims is None or claims.expires_at is None:
        return False
    return claims.expires_at * 1000 > _now_ms(now)


def token_needs_refresh(token: Optional[str], now: Optional[float] = None) -> bool:
    """True when the token is absent, unreadable, or expires within 24 hours."""
    claims = decode_token(token)
    if claims is None or claims.expires_at is None:
        return True
    return claims.expires_at * 1000 - _now_ms(now) < REFRESH_WINDOW_MS
