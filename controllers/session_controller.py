"""Session inspection and manual token management."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException, Request

from services.session.session_manager import SessionManager


def _manager(request: Request) -> SessionManager:
	manager = getattr(request.app.state, "session_manager", None)
	if manager is None:
		raise HTTPException(status_code=500, detail="Session manager not initialized.")
	return manager


async def get_session_info(request: Request) -> Dict[str, Any]:
	"""Return the current session snapshot."""
	return _manager(request).info().to_dict()


async def set_session(request: Request, token: Optional[str], exchange_token: Optional[str]) -> Dict[str, Any]:
	"""Store a new access token, or failing that a new exchange token.

	Raises:
		HTTPException(400) if neither token is provided.
	"""
	manager = _manager(request)
	if token:
		info = manager.set_access_token(token)
		return {"success": True, "session": info.to_dict()}
	if exchange_token:
		manager.set_exchange_token(exchange_token)
		return {"success": True, "message": "Exchange token set for refresh"}
	raise HTTPException(status_code=400, detail="Token is required")


async def refresh_session(request: Request) -> Dict[str, Any]:
	"""Force a refresh through the exchange token.

	Raises:
		HTTPException(500) if the refresh did not produce a new token.
	"""
	manager = _manager(request)
	if not await manager.refresh():
		raise HTTPException(status_code=500, detail="Refresh failed - need valid exchange token")
	return {"success": True, "session": manager.info().to_dict()}
