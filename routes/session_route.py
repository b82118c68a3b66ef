"""FastAPI routes for inspecting and updating the upstream session."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.session_controller import get_session_info, refresh_session, set_session
from models.errors import GatewayError
from utils.auth import require_api_key

router = APIRouter(prefix="/session", tags=["session"])


class SessionPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	token: Optional[str] = None
	exchange_token: Optional[str] = Field(None, alias="exchangeToken")
	chat_token: Optional[str] = Field(None, alias="chatToken")


@router.get("")
async def get_session_route(request: Request):
	return await get_session_info(request)


@router.post("", dependencies=[Depends(require_api_key)])
async def set_session_route(request: Request, payload: SessionPayload):
	try:
		return await set_session(request, payload.token, payload.exchange_token or payload.chat_token)
	except (HTTPException, GatewayError):
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/refresh", dependencies=[Depends(require_api_key)])
async def refresh_session_route(request: Request):
	try:
		return await refresh_session(request)
	except (HTTPException, GatewayError):
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
