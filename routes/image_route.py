from fastapi import APIRouter, Depends, HTTPException, Query, Request

from controllers.generation_controller import get_image, list_images
from models.errors import GatewayError
from utils.auth import require_api_key

router = APIRouter(prefix="/images", dependencies=[Depends(require_api_key)])


@router.get("")
async def list_images_route(
	request: Request,
	page: int = Query(1, ge=1),
	page_size: int = Query(20, ge=1, le=100),
):
	"""Return a page of the upstream generation history."""
	try:
		return await list_images(request, page, page_size)
	except (HTTPException, GatewayError):
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{image_id}")
async def get_image_route(request: Request, image_id: str):
	"""Return one upstream history entry."""
	try:
		return await get_image(request, image_id)
	except (HTTPException, GatewayError):
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
