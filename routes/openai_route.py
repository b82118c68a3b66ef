"""OpenAI-compatible routes: model listing and image generation."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel

from controllers.openai_controller import create_images, list_models
from models.errors import GatewayError, InvalidParameter
from utils.auth import require_api_key

router = APIRouter(prefix="/v1", tags=["openai"], dependencies=[Depends(require_api_key)])


class ImageGenerationRequest(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = "z-image"
    n: Optional[int] = 1
    size: Optional[str] = "1024x1024"
    quality: Optional[str] = "standard"
    response_format: Optional[str] = "url"
    style: Optional[str] = "vivid"
    user: Optional[str] = None


@router.get("/models")
async def list_models_route():
    return list_models()


@router.post("/images/generations")
async def create_images_route(request: Request, payload: ImageGenerationRequest, background_tasks: BackgroundTasks):
    """Generate images in the OpenAI Images API format."""
    if not payload.prompt or not payload.prompt.strip():
        raise InvalidParameter("Prompt is required")
    try:
        return await create_images(
            request,
            background_tasks,
            payload.prompt,
            payload.model,
            payload.n,
            payload.size,
            payload.quality,
            payload.response_format or "url",
        )
    except (HTTPException, GatewayError):
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
