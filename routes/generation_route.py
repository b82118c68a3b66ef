"""Native generation routes."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.generation_controller import generate_image, get_options
from models.errors import GatewayError
from models.generation_models import GenerationOptions
from utils.auth import require_api_key

router = APIRouter(tags=["generation"])


class GeneratePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    ratio: str = "1:1"
    resolution: str = "1K"
    no_watermark: bool = Field(True, alias="noWatermark")
    response_format: str = "url"
    store_locally: Optional[bool] = Field(None, alias="storeLocally")


@router.get("/options")
async def options_route():
    """Supported ratios, resolutions and the OpenAI size mapping."""
    return get_options()


@router.post("/generate", dependencies=[Depends(require_api_key)])
async def generate_route(request: Request, payload: GeneratePayload, background_tasks: BackgroundTasks):
    """Generate one image from a native-shaped request."""
    options = GenerationOptions(
        ratio=payload.ratio or "1:1",
        resolution=payload.resolution or "1K",
        no_watermark=payload.no_watermark,
    )
    try:
        return await generate_image(
            request,
            background_tasks,
            payload.prompt or "",
            options,
            response_format=payload.response_format,
            store_locally=payload.store_locally,
        )
    except (HTTPException, GatewayError):
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
