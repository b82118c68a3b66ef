from fastapi import BackgroundTasks, HTTPException, Request
from typing import Any, Dict, Optional

from models.generation_models import RATIOS, RESOLUTIONS, GenerationOptions
from services.generation_gateway import GenerationGateway
from services.openai_mapping import SIZE_TO_RATIO
from services.zimage.client import ZImageClient


def _gateway(request: Request) -> GenerationGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=500, detail="Generation gateway not initialized.")
    return gateway


def _client(request: Request) -> ZImageClient:
    return _gateway(request).client


async def generate_image(
    request: Request,
    background_tasks: BackgroundTasks,
    prompt: str,
    options: GenerationOptions,
    response_format: str = "url",
    store_locally: Optional[bool] = None,
) -> Dict[str, Any]:
    """Generate one image through the native surface.

    Args:
        request: FastAPI Request (used to access app.state.gateway).
        background_tasks: Used to forward the image to Telegram after the response.
        prompt: Text prompt.
        options: Ratio, resolution and watermark flag.
        response_format: `url` or `b64_json`.
        store_locally: Override for the configured local storage mode.

    Returns:
        `{"success": True, "data": <artifact>}` where the artifact carries the
        returned URL, the upstream URL, the local filename and the raw upstream body.
    """
    gateway = _gateway(request)
    artifact = await gateway.generate(
        prompt,
        options,
        response_format=response_format,
        store_locally=store_locally,
        request_base_url=str(request.base_url),
    )
    background_tasks.add_task(gateway.forward, artifact, "API")
    return {"success": True, "data": artifact.to_dict(include_b64=response_format == "b64_json")}


async def list_images(request: Request, page: int, page_size: int) -> Dict[str, Any]:
    """Proxy the upstream history listing."""
    result = await _client(request).list_images(page=page, page_size=page_size)
    return {"success": True, "data": result}


async def get_image(request: Request, image_id: str) -> Dict[str, Any]:
    """Proxy a single upstream history entry."""
    result = await _client(request).get_image(image_id)
    return {"success": True, "data": result}


def get_options() -> Dict[str, Any]:
    return {"ratios": list(RATIOS), "resolutions": list(RESOLUTIONS), "sizeMapping": dict(SIZE_TO_RATIO)}
