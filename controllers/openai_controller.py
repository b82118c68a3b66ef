"""Controller for the OpenAI-compatible image endpoints."""

import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, HTTPException, Request
from openai.types import Image, ImagesResponse

from models.generation_models import GenerationOptions
from services.generation_gateway import GenerationGateway
from services.openai_mapping import image_count, published_models, ratio_for_size, resolution_for

LOGGER = logging.getLogger(__name__)


def list_models() -> Dict[str, Any]:
    """Return the published models in OpenAI list format."""
    return {"object": "list", "data": [model.model_dump() for model in published_models()]}


async def create_images(
    request: Request,
    background_tasks: BackgroundTasks,
    prompt: str,
    model: Optional[str],
    n: Optional[int],
    size: Optional[str],
    quality: Optional[str],
    response_format: str,
) -> Dict[str, Any]:
    """Map an OpenAI images request onto sequential upstream generations.

    The upstream produces one image per call, so `n` (capped at 4) images are
    generated one after the other with the same options.

    Args:
        request: FastAPI Request (used to access app.state.gateway).
        background_tasks: Used to forward each image to Telegram after the response.
        prompt: Text prompt.
        model: OpenAI model name, mapped to a resolution.
        n: Number of images requested.
        size: OpenAI size string, mapped to an aspect ratio.
        quality: OpenAI quality, used when the model name is not recognised.
        response_format: `url` or `b64_json`.

    Returns:
        An `ImagesResponse` dump without null fields.
    """
    gateway: Optional[GenerationGateway] = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=500, detail="Generation gateway not initialized.")

    options = GenerationOptions(ratio=ratio_for_size(size), resolution=resolution_for(model, quality), no_watermark=True)
    count = image_count(n)
    LOGGER.info("OpenAI images request: n=%d size=%s -> ratio=%s resolution=%s", count, size, options.ratio, options.resolution)

    images: List[Image] = []
    for _ in range(count):
        artifact = await gateway.generate(
            prompt, options, response_format=response_format, request_base_url=str(request.base_url)
        )
        background_tasks.add_task(gateway.forward, artifact, "OpenAI API")
        if response_format == "b64_json":
            images.append(Image(b64_json=artifact.b64_json, revised_prompt=artifact.prompt))
        else:
            images.append(Image(url=artifact.url, revised_prompt=artifact.prompt))

    response = ImagesResponse(created=int(time.time()), data=images)
    return response.model_dump(exclude_none=True)
