"""Translate OpenAI image request fields into upstream generation options."""

import time
from typing import Dict, List, Optional

from openai.types import Model

MAX_IMAGES_PER_REQUEST = 4
DEFAULT_RATIO = "1:1"
DEFAULT_RESOLUTION = "1K"
MODEL_OWNER = "z-ai"

SIZE_TO_RATIO: Dict[str, str] = {
    "256x256": "1:1",
    "512x512": "1:1",
    "1024x1024": "1:1",
    "1024x1792": "9:16",
    "720x1280": "9:16",
    "1080x1920": "9:16",
    "1792x1024": "16:9",
    "1280x720": "16:9",
    "1920x1080": "16:9",
}

MODEL_TO_RESOLUTION: Dict[str, str] = {
    "z-image-pro": "2K",
    "z-image": "1K",
    "dall-e-3": "2K",
    "dall-e-2": "1K",
}

QUALITY_TO_RESOLUTION: Dict[str, str] = {
    "standard": "1K",
    "low": "1K",
    "hd": "2K",
    "high": "2K",
}

PUBLISHED_MODELS = ("z-image", "z-image-pro")


def ratio_for_size(size: Optional[str]) -> str:
    """Aspect ratio for an OpenAI `size`; unknown sizes map to 1:1."""
    return SIZE_TO_RATIO.get(size or "", DEFAULT_RATIO)


def resolution_for(model: Optional[str], quality: Optional[str]) -> str:
    """Resolution for an OpenAI `model`, falling back to `quality` for unknown models."""
    model = model or ""
    quality = (quality or "").lower()
    if model in MODEL_TO_RESOLUTION:
        return MODEL_TO_RESOLUTION[model]
    if "hd" in model or quality in ("hd", "high"):
        return "2K"
    return QUALITY_TO_RESOLUTION.get(quality, DEFAULT_RESOLUTION)


def image_count(n: Optional[int]) -> int:
    """Clamp the requested image count to 1..MAX_IMAGES_PER_REQUEST."""
    return max(1, min(n or 1, MAX_IMAGES_PER_REQUEST))


def published_models() -> List[Model]:
    created = int(time.time())
    return [Model(id=model_id, object="model", created=created, owned_by=MODEL_OWNER) for model_id in PUBLISHED_MODELS]
