from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

RATIOS: Tuple[str, ...] = ("1:1", "3:4", "4:3", "16:9", "9:16", "21:9", "9:21")
RESOLUTIONS: Tuple[str, ...] = ("1K", "2K")
RESPONSE_FORMATS: Tuple[str, ...] = ("url", "b64_json")


@dataclass(frozen=True)
class GenerationOptions:
    """Parameters accepted by the upstream generate endpoint.

    Attributes:
        ratio: Aspect ratio, one of `RATIOS`.
        resolution: Quality tier, one of `RESOLUTIONS`.
        no_watermark: Ask the upstream to strip its label watermark.
    """

    ratio: str = "1:1"
    resolution: str = "1K"
    no_watermark: bool = True


@dataclass
class GeneratedArtifact:
    """Result of one generation, as handed back to the route layer.

    Attributes:
        prompt: Prompt the image was generated from.
        options: Options the upstream was called with.
        source_url: Image URL resolved from the upstream response.
        url: URL returned to the caller (local when the image was stored).
        raw: Untouched upstream response body.
        image_bytes: Downloaded bytes, when a download was needed.
        filename: Local filename, when the image was stored.
    """

    prompt: str
    options: GenerationOptions
    source_url: str
    url: str
    raw: Any = None
    image_bytes: Optional[bytes] = None
    filename: Optional[str] = None

    @property
    def b64_json(self) -> Optional[str]:
        if self.image_bytes is None:
            return None
        return base64.b64encode(self.image_bytes).decode("utf-8")

    def to_dict(self, include_b64: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "source_url": self.source_url,
            "filename": self.filename,
            "prompt": self.prompt,
            "ratio": self.options.ratio,
            "resolution": self.options.resolution,
            "upstream": self.raw,
        }
        if include_b64:
            data["b64_json"] = self.b64_json
        return data
