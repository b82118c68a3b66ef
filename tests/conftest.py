from __future__ import annotations

import base64
import io
import json
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from PIL import Image


def _segment(payload: Dict[str, Any]) -> str:
    raw = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def build_token(expires_in: Optional[float] = 3 * 24 * 3600, sub: str = "user-1", client_id: str = "client-1") -> str:
    claims: Dict[str, Any] = {"sub": sub, "client_id": client_id}
    if expires_in is not None:
        claims["exp"] = int(time.time() + expires_in)
    return ".".join([_segment({"alg": "HS256", "typ": "JWT"}), _segment(claims), "signature"])


def png_bytes(color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format="PNG")
    return buffer.getvalue()


class RecordingTransport:
    """Route requests to a handler and keep every request for assertions."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def make_token() -> Callable[..., str]:
    return build_token


@pytest.fixture
def image_bytes() -> bytes:
    return png_bytes()
