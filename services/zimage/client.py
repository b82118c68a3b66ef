"""Async client for the image site's proxy endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict
from urllib.parse import urljoin

import httpx

from models.errors import DownloadFailed, UpstreamError
from models.generation_models import GenerationOptions
from services.session.session_manager import SessionManager
from services.zimage.endpoints import GENERATE_PATH, IMAGE_BASE_URL, IMAGE_PATH, LIST_PATH, browser_headers

LOGGER = logging.getLogger(__name__)


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _preview(prompt: str, limit: int = 50) -> str:
    return prompt[:limit] + ("..." if len(prompt) > limit else "")


class ZImageClient:
    """Thin wrapper over the upstream generate, list, get and asset endpoints.

    Every call ensures a usable session first; failures surface as
    `UpstreamError` with the upstream body attached when one is available.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session: SessionManager,
        base_url: str = IMAGE_BASE_URL,
    ) -> None:
        self.http_client = http_client
        self.session = session
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return browser_headers(self.session.access_token, self.base_url)

    def absolute_url(self, url: str) -> str:
        """Resolve host-relative asset paths against the image site."""
        return urljoin(f"{self.base_url}/", url)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        await self.session.ensure_session()
        try:
            response = await self.http_client.request(
                method, f"{self.base_url}{path}", headers=self._headers(), **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            LOGGER.error("Upstream %s %s returned %s", method, path, exc.response.status_code)
            raise UpstreamError(
                f"Upstream request failed with status {exc.response.status_code}",
                details=_response_details(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.error("Upstream %s %s failed: %s", method, path, exc)
            raise UpstreamError(f"Upstream request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("Upstream returned a non-JSON body", details=response.text) from exc

    async def generate(self, prompt: str, options: GenerationOptions) -> Any:
        """Create one image and return the raw upstream response body."""
        LOGGER.info(
            "Generating image: prompt=%r ratio=%s resolution=%s",
            _preview(prompt),
            options.ratio,
            options.resolution,
        )
        result = await self._request(
            "POST",
            GENERATE_PATH,
            json={
                "prompt": prompt,
                "ratio": options.ratio,
                "resolution": options.resolution,
                "rm_label_watermark": options.no_watermark,
            },
        )
        LOGGER.info("Image created")
        return result

    async def list_images(self, page: int = 1, page_size: int = 20) -> Any:
        return await self._request("GET", LIST_PATH, params={"page": page, "page_size": page_size})

    async def get_image(self, image_id: str) -> Any:
        return await self._request("GET", IMAGE_PATH.format(image_id=image_id))

    async def download(self, url: str) -> bytes:
        """Fetch image bytes, retrying once without custom headers on HTTP 403.

        Raises:
            DownloadFailed: If the asset cannot be fetched.
        """
        target = self.absolute_url(url)
        try:
            response = await self.http_client.get(target, headers=self._headers())
            if response.status_code == 403:
                LOGGER.info("Asset host rejected vendor headers; retrying download without them")
                response = await self.http_client.get(target)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DownloadFailed(
                f"Image download failed with status {exc.response.status_code}",
                details=_response_details(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            raise DownloadFailed(f"Image download failed: {exc}") from exc
        return response.content
