"""Orchestrate one image generation from prompt to caller-ready artifact."""

from __future__ import annotations

import logging
from typing import Optional

from models.errors import GatewayError, ImageUrlNotFound, InvalidParameter
from models.generation_models import RATIOS, RESOLUTIONS, RESPONSE_FORMATS, GeneratedArtifact, GenerationOptions
from services.artifact_store import ArtifactStore
from services.telegram.notifier import TelegramNotifier, build_caption
from services.zimage.client import ZImageClient
from services.zimage.response_resolver import find_image_url

LOGGER = logging.getLogger(__name__)

GENERATED_ROUTE = "/generated"


def validate_request(prompt: Optional[str], options: GenerationOptions, response_format: str) -> str:
    """Return the stripped prompt or raise `InvalidParameter`.

    Runs before any network call so bad input never reaches the upstream.
    """
    cleaned = (prompt or "").strip()
    if not cleaned:
        raise InvalidParameter("Prompt is required")
    if options.ratio not in RATIOS:
        raise InvalidParameter(f"Invalid ratio: {options.ratio}. Valid: {', '.join(RATIOS)}")
    if options.resolution not in RESOLUTIONS:
        raise InvalidParameter(f"Invalid resolution: {options.resolution}. Valid: {', '.join(RESOLUTIONS)}")
    if response_format not in RESPONSE_FORMATS:
        raise InvalidParameter(
            f"Invalid response_format: {response_format}. Valid: {', '.join(RESPONSE_FORMATS)}"
        )
    return cleaned


class GenerationGateway:
    """Ensure session, generate upstream, resolve the URL, then download and store as asked."""

    def __init__(
        self,
        client: ZImageClient,
        store: Optional[ArtifactStore] = None,
        notifier: Optional[TelegramNotifier] = None,
        public_base_url: str = "",
        store_locally: bool = True,
    ) -> None:
        self.client = client
        self.store = store
        self.notifier = notifier
        self.public_base_url = (public_base_url or "").rstrip("/")
        self.store_locally = store_locally

    def local_url(self, filename: str, request_base_url: Optional[str] = None) -> str:
        """Absolute URL of a stored artifact.

        `PUBLIC_BASE_URL` wins; otherwise the base URL of the incoming request is used.
        """
        prefix = self.public_base_url or (request_base_url or "").rstrip("/")
        return f"{prefix}{GENERATED_ROUTE}/{filename}"

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions,
        response_format: str = "url",
        store_locally: Optional[bool] = None,
        request_base_url: Optional[str] = None,
    ) -> GeneratedArtifact:
        """Generate one image.

        Args:
            prompt: Text prompt sent upstream.
            options: Ratio, resolution and watermark flag.
            response_format: `url` or `b64_json`; the latter downloads the image.
            store_locally: Save the image under the generated directory and
                return its local URL. Defaults to the gateway setting.
            request_base_url: Base URL of the calling request, used for local
                URLs when no public base URL is configured.

        Returns:
            The resulting `GeneratedArtifact`.

        Raises:
            InvalidParameter: On bad input, before any network call.
            SessionExpired, UpstreamError: From the session or upstream call.
            ImageUrlNotFound: If the response holds no image URL.
            DownloadFailed: If the image bytes cannot be fetched.
        """
        cleaned = validate_request(prompt, options, response_format)
        keep_local = self.store_locally if store_locally is None else store_locally
        keep_local = keep_local and self.store is not None

        raw = await self.client.generate(cleaned, options)
        image_url = find_image_url(raw)
        if not image_url:
            raise ImageUrlNotFound("Could not extract image URL from response", details=raw)
        source_url = self.client.absolute_url(image_url)

        artifact = GeneratedArtifact(prompt=cleaned, options=options, source_url=source_url, url=source_url, raw=raw)
        if response_format == "b64_json" or keep_local:
            artifact.image_bytes = await self.client.download(source_url)
        if keep_local:
            stored = await self.store.save(artifact.image_bytes, cleaned)
            artifact.filename = stored.filename
            artifact.url = self.local_url(stored.filename, request_base_url)
        return artifact

    async def forward(self, artifact: GeneratedArtifact, source: str = "API") -> None:
        """Send the artifact to Telegram; failures are logged and swallowed."""
        if self.notifier is None or not self.notifier.enabled:
            return
        try:
            image_bytes = artifact.image_bytes
            if image_bytes is None:
                image_bytes = await self.client.download(artifact.source_url)
        except GatewayError as exc:
            LOGGER.error("Could not fetch image for Telegram forwarding: %s", exc.message)
            return
        caption = build_caption(artifact.prompt, artifact.options.ratio, artifact.options.resolution, source)
        await self.notifier.forward(image_bytes, caption, artifact.prompt)
