"""Error taxonomy shared by the gateway, the upstream client and the routes."""

from __future__ import annotations

from typing import Any, Optional


class GatewayError(Exception):
    """Base class for failures that are rendered as a JSON error envelope.

    Attributes:
        message: Human-readable description returned to the caller.
        status_code: HTTP status used when the error reaches the route layer.
        error_type: Value of `error.type` in the OpenAI-style envelope.
        details: Optional upstream payload attached for debugging.
    """

    status_code = 500
    error_type = "server_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidParameter(GatewayError):
    """Bad ratio, resolution, response format, or missing prompt."""

    status_code = 400
    error_type = "invalid_request_error"


class Unauthenticated(GatewayError):
    """Missing or mismatched bearer key."""

    status_code = 401
    error_type = "invalid_request_error"


class SessionExpired(GatewayError):
    """No usable access token and a refresh was not possible."""


class ImageUrlNotFound(GatewayError):
    """The upstream response did not contain a recognisable image URL."""


class DownloadFailed(GatewayError):
    """The resolved image could not be fetched."""


class UpstreamError(GatewayError):
    """Transport or HTTP failure returned by the upstream provider."""
