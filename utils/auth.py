"""Static bearer-key authentication for the gateway routes."""

from fastapi import Request

from models.errors import Unauthenticated


def require_api_key(request: Request) -> None:
    """FastAPI dependency: the `Authorization` header must be `Bearer <API_KEY>`.

    Raises:
        Unauthenticated: If the header is missing or the key does not match.
    """
    header = request.headers.get("authorization")
    if not header or not header.startswith("Bearer "):
        raise Unauthenticated("Missing API key")
    if header[len("Bearer "):] != request.app.state.settings.api_key:
        raise Unauthenticated("Invalid API key")
