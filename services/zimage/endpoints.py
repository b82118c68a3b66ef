"""Upstream hosts, OAuth client id and request header helpers."""

import secrets
from typing import Dict, Optional

CHAT_BASE_URL = "https://chat.z.ai"
IMAGE_BASE_URL = "https://image.z.ai"
OAUTH_CLIENT_ID = "client_o3I6X8sE8SCtTHUWdMIhtg"
OAUTH_REDIRECT_URI = "https://image.z.ai/"

AUTHORIZE_PATH = "/api/oauth/authorize"
TOKEN_EXCHANGE_PATH = "/api/v1/z-image/auth"
GENERATE_PATH = "/api/proxy/images/generate"
LIST_PATH = "/api/proxy/images/list"
IMAGE_PATH = "/api/proxy/images/{image_id}"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)


def generate_request_id() -> str:
    """Return a fresh 21-character hex correlation id."""
    return secrets.token_hex(11)[:21]


def browser_headers(access_token: Optional[str], image_base_url: str = IMAGE_BASE_URL) -> Dict[str, str]:
    """Headers the image site expects on its proxy endpoints."""
    return {
        "Accept": "*/*",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
        "sec-ch-ua": '"Not(A:Brand";v="8", "Chromium";v="144"',
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
        "Sec-Fetch-Site": "same-origin",
        "Origin": image_base_url,
        "Referer": f"{image_base_url}/",
        "X-Request-ID": generate_request_id(),
        "Cookie": f"session={access_token or ''}",
    }
