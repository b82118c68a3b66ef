"""Runtime settings read from the environment (and `.env` via python-dotenv)."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from services.zimage.endpoints import CHAT_BASE_URL, IMAGE_BASE_URL

DEFAULT_API_KEY = "sk-key"
DEFAULT_CACHE_FILE = ".zimage_session_cache.json"
DEFAULT_GENERATED_DIR = "generated"


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None and value.strip() else default
    except ValueError as exc:
        raise RuntimeError(f"Expected an integer setting, got {value!r}") from exc


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None and value.strip() else default
    except ValueError as exc:
        raise RuntimeError(f"Expected a numeric setting, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Gateway configuration.

    Attributes:
        api_key: Bearer key callers must present.
        port: Port uvicorn listens on when run as a script.
        session_token: Initial access token (`Z_IMAGE_SESSION`).
        exchange_token: Initial exchange token (`Z_CHAT_TOKEN`).
        session_cache_file: JSON file mirroring the session record.
        generated_dir: Directory generated images are written to.
        artifact_retention: How many generated images are kept on disk.
        store_locally: Whether generations are saved and served locally by default.
        public_base_url: Prefix for locally served image URLs.
        upstream_timeout: Seconds to wait on upstream calls.
        telegram_bot_token: Enables the Telegram sidecar when set.
        telegram_chat_id: Chat that receives forwarded images.
        telegram_polling: Whether to run the interactive bot.
        log_level: Root logging level.
    """

    api_key: str = DEFAULT_API_KEY
    port: int = 3000
    session_token: Optional[str] = None
    exchange_token: Optional[str] = None
    session_cache_file: Path = Path(DEFAULT_CACHE_FILE)
    generated_dir: Path = Path(DEFAULT_GENERATED_DIR)
    artifact_retention: int = 10
    store_locally: bool = True
    public_base_url: str = ""
    upstream_timeout: float = 180.0
    chat_base_url: str = CHAT_BASE_URL
    image_base_url: str = IMAGE_BASE_URL
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    telegram_polling: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        cwd = Path.cwd()
        return cls(
            api_key=env.get("API_KEY") or DEFAULT_API_KEY,
            port=_as_int(env.get("PORT"), 3000),
            session_token=env.get("Z_IMAGE_SESSION") or None,
            exchange_token=env.get("Z_CHAT_TOKEN") or None,
            session_cache_file=cwd / (env.get("SESSION_CACHE_FILE") or DEFAULT_CACHE_FILE),
            generated_dir=cwd / (env.get("GENERATED_DIR") or DEFAULT_GENERATED_DIR),
            artifact_retention=_as_int(env.get("ARTIFACT_RETENTION"), 10),
            store_locally=_as_bool(env.get("STORE_LOCALLY"), True),
            public_base_url=(env.get("PUBLIC_BASE_URL") or "").rstrip("/"),
            upstream_timeout=_as_float(env.get("UPSTREAM_TIMEOUT"), 180.0),
            chat_base_url=env.get("Z_CHAT_BASE_URL") or CHAT_BASE_URL,
            image_base_url=env.get("Z_IMAGE_BASE_URL") or IMAGE_BASE_URL,
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=env.get("TELEGRAM_CHAT_ID") or None,
            telegram_polling=_as_bool(env.get("TELEGRAM_POLLING"), True),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )
