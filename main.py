import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from routes.generation_route import router as generation_router
from routes.image_route import router as image_router
from routes.openai_route import router as openai_router
from routes.session_route import router as session_router
from services.artifact_store import ArtifactStore
from services.generation_gateway import GENERATED_ROUTE, GenerationGateway
from services.session.session_manager import SessionManager
from services.session.session_refresher import SessionRefresher
from services.session.session_store import SessionStore
from services.telegram.bot_app import build_bot_application, start_bot, stop_bot
from services.telegram.notifier import TelegramNotifier
from services.zimage.client import ZImageClient
from utils.config import Settings
from utils.errors import register_error_handlers

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)
SERVICE_NAME = "z-ai-image-api"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


def _mask(token: Optional[str]) -> str:
    return f"{token[:6]}...{token[-4:]}" if token and len(token) > 12 else "(unset)"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the shared upstream HTTP client
      - the session store/manager (env, then cache file, then refresh if stale)
      - the artifact store, generation gateway and Telegram sidecar
    and attach them to `app.state`.
    """
    settings: Settings = app.state.settings

    http_client = getattr(app.state, "http_client", None)
    owns_client = http_client is None
    if owns_client:
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.upstream_timeout, connect=30.0),
            follow_redirects=True,
        )
        app.state.http_client = http_client

    store = SessionStore(settings.session_cache_file, settings.session_token, settings.exchange_token)
    refresher = SessionRefresher(store, http_client, settings.chat_base_url, settings.image_base_url)
    session_manager = SessionManager(store, refresher)
    session_info = await session_manager.initialize()
    app.state.session_manager = session_manager

    artifacts = ArtifactStore(settings.generated_dir, keep=settings.artifact_retention)
    artifacts.ensure_directory()
    notifier = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    client = ZImageClient(http_client, session_manager, settings.image_base_url)
    app.state.gateway = GenerationGateway(
        client,
        store=artifacts,
        notifier=notifier,
        public_base_url=settings.public_base_url,
        store_locally=settings.store_locally,
    )

    if session_info.valid:
        LOGGER.info("Session valid (%s days left), token %s", session_info.expires_in_days, _mask(store.access_token))
    else:
        LOGGER.warning("Session not usable: %s", session_info.error or "expired")
    if settings.api_key == "sk-key":
        LOGGER.warning("API_KEY not set; using the default key")

    bot_application = None
    if settings.telegram_bot_token and settings.telegram_polling:
        try:
            bot_application = build_bot_application(settings.telegram_bot_token, app.state.gateway, session_manager)
            await start_bot(bot_application)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Telegram bot failed to start: %s", exc)
            bot_application = None
    elif not settings.telegram_bot_token:
        LOGGER.info("TELEGRAM_BOT_TOKEN not set; Telegram bot skipped")
    app.state.bot_application = bot_application

    try:
        yield
    finally:
        if bot_application is not None:
            try:
                await stop_bot(bot_application)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.warning("Telegram bot shutdown failed: %s", exc)
        if owns_client:
            await http_client.aclose()


def create_app(settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        settings: Explicit settings; read from the environment when omitted.
        http_client: Pre-built upstream client (tests inject a mocked transport).
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Z-Image OpenAI-compatible API", lifespan=lifespan)
    app.state.settings = settings
    app.state.http_client = http_client

    configure_logging(settings.log_level)
    register_error_handlers(app)

    # Serve locally stored generations; the directory is created on startup.
    app.mount(GENERATED_ROUTE, StaticFiles(directory=settings.generated_dir, check_dir=False), name="generated")

    @app.get("/health")
    async def health(request: Request):
        """
        Health check with the current session snapshot.
        """
        info = request.app.state.session_manager.info()
        return {
            "status": "ok" if info.valid else "degraded",
            "service": SERVICE_NAME,
            "session": info.to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # Register application routers
    app.include_router(openai_router)
    app.include_router(generation_router)
    app.include_router(image_router)
    app.include_router(session_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
