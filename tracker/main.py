import logging
import os

from fastapi import FastAPI

from tracker.api.routes import router
from tracker.session_view import SessionViewRegistry, history_max_depth_from_env
from tracker.websocket_hub import SessionWebSocketHub

APP_NAME = "combat-tracker"
APP_VERSION = "0.1.0"

# Configure logging
logging.basicConfig(level=os.environ.get("TRACKER_LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    application = FastAPI(title=APP_NAME, version=APP_VERSION)
    application.include_router(router)

    # Per-app state: each session id gets its own view + history.
    application.state.session_views = SessionViewRegistry(max_depth=history_max_depth_from_env())
    application.state.ws_hub = SessionWebSocketHub()

    @application.get("/info")
    async def info() -> dict[str, str]:
        return {"name": APP_NAME, "version": APP_VERSION}

    logger.debug("undo history depth: %s", application.state.session_views.max_depth)
    return application


app = create_app()
