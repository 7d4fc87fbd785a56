"""
FastAPI application entry point.

Run with: uvicorn textarr.main:app --reload
"""

from contextlib import asynccontextmanager
from datetime import timedelta
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from textarr import __version__
from textarr.api.dependencies import (
    get_media_request_repository,
    get_notification_service,
    get_session_store,
)
from textarr.api.exception_handlers import setup_exception_handlers
from textarr.api.routes import health, ledger, messages, webhooks
from textarr.core.config import app_config, settings
from textarr.core.logging import bind_context, clear_context, configure_logging, get_logger
from textarr.persistence.database import init_database
from textarr.services.download_service import DownloadCompletionService

# Configure logging before anything else
configure_logging()
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique correlation ID to each request.

    - Generates a UUID4 request_id for each incoming request
    - Binds it to structlog context for all logs in that request
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


# =============================================================================
# Startup Validation
# =============================================================================

LLM_KEYS = {
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
}


def validate_api_keys() -> None:
    """
    Validate that every external service has credentials.

    Raises:
        RuntimeError: If any required API key is missing
    """
    errors = []

    for attr_name, env_var in [
        ("tmdb_api_key", "TMDB_API_KEY"),
        ("radarr_api_key", "RADARR_API_KEY"),
        ("sonarr_api_key", "SONARR_API_KEY"),
        LLM_KEYS[settings.llm_provider],
    ]:
        if not getattr(settings, attr_name, None):
            errors.append(f"{env_var} is required. Set it in .env file.")

    if errors:
        error_msg = "API Key Validation Failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise RuntimeError(error_msg)

    log.info("api_keys_validated", llm_provider=settings.llm_provider)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Validates credentials, prepares the request ledger (purging completed
    requests past retention) and runs the expired-session sweep for the
    life of the process.
    """
    log.info(
        "application_starting",
        debug=settings.debug,
        database_path=str(settings.database_path),
        users=len(app_config.users),
    )

    validate_api_keys()
    await init_database()
    await DownloadCompletionService(
        get_media_request_repository(), get_notification_service()
    ).purge_completed(timedelta(days=settings.ledger_retention_days))

    sessions = get_session_store()
    sessions.start_sweeper(settings.session_sweep_interval_seconds)

    log.info("application_started")

    yield

    log.info("application_shutting_down")
    await sessions.stop_sweeper()


app = FastAPI(
    title="Textarr",
    description="Request movies and TV shows for Radarr and Sonarr by chat",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["system"])
app.include_router(messages.router)
app.include_router(webhooks.router)
app.include_router(ledger.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Textarr", "version": __version__, "status": "running"}


def main() -> None:
    import uvicorn

    uvicorn.run(
        "textarr.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
