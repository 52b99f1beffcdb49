"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from tokenwatch.api.middleware.hmac_validation import HMACValidationMiddleware
from tokenwatch.api.routes import health, webhooks
from tokenwatch.config.logging import configure_logging
from tokenwatch.config.settings import get_settings
from tokenwatch.constants.webhook import LEGACY_WEBHOOK_PATH_PREFIX, WEBHOOK_PATH_PREFIX
from tokenwatch.services.pipeline import get_orchestrator, reset_orchestrator
from tokenwatch.workers.feed_poller import start_feed_poller, stop_feed_poller

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    configure_logging()
    log.info("application_starting")
    settings = get_settings()

    orchestrator = await get_orchestrator()
    log.info("pipeline_ready", ledger=orchestrator.ledger_backend)

    if settings.feed_url:
        await start_feed_poller(settings.feed_url, settings.feed_poll_interval_seconds)
    else:
        log.info("feed_poller_disabled", message="FEED_URL not set")

    log.info("application_started")

    yield

    # Shutdown
    log.info("application_stopping")
    await stop_feed_poller()
    await reset_orchestrator()
    log.info("application_stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Token scanner: Helius webhooks and feed polling to Telegram alerts",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(HMACValidationMiddleware)

    app.include_router(health.router)
    app.include_router(webhooks.router, prefix=WEBHOOK_PATH_PREFIX)
    app.include_router(
        webhooks.router, prefix=LEGACY_WEBHOOK_PATH_PREFIX, include_in_schema=False
    )

    return app
