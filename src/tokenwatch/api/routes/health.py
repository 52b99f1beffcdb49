"""Health check endpoint with ledger and poller status."""

from typing import Any

from fastapi import APIRouter

from tokenwatch.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        dict with status, version, ledger backend and feed poller state.
    """
    settings = get_settings()

    return {
        "status": "ok",
        "version": settings.app_version,
        "ledger": _get_ledger_backend(),
        "notifier": "telegram" if settings.telegram_configured else "dry_run",
        "poller": _get_poller_status(),
    }


def _get_ledger_backend() -> str:
    """Ledger backend of the running orchestrator, if built yet."""
    # Import here to read the current singleton
    import tokenwatch.services.pipeline.orchestrator as orchestrator_module  # noqa: PLC0415

    orchestrator = orchestrator_module._orchestrator
    if orchestrator is None:
        return "not_initialized"
    return orchestrator.ledger_backend


def _get_poller_status() -> dict[str, Any]:
    from tokenwatch.workers.feed_poller import get_feed_poller_status  # noqa: PLC0415

    return get_feed_poller_status()
