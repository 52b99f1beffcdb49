"""Webhook endpoint for Helius notifications."""

import time
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from tokenwatch.ingestion.normalizer import CandidateNormalizer
from tokenwatch.models.token import CandidateToken

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["webhooks"])

_normalizer = CandidateNormalizer()


@router.post("/helius")
async def receive_helius_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    """
    Receive a Helius webhook and schedule evaluation of its tokens.

    HMAC validation is handled by middleware before this endpoint. The
    response is sent before evaluation starts.

    Returns:
        Status response with the number of tokens scheduled
    """
    start_time = time.perf_counter()

    try:
        payload = await request.json()
    except ValueError as e:
        logger.warning("webhook_payload_invalid", error=str(e))
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    candidates = _normalizer.from_helius_payload(payload)
    if candidates:
        background_tasks.add_task(_evaluate_candidates, candidates)

    processing_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "webhook_received",
        tokens_found=len(candidates),
        processing_time_ms=round(processing_time_ms, 2),
    )

    return {
        "status": "accepted" if candidates else "no_tokens",
        "tokens_received": len(candidates),
        "processing_time_ms": round(processing_time_ms, 2),
    }


async def _evaluate_candidates(candidates: list[CandidateToken]) -> None:
    """Background task running a webhook batch through the pipeline."""
    from tokenwatch.services.pipeline import get_orchestrator  # noqa: PLC0415

    try:
        orchestrator = await get_orchestrator()
        await orchestrator.evaluate_batch(candidates)
    except Exception as e:
        logger.error("webhook_batch_failed", count=len(candidates), error=str(e))
