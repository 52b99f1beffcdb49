"""HMAC validation middleware for webhook security."""

import hashlib
import hmac
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from tokenwatch.config.settings import get_settings
from tokenwatch.constants.webhook import SIGNATURE_HEADERS, WEBHOOK_PATH_PREFIXES

logger = structlog.get_logger(__name__)


class WebhookValidationResult(BaseModel):
    """Outcome of a webhook signature check."""

    is_valid: bool
    skipped: bool = False
    error_message: str | None = None


def validate_hmac_signature(body: bytes, signature: str, secret: str) -> bool:
    """
    Validate HMAC-SHA256 hex signature for a webhook payload.

    Args:
        body: Raw request body bytes
        signature: Signature from request header
        secret: HMAC secret for verification

    Returns:
        True if signature is valid, False otherwise
    """
    expected = hmac.new(
        key=secret.encode(),
        msg=body,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(signature.strip().lower(), expected)


class HMACValidationMiddleware(BaseHTTPMiddleware):
    """Validates webhook signatures when a secret is configured."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """
        Process request and validate HMAC signature for webhook endpoints.

        Args:
            request: Incoming FastAPI request
            call_next: Next middleware or route handler

        Returns:
            Response from next handler or 401 error
        """
        if not request.url.path.startswith(WEBHOOK_PATH_PREFIXES):
            return await call_next(request)

        validation_result = await self._validate_signature(request)

        if not validation_result.is_valid:
            logger.warning(
                "webhook_signature_invalid",
                path=request.url.path,
                client_ip=request.client.host if request.client else "unknown",
                error=validation_result.error_message,
            )
            return Response(
                content='{"detail": "Invalid webhook signature"}',
                status_code=401,
                media_type="application/json",
            )

        request.state.webhook_validation = validation_result
        return await call_next(request)

    async def _validate_signature(self, request: Request) -> WebhookValidationResult:
        secret = get_settings().helius_webhook_secret.get_secret_value()
        if not secret:
            return WebhookValidationResult(is_valid=True, skipped=True)

        signature = next(
            (request.headers[h] for h in SIGNATURE_HEADERS if request.headers.get(h)),
            None,
        )
        if not signature:
            return WebhookValidationResult(
                is_valid=False,
                error_message="Missing signature header",
            )

        body = await request.body()
        is_valid = validate_hmac_signature(body, signature, secret)
        return WebhookValidationResult(
            is_valid=is_valid,
            error_message=None if is_valid else "Signature mismatch",
        )
