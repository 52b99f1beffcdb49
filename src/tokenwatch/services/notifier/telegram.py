"""Notifier sinks: Telegram Bot API and a dry-run log sink."""

from typing import Protocol, runtime_checkable

import structlog

from tokenwatch.constants.webhook import TELEGRAM_API_URL
from tokenwatch.core.exceptions import (
    CircuitBreakerOpenError,
    DispatchFailureError,
    ExternalServiceError,
)
from tokenwatch.services.base import BaseAPIClient

log = structlog.get_logger(__name__)


@runtime_checkable
class NotifierSink(Protocol):
    """Delivers a formatted message to an external channel."""

    name: str

    async def deliver(self, message: str) -> bool:
        """Deliver once. Returns True on success.

        Raises:
            DispatchFailureError: If the channel rejected the message.
        """
        ...


class TelegramSink(BaseAPIClient):
    """Telegram Bot API sink (sendMessage, Markdown).

    Makes a single attempt per message; the circuit breaker still opens
    after repeated failures so a dead bot does not stall every batch.
    """

    name = "telegram"

    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0) -> None:
        """Initialize Telegram sink.

        Args:
            bot_token: Bot token from @BotFather
            chat_id: Target chat ID
            timeout: Request timeout in seconds
        """
        super().__init__(
            base_url=TELEGRAM_API_URL,
            timeout=timeout,
            max_retries=1,
            circuit_breaker_threshold=5,
            circuit_breaker_cooldown=60,
        )
        self._bot_token = bot_token
        self.chat_id = chat_id

    async def deliver(self, message: str) -> bool:
        try:
            response = await self.post(
                f"/bot{self._bot_token}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": message,
                    "parse_mode": "Markdown",
                    "disable_web_page_preview": True,
                },
            )
        except (ExternalServiceError, CircuitBreakerOpenError) as e:
            # Never let the bot token leak through the request URL
            detail = str(e).replace(self._bot_token, "***")
            raise DispatchFailureError(self.name, detail) from e

        body = response.json()
        if not body.get("ok", False):
            raise DispatchFailureError(self.name, body.get("description", "not ok"))

        log.debug("telegram_message_sent", chat_id=self.chat_id)
        return True


class LogSink:
    """Dry-run sink used when Telegram is not configured."""

    name = "log"

    async def deliver(self, message: str) -> bool:
        log.info("notification_dry_run", message=message)
        return True

    async def close(self) -> None:
        return None
