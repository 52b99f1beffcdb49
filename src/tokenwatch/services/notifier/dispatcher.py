"""Notification dispatcher for tokens that passed the filter."""

import asyncio
from decimal import Decimal
from urllib.parse import quote

import structlog

from tokenwatch.constants.webhook import (
    EXPLORER_URLS,
    FALLBACK_EXPLORER_URL,
    MARKDOWN_SPECIAL_CHARS,
)
from tokenwatch.models.evaluation import DispatchResult
from tokenwatch.models.token import CandidateToken, ResolvedMetrics
from tokenwatch.services.notifier.telegram import NotifierSink

log = structlog.get_logger(__name__)


def explorer_url(chain: str, address: str) -> str:
    """Chain-specific explorer link, or a search link for unknown chains."""
    template = EXPLORER_URLS.get(chain)
    if template is None:
        return FALLBACK_EXPLORER_URL.format(address=quote(address))
    return template.format(address=address)


def _usd(value: Decimal | None) -> str:
    if value is None:
        return "N/A"
    return f"${value:,.2f}"


def _pct(value: Decimal | None) -> str:
    return "N/A" if value is None else f"{value}%"


def escape_markdown(text: str) -> str:
    """Escape the legacy Markdown control characters Telegram parses."""
    return "".join(f"\\{ch}" if ch in MARKDOWN_SPECIAL_CHARS else ch for ch in text)


def format_message(candidate: CandidateToken, metrics: ResolvedMetrics) -> str:
    """Build the Markdown notification text."""
    address = candidate.query_address
    name = metrics.name or candidate.raw_fields.get("name")
    symbol = metrics.symbol or candidate.raw_fields.get("symbol")
    holders = metrics.holders

    lines = ["*New token passing filters*"]
    if name or symbol:
        title = escape_markdown(str(name or ""))
        ticker = escape_markdown(str(symbol or ""))
        lines.append(f"*{title}* ({ticker})")
    lines.append(f"Address: `{address}`")
    lines.append(f"Chain: `{candidate.chain}`")
    lines.append(f"Market Cap: {_usd(metrics.marketcap)}")
    lines.append(f"24h Volume: {_usd(metrics.volume24h)}")
    lines.append(f"Holders: {holders.to_integral_value() if holders is not None else 'N/A'}")
    lines.append(f"Top 10 holders share: {_pct(metrics.top10_percent)}")
    lines.append(f"Dev/creator share: {_pct(metrics.dev_percent)}")
    lines.append(f"Explorer: {explorer_url(candidate.chain, address)}")
    return "\n".join(lines)


class NotificationDispatcher:
    """Sends exactly one notification attempt per call. Never retries."""

    def __init__(self, sink: NotifierSink, timeout: float = 10.0) -> None:
        """Initialize dispatcher.

        Args:
            sink: Delivery channel
            timeout: Deadline for the single delivery attempt
        """
        self.sink = sink
        self.timeout = timeout

    async def dispatch(self, candidate: CandidateToken, metrics: ResolvedMetrics) -> DispatchResult:
        """Format and deliver a notification.

        Returns:
            DispatchResult; failures are reported, not raised.
        """
        message = format_message(candidate, metrics)
        try:
            delivered = await asyncio.wait_for(self.sink.deliver(message), timeout=self.timeout)
        except TimeoutError:
            error = f"{self.sink.name}: timed out after {self.timeout}s"
            log.warning("notification_failed", token=candidate.short_address, error=error)
            return DispatchResult(delivered=False, error=error)
        except Exception as e:
            error = str(e) or type(e).__name__
            log.warning("notification_failed", token=candidate.short_address, error=error)
            return DispatchResult(delivered=False, error=error)

        if not delivered:
            error = f"{self.sink.name}: delivery not acknowledged"
            log.warning("notification_failed", token=candidate.short_address, error=error)
            return DispatchResult(delivered=False, error=error)

        log.info("notification_sent", token=candidate.short_address, sink=self.sink.name)
        return DispatchResult(delivered=True)

    async def close(self) -> None:
        """Close the underlying sink."""
        close = getattr(self.sink, "close", None)
        if close is not None:
            await close()
