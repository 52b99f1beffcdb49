"""Tests for the Telegram sink."""

import json

import httpx
import pytest
import pytest_asyncio
import respx

from tokenwatch.core.exceptions import DispatchFailureError
from tokenwatch.services.notifier import TelegramSink

BOT_TOKEN = "123456:ABC-secret"
SEND_URL = f"https://api.telegram.org/bot{BOT_TOKEN}/sendMessage"


@pytest_asyncio.fixture
async def sink():
    telegram = TelegramSink(bot_token=BOT_TOKEN, chat_id="-100200")
    yield telegram
    await telegram.close()


class TestTelegramSink:
    """Tests for TelegramSink.deliver."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_sends_markdown_message(self, sink: TelegramSink) -> None:
        route = respx.post(SEND_URL).mock(
            return_value=httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})
        )

        assert await sink.deliver("*hello*") is True

        payload = json.loads(route.calls.last.request.content)
        assert payload == {
            "chat_id": "-100200",
            "text": "*hello*",
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_ok_body_raises(self, sink: TelegramSink) -> None:
        respx.post(SEND_URL).mock(
            return_value=httpx.Response(200, json={"ok": False, "description": "chat not found"})
        )

        with pytest.raises(DispatchFailureError, match="chat not found"):
            await sink.deliver("hi")

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_redacts_token(self, sink: TelegramSink) -> None:
        """
        Given: Telegram answers 400
        When: Delivering
        Then: DispatchFailureError without the bot token in its message
        """
        respx.post(SEND_URL).mock(return_value=httpx.Response(400, json={"ok": False}))

        with pytest.raises(DispatchFailureError) as exc_info:
            await sink.deliver("hi")

        assert BOT_TOKEN not in str(exc_info.value)

    @pytest.mark.asyncio
    @respx.mock
    async def test_single_attempt_on_server_error(self, sink: TelegramSink) -> None:
        route = respx.post(SEND_URL).mock(return_value=httpx.Response(502))

        with pytest.raises(DispatchFailureError):
            await sink.deliver("hi")

        assert route.call_count == 1
