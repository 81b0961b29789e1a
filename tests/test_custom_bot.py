"""
Tests for the custom bot webhook sender.
"""

import json

import pytest

from openlark.core import AuthRejectedError, BusinessError
from openlark.custom_bot import CustomBot, PayloadField, sign
from openlark.service.im.v1 import MessageCardTemplate, TextMessage

from conftest import FakeClock, RecordingHandler, json_response

WEBHOOK_URL = "https://open.feishu.cn/open-apis/bot/v2/hook/test-hook"

SUCCESS = {"code": 0, "data": {}, "msg": "success"}


@pytest.fixture
def card():
    return MessageCardTemplate(
        {
            "header": {"title": {"tag": "plain_text", "content": "Deploy"}},
            "elements": [{"tag": "markdown", "content": "**done**"}],
        }
    )


class TestPayload:
    """Tests for payload construction and signing."""

    def test_unsigned_text_has_only_type_and_content(self):
        bot = CustomBot(WEBHOOK_URL)
        payload = bot.build_payload(TextMessage("hello"), PayloadField.CONTENT)

        assert set(payload) == {"msg_type", "content"}
        assert payload["msg_type"] == "text"
        assert payload["content"] == {"text": "hello"}

    def test_signed_adds_timestamp_and_sign_together(self):
        clock = FakeClock(1700000000.7)
        bot = CustomBot(WEBHOOK_URL, secret="abcd", clock=clock)
        payload = bot.build_payload(TextMessage("hello"), PayloadField.CONTENT)

        assert set(payload) == {"msg_type", "content", "timestamp", "sign"}
        assert payload["timestamp"] == 1700000000
        assert payload["sign"] == sign(payload["timestamp"], "abcd")
        assert payload["sign"] == "fP/wRIUdMK0o5AfPUtMjazHh4qD9zx1KyK+Eyqwxbo8="

    def test_empty_secret_is_unsigned(self):
        bot = CustomBot(WEBHOOK_URL, secret="")
        payload = bot.build_payload(TextMessage("hello"), PayloadField.CONTENT)
        assert not bot.signed
        assert "timestamp" not in payload and "sign" not in payload

    def test_card_uses_card_field(self, card):
        bot = CustomBot(WEBHOOK_URL)
        payload = bot.build_payload(card, PayloadField.CARD)

        assert set(payload) == {"msg_type", "card"}
        assert payload["msg_type"] == "interactive"
        assert payload["card"]["header"]["title"]["content"] == "Deploy"

    def test_rejects_relative_url(self):
        with pytest.raises(ValueError, match="absolute"):
            CustomBot("/open-apis/bot/v2/hook/x")


class TestSend:
    """Tests for delivery through the transport."""

    @pytest.mark.asyncio
    async def test_send_message_unsigned(self, make_transport):
        handler = RecordingHandler(json_response(SUCCESS))
        bot = CustomBot(WEBHOOK_URL, transport=make_transport(handler))

        resp = await bot.send_message(TextMessage("hello"))

        assert resp.success()
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert str(request.url) == WEBHOOK_URL
        assert request.method == "POST"
        assert "Authorization" not in request.headers
        body = json.loads(request.content)
        assert body == {"msg_type": "text", "content": {"text": "hello"}}

    @pytest.mark.asyncio
    async def test_send_card_signed(self, make_transport, card):
        handler = RecordingHandler(json_response(SUCCESS))
        bot = CustomBot(
            WEBHOOK_URL,
            secret="abcd",
            transport=make_transport(handler),
            clock=FakeClock(1700000000),
        )

        await bot.send_card(card)

        body = json.loads(handler.requests[0].content)
        assert body["msg_type"] == "interactive"
        assert "card" in body and "content" not in body
        assert body["timestamp"] == 1700000000
        assert body["sign"] == sign(1700000000, "abcd")

    @pytest.mark.asyncio
    async def test_business_error_not_retried(self, make_transport):
        """A signature failure is surfaced with its code and message."""
        handler = RecordingHandler(
            json_response({"code": 19021, "msg": "sign match fail or timestamp is not within one hour from current time"})
        )
        bot = CustomBot(WEBHOOK_URL, secret="wrong", transport=make_transport(handler))

        with pytest.raises(BusinessError) as exc_info:
            await bot.send_message(TextMessage("hello"))

        assert exc_info.value.code == 19021
        assert exc_info.value.msg.startswith("sign match fail")
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_token_invalid_code_not_retried(self, make_transport):
        """Webhooks have no token to refresh, so a rejection is final."""
        handler = RecordingHandler(json_response({"code": 99991663, "msg": "invalid"}))
        bot = CustomBot(WEBHOOK_URL, transport=make_transport(handler))

        with pytest.raises(AuthRejectedError):
            await bot.send_message(TextMessage("hello"))
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_legacy_status_code_envelope(self, make_transport):
        handler = RecordingHandler(json_response({"StatusCode": 0, "StatusMessage": "success"}))
        bot = CustomBot(WEBHOOK_URL, transport=make_transport(handler))

        resp = await bot.send_message(TextMessage("hello"))
        assert resp.code == 0
        assert resp.msg == "success"
