"""
Custom bot (group webhook) sender.

Custom bots do not use access tokens. When the bot has a signing secret,
each payload carries ``timestamp`` and ``sign`` fields instead; both are
added together or not at all.

Usage:
    bot = CustomBot(
        "https://open.feishu.cn/open-apis/bot/v2/hook/xxx",
        secret="xxx",
    )
    await bot.send_message(TextMessage("deploy finished"))
    await bot.send_card(MessageCardTemplate(card))

Reference:
    https://open.feishu.cn/document/client-docs/bot-v3/add-custom-bot
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import BaseResponse
from openlark.core.transport import Transport
from openlark.custom_bot.signature import sign
from openlark.service.im.v1.message import MessageCardTemplate, SendMessage

logger = logging.getLogger(__name__)


class PayloadField(str, Enum):
    """JSON member that carries the message body."""

    CONTENT = "content"
    CARD = "card"


class CustomBot:
    """
    Sender for a single custom bot webhook.

    Args:
        webhook_url: Full webhook URL
        secret: Signing secret; None sends unsigned payloads
        transport: Transport to send through (a default one is created)
        clock: Returns the current time in epoch seconds
    """

    def __init__(
        self,
        webhook_url: str,
        secret: str | None = None,
        *,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if not webhook_url.startswith(("http://", "https://")):
            raise ValueError("webhook_url must be an absolute http(s) URL")
        self._webhook_url = webhook_url
        self._secret = secret or None
        self._transport = transport or Transport()
        self._owns_transport = transport is None
        self._clock = clock

    @property
    def signed(self) -> bool:
        return self._secret is not None

    async def send_message(
        self,
        message: SendMessage,
        option: RequestOption | None = None,
    ) -> BaseResponse[Any]:
        """Send a text/post/image/share_chat message."""
        return await self._send(message, PayloadField.CONTENT, option)

    async def send_card(
        self,
        message: MessageCardTemplate,
        option: RequestOption | None = None,
    ) -> BaseResponse[Any]:
        """Send an interactive card; webhooks expect it under "card"."""
        return await self._send(message, PayloadField.CARD, option)

    def build_payload(self, message: SendMessage, payload_field: PayloadField) -> dict[str, Any]:
        """Build the JSON object to post, signed if a secret is configured."""
        payload: dict[str, Any] = {
            "msg_type": message.msg_type,
            payload_field.value: message.content(),
        }
        return self._apply_signature(payload)

    def _apply_signature(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self._secret is None:
            return payload
        timestamp = int(self._clock())
        return {**payload, "timestamp": timestamp, "sign": sign(timestamp, self._secret)}

    async def _send(
        self,
        message: SendMessage,
        payload_field: PayloadField,
        option: RequestOption | None,
    ) -> BaseResponse[Any]:
        payload = self.build_payload(message, payload_field)
        req = ApiRequest(
            method="POST",
            path=self._webhook_url,
            body=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
        )

        logger.info(
            f"[lark_bot] Sending {message.msg_type} via webhook "
            f"({'signed' if self.signed else 'unsigned'})"
        )
        return await self._transport.request(req, None, option)

    async def close(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def __aenter__(self) -> CustomBot:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
