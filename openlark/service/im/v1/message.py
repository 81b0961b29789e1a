"""
IM v1 messages.

Message content types share one protocol (``msg_type`` + ``content()``) so
they can be sent through the Open API or a custom bot webhook alike.

Usage:
    resp = await client.im.message.create(
        receive_id_type="chat_id",
        receive_id="oc_xxx",
        message=TextMessage("hello"),
    )
    print(resp.data.message_id)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from openlark.core.constants import AccessTokenType
from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import BaseResponse
from openlark.core.token import TokenStore
from openlark.core.transport import Transport

logger = logging.getLogger(__name__)


# =============================================================================
# Content Types
# =============================================================================


@runtime_checkable
class SendMessage(Protocol):
    """Anything that can be sent as a message."""

    @property
    def msg_type(self) -> str: ...

    def content(self) -> dict[str, Any]: ...


@dataclass(frozen=True)
class TextMessage:
    """Plain text message; supports <at user_id="..."></at> tags."""

    text: str

    @property
    def msg_type(self) -> str:
        return "text"

    def content(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class PostMessage:
    """Rich text message, keyed by language (e.g. "zh_cn")."""

    title: str
    paragraphs: list[list[dict[str, Any]]] = field(default_factory=list)
    language: str = "zh_cn"

    @property
    def msg_type(self) -> str:
        return "post"

    def content(self) -> dict[str, Any]:
        return {"post": {self.language: {"title": self.title, "content": self.paragraphs}}}


@dataclass(frozen=True)
class ImageMessage:
    image_key: str

    @property
    def msg_type(self) -> str:
        return "image"

    def content(self) -> dict[str, Any]:
        return {"image_key": self.image_key}


@dataclass(frozen=True)
class ShareChatMessage:
    share_chat_id: str

    @property
    def msg_type(self) -> str:
        return "share_chat"

    def content(self) -> dict[str, Any]:
        return {"share_chat_id": self.share_chat_id}


@dataclass(frozen=True)
class MessageCardTemplate:
    """
    Interactive card message.

    The card itself is built elsewhere; this accepts either the card JSON
    or any pydantic model that serializes to it.
    """

    card: dict[str, Any] | BaseModel

    @property
    def msg_type(self) -> str:
        return "interactive"

    def content(self) -> dict[str, Any]:
        if isinstance(self.card, BaseModel):
            return self.card.model_dump(exclude_none=True, by_alias=True)
        return dict(self.card)


# =============================================================================
# Response Schemas
# =============================================================================


class Sender(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    id_type: str | None = None
    sender_type: str | None = None
    tenant_key: str | None = None


class MessageBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str


class Message(BaseModel):
    """A sent message as returned by the platform."""

    model_config = ConfigDict(extra="ignore")

    message_id: str
    root_id: str | None = None
    parent_id: str | None = None
    msg_type: str | None = None
    create_time: str | None = None
    update_time: str | None = None
    deleted: bool | None = None
    chat_id: str | None = None
    sender: Sender | None = None
    body: MessageBody | None = None


# =============================================================================
# Service
# =============================================================================


class MessageService:
    """IM v1 message endpoints."""

    def __init__(self, transport: Transport, store: TokenStore | None = None):
        self._transport = transport
        self._store = store

    async def create(
        self,
        receive_id_type: str,
        receive_id: str,
        message: SendMessage,
        *,
        uuid: str | None = None,
        option: RequestOption | None = None,
    ) -> BaseResponse[Message]:
        """
        Send a message to a user or chat.

        Args:
            receive_id_type: open_id, union_id, user_id, email or chat_id
            receive_id: Recipient ID of that type
            message: Content to send
            uuid: Idempotency key (deduplicated by the platform for 1 hour)
            option: Per-call options

        Returns:
            Envelope carrying the created Message
        """
        body: dict[str, Any] = {
            "receive_id": receive_id,
            "msg_type": message.msg_type,
            # The Open API expects content as a JSON-encoded string
            "content": json.dumps(message.content(), ensure_ascii=False),
        }
        if uuid:
            body["uuid"] = uuid

        req = (
            ApiRequest(
                method="POST",
                path="/open-apis/im/v1/messages",
                token_types=(AccessTokenType.TENANT, AccessTokenType.USER),
                response_model=Message,
            )
            .with_query(receive_id_type=receive_id_type)
            .with_body(body)
        )

        logger.info(f"[lark_im] Sending {message.msg_type} message to {receive_id_type}")
        return await self._transport.request(req, self._store, option)
