"""
LarkClient - wires transport, token store and services together.

Usage:
    async with LarkClient(LarkConfig(app_id="cli_xxx", app_secret="xxx")) as client:
        resp = await client.im.message.create("chat_id", "oc_xxx", TextMessage("hi"))
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from openlark.core.config import LarkConfig
from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import BaseResponse
from openlark.core.token import AccessToken, HttpTokenIssuer, TokenIssuer, TokenStore
from openlark.core.transport import Transport
from openlark.service.bitable.v1.app_table_record import AppTableRecordService
from openlark.service.im.v1.message import MessageService

logger = logging.getLogger(__name__)


class _ImV1:
    def __init__(self, transport: Transport, store: TokenStore):
        self.message = MessageService(transport, store)


class _BitableV1:
    def __init__(self, transport: Transport, store: TokenStore):
        self.app_table_record = AppTableRecordService(transport, store)


class LarkClient:
    """
    Entry point for the Open Platform API.

    Args:
        config: Client configuration
        http_client: Optional httpx client to send through
        issuer: Optional token issuer (defaults to the HTTP token endpoints)
    """

    def __init__(
        self,
        config: LarkConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        issuer: TokenIssuer | None = None,
    ):
        self.config = config
        self.transport = Transport(config, http_client=http_client)
        self.issuer = issuer or HttpTokenIssuer(config, self.transport)
        self.token_store = TokenStore(
            self.issuer,
            app_id=config.app_id,
            tenant_key=config.tenant_key,
        )

        self.im = _ImV1(self.transport, self.token_store)
        self.bitable = _BitableV1(self.transport, self.token_store)

    def set_user_token(self, token: AccessToken, refresh_token: str | None = None) -> None:
        """Install a user token obtained through an OAuth login."""
        self.token_store.put(token)
        logger.info(f"[lark] Installed {token.kind.value} for app {self.config.app_id}")
        if refresh_token and isinstance(self.issuer, HttpTokenIssuer):
            self.issuer.set_refresh_token(refresh_token)

    async def request(
        self,
        req: ApiRequest,
        option: RequestOption | None = None,
    ) -> BaseResponse[Any]:
        """Send an arbitrary request descriptor with this client's tokens."""
        return await self.transport.request(req, self.token_store, option)

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> LarkClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
