"""
openlark - async client for the Feishu/Lark Open Platform.

Features:

- **Token Resolution**: tenant and user access tokens, cached per app and
  refreshed lazily with single-flight protection
- **Transport**: typed request descriptors in, typed envelopes out, with a
  single invalidate-and-retry on token rejection
- **Custom Bots**: webhook sending with optional HMAC signatures
- **Services**: IM messages and Bitable record search

Quick Start:
    >>> from openlark import LarkClient, LarkConfig
    >>> from openlark.service.im.v1 import TextMessage
    >>>
    >>> async with LarkClient(LarkConfig(app_id="cli_xxx", app_secret="xxx")) as client:
    ...     resp = await client.im.message.create("chat_id", "oc_xxx", TextMessage("hi"))
    ...     print(resp.data.message_id)
"""

__version__ = "0.1.0"
__license__ = "MIT"

from openlark.client import LarkClient
from openlark.core import (
    AccessToken,
    AccessTokenType,
    ApiRequest,
    AuthRejectedError,
    AuthUnobtainableError,
    BaseResponse,
    BusinessError,
    DecodeError,
    LarkConfig,
    LarkError,
    NetworkError,
    RequestOption,
    TokenStore,
    Transport,
)
from openlark.custom_bot import CustomBot

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Client
    "LarkClient",
    "LarkConfig",
    "CustomBot",
    # Core
    "AccessToken",
    "AccessTokenType",
    "ApiRequest",
    "BaseResponse",
    "RequestOption",
    "TokenStore",
    "Transport",
    # Errors
    "AuthRejectedError",
    "AuthUnobtainableError",
    "BusinessError",
    "DecodeError",
    "LarkError",
    "NetworkError",
]
