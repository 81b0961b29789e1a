"""
Core layer - request descriptors, token cache, transport and envelope.

Directory Structure:
    core/
    ├── config.py      # LarkConfig
    ├── constants.py   # Token kinds, response formats, error codes
    ├── errors.py      # Exception hierarchy
    ├── request.py     # ApiRequest, RequestOption
    ├── response.py    # BaseResponse envelope and classification
    ├── token.py       # TokenStore, HttpTokenIssuer
    └── transport.py   # Transport
"""

from openlark.core.config import LarkConfig
from openlark.core.constants import AccessTokenType, ResponseFormat
from openlark.core.errors import (
    AuthError,
    AuthRejectedError,
    AuthUnobtainableError,
    BusinessError,
    DecodeError,
    LarkError,
    NetworkError,
)
from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import BaseResponse, RawResponse
from openlark.core.token import AccessToken, HttpTokenIssuer, TokenIssuer, TokenStore
from openlark.core.transport import Transport

__all__ = [
    "AccessToken",
    "AccessTokenType",
    "ApiRequest",
    "AuthError",
    "AuthRejectedError",
    "AuthUnobtainableError",
    "BaseResponse",
    "BusinessError",
    "DecodeError",
    "HttpTokenIssuer",
    "LarkConfig",
    "LarkError",
    "NetworkError",
    "RawResponse",
    "RequestOption",
    "ResponseFormat",
    "TokenIssuer",
    "TokenStore",
    "Transport",
]
