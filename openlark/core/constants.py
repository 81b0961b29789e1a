"""
Platform constants: token kinds, response layouts, endpoints and error codes.
"""

from __future__ import annotations

from enum import Enum

FEISHU_BASE_URL = "https://open.feishu.cn"
LARK_BASE_URL = "https://open.larksuite.com"

# Endpoints
TENANT_ACCESS_TOKEN_INTERNAL_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
USER_ACCESS_TOKEN_PATH = "/open-apis/authen/v2/oauth/token"

# Headers
HTTP_HEADER_AUTHORIZATION = "Authorization"
HTTP_HEADER_CONTENT_TYPE = "Content-Type"
HTTP_HEADER_LOG_ID = "X-Tt-Logid"
HTTP_HEADER_REQUEST_ID = "X-Request-Id"
CONTENT_TYPE_JSON = "application/json; charset=utf-8"

# Tokens are refreshed this many seconds before the platform expires them
EXPIRY_DELTA = 180

# Transport
MAX_AUTH_ATTEMPTS = 2

# Envelope codes
SUCCESS_CODE = 0
ERR_ACCESS_TOKEN_MISSING = 99991661
ERR_TENANT_ACCESS_TOKEN_INVALID = 99991663
ERR_APP_ACCESS_TOKEN_INVALID = 99991664
ERR_USER_ACCESS_TOKEN_INVALID = 99991668
ERR_USER_ACCESS_TOKEN_EXPIRED = 99991677

TOKEN_INVALID_CODES = frozenset(
    {
        ERR_ACCESS_TOKEN_MISSING,
        ERR_TENANT_ACCESS_TOKEN_INVALID,
        ERR_APP_ACCESS_TOKEN_INVALID,
        ERR_USER_ACCESS_TOKEN_INVALID,
        ERR_USER_ACCESS_TOKEN_EXPIRED,
    }
)


class AccessTokenType(str, Enum):
    """Credential scopes issued by the platform."""

    TENANT = "tenant_access_token"
    USER = "user_access_token"


class ResponseFormat(str, Enum):
    """Where the typed payload lives inside a response body."""

    DATA = "data"  # {"code": 0, "msg": "", "data": {...}}
    FLATTEN = "flatten"  # {"code": 0, "msg": "", "field": ...}
