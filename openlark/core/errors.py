"""
Exceptions for the Lark Open Platform client.

Error Taxonomy:
    LarkError
    ├── NetworkError           connection, timeout, malformed HTTP
    ├── AuthError
    │   ├── AuthUnobtainableError   token issuance failed
    │   └── AuthRejectedError       server rejected the attached token
    ├── BusinessError          well-formed non-zero envelope code
    └── DecodeError            success code, payload shape mismatch

Only NetworkError is ever retried (and only when the caller opts in).
AuthRejectedError triggers a single invalidate-and-retry inside the
transport before it is surfaced.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from openlark.core.constants import AccessTokenType
    from openlark.core.response import BaseResponse


class LarkError(Exception):
    """Base exception for all client errors."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        status_code: int | None = None,
        log_id: str | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.log_id = log_id
        self.response_body = response_body

    def __str__(self) -> str:
        parts = [f"[lark] {self.message}"]
        if self.code is not None:
            parts.append(f"(code={self.code})")
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        if self.log_id:
            parts.append(f"(log_id={self.log_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for structured logging."""
        result: dict[str, Any] = {"error": self.message, "type": type(self).__name__}
        if self.code is not None:
            result["code"] = self.code
        if self.status_code:
            result["status"] = self.status_code
        if self.log_id:
            result["log_id"] = self.log_id
        return result


class NetworkError(LarkError):
    """Raised on connection failures, timeouts and unparseable error responses."""


class AuthError(LarkError):
    """Base class for credential problems."""

    def __init__(self, message: str, *, token_type: AccessTokenType | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.token_type = token_type


class AuthUnobtainableError(AuthError):
    """Raised when no access token could be issued for the request."""


class AuthRejectedError(AuthError):
    """Raised when the platform rejects the attached access token."""


class BusinessError(LarkError):
    """
    Raised when the platform answers with a non-zero envelope code.

    The code and message are carried unmodified from the response.
    """

    def __init__(self, code: int, msg: str, *, response: BaseResponse[Any] | None = None, **kwargs):
        super().__init__(msg, code=code, **kwargs)
        self.msg = msg
        self.response = response


class DecodeError(LarkError):
    """Raised when a success response does not match the declared payload shape."""

    def __init__(self, message: str, *, validation_errors: list[dict[str, Any]] | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.validation_errors = validation_errors or []
