"""
Response envelope and classification.

Every platform response is decoded into a generic envelope
``{"code": int, "msg": str, "data": {...}}`` before the typed payload is
extracted. Classification rules:

    - HTTP 401 or a token-invalid code  -> auth rejection (transport decides)
    - code != 0                         -> BusinessError (code/msg unmodified)
    - code == 0, payload matches shape  -> BaseResponse with typed data
    - code == 0, payload mismatch       -> DecodeError
    - body is not JSON, or has no       -> NetworkError on HTTP error status,
      integer code                         DecodeError otherwise
"""

from __future__ import annotations

import json
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from openlark.core.constants import (
    HTTP_HEADER_LOG_ID,
    SUCCESS_CODE,
    TOKEN_INVALID_CODES,
    ResponseFormat,
)
from openlark.core.errors import BusinessError, DecodeError, NetworkError

T = TypeVar("T")

_ENVELOPE_KEYS = ("code", "msg")


class BaseResponse(BaseModel, Generic[T]):
    """Generic envelope every API response is decoded into."""

    code: int = SUCCESS_CODE
    msg: str = ""
    data: T | None = None
    raw: dict[str, Any] | None = Field(None, description="Undecoded response body")
    log_id: str | None = None
    http_status: int | None = None

    def success(self) -> bool:
        return self.code == SUCCESS_CODE


class RawResponse(BaseModel):
    """Payload shape for callers that only need the envelope."""

    model_config = ConfigDict(extra="allow")


def is_auth_rejection(http_status: int, code: int | None) -> bool:
    """Check whether a response signals an invalid or expired access token."""
    return http_status == 401 or (code is not None and code in TOKEN_INVALID_CODES)


def decode_json(response: httpx.Response) -> dict[str, Any] | None:
    """Parse the body as a JSON object, or return None."""
    try:
        body = json.loads(response.content) if response.content else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def envelope_code(body: dict[str, Any]) -> int | None:
    """Read the envelope code, accepting the legacy webhook spelling.

    Returns None when neither key holds an integer.
    """
    for key in ("code", "StatusCode"):
        value = body.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.lstrip("-").isdigit():
            return int(value)
    return None


def envelope_msg(body: dict[str, Any]) -> str:
    for key in ("msg", "StatusMessage", "error_description"):
        if body.get(key):
            return str(body[key])
    return ""


def build_envelope(
    response: httpx.Response,
    body: dict[str, Any] | None,
    *,
    response_model: type[BaseModel] | None = None,
    response_format: ResponseFormat = ResponseFormat.DATA,
) -> BaseResponse[Any]:
    """
    Classify a response and build the typed envelope.

    Args:
        response: HTTP response
        body: Parsed JSON body (None if the body was not a JSON object)
        response_model: Declared payload shape
        response_format: Where the payload lives in the body

    Returns:
        BaseResponse with data populated only on success

    Raises:
        NetworkError: Body unparseable on an HTTP error status
        BusinessError: Non-zero envelope code
        DecodeError: Payload does not match the declared shape
    """
    log_id = response.headers.get(HTTP_HEADER_LOG_ID)
    status = response.status_code

    if body is None:
        if response.is_error:
            raise NetworkError(
                f"HTTP {status} with non-JSON body",
                status_code=status,
                log_id=log_id,
                response_body=response.text[:500],
            )
        raise DecodeError(
            "Response body is not a JSON object",
            status_code=status,
            log_id=log_id,
            response_body=response.text[:500],
        )

    code = envelope_code(body)
    if code is None:
        if response.is_error:
            raise NetworkError(
                f"HTTP {status} without an envelope code",
                status_code=status,
                log_id=log_id,
                response_body=response.text[:500],
            )
        raise DecodeError(
            "Response body has no integer code",
            status_code=status,
            log_id=log_id,
            response_body=response.text[:500],
        )

    envelope = BaseResponse[Any](
        code=code,
        msg=envelope_msg(body),
        raw=body,
        log_id=log_id,
        http_status=status,
    )

    if code != SUCCESS_CODE:
        raise BusinessError(
            code,
            envelope.msg,
            response=envelope,
            status_code=status,
            log_id=log_id,
            response_body=response.text[:500],
        )

    if response.is_error:
        raise NetworkError(
            f"HTTP {status} without an error code",
            status_code=status,
            log_id=log_id,
            response_body=response.text[:500],
        )

    if response_model is None:
        return envelope

    if response_format is ResponseFormat.FLATTEN:
        payload: Any = {k: v for k, v in body.items() if k not in _ENVELOPE_KEYS}
    else:
        payload = body.get("data")
        if payload is None:
            return envelope

    try:
        envelope.data = response_model.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(
            f"Payload does not match {response_model.__name__}: {e.error_count()} error(s)",
            code=code,
            status_code=status,
            log_id=log_id,
            validation_errors=e.errors(include_url=False),
        ) from e

    return envelope
