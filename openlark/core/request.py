"""
Request descriptors.

An ApiRequest fully describes one API call: method, path, parameters,
body bytes, acceptable token kinds (in preference order) and the shape of
the expected payload. Service builders produce them; the Transport
consumes them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel

from openlark.core.constants import AccessTokenType, ResponseFormat


@dataclass(frozen=True, slots=True)
class ApiRequest:
    """Immutable description of a single API call."""

    method: str
    path: str
    path_params: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    token_types: tuple[AccessTokenType, ...] = ()
    response_model: type[BaseModel] | None = None
    response_format: ResponseFormat = ResponseFormat.DATA

    @property
    def is_anonymous(self) -> bool:
        return not self.token_types

    def with_body(self, payload: dict[str, Any] | BaseModel) -> ApiRequest:
        """Return a copy carrying the JSON-encoded payload."""
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(exclude_none=True)
        return replace(self, body=json.dumps(payload, ensure_ascii=False).encode("utf-8"))

    def with_query(self, **params: Any) -> ApiRequest:
        """Return a copy with extra query parameters (None values dropped)."""
        merged = dict(self.query_params)
        merged.update({k: str(v) for k, v in params.items() if v is not None})
        return replace(self, query_params=merged)

    def resolved_path(self) -> str:
        """Substitute {name} placeholders with URL-quoted path parameters."""
        try:
            return self.path.format_map(
                {k: quote(str(v), safe="") for k, v in self.path_params.items()}
            )
        except KeyError as e:
            raise ValueError(f"Missing path parameter {e} for {self.path}") from e


@dataclass(frozen=True, slots=True)
class RequestOption:
    """Per-call options."""

    # Caller-supplied user token; used verbatim and never cached
    user_access_token: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    request_id: str | None = None
    timeout: float | None = None
    # Network retries for this call; None falls back to the client config
    max_retries: int | None = None
