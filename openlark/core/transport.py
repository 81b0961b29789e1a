"""
Request dispatch for the Lark Open Platform.

The Transport turns an ApiRequest into a typed BaseResponse:

    1. Select a token kind from the request's preference order and attach
       it as a bearer header (anonymous requests skip this).
    2. Build the URL from path/query parameters and send the body.
    3. Map httpx failures to NetworkError. Network retries only happen
       when the caller enables them (max_retries > 0).
    4. On HTTP 401 or a token-invalid code, invalidate the token that was
       used and dispatch once more. The attempt counter is capped at
       MAX_AUTH_ATTEMPTS; the second rejection is raised.
    5. Classify the envelope (see openlark.core.response).

The TokenStore is passed per call and is the only shared state touched.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

from openlark import __version__
from openlark.core.config import LarkConfig
from openlark.core.constants import (
    CONTENT_TYPE_JSON,
    HTTP_HEADER_AUTHORIZATION,
    HTTP_HEADER_CONTENT_TYPE,
    HTTP_HEADER_LOG_ID,
    HTTP_HEADER_REQUEST_ID,
    MAX_AUTH_ATTEMPTS,
    AccessTokenType,
)
from openlark.core.errors import AuthRejectedError, AuthUnobtainableError, NetworkError
from openlark.core.request import ApiRequest, RequestOption
from openlark.core.response import (
    BaseResponse,
    build_envelope,
    decode_json,
    envelope_code,
    envelope_msg,
    is_auth_rejection,
)
from openlark.core.token import AccessToken, TokenStore

logger = logging.getLogger(__name__)

USER_AGENT = f"openlark-python/{__version__}"


@dataclass(frozen=True, slots=True)
class _Attached:
    """The credential attached to one dispatch attempt."""

    token: AccessToken
    # False for caller-supplied tokens, which cannot be refreshed
    refreshable: bool


class Transport:
    """
    Async HTTP transport with token resolution and bounded auth retry.

    Args:
        config: Client configuration
        http_client: Optional pre-built httpx client (not closed by us)
    """

    def __init__(
        self,
        config: LarkConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config or LarkConfig()
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._client and self._owns_client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def request(
        self,
        req: ApiRequest,
        store: TokenStore | None = None,
        option: RequestOption | None = None,
    ) -> BaseResponse[Any]:
        """
        Dispatch a request and return the typed envelope.

        Args:
            req: Request descriptor
            store: Token store for authenticated requests
            option: Per-call options

        Returns:
            BaseResponse whose data matches req.response_model

        Raises:
            NetworkError: Connection/timeout failure
            AuthUnobtainableError: No token could be obtained
            AuthRejectedError: Token rejected on every allowed attempt
            BusinessError: Non-zero envelope code
            DecodeError: Payload does not match the declared shape
        """
        option = option or RequestOption()

        for attempt in range(1, MAX_AUTH_ATTEMPTS + 1):
            attached = await self._select_token(req, store, option)
            response = await self._send(req, attached, option)
            body = decode_json(response)
            code = envelope_code(body) if body is not None else None

            if not is_auth_rejection(response.status_code, code):
                return build_envelope(
                    response,
                    body,
                    response_model=req.response_model,
                    response_format=req.response_format,
                )

            rejected = AuthRejectedError(
                envelope_msg(body) if body else "Access token rejected",
                token_type=attached.token.kind if attached else None,
                code=code,
                status_code=response.status_code,
                log_id=response.headers.get(HTTP_HEADER_LOG_ID),
                response_body=response.text[:500],
            )

            if attached is None or not attached.refreshable or store is None:
                raise rejected

            if attempt >= MAX_AUTH_ATTEMPTS:
                logger.warning(
                    f"[lark] {attached.token.kind.value} rejected again for "
                    f"{req.method} {req.path}, giving up"
                )
                raise rejected

            logger.info(
                f"[lark] {attached.token.kind.value} rejected (code={code}) for "
                f"{req.method} {req.path}, refreshing and retrying"
            )
            store.invalidate(attached.token.kind, attached.token.value)

        # Unreachable: the final attempt either returns or raises
        raise AuthRejectedError("Access token rejected")

    async def _select_token(
        self,
        req: ApiRequest,
        store: TokenStore | None,
        option: RequestOption,
    ) -> _Attached | None:
        """Pick the first acceptable token kind that can be provided."""
        if req.is_anonymous:
            return None

        if option.user_access_token and AccessTokenType.USER in req.token_types:
            return _Attached(
                token=AccessToken(kind=AccessTokenType.USER, value=option.user_access_token),
                refreshable=False,
            )

        if store is None:
            raise AuthUnobtainableError(
                f"{req.method} {req.path} requires a token but no token store was given"
            )

        last_error: AuthUnobtainableError | None = None
        for kind in req.token_types:
            if not store.available(kind):
                continue
            try:
                return _Attached(token=await store.resolve(kind), refreshable=True)
            except AuthUnobtainableError as e:
                logger.warning(f"[lark] {kind.value} unobtainable for {req.path}, trying next kind: {e}")
                last_error = e

        if last_error is not None:
            raise last_error

        kinds = ", ".join(k.value for k in req.token_types)
        raise AuthUnobtainableError(f"No access token available for {req.path} (accepts {kinds})")

    # =========================================================================
    # HTTP
    # =========================================================================

    def _build_url(self, req: ApiRequest) -> str:
        """Build the absolute URL; absolute paths bypass base_url."""
        path = req.resolved_path()
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url.rstrip('/')}{path}"

    def _build_headers(self, req: ApiRequest, attached: _Attached | None, option: RequestOption) -> dict[str, str]:
        headers = {HTTP_HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON}
        if attached is not None:
            headers[HTTP_HEADER_AUTHORIZATION] = f"Bearer {attached.token.value}"
        if option.request_id:
            headers[HTTP_HEADER_REQUEST_ID] = option.request_id
        headers.update(option.headers)
        return headers

    async def _send(
        self,
        req: ApiRequest,
        attached: _Attached | None,
        option: RequestOption,
    ) -> httpx.Response:
        """Send with network retries, if the caller enabled any."""
        max_retries = option.max_retries if option.max_retries is not None else self.config.max_retries

        for attempt in range(max_retries + 1):
            try:
                return await self._do_send(req, attached, option)
            except NetworkError:
                if attempt >= max_retries:
                    raise
                backoff = self._calculate_backoff(attempt)
                logger.warning(
                    f"[lark] Retry {attempt + 1}/{max_retries} "
                    f"for {req.method} {req.path} after {backoff:.2f}s"
                )
                await asyncio.sleep(backoff)

        # Should never reach here, but satisfy type checker
        raise NetworkError(f"Request failed: {req.method} {req.path}")

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with +/-25% jitter, capped at 60 seconds."""
        base_delay = self.config.retry_delay * (2 ** attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return min(base_delay + jitter, 60.0)

    async def _do_send(
        self,
        req: ApiRequest,
        attached: _Attached | None,
        option: RequestOption,
    ) -> httpx.Response:
        """Execute a single HTTP exchange."""
        client = await self._get_client()
        url = self._build_url(req)

        if self.config.log_requests:
            logger.debug(
                f"[lark] {req.method} {url} params={req.query_params} "
                f"auth={attached.token.kind.value if attached else 'none'}"
            )

        try:
            response = await client.request(
                method=req.method,
                url=url,
                params=req.query_params or None,
                content=req.body or None,
                headers=self._build_headers(req, attached, option),
                timeout=option.timeout or self.config.timeout,
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request timeout: {e}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error: {e}") from e

        if self.config.log_responses:
            logger.debug(
                f"[lark] Response: status={response.status_code} "
                f"log_id={response.headers.get(HTTP_HEADER_LOG_ID)} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        return response
