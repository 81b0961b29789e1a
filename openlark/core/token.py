"""
Access token cache and issuance.

The TokenStore is the only shared mutable state in the client. It holds at
most one token per (kind, app, tenant) key and refreshes lazily: a resolve
against an expired or invalidated entry triggers a synchronous refresh,
nothing refreshes on a timer.

Single-flight:
    Each key has its own asyncio.Lock. Resolvers of a live token never
    touch the lock. Resolvers of an expired token queue on the lock and
    re-check after acquiring it, so N concurrent callers cause exactly one
    call to the issuer.

Usage:
    issuer = HttpTokenIssuer(config, transport)
    store = TokenStore(issuer, app_id=config.app_id)

    token = await store.resolve(AccessTokenType.TENANT)
    store.invalidate(AccessTokenType.TENANT, token.value)
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from openlark.core.config import LarkConfig
from openlark.core.constants import (
    EXPIRY_DELTA,
    TENANT_ACCESS_TOKEN_INTERNAL_PATH,
    USER_ACCESS_TOKEN_PATH,
    AccessTokenType,
    ResponseFormat,
)
from openlark.core.errors import AuthUnobtainableError, LarkError
from openlark.core.request import ApiRequest

if TYPE_CHECKING:
    from openlark.core.transport import Transport

logger = logging.getLogger(__name__)


# =============================================================================
# Tokens
# =============================================================================


@dataclass(frozen=True, slots=True)
class AccessToken:
    """An issued access token."""

    kind: AccessTokenType
    value: str
    expires_at: float = math.inf  # epoch seconds

    def is_live(self, now: float, delta: float = 0.0) -> bool:
        return now < self.expires_at - delta

    def __repr__(self) -> str:
        return f"AccessToken(kind={self.kind.value}, expires_at={self.expires_at})"


@dataclass(frozen=True, slots=True)
class TokenKey:
    """Cache key: token kind plus the application/tenant identity."""

    kind: AccessTokenType
    app_id: str = ""
    tenant_key: str = ""


@runtime_checkable
class TokenIssuer(Protocol):
    """Something that can obtain fresh access tokens."""

    def can_issue(self, kind: AccessTokenType) -> bool: ...

    async def issue(self, kind: AccessTokenType) -> AccessToken: ...


# =============================================================================
# Store
# =============================================================================


class TokenStore:
    """
    Process-wide access token cache with single-flight refresh.

    Args:
        issuer: Source of fresh tokens
        app_id: Application identity the cached tokens belong to
        tenant_key: Tenant identity the cached tokens belong to
        clock: Returns the current time in epoch seconds
        expiry_delta: Treat tokens as expired this many seconds early. Capped at
            half of a token's remaining lifetime when it is cached.
    """

    def __init__(
        self,
        issuer: TokenIssuer,
        *,
        app_id: str = "",
        tenant_key: str = "",
        clock: Callable[[], float] = time.time,
        expiry_delta: float = EXPIRY_DELTA,
    ):
        self._issuer = issuer
        self._app_id = app_id
        self._tenant_key = tenant_key
        self._clock = clock
        self._expiry_delta = expiry_delta
        self._tokens: dict[TokenKey, AccessToken] = {}
        self._margins: dict[TokenKey, float] = {}
        self._locks: dict[TokenKey, asyncio.Lock] = {}

    def _key(self, kind: AccessTokenType) -> TokenKey:
        return TokenKey(kind=kind, app_id=self._app_id, tenant_key=self._tenant_key)

    def _lock_for(self, key: TokenKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _live(self, key: TokenKey) -> AccessToken | None:
        token = self._tokens.get(key)
        margin = self._margins.get(key, self._expiry_delta)
        if token is not None and token.is_live(self._clock(), margin):
            return token
        return None

    def _cache(self, key: TokenKey, token: AccessToken) -> None:
        remaining = max(token.expires_at - self._clock(), 0.0)
        self._tokens[key] = token
        self._margins[key] = min(self._expiry_delta, remaining / 2)

    def get(self, kind: AccessTokenType) -> AccessToken | None:
        """Return the cached token if it is still live."""
        return self._live(self._key(kind))

    def available(self, kind: AccessTokenType) -> bool:
        """Check if a token of this kind is cached or can be issued."""
        return self.get(kind) is not None or self._issuer.can_issue(kind)

    def put(self, token: AccessToken) -> None:
        """Seed the cache with a token obtained elsewhere."""
        self._cache(self._key(token.kind), token)

    def invalidate(self, kind: AccessTokenType, value: str | None = None) -> bool:
        """
        Drop the cached token so the next resolve refreshes it.

        Args:
            kind: Token kind to drop
            value: Only drop if the cached token still has this value, so a
                late rejection does not discard a token another caller has
                already refreshed

        Returns:
            True if an entry was removed
        """
        key = self._key(kind)
        cached = self._tokens.get(key)
        if cached is None or (value is not None and cached.value != value):
            return False
        del self._tokens[key]
        self._margins.pop(key, None)
        logger.info(f"[lark_token] Invalidated {kind.value}")
        return True

    async def resolve(self, kind: AccessTokenType) -> AccessToken:
        """
        Return a live token of the given kind, refreshing it if needed.

        Raises:
            AuthUnobtainableError: If the issuer cannot provide a token
        """
        key = self._key(kind)
        token = self._live(key)
        if token is not None:
            return token

        async with self._lock_for(key):
            # Another caller may have refreshed while we waited
            token = self._live(key)
            if token is not None:
                return token

            if not self._issuer.can_issue(kind):
                raise AuthUnobtainableError(
                    f"No credentials configured to issue {kind.value}",
                    token_type=kind,
                )

            logger.info(f"[lark_token] Refreshing {kind.value}")
            start = time.time()
            try:
                token = await self._issuer.issue(kind)
            except AuthUnobtainableError:
                raise
            except LarkError as e:
                raise AuthUnobtainableError(
                    f"Failed to obtain {kind.value}: {e.message}",
                    token_type=kind,
                    code=e.code,
                    status_code=e.status_code,
                    log_id=e.log_id,
                ) from e

            self._cache(key, token)
            logger.info(f"[lark_token] Refreshed {kind.value} in {time.time() - start:.2f}s")
            return token


# =============================================================================
# Issuance over HTTP
# =============================================================================


class TenantAccessTokenResponse(BaseModel):
    """Flattened body of the internal tenant token endpoint."""

    model_config = ConfigDict(extra="ignore")

    tenant_access_token: str
    expire: int


class UserAccessTokenResponse(BaseModel):
    """Flattened body of the OAuth token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    refresh_token_expires_in: int | None = None
    token_type: str | None = None
    scope: str | None = None


class HttpTokenIssuer:
    """
    Issues tokens from the platform's token endpoints.

    Tenant tokens use the internal-app endpoint (app_id + app_secret).
    User tokens use the refresh_token grant; the rotated refresh token
    returned by the platform replaces the one held here.

    Issuance calls are anonymous requests through the shared Transport.
    """

    def __init__(
        self,
        config: LarkConfig,
        transport: Transport,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._transport = transport
        self._clock = clock
        self._refresh_token = config.user_refresh_token

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    def set_refresh_token(self, refresh_token: str) -> None:
        """Install a user refresh token (e.g. after an OAuth login)."""
        self._refresh_token = refresh_token

    def can_issue(self, kind: AccessTokenType) -> bool:
        if not self._config.has_app_credentials:
            return False
        if kind is AccessTokenType.USER:
            return bool(self._refresh_token)
        return True

    async def issue(self, kind: AccessTokenType) -> AccessToken:
        if kind is AccessTokenType.TENANT:
            return await self._issue_tenant_token()
        if kind is AccessTokenType.USER:
            return await self._issue_user_token()
        raise AuthUnobtainableError(f"Unsupported token kind: {kind}", token_type=kind)

    async def _issue_tenant_token(self) -> AccessToken:
        req = ApiRequest(
            method="POST",
            path=TENANT_ACCESS_TOKEN_INTERNAL_PATH,
            response_model=TenantAccessTokenResponse,
            response_format=ResponseFormat.FLATTEN,
        ).with_body({"app_id": self._config.app_id, "app_secret": self._config.app_secret})

        resp = await self._transport.request(req)
        data: TenantAccessTokenResponse | None = resp.data
        if data is None:
            raise AuthUnobtainableError(
                "Tenant token response carried no token",
                token_type=AccessTokenType.TENANT,
                log_id=resp.log_id,
            )
        return AccessToken(
            kind=AccessTokenType.TENANT,
            value=data.tenant_access_token,
            expires_at=self._clock() + data.expire,
        )

    async def _issue_user_token(self) -> AccessToken:
        req = ApiRequest(
            method="POST",
            path=USER_ACCESS_TOKEN_PATH,
            response_model=UserAccessTokenResponse,
            response_format=ResponseFormat.FLATTEN,
        ).with_body(
            {
                "grant_type": "refresh_token",
                "client_id": self._config.app_id,
                "client_secret": self._config.app_secret,
                "refresh_token": self._refresh_token,
            }
        )

        resp = await self._transport.request(req)
        data: UserAccessTokenResponse | None = resp.data
        if data is None:
            raise AuthUnobtainableError(
                "User token response carried no token",
                token_type=AccessTokenType.USER,
                log_id=resp.log_id,
            )
        if data.refresh_token:
            self._refresh_token = data.refresh_token
        return AccessToken(
            kind=AccessTokenType.USER,
            value=data.access_token,
            expires_at=self._clock() + data.expires_in,
        )
