"""
Tests for the token store and HTTP token issuance.
"""

import asyncio
import json

import pytest

from openlark.core import (
    AccessToken,
    AccessTokenType,
    AuthUnobtainableError,
    BusinessError,
    HttpTokenIssuer,
    LarkConfig,
    NetworkError,
    TokenStore,
)

from conftest import FakeIssuer, RecordingHandler, json_response

TENANT = AccessTokenType.TENANT
USER = AccessTokenType.USER


class TestResolve:
    """Tests for lazy resolution and caching."""

    @pytest.mark.asyncio
    async def test_lazily_issues_on_first_resolve(self, store, issuer):
        assert store.get(TENANT) is None
        token = await store.resolve(TENANT)
        assert token.value == "tenant-1"
        assert issuer.calls == [TENANT]

    @pytest.mark.asyncio
    async def test_caches_until_expiry(self, store, issuer, clock):
        first = await store.resolve(TENANT)
        clock.advance(7199)
        assert await store.resolve(TENANT) is first
        assert len(issuer.calls) == 1

        clock.advance(1)
        refreshed = await store.resolve(TENANT)
        assert refreshed.value == "tenant-2"
        assert len(issuer.calls) == 2

    @pytest.mark.asyncio
    async def test_expiry_delta_refreshes_early(self, issuer, clock):
        store = TokenStore(issuer, clock=clock, expiry_delta=180)
        await store.resolve(TENANT)
        clock.advance(7200 - 180)
        await store.resolve(TENANT)
        assert len(issuer.calls) == 2

    @pytest.mark.asyncio
    async def test_short_lifetime_is_served_before_refresh(self, clock):
        """A token shorter-lived than the margin is still cached for half its life."""
        issuer = FakeIssuer(clock, lifetime=120)
        store = TokenStore(issuer, clock=clock, expiry_delta=180)

        first = await store.resolve(TENANT)
        clock.advance(59)
        assert await store.resolve(TENANT) is first
        assert len(issuer.calls) == 1

        clock.advance(1)
        await store.resolve(TENANT)
        assert len(issuer.calls) == 2

    @pytest.mark.asyncio
    async def test_kinds_are_independent(self, store, issuer):
        tenant = await store.resolve(TENANT)
        user = await store.resolve(USER)
        assert tenant.kind is TENANT and user.kind is USER
        store.invalidate(TENANT)
        assert store.get(USER) is user
        assert issuer.calls == [TENANT, USER]

    @pytest.mark.asyncio
    async def test_issuer_failure_is_unobtainable(self, clock):
        issuer = FakeIssuer(clock, fail_with=NetworkError("connection refused"))
        store = TokenStore(issuer, clock=clock)
        with pytest.raises(AuthUnobtainableError) as exc_info:
            await store.resolve(TENANT)
        assert exc_info.value.token_type is TENANT
        assert isinstance(exc_info.value.__cause__, NetworkError)

    @pytest.mark.asyncio
    async def test_cannot_issue_kind(self, store, issuer):
        issuer.issuable = {TENANT}
        assert not store.available(USER)
        with pytest.raises(AuthUnobtainableError):
            await store.resolve(USER)
        assert issuer.calls == []

    @pytest.mark.asyncio
    async def test_seeded_token_is_available(self, store, issuer, clock):
        issuer.issuable = set()
        store.put(AccessToken(kind=USER, value="u-seeded", expires_at=clock() + 60))
        assert store.available(USER)
        assert (await store.resolve(USER)).value == "u-seeded"
        assert issuer.calls == []


class TestSingleFlight:
    """Concurrent resolvers share one refresh."""

    @pytest.mark.asyncio
    async def test_concurrent_resolves_issue_once(self, clock):
        issuer = FakeIssuer(clock, delay=0.01)
        store = TokenStore(issuer, clock=clock, expiry_delta=0)

        tokens = await asyncio.gather(*(store.resolve(TENANT) for _ in range(20)))

        assert len(issuer.calls) == 1
        assert {t.value for t in tokens} == {"tenant-1"}

    @pytest.mark.asyncio
    async def test_concurrent_resolves_after_expiry_issue_once(self, clock):
        issuer = FakeIssuer(clock, delay=0.01)
        store = TokenStore(issuer, clock=clock, expiry_delta=0)
        await store.resolve(TENANT)
        clock.advance(10_000)

        tokens = await asyncio.gather(*(store.resolve(TENANT) for _ in range(20)))

        assert len(issuer.calls) == 2
        assert {t.value for t in tokens} == {"tenant-2"}

    @pytest.mark.asyncio
    async def test_different_kinds_refresh_independently(self, clock):
        issuer = FakeIssuer(clock, delay=0.01)
        store = TokenStore(issuer, clock=clock)

        await asyncio.gather(
            *(store.resolve(TENANT) for _ in range(5)),
            *(store.resolve(USER) for _ in range(5)),
        )

        assert sorted(k.value for k in issuer.calls) == sorted([TENANT.value, USER.value])


class TestInvalidate:
    """Tests for explicit invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self, store, issuer):
        await store.resolve(TENANT)
        assert store.invalidate(TENANT)
        token = await store.resolve(TENANT)
        assert token.value == "tenant-2"

    @pytest.mark.asyncio
    async def test_invalidate_with_stale_value_keeps_newer_token(self, store):
        old = await store.resolve(TENANT)
        store.invalidate(TENANT, old.value)
        new = await store.resolve(TENANT)

        # A late rejection of the old token must not drop the new one
        assert not store.invalidate(TENANT, old.value)
        assert store.get(TENANT) is new

    def test_invalidate_empty_is_noop(self, store):
        assert not store.invalidate(TENANT)


class TestHttpTokenIssuer:
    """Tests for issuance against the token endpoints."""

    @pytest.mark.asyncio
    async def test_tenant_token(self, make_transport, config, clock):
        handler = RecordingHandler(
            json_response({"code": 0, "msg": "ok", "tenant_access_token": "t-abc", "expire": 7200})
        )
        issuer = HttpTokenIssuer(config, make_transport(handler), clock=clock)

        token = await issuer.issue(TENANT)

        assert token.value == "t-abc"
        assert token.expires_at == clock() + 7200
        request = handler.requests[0]
        assert request.url.path == "/open-apis/auth/v3/tenant_access_token/internal"
        assert "Authorization" not in request.headers
        assert json.loads(request.content) == {"app_id": "cli_test", "app_secret": "secret_test"}

    @pytest.mark.asyncio
    async def test_tenant_token_business_error(self, make_transport, config):
        handler = RecordingHandler(json_response({"code": 10014, "msg": "app secret invalid"}))
        issuer = HttpTokenIssuer(config, make_transport(handler))
        store = TokenStore(issuer, app_id=config.app_id)

        with pytest.raises(AuthUnobtainableError) as exc_info:
            await store.resolve(TENANT)
        assert exc_info.value.code == 10014
        assert isinstance(exc_info.value.__cause__, BusinessError)

    @pytest.mark.asyncio
    async def test_user_token_rotates_refresh_token(self, make_transport, clock):
        config = LarkConfig(app_id="cli_test", app_secret="secret_test", user_refresh_token="r-1")
        handler = RecordingHandler(
            json_response(
                {
                    "code": 0,
                    "access_token": "u-abc",
                    "expires_in": 7200,
                    "refresh_token": "r-2",
                    "token_type": "Bearer",
                }
            )
        )
        issuer = HttpTokenIssuer(config, make_transport(handler, config), clock=clock)

        token = await issuer.issue(USER)

        assert token.value == "u-abc"
        assert issuer.refresh_token == "r-2"
        body = json.loads(handler.requests[0].content)
        assert body["grant_type"] == "refresh_token"
        assert body["refresh_token"] == "r-1"
        assert body["client_id"] == "cli_test"

    def test_can_issue(self, make_transport, config):
        issuer = HttpTokenIssuer(config, make_transport(RecordingHandler(json_response({}))))
        assert issuer.can_issue(TENANT)
        assert not issuer.can_issue(USER)
        issuer.set_refresh_token("r-1")
        assert issuer.can_issue(USER)

    def test_cannot_issue_without_app_credentials(self, make_transport):
        issuer = HttpTokenIssuer(LarkConfig(), make_transport(RecordingHandler(json_response({}))))
        assert not issuer.can_issue(TENANT)
