"""
Pytest configuration and fixtures for openlark tests.
"""

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Add the repository root to path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from openlark.core import AccessToken, AccessTokenType, LarkConfig, TokenStore, Transport  # noqa: E402


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIssuer:
    """Token issuer that counts calls and hands out numbered tokens."""

    def __init__(self, clock, lifetime: float = 7200, delay: float = 0.0, fail_with=None):
        self.clock = clock
        self.lifetime = lifetime
        self.delay = delay
        self.fail_with = fail_with
        self.calls: list[AccessTokenType] = []
        self.issuable = {AccessTokenType.TENANT, AccessTokenType.USER}
        # Per-kind failures, checked before fail_with
        self.failing: dict[AccessTokenType, Exception] = {}

    def can_issue(self, kind):
        return kind in self.issuable

    async def issue(self, kind):
        self.calls.append(kind)
        if self.delay:
            await asyncio.sleep(self.delay)
        if kind in self.failing:
            raise self.failing[kind]
        if self.fail_with is not None:
            raise self.fail_with
        return AccessToken(
            kind=kind,
            value=f"{kind.name.lower()}-{len(self.calls)}",
            expires_at=self.clock() + self.lifetime,
        )


class RecordingHandler:
    """httpx.MockTransport handler that replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item

    @property
    def auth_headers(self) -> list[str | None]:
        return [r.headers.get("Authorization") for r in self.requests]


def json_response(body: dict, status_code: int = 200, log_id: str = "log-1") -> httpx.Response:
    return httpx.Response(status_code, json=body, headers={"X-Tt-Logid": log_id})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer(clock):
    return FakeIssuer(clock)


@pytest.fixture
def store(issuer, clock):
    return TokenStore(issuer, app_id="cli_test", clock=clock, expiry_delta=0)


@pytest.fixture
def config():
    return LarkConfig(
        app_id="cli_test",
        app_secret="secret_test",
        base_url="https://open.feishu.cn",
        retry_delay=0.0,
    )


@pytest.fixture
def make_transport(config):
    """Build a Transport whose HTTP traffic goes to the given handler."""

    def _make(handler, cfg: LarkConfig | None = None) -> Transport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return Transport(cfg or config, http_client=client)

    return _make
