# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Shared test fixtures for all HubPortal tests.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import base58
import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hub_portal.core.config import HIVE_MAINNET_CHAIN_ID, PortalSettings
from hub_portal.core.context import PortalContext, set_portal_context
from hub_portal.core.hub import HubContext
from hub_portal.core.session import SessionTokens
from hub_portal.kernel.redis_client import inject_redis_for_test
from hub_portal.runtime.directory_client import DirectoryClient
from hub_portal.services.credentials import CredentialStore
from hub_portal.services.gateway import HiveGateway
from hub_portal.storage.hub_store import HubStore

TEST_SECRET = bytes(range(1, 33))
FIXED_NOW = 1_700_000_000.0

GLOBAL_PROPS = {
    "head_block_number": 80_000_123,
    "head_block_id": "04c4b47b" + "1a2b3c4d" + "00" * 12,
    "time": "2024-01-01T00:00:00",
}

DIRECTORY_ROWS = [
    {
        "communityUsername": "hive-138395",
        "communityName": "Test City",
        "owner": "taxi.admin",
        "latitude": 52.5,
        "longitude": 13.4,
        "active": True,
    },
    {
        "communityUsername": "hive-100001",
        "communityName": "airport rides",
        "owner": "airport.admin",
        "active": True,
    },
    {
        "communityUsername": "hive-999999",
        "communityName": "Closed Hub",
        "owner": "closed.admin",
        "active": False,
    },
]


def wif_for(secret: bytes) -> str:
    return base58.b58encode_check(b"\x80" + secret).decode("ascii")


def stm_key_for(public_key: bytes) -> str:
    """STM-prefixed public key; the checksum bytes are not verified on decode."""
    return "STM" + base58.b58encode(public_key + b"\x00" * 4).decode("ascii")


@pytest.fixture
def test_wif() -> str:
    return wif_for(TEST_SECRET)


@pytest.fixture
def hub(test_wif) -> HubContext:
    return HubContext(
        tenant_id="hive-138395",
        display_name="Test City",
        community_id="hive-138395",
        admin_account="taxi.admin",
        signing_key_ref=test_wif,
        language="en",
    )


@pytest.fixture
def mock_rpc():
    """HiveRPCClient stand-in; tests program rpc.call.side_effect."""
    rpc = MagicMock()
    rpc.call = AsyncMock()
    rpc.close = AsyncMock()
    rpc.health_check = AsyncMock(return_value=True)
    rpc.current_node = "https://api.test"
    return rpc


def route_rpc(rpc, responses):
    """
    Answer rpc.call by "api.method" name.

    A value may be a plain result, an exception to raise, or a callable
    taking the params.
    """
    async def fake_call(api, method, params=None, broadcast=False):
        value = responses[f"{api}.{method}"]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(params)
        return value

    rpc.call.side_effect = fake_call
    return rpc


@pytest.fixture
def global_props():
    return dict(GLOBAL_PROPS)


@pytest.fixture
def gateway(mock_rpc) -> HiveGateway:
    return HiveGateway(
        mock_rpc,
        CredentialStore(),
        chain_id=HIVE_MAINNET_CHAIN_ID,
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def hubs_dir(tmp_path, test_wif):
    """A hubs/ directory holding an active default hub."""
    d = tmp_path / "hubs"
    d.mkdir()
    (d / "default.json").write_text(json.dumps({
        "slug": "default",
        "name": "Global Taxi",
        "community": "hive-138395",
        "adminAccount": "taxi.admin",
        "signingKeyRef": test_wif,
        "language": "en",
        "active": True,
    }))
    return d


@pytest.fixture
def mock_redis():
    """Provide a FakeRedis async instance."""
    r = fakeredis.aioredis.FakeRedis(decode_responses=True)
    inject_redis_for_test(r)
    yield r
    inject_redis_for_test(None)


class FakeDirectory:
    """In-memory community directory served through httpx.MockTransport."""

    def __init__(self, rows=None):
        self.rows = list(DIRECTORY_ROWS if rows is None else rows)
        self.list_calls = 0
        self.registrations = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and request.url.path == "/hubs":
            self.list_calls += 1
            return httpx.Response(200, json={"success": True, "hubs": self.rows})
        if request.method == "POST" and request.url.path == "/hubs/register":
            payload = json.loads(request.content)
            if any(r["communityUsername"] == payload["hiveTag"] for r in self.rows):
                return httpx.Response(409, json={"success": False, "error": "Hub already registered"})
            entry = {
                "communityUsername": payload["hiveTag"],
                "communityName": payload["name"],
                "owner": payload["hiveTag"],
                "active": True,
            }
            self.registrations.append(payload)
            self.rows.append(entry)
            return httpx.Response(201, json={"success": True, "hub": entry})
        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def directory_client(fake_directory) -> DirectoryClient:
    return DirectoryClient("http://directory.test", transport=fake_directory.transport())


@pytest.fixture
def portal_ctx(mock_rpc, directory_client, hubs_dir, test_wif):
    """A PortalContext wired to fakes and installed as the global context."""
    settings = PortalSettings(HUBS_DIR=str(hubs_dir), JWT_SECRET="test-secret", REDIS_URL="")
    ctx = PortalContext(
        settings=settings,
        rpc=mock_rpc,
        directory=directory_client,
        hub_store=HubStore(hubs_dir),
        credentials=CredentialStore(fallback_key=test_wif),
        tokens=SessionTokens("test-secret"),
    )
    set_portal_context(ctx)
    yield ctx
    set_portal_context(None)


@pytest_asyncio.fixture
async def client(portal_ctx):
    from hub_portal.main import app

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers(portal_ctx):
    token = portal_ctx.tokens.issue("taxi.admin")
    return {"Authorization": f"Bearer {token}"}
