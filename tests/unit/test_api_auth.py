# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.
"""Unit tests for Keychain login and session tokens."""

import hashlib

import pytest
from coincurve import PrivateKey

from conftest import TEST_SECRET, route_rpc, stm_key_for
from hub_portal.core.cache import TTLCache
from hub_portal.core.errors import AuthenticationError
from hub_portal.core.session import LoginChallenges, SessionTokens

MESSAGE = "hubportal login taxi.admin 1700000000"


def _sign(secret: bytes, message: str) -> str:
    raw = PrivateKey(secret).sign_recoverable(hashlib.sha256(message.encode()).digest(), hasher=None)
    return (bytes([raw[64] + 31]) + raw[:64]).hex()


async def _challenge(client, username="taxi.admin"):
    resp = await client.post("/api/auth/challenge", json={"username": username})
    return resp.json()["message"]


def _account(secret: bytes):
    pub = PrivateKey(secret).public_key.format(compressed=True)
    return {"name": "taxi.admin", "posting": {"weight_threshold": 1, "key_auths": [[stm_key_for(pub), 1]]}}


class TestSessionTokens:
    def test_issue_and_verify(self):
        tokens = SessionTokens("s3cret")
        assert tokens.verify(tokens.issue("alice")) == "alice"

    def test_wrong_secret(self):
        token = SessionTokens("one").issue("alice")
        with pytest.raises(AuthenticationError):
            SessionTokens("two").verify(token)

    def test_expired(self):
        tokens = SessionTokens("s3cret", expires_minutes=1, clock=lambda: 1_000_000.0)
        with pytest.raises(AuthenticationError):
            tokens.verify(tokens.issue("alice"))

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            SessionTokens("s3cret").decode("not.a.jwt")


class TestLoginChallenges:
    @pytest.mark.asyncio
    async def test_single_use(self):
        challenges = LoginChallenges()
        message = await challenges.issue("taxi.admin")
        assert "@taxi.admin" in message
        await challenges.consume("taxi.admin", message)
        with pytest.raises(AuthenticationError):
            await challenges.consume("taxi.admin", message)

    @pytest.mark.asyncio
    async def test_bound_to_username(self):
        challenges = LoginChallenges()
        message = await challenges.issue("taxi.admin")
        with pytest.raises(AuthenticationError):
            await challenges.consume("mallory", message)

    @pytest.mark.asyncio
    async def test_expires(self):
        now = [0]
        challenges = LoginChallenges(TTLCache(clock=lambda: now[0]), ttl=300)
        message = await challenges.issue("taxi.admin")
        now[0] = 301
        with pytest.raises(AuthenticationError):
            await challenges.consume("taxi.admin", message)

    @pytest.mark.asyncio
    async def test_unissued_message(self):
        with pytest.raises(AuthenticationError):
            await LoginChallenges().consume("taxi.admin", MESSAGE)


class TestLogin:
    @pytest.fixture
    def account(self, mock_rpc):
        return route_rpc(mock_rpc, {"condenser_api.get_accounts": [_account(TEST_SECRET)]})

    @pytest.mark.asyncio
    async def test_challenge(self, client, portal_ctx):
        resp = await client.post("/api/auth/challenge", json={"username": "taxi.admin"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["expiresIn"] == portal_ctx.challenges.ttl
        assert "@taxi.admin" in data["message"]

    @pytest.mark.asyncio
    async def test_valid_signature(self, client, account, portal_ctx):
        message = await _challenge(client)
        resp = await client.post("/api/auth/login", json={
            "username": "taxi.admin", "message": message, "signature": _sign(TEST_SECRET, message),
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["username"] == "taxi.admin"
        assert portal_ctx.tokens.verify(data["token"]) == "taxi.admin"

    @pytest.mark.asyncio
    async def test_replayed_signature(self, client, account):
        message = await _challenge(client)
        body = {"username": "taxi.admin", "message": message, "signature": _sign(TEST_SECRET, message)}
        assert (await client.post("/api/auth/login", json=body)).status_code == 200

        resp = await client.post("/api/auth/login", json=body)
        assert resp.status_code == 401
        assert resp.json()["error"] == "Login challenge expired or already used"

    @pytest.mark.asyncio
    async def test_self_chosen_message(self, client, account):
        resp = await client.post("/api/auth/login", json={
            "username": "taxi.admin", "message": MESSAGE, "signature": _sign(TEST_SECRET, MESSAGE),
        })
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_signature_from_other_key(self, client, account):
        message = await _challenge(client)
        resp = await client.post("/api/auth/login", json={
            "username": "taxi.admin", "message": message,
            "signature": _sign(bytes(range(2, 34)), message),
        })
        assert resp.status_code == 401
        assert resp.json()["error"] == "Signature does not match the account's posting key"

    @pytest.mark.asyncio
    async def test_signature_over_other_message(self, client, account):
        message = await _challenge(client)
        resp = await client.post("/api/auth/login", json={
            "username": "taxi.admin", "message": message,
            "signature": _sign(TEST_SECRET, "something else"),
        })
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_signature(self, client, account):
        message = await _challenge(client)
        resp = await client.post("/api/auth/login", json={
            "username": "taxi.admin", "message": message, "signature": "abcd",
        })
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid signature"

    @pytest.mark.asyncio
    async def test_unknown_account(self, client, mock_rpc):
        route_rpc(mock_rpc, {"condenser_api.get_accounts": []})
        message = await _challenge(client, "ghost")
        resp = await client.post("/api/auth/login", json={
            "username": "ghost", "message": message, "signature": _sign(TEST_SECRET, message),
        })
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unknown Hive account"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        resp = await client.post("/api/auth/login", json={"username": "taxi.admin"})
        assert resp.status_code == 400


class TestVerify:
    @pytest.mark.asyncio
    async def test_verify(self, client, auth_headers):
        resp = await client.get("/api/auth/verify", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["user"]["username"] == "taxi.admin"

    @pytest.mark.asyncio
    async def test_no_token(self, client):
        resp = await client.get("/api/auth/verify")
        assert resp.status_code == 401
        assert resp.json()["error"] == "No token provided"
