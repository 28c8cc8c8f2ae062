# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Session Tokens — Issue and verify bearer tokens for portal operators.

The rest of the portal only needs two things: "issue a token for username"
and "verify a token, yield username".

Tokens are only issued against a LoginChallenges message: a server-issued,
short-lived, single-use text the operator signs with Hive Keychain.
"""

from __future__ import annotations

import re
import secrets
import time
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt

from hub_portal.core.cache import TTLCache
from hub_portal.core.errors import AuthenticationError


class SessionTokens:

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_minutes: int = 24 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expires_seconds = expires_minutes * 60
        self._clock = clock

    def issue(self, username: str) -> str:
        now = int(self._clock())
        claims = {
            "sub": username,
            "iat": now,
            "exp": now + self._expires_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise AuthenticationError("Invalid token") from e
        if not claims.get("sub"):
            raise AuthenticationError("Invalid token")
        return claims

    def verify(self, token: str) -> str:
        """Return the username a valid token was issued for."""
        return self.decode(token)["sub"]


# ── Login challenges ────────────────────────────────────────

_NONCE = re.compile(r"nonce=([0-9a-f]{32})\b")


class LoginChallenges:
    """
    Single-use login messages kept in a TTLCache.

    Usage:
        message = await challenges.issue("taxi.admin")
        # ... operator signs ``message`` with Keychain ...
        await challenges.consume("taxi.admin", message)
    """

    KEY_PREFIX = "login:"

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        ttl: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache = cache if cache is not None else TTLCache()
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> int:
        return self._ttl

    def _key(self, username: str, nonce: str) -> str:
        return f"{self.KEY_PREFIX}{username}:{nonce}"

    async def issue(self, username: str) -> str:
        nonce = secrets.token_hex(16)
        message = f"hubportal login @{username} nonce={nonce} issued={int(self._clock())}"
        await self._cache.set(self._key(username, nonce), message, self._ttl)
        return message

    async def consume(self, username: str, message: str) -> None:
        """Retire an outstanding challenge, or raise if it was never issued, expired or was used."""
        match = _NONCE.search(message)
        if match is None:
            raise AuthenticationError("Login challenge expired or already used")
        key = self._key(username, match.group(1))
        if await self._cache.get(key) != message:
            raise AuthenticationError("Login challenge expired or already used")
        await self._cache.delete(key)
