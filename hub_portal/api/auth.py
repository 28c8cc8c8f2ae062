# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Auth API — Hive Keychain login and session token verification.

An operator first asks for a challenge, signs it with Keychain ``signBuffer``
and posts the signature back. Login redeems the challenge once and checks
that the signature recovers to one of the account's posting keys before
issuing a token.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field

from hub_portal.api.deps import get_context
from hub_portal.core.context import PortalContext
from hub_portal.core.errors import AuthenticationError
from hub_portal.hive.keys import KeyFormatError, decode_public_key, recover_public_key

logger = logging.getLogger("hub.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


class ChallengeRequest(BaseModel):
    username: str = Field(min_length=1)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    message: str = Field(min_length=1)
    signature: str = Field(min_length=1)


def posting_keys(account: Dict[str, Any]) -> Set[bytes]:
    """Compressed public keys in the account's posting authority."""
    keys = set()
    for entry in (account.get("posting") or {}).get("key_auths") or []:
        try:
            keys.add(decode_public_key(entry[0]))
        except (KeyFormatError, IndexError, TypeError):
            logger.warning("Skipping unparseable posting key on @%s", account.get("name"))
    return keys


@router.post("/challenge")
async def challenge(req: ChallengeRequest, ctx: PortalContext = Depends(get_context)):
    message = await ctx.challenges.issue(req.username)
    return {
        "success": True,
        "username": req.username,
        "message": message,
        "expiresIn": ctx.challenges.ttl,
    }


@router.post("/login")
async def login(req: LoginRequest, ctx: PortalContext = Depends(get_context)):
    account = await ctx.gateway.get_account(req.username)
    if not account.success:
        raise AuthenticationError("Unknown Hive account", details={"cause": account.error})

    await ctx.challenges.consume(req.username, req.message)

    try:
        signer = recover_public_key(req.message.encode("utf-8"), req.signature)
    except KeyFormatError as e:
        raise AuthenticationError("Invalid signature", details={"cause": str(e)}) from e

    if signer not in posting_keys(account.data):
        logger.info("Rejected login for @%s: signer is not a posting key", req.username)
        raise AuthenticationError("Signature does not match the account's posting key")

    logger.info("Issued session for @%s", req.username)
    return {"success": True, "token": ctx.tokens.issue(req.username), "username": req.username}


@router.get("/verify")
async def verify(
    authorization: str = Header("", alias="Authorization"),
    ctx: PortalContext = Depends(get_context),
):
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("No token provided")
    claims = ctx.tokens.decode(token.strip())
    return {"success": True, "user": {"username": claims["sub"], "exp": claims.get("exp")}}
