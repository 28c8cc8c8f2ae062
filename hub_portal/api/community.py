# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Community API — Hub-scoped reads and admin writes.

Every route is scoped by the X-Hub-Community header (see deps.get_current_hub).
Admin routes additionally require a Bearer session token for a hub operator
(the hub admin account, or a community owner, admin or mod).
"""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from hub_portal.api.deps import get_context, get_current_hub, require_hub_operator
from hub_portal.core.context import PortalContext
from hub_portal.core.errors import PortalError
from hub_portal.core.hub import HubContext
from hub_portal.core.roles import parse_assignable_role, partition_roles
from hub_portal.services.gateway import (
    RANKED_POSTS_LIMIT,
    SUBSCRIBERS_LIMIT,
    GatewayResult,
    failure_status,
)

router = APIRouter(tags=["community"])

DEFAULT_MUTE_NOTES = "Policy violation"


# ── Request bodies ──────────────────────────────────────────

class RoleRequest(BaseModel):
    account: str = Field(min_length=1)
    role: str = Field(min_length=1)


class MuteRequest(BaseModel):
    account: str = Field(min_length=1)
    notes: Optional[str] = None


class AccountRequest(BaseModel):
    account: str = Field(min_length=1)


class PinRequest(BaseModel):
    account: str = Field(min_length=1)
    permlink: str = Field(min_length=1)
    notes: Optional[str] = None


class PostRequest(BaseModel):
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)


def _unwrap(result: GatewayResult) -> Any:
    """Data of a successful result, or raise with the mapped status."""
    if result.success:
        return result.data
    err = PortalError(result.error or "Request failed")
    err.code = result.error_code or err.code
    err.status_code = failure_status(result)
    raise err


def _written(result: GatewayResult, message: str) -> dict:
    return {"success": True, "message": message, "result": _unwrap(result)}


# ── Reads ───────────────────────────────────────────────────

@router.get("/community")
async def get_community(
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    return _unwrap(await ctx.gateway.get_community_details(hub))


@router.get("/posts")
async def get_posts(
    sort: str = "created",
    limit: int = Query(RANKED_POSTS_LIMIT, ge=1),
    startAuthor: Optional[str] = None,
    startPermlink: Optional[str] = None,
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    """One page of community posts; pass the last item back as the cursor."""
    posts = _unwrap(await ctx.gateway.get_ranked_posts(
        hub, sort=sort, limit=limit,
        start_author=startAuthor, start_permlink=startPermlink,
    ))
    return [p.to_dict() for p in posts]


@router.get("/post")
async def get_post(
    author: str = Query(..., min_length=1),
    permlink: str = Query(..., min_length=1),
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    """A post with its nested replies."""
    post = _unwrap(await ctx.gateway.get_post_with_replies(author, permlink))
    return post.to_dict()


@router.get("/account-posts/{username}")
async def get_account_posts(
    username: str,
    limit: int = Query(RANKED_POSTS_LIMIT, ge=1),
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    posts = _unwrap(await ctx.gateway.get_account_posts(hub, username, limit=limit))
    return [p.to_dict() for p in posts]


@router.get("/user-role")
async def get_user_role(
    username: str = Query(..., min_length=1),
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    """Role of ``username`` among the first page of subscribers; "none" if absent."""
    records = _unwrap(await ctx.gateway.list_subscribers(hub, SUBSCRIBERS_LIMIT, ""))
    for record in records:
        if record.account == username:
            return {
                "username": record.account,
                "role": record.role.value,
                "title": record.title,
                "joined": record.joined_at,
            }
    return {"username": username, "role": "none", "title": None, "joined": None}


@router.get("/account/{username}")
async def get_account(
    username: str,
    hub: HubContext = Depends(get_current_hub),
    ctx: PortalContext = Depends(get_context),
):
    return _unwrap(await ctx.gateway.get_account(username))


@router.get("/members")
async def get_members(
    limit: int = Query(SUBSCRIBERS_LIMIT, ge=1),
    last: str = "",
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    records = _unwrap(await ctx.gateway.list_subscribers(hub, limit, last))
    return [r.to_dict() for r in records]


@router.get("/roles")
async def get_roles(
    last: str = "",
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    rows = _unwrap(await ctx.gateway.list_community_roles(hub, last))
    return partition_roles(rows).to_dict()


# ── Writes ──────────────────────────────────────────────────

@router.post("/role")
async def update_role(
    req: RoleRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    role = parse_assignable_role(req.role)
    _unwrap(await ctx.gateway.get_account(req.account))
    result = await ctx.gateway.set_role(hub, req.account, role)
    return _written(result, f"Successfully set {req.account} to {role.value}")


@router.post("/mute")
async def mute_user(
    req: MuteRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    result = await ctx.gateway.mute_user(hub, req.account, req.notes or DEFAULT_MUTE_NOTES)
    return _written(result, f"Successfully muted {req.account}")


@router.post("/unmute")
async def unmute_user(
    req: AccountRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    result = await ctx.gateway.unmute_user(hub, req.account)
    return _written(result, f"Successfully unmuted {req.account}")


@router.post("/pin")
async def pin_post(
    req: PinRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    result = await ctx.gateway.pin_post(hub, req.account, req.permlink, req.notes)
    return _written(result, "Successfully pinned post")


@router.post("/unpin")
async def unpin_post(
    req: PinRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    result = await ctx.gateway.unpin_post(hub, req.account, req.permlink)
    return _written(result, "Successfully unpinned post")


@router.post("/post")
async def create_post(
    req: PostRequest,
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_hub_operator),
    ctx: PortalContext = Depends(get_context),
):
    data = _unwrap(await ctx.gateway.create_post(hub, req.title, req.body, req.tags))
    return {
        "success": True,
        "message": "Successfully created post",
        "author": data["author"],
        "permlink": data["permlink"],
        "result": data["result"],
    }
