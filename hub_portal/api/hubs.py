# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hubs API — Directory listing and community registration.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from hub_portal.api.deps import get_context
from hub_portal.core.context import PortalContext
from hub_portal.core.errors import TenantNotFound, ValidationError

router = APIRouter(prefix="/hubs", tags=["hubs"])

COMMUNITY_PREFIX = "hive-"


class HubRegistrationRequest(BaseModel):
    hiveTag: str
    name: str
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @field_validator("hiveTag")
    @classmethod
    def check_tag(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(COMMUNITY_PREFIX) or len(v) == len(COMMUNITY_PREFIX):
            raise ValueError("hiveTag must be a community id like hive-123456")
        return v

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


@router.get("")
async def list_hubs(ctx: PortalContext = Depends(get_context)):
    """Active hubs for the hub selector, sorted by display name."""
    entries = await ctx.directory.list_active()
    return {"success": True, "hubs": [e.to_public_dict() for e in entries]}


@router.get("/{tenant_id}")
async def get_hub(tenant_id: str, ctx: PortalContext = Depends(get_context)):
    entry = await ctx.directory.get_entry(tenant_id)
    if entry is None:
        raise TenantNotFound(tenant_id)
    return {"success": True, "hub": entry.to_public_dict()}


@router.post("/register")
async def register_hub(
    req: HubRegistrationRequest,
    ctx: PortalContext = Depends(get_context),
) -> Dict[str, Any]:
    """Register a community with the directory once it is verified on-chain."""
    community = await ctx.gateway.get_community_by_name(req.hiveTag)
    if not community.success:
        raise ValidationError(
            f"Community {req.hiveTag} could not be verified on the Hive blockchain",
            details={"cause": community.error},
        )
    return await ctx.directory.register(req.model_dump(exclude_none=True))
