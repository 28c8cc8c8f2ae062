# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Observability API — Health check and metrics.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hub_portal.api.deps import get_context
from hub_portal.core.context import PortalContext
from hub_portal.core.metrics import portal_metrics

router = APIRouter(tags=["observability"])


@router.get("/health")
async def health_check(ctx: PortalContext = Depends(get_context)):
    """Health check with component status."""
    rpc_up = await ctx.rpc.health_check()
    return {
        "status": "ok" if rpc_up else "degraded",
        "rpc": "up" if rpc_up else "down",
        "version": "0.1.0",
        "rpc_node": ctx.rpc.current_node,
        "shared_cache": "redis" if ctx.settings.REDIS_URL else "memory",
        "metrics": portal_metrics.snapshot(),
    }


@router.get("/api/metrics")
async def get_metrics():
    """Return current portal metrics."""
    return portal_metrics.snapshot()
