# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
HubPortal Application Entry Point.

FastAPI app with lifespan, middleware, error handlers and all API routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from hub_portal.api.auth import router as auth_router
from hub_portal.api.community import router as community_router
from hub_portal.api.errors import (
    http_exception_handler,
    portal_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from hub_portal.api.hubs import router as hubs_router
from hub_portal.api.middleware import TraceMiddleware
from hub_portal.api.observability import router as observability_router
from hub_portal.core.config import settings
from hub_portal.core.context import init_portal_context, get_portal_context
from hub_portal.core.errors import PortalError
from hub_portal.core.logging import setup_logging
from hub_portal.kernel.redis_client import get_redis_pool, close_redis_pool

logger = logging.getLogger("hub.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup/shutdown of portal resources."""
    # Startup
    setup_logging(settings.LOG_LEVEL)
    redis = await get_redis_pool()
    init_portal_context(settings, redis)
    logger.info("[HubPortal] Portal ready (env=%s)", settings.PORTAL_ENV)
    yield
    # Shutdown
    await get_portal_context().close()
    await close_redis_pool()
    logger.info("[HubPortal] Shutdown complete")


app = FastAPI(
    title="HubPortal",
    description="Multi-tenant administration portal for Hive communities",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(TraceMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Error Handlers ──────────────────────────────────────────
app.add_exception_handler(PortalError, portal_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# ── Routes ──────────────────────────────────────────────────
app.include_router(hubs_router, prefix="/api")
app.include_router(community_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(observability_router)
