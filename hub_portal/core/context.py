# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Portal Context — Singleton that holds all core component references.

Initialized at startup, injected into API routes via FastAPI Depends.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis

from hub_portal.core.cache import RedisTTLCache, TTLCache
from hub_portal.core.config import PortalSettings
from hub_portal.core.session import LoginChallenges, SessionTokens
from hub_portal.resilience.retry import RetryPolicy
from hub_portal.runtime.directory_client import DirectoryClient
from hub_portal.runtime.hive_rpc import HiveRPCClient
from hub_portal.services.credentials import CredentialStore
from hub_portal.services.gateway import HiveGateway
from hub_portal.services.resolver import TenantResolver
from hub_portal.storage.hub_store import HubStore

logger = logging.getLogger("hub.context")


class PortalContext:
    """
    Holds all runtime references for the portal.
    Created once at startup, used by all API handlers.
    """

    def __init__(
        self,
        settings: PortalSettings,
        rpc: HiveRPCClient,
        directory: DirectoryClient,
        hub_store: HubStore,
        credentials: CredentialStore,
        tokens: SessionTokens,
        challenges: Optional[LoginChallenges] = None,
    ) -> None:
        self.settings = settings
        self.rpc = rpc
        self.directory = directory
        self.hub_store = hub_store
        self.credentials = credentials
        self.tokens = tokens
        self.challenges = challenges if challenges is not None else LoginChallenges()
        self.resolver = TenantResolver(directory, hub_store, settings.DEFAULT_HUB_SLUG)
        self.gateway = HiveGateway(
            rpc,
            credentials,
            chain_id=settings.HIVE_CHAIN_ID,
            custom_json_id=settings.HIVE_CUSTOM_JSON_ID,
            app_name=settings.APP_NAME,
            app_tag=settings.APP_TAG,
            fallback_category=settings.POST_FALLBACK_CATEGORY,
            tx_expiration=settings.HIVE_TX_EXPIRATION,
        )

    @classmethod
    def from_settings(
        cls,
        settings: PortalSettings,
        redis: Optional[aioredis.Redis] = None,
    ) -> "PortalContext":
        """Build every component from configuration."""
        if redis is not None:
            cache: TTLCache = RedisTTLCache(redis, default_ttl=settings.DIRECTORY_CACHE_TTL)
        else:
            cache = TTLCache(default_ttl=settings.DIRECTORY_CACHE_TTL)

        rpc = HiveRPCClient(
            settings.rpc_nodes_list,
            timeout=settings.HIVE_RPC_TIMEOUT,
            retry_policy=RetryPolicy(max_attempts=settings.HIVE_RPC_MAX_ATTEMPTS),
        )
        return cls(
            settings=settings,
            rpc=rpc,
            directory=DirectoryClient(
                settings.DIRECTORY_URL, cache=cache, timeout=settings.HIVE_RPC_TIMEOUT,
            ),
            hub_store=HubStore(settings.HUBS_DIR),
            credentials=CredentialStore(fallback_key=settings.HIVE_POSTING_KEY),
            tokens=SessionTokens(
                settings.JWT_SECRET,
                algorithm=settings.JWT_ALGORITHM,
                expires_minutes=settings.JWT_EXPIRES_MINUTES,
            ),
            challenges=LoginChallenges(cache, ttl=settings.LOGIN_CHALLENGE_TTL),
        )

    async def close(self) -> None:
        await self.rpc.close()
        await self.directory.close()


# ── Global singleton ────────────────────────────────────────

_ctx: Optional[PortalContext] = None


def init_portal_context(
    settings: PortalSettings,
    redis: Optional[aioredis.Redis] = None,
) -> PortalContext:
    global _ctx
    _ctx = PortalContext.from_settings(settings, redis)
    logger.info(
        "Portal context ready (nodes=%d, shared_cache=%s)",
        len(settings.rpc_nodes_list), redis is not None,
    )
    return _ctx


def set_portal_context(ctx: Optional[PortalContext]) -> None:
    """Install a prebuilt context (tests, embedding)."""
    global _ctx
    _ctx = ctx


def get_portal_context() -> PortalContext:
    if _ctx is None:
        raise RuntimeError("PortalContext not initialized. Call init_portal_context() first.")
    return _ctx
