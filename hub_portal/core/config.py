# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
HubPortal Configuration — Environment-driven settings.

All configuration is loaded from environment variables (or .env file).
"""

from __future__ import annotations

from typing import List

from pydantic_settings import BaseSettings
from pydantic import Field, model_validator

HIVE_MAINNET_CHAIN_ID = "beeab0de00000000000000000000000000000000000000000000000000000000"
DEFAULT_JWT_SECRET = "change-me"


class PortalSettings(BaseSettings):
    """Platform-wide configuration loaded from environment."""

    # --- Hive RPC ---
    HIVE_RPC_NODES: str = Field(
        default="https://api.hive.blog,https://api.openhive.network",
        description="Comma-separated Hive JSON-RPC node URLs (failover order)",
    )
    HIVE_RPC_TIMEOUT: float = Field(
        default=10.0,
        description="Per-call timeout in seconds for upstream RPC requests",
    )
    HIVE_RPC_MAX_ATTEMPTS: int = Field(
        default=2,
        description="Attempts per read call, rotating through HIVE_RPC_NODES",
    )
    HIVE_CHAIN_ID: str = Field(
        default=HIVE_MAINNET_CHAIN_ID,
        description="Chain id mixed into every transaction digest",
    )
    HIVE_TX_EXPIRATION: int = Field(
        default=60,
        description="Seconds after head block time before a transaction expires",
    )

    # --- Signing ---
    HIVE_POSTING_KEY: str = Field(
        default="",
        description="Process-wide fallback posting key (WIF), server-side only",
    )
    HIVE_CUSTOM_JSON_ID: str = Field(
        default="community",
        description="custom_json id understood by the community indexer",
    )

    # --- Posts ---
    APP_NAME: str = Field(default="hubportal/0.1.0")
    APP_TAG: str = Field(
        default="hubportal",
        description="Tag prepended to every post created through the portal",
    )
    POST_FALLBACK_CATEGORY: str = Field(
        default="hubportal",
        description="Parent permlink used when a post has no tags",
    )

    # --- Hubs ---
    DEFAULT_HUB_SLUG: str = Field(
        default="default",
        description="Local hub config used when no X-Hub-Community header is sent",
    )
    HUBS_DIR: str = Field(
        default="hubs",
        description="Directory holding <slug>.json hub configuration files",
    )
    DIRECTORY_URL: str = Field(
        default="http://127.0.0.1:8200",
        description="Base URL of the remote community directory service",
    )
    DIRECTORY_CACHE_TTL: int = Field(
        default=300,
        description="Seconds a fetched directory listing stays cached",
    )
    REDIS_URL: str = Field(
        default="",
        description="Redis URL for the shared directory cache (empty = in-process)",
    )

    # --- Session tokens ---
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="HMAC key for session tokens; must be set outside dev",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_EXPIRES_MINUTES: int = Field(default=24 * 60)
    LOGIN_CHALLENGE_TTL: int = Field(
        default=300,
        description="Seconds a login challenge may be signed and redeemed",
    )

    # --- Platform ---
    CORS_ORIGINS: str = Field(default="*")
    LOG_LEVEL: str = Field(default="INFO")
    PORTAL_ENV: str = Field(
        default="dev",
        description="Environment: dev | prod",
    )

    @property
    def rpc_nodes_list(self) -> List[str]:
        """Parse comma-separated RPC nodes into a list."""
        return [n.strip() for n in self.HIVE_RPC_NODES.split(",") if n.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_dev(self) -> bool:
        return self.PORTAL_ENV == "dev"

    @model_validator(mode="after")
    def _require_real_jwt_secret(self) -> "PortalSettings":
        if not self.is_dev and self.JWT_SECRET in ("", DEFAULT_JWT_SECRET):
            raise ValueError(
                f"JWT_SECRET must be set when PORTAL_ENV={self.PORTAL_ENV!r}"
            )
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


# Global singleton
settings = PortalSettings()
