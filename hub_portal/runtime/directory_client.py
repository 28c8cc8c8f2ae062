# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Directory HTTP Client — Portal side interface to the community directory.

The directory lists every known hub. Listings are cached in an injected
TTLCache so tenant resolution does not hit the network on every request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from hub_portal.core.cache import TTLCache
from hub_portal.core.errors import UpstreamUnavailable, ValidationError
from hub_portal.core.hub import TenantDirectoryEntry

logger = logging.getLogger("hub.directory_client")

LISTING_CACHE_KEY = "directory:hubs"


class DirectoryClient:
    """
    Community directory API client.

    Usage:
        client = DirectoryClient("http://localhost:8200", cache=TTLCache(300))
        entries = await client.list_entries()
    """

    def __init__(
        self,
        base_url: str,
        cache: Optional[TTLCache] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._cache = cache or TTLCache()
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # ── Listing ───────────────────────────────────────────────

    async def _fetch_listing(self) -> List[Dict[str, Any]]:
        try:
            resp = await self._client.get("/hubs")
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to fetch hub directory: %s", e)
            raise UpstreamUnavailable(
                "Community directory unavailable",
                details={"cause": str(e)},
            ) from e
        rows = body.get("hubs", []) if isinstance(body, dict) else body
        logger.info("Fetched %d directory entries", len(rows))
        return rows

    async def list_entries(self) -> List[TenantDirectoryEntry]:
        """Every directory entry (active or not); served from cache when warm."""
        rows = await self._cache.get_or_set(LISTING_CACHE_KEY, self._fetch_listing)
        entries = []
        for row in rows:
            try:
                entries.append(TenantDirectoryEntry.model_validate(row))
            except PydanticValidationError as e:
                logger.warning("Skipping malformed directory entry %r: %s", row, e)
        return entries

    async def list_active(self) -> List[TenantDirectoryEntry]:
        """Active entries sorted by display name."""
        entries = [e for e in await self.list_entries() if e.active]
        return sorted(entries, key=lambda e: (e.display_name.casefold(), e.tenant_id))

    async def get_entry(self, tenant_id: str) -> Optional[TenantDirectoryEntry]:
        """The active entry for ``tenant_id``, or None."""
        for entry in await self.list_entries():
            if entry.tenant_id == tenant_id and entry.active:
                return entry
        return None

    async def invalidate(self) -> None:
        await self._cache.delete(LISTING_CACHE_KEY)

    # ── Registration ──────────────────────────────────────────

    async def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Forward a registration to the directory and return its reply."""
        try:
            resp = await self._client.post("/hubs/register", json=payload)
        except httpx.HTTPError as e:
            logger.error("Directory registration failed: %s", e)
            raise UpstreamUnavailable(
                "Community directory unavailable",
                details={"cause": str(e)},
            ) from e

        try:
            body = resp.json()
        except ValueError:
            body = {}

        if 400 <= resp.status_code < 500:
            message = body.get("error") or body.get("message") or "Registration rejected"
            raise ValidationError(message, details={"directory_status": resp.status_code})
        if resp.status_code >= 500:
            raise UpstreamUnavailable(
                "Community directory unavailable",
                details={"directory_status": resp.status_code},
            )

        await self.invalidate()
        logger.info("Registered hub %s with directory", payload.get("hiveTag"))
        return body

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
