# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Tenant Resolver — Turns an X-Hub-Community selector into a HubContext.

  - selector given:  look it up in the (cached) community directory
  - selector absent: load the configured default hub from the local store

Resolution never falls back from an unknown selector to the default hub.
"""

from __future__ import annotations

import logging
from typing import Optional

from hub_portal.core.errors import TenantNotFound
from hub_portal.core.hub import DEFAULT_HUB_SETTINGS, HubContext
from hub_portal.runtime.directory_client import DirectoryClient
from hub_portal.storage.hub_store import HubStore

logger = logging.getLogger("hub.resolver")


class TenantResolver:

    def __init__(
        self,
        directory: DirectoryClient,
        hub_store: HubStore,
        default_slug: str,
    ) -> None:
        self._directory = directory
        self._hub_store = hub_store
        self._default_slug = default_slug

    async def resolve(self, selector: Optional[str] = None) -> HubContext:
        selector = (selector or "").strip()
        if selector:
            return await self._resolve_from_directory(selector)
        return self._resolve_default()

    async def _resolve_from_directory(self, selector: str) -> HubContext:
        entry = await self._directory.get_entry(selector)
        if entry is None or not entry.owner_account:
            logger.info("Hub %s is not in the directory", selector, extra={"tenant_id": selector})
            raise TenantNotFound(selector)

        # A local file for the same community may hold the admin's key reference
        local = self._hub_store.find_by_community(entry.tenant_id)
        signing_key_ref = None
        if local is not None and local.admin_account == entry.owner_account:
            signing_key_ref = local.signing_key_ref

        return HubContext(
            tenant_id=entry.tenant_id,
            display_name=entry.display_name or entry.tenant_id,
            community_id=entry.tenant_id,
            admin_account=entry.owner_account,
            signing_key_ref=signing_key_ref,
            language=entry.language,
            settings=DEFAULT_HUB_SETTINGS,
        )

    def _resolve_default(self) -> HubContext:
        config = self._hub_store.load_hub(self._default_slug)
        if config is None:
            logger.warning("Default hub %r is missing or inactive", self._default_slug)
            raise TenantNotFound(None)
        try:
            return config.to_context()
        except ValueError as e:
            logger.error("Default hub %r is incomplete: %s", self._default_slug, e)
            raise TenantNotFound(None) from e
