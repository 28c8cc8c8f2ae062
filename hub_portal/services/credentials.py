# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Credential Store — Posting keys used to sign on behalf of hub admins.

Lookup order for a hub:
  1. the hub's own signing_key_ref: an inline WIF or "env:VARNAME"
  2. the process-wide fallback key (HIVE_POSTING_KEY)

Resolved keys are cached per admin account for the life of the process.
Rotating a key requires invalidate(account) or clear(); nothing expires
on its own.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Mapping, Optional

from hub_portal.core.errors import MissingCredential
from hub_portal.core.hub import HubContext
from hub_portal.hive.keys import KeyFormatError, SigningKey

logger = logging.getLogger("hub.credentials")

ENV_REF_PREFIX = "env:"


class CredentialStore:

    def __init__(
        self,
        fallback_key: str = "",
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._fallback_key = fallback_key
        self._environ = environ if environ is not None else os.environ
        self._keys: Dict[str, SigningKey] = {}

    def get_signing_key(self, hub: HubContext) -> SigningKey:
        """Return the posting key for ``hub.admin_account`` or raise MissingCredential."""
        account = hub.admin_account
        cached = self._keys.get(account)
        if cached is not None:
            return cached

        wif = self._lookup(hub)
        if not wif:
            logger.error("No posting key configured", extra={"account": account})
            raise MissingCredential(account)

        try:
            key = SigningKey.from_wif(wif)
        except KeyFormatError as e:
            logger.error("Configured posting key is malformed: %s", e, extra={"account": account})
            raise MissingCredential(account, "Configured posting key is malformed") from e

        self._keys[account] = key
        logger.info("Loaded posting key", extra={"account": account, "tenant_id": hub.tenant_id})
        return key

    def _lookup(self, hub: HubContext) -> str:
        ref = (hub.signing_key_ref or "").strip()
        if ref.startswith(ENV_REF_PREFIX):
            value = self._environ.get(ref[len(ENV_REF_PREFIX):], "")
            if value:
                return value
        elif ref:
            return ref
        return self._fallback_key

    def has_key(self, account: str) -> bool:
        return account in self._keys

    def invalidate(self, account: str) -> None:
        self._keys.pop(account, None)

    def clear(self) -> None:
        self._keys.clear()
