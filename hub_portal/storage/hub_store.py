# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hub Store — Locally configured hubs, one JSON file per slug.

    hubs/<slug>.json
    {
      "slug": "default",
      "name": "Global Taxi",
      "community": "hive-138395",
      "adminAccount": "taxi.admin",
      "signingKeyRef": "env:TAXI_POSTING_KEY",
      "language": "en",
      "active": true,
      "settings": {"allowDriverPosts": true, "requireApproval": false, "maxPostsPerDay": 1}
    }
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from hub_portal.core.hub import HubContext, HubFeatureSettings

logger = logging.getLogger("hub.hub_store")

_SLUG_RE = re.compile(r"^[a-z0-9-]+$")


class HubConfig(BaseModel):
    """Contents of one hub configuration file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    slug: str
    name: str = ""
    community: str
    admin_account: str = Field(validation_alias=AliasChoices("adminAccount", "admin_account"))
    signing_key_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("signingKeyRef", "postingKey", "signing_key_ref"),
    )
    language: Optional[str] = None
    active: bool = True
    settings: Optional[Dict[str, Any]] = None

    def to_context(self) -> HubContext:
        return HubContext(
            tenant_id=self.slug,
            display_name=self.name or self.slug,
            community_id=self.community,
            admin_account=self.admin_account,
            signing_key_ref=self.signing_key_ref,
            language=self.language,
            settings=HubFeatureSettings.from_dict(self.settings),
        )


def is_valid_slug(slug: str) -> bool:
    return bool(slug) and bool(_SLUG_RE.match(slug))


class HubStore:
    """Reads hub configuration files; parsed files are cached for the store's lifetime."""

    def __init__(self, hubs_dir: Path | str) -> None:
        self._dir = Path(hubs_dir)
        self._cache: Dict[str, HubConfig] = {}

    @property
    def hubs_dir(self) -> Path:
        return self._dir

    def load_hub(self, slug: str) -> Optional[HubConfig]:
        """Return the active hub for ``slug``, or None if missing/inactive/invalid."""
        if not is_valid_slug(slug):
            logger.warning("Rejected hub slug %r", slug)
            return None
        if slug in self._cache:
            return self._cache[slug]

        path = self._dir / f"{slug}.json"
        if not path.is_file():
            return None

        try:
            config = HubConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.error("Failed to load hub %s: %s", slug, e)
            return None

        if not config.active:
            return None

        self._cache[slug] = config
        return config

    def list_hubs(self) -> List[HubConfig]:
        """All active hubs in the directory, ordered by slug."""
        if not self._dir.is_dir():
            return []
        hubs = []
        for path in sorted(self._dir.glob("*.json")):
            hub = self.load_hub(path.stem)
            if hub is not None:
                hubs.append(hub)
        return hubs

    def find_by_community(self, community_id: str) -> Optional[HubConfig]:
        for hub in self.list_hubs():
            if hub.community == community_id:
                return hub
        return None
