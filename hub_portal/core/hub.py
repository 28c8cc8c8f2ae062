# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hub Context — Multi-tenancy support.

Every community operation is scoped to a hub. HubContext carries the
resolved tenant (community id, admin account, key reference) through the
call chain; TenantDirectoryEntry is the directory's read-only record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class HubFeatureSettings:
    allow_driver_posts: bool = True
    require_approval: bool = False
    max_posts_per_day: int = 1

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HubFeatureSettings":
        if not data:
            return cls()
        return cls(
            allow_driver_posts=bool(data.get("allowDriverPosts", True)),
            require_approval=bool(data.get("requireApproval", False)),
            max_posts_per_day=int(data.get("maxPostsPerDay", 1)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowDriverPosts": self.allow_driver_posts,
            "requireApproval": self.require_approval,
            "maxPostsPerDay": self.max_posts_per_day,
        }


DEFAULT_HUB_SETTINGS = HubFeatureSettings()


@dataclass(frozen=True)
class HubContext:
    """Immutable hub identity for request-scoped operations."""

    tenant_id: str
    display_name: str
    community_id: str
    admin_account: str
    signing_key_ref: Optional[str] = field(default=None, repr=False)
    language: Optional[str] = None
    settings: HubFeatureSettings = DEFAULT_HUB_SETTINGS

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id must not be empty")
        if not self.community_id:
            raise ValueError("community_id must not be empty")
        if not self.admin_account:
            raise ValueError("admin_account must not be empty")

    def to_public_dict(self) -> Dict[str, Any]:
        """Hub description safe to return to clients (no key reference)."""
        return {
            "tenantId": self.tenant_id,
            "displayName": self.display_name,
            "communityId": self.community_id,
            "adminAccount": self.admin_account,
            "language": self.language,
            "settings": self.settings.to_dict(),
        }

    def __repr__(self) -> str:
        return f"HubContext(tenant={self.tenant_id!r}, admin={self.admin_account!r})"


class TenantDirectoryEntry(BaseModel):
    """One community as listed by the remote directory service."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    tenant_id: str = Field(
        serialization_alias="tenantId",
        validation_alias=AliasChoices("tenantId", "communityUsername", "tenant_id"),
    )
    display_name: str = Field(
        default="",
        serialization_alias="displayName",
        validation_alias=AliasChoices("displayName", "communityName", "display_name"),
    )
    owner_account: str = Field(
        default="",
        serialization_alias="ownerAccount",
        validation_alias=AliasChoices("ownerAccount", "owner", "owner_account"),
    )
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    language: Optional[str] = None
    active: bool = True

    def to_public_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
