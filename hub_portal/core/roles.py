# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Community Roles — Closed role set and the membership views built from it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from hub_portal.core.errors import InvalidRole

logger = logging.getLogger("hub.roles")


class CommunityRole(str, Enum):
    GUEST = "guest"  # subscribed, unprivileged
    MEMBER = "member"
    MOD = "mod"
    ADMIN = "admin"
    OWNER = "owner"
    MUTED = "muted"


ASSIGNABLE_ROLES = frozenset({CommunityRole.MEMBER, CommunityRole.MOD, CommunityRole.ADMIN})
OPERATOR_ROLES = frozenset({CommunityRole.MOD, CommunityRole.ADMIN, CommunityRole.OWNER})


def parse_assignable_role(value: Any) -> CommunityRole:
    """Return the role for a setRole request, or raise InvalidRole."""
    try:
        role = CommunityRole(value)
    except ValueError:
        raise InvalidRole(str(value))
    if role not in ASSIGNABLE_ROLES:
        raise InvalidRole(role.value)
    return role


@dataclass(frozen=True)
class MembershipRecord:
    """One subscriber row: (account, role, title, joined_at)."""

    account: str
    role: CommunityRole
    title: str = ""
    joined_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "MembershipRecord":
        account, role = row[0], row[1]
        title = row[2] if len(row) > 2 and row[2] else ""
        joined = row[3] if len(row) > 3 else None
        return cls(account=account, role=CommunityRole(role), title=title, joined_at=joined)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account,
            "role": self.role.value,
            "title": self.title,
            "joinedAt": self.joined_at,
        }


@dataclass
class RoleLists:
    """Manageable people of a community, grouped by role."""

    admins: List[str] = field(default_factory=list)
    mods: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    muted: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "admins": self.admins,
            "mods": self.mods,
            "members": self.members,
            "muted": self.muted,
        }


def partition_roles(rows: Iterable[Sequence[Any]]) -> RoleLists:
    """
    Split (account, role, title) triples into RoleLists.

    The owner is the community's root account, not a person, so it is left
    out. Guests carry no privileges and are not listed either.
    """
    lists = RoleLists()
    for row in rows:
        account, raw_role = row[0], row[1]
        try:
            role = CommunityRole(raw_role)
        except ValueError:
            logger.warning("Skipping unknown community role %r for @%s", raw_role, account)
            continue

        if role is CommunityRole.ADMIN:
            lists.admins.append(account)
        elif role is CommunityRole.MOD:
            lists.mods.append(account)
        elif role is CommunityRole.MEMBER:
            lists.members.append(account)
        elif role is CommunityRole.MUTED:
            lists.muted.append(account)
        elif role is CommunityRole.OWNER or role is CommunityRole.GUEST:
            continue
        else:
            raise AssertionError(f"Unhandled community role: {role}")
    return lists
