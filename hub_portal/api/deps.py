# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
API Dependencies — FastAPI dependency injection.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header

from hub_portal.core.context import PortalContext, get_portal_context
from hub_portal.core.errors import AuthenticationError, NotHubOperator, UpstreamUnavailable
from hub_portal.core.hub import HubContext
from hub_portal.core.roles import OPERATOR_ROLES

logger = logging.getLogger("hub.api")

_OPERATOR_ROLE_NAMES = frozenset(role.value for role in OPERATOR_ROLES)


def get_context() -> PortalContext:
    return get_portal_context()


async def get_current_hub(
    x_hub_community: Optional[str] = Header(None, alias="X-Hub-Community"),
    ctx: PortalContext = Depends(get_context),
) -> HubContext:
    """
    Resolve the hub a request is scoped to.

    Headers:
      - X-Hub-Community: community id (e.g. hive-138395); absent = default hub
    """
    return await ctx.resolver.resolve(x_hub_community)


async def require_session(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    ctx: PortalContext = Depends(get_context),
) -> str:
    """Return the username of a valid Bearer session token."""
    if not authorization:
        raise AuthenticationError("No token provided")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("No token provided")
    return ctx.tokens.verify(token.strip())


async def require_hub_operator(
    hub: HubContext = Depends(get_current_hub),
    user: str = Depends(require_session),
    ctx: PortalContext = Depends(get_context),
) -> str:
    """
    Return the session user if they may administer ``hub``.

    The hub's admin account always may. Anyone else needs an owner, admin or
    mod role in the community's role list, which lists privileged roles first.
    """
    if user == hub.admin_account:
        return user

    result = await ctx.gateway.list_community_roles(hub)
    if not result.success:
        raise UpstreamUnavailable(result.error or "Failed to fetch community roles")
    for row in result.data:
        if row[0] == user and row[1] in _OPERATOR_ROLE_NAMES:
            return user

    logger.warning(
        "Rejected @%s: no operator role", user,
        extra={"tenant_id": hub.tenant_id, "account": user},
    )
    raise NotHubOperator(user, hub.tenant_id)
