# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Portal Errors — Domain failure taxonomy.

Each error carries a stable code and the HTTP status the API layer maps it to.
Resolver and input validation raise these before any signed operation is
attempted; upstream failures inside the gateway are captured as results.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for all expected portal failures."""

    code = "PORTAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class TenantNotFound(PortalError):
    code = "TENANT_NOT_FOUND"
    status_code = 404

    def __init__(self, selector: Optional[str]):
        self.selector = selector
        label = selector if selector else "default hub"
        super().__init__(
            f"Hub not found: {label}. Please check your hub configuration.",
            details={"selector": selector},
        )


class MissingCredential(PortalError):
    code = "MISSING_CREDENTIAL"
    status_code = 500

    def __init__(self, account: str, reason: str = "No posting key available for hub admin"):
        self.account = account
        super().__init__(f"{reason} (@{account})", details={"account": account})


class InvalidRole(PortalError):
    code = "INVALID_ROLE"
    status_code = 400

    def __init__(self, role: str):
        self.role = role
        super().__init__(
            "Invalid role. Must be: member, mod, or admin",
            details={"role": role},
        )


class PostNotFound(PortalError):
    code = "POST_NOT_FOUND"
    status_code = 404

    def __init__(self, author: str, permlink: str):
        super().__init__(
            "Post not found",
            details={"author": author, "permlink": permlink},
        )


class AccountNotFound(PortalError):
    code = "ACCOUNT_NOT_FOUND"
    status_code = 404

    def __init__(self, account: str):
        super().__init__(
            "Account not found on Hive blockchain",
            details={"account": account},
        )


class UpstreamUnavailable(PortalError):
    code = "UPSTREAM_UNAVAILABLE"
    status_code = 500


class ValidationError(PortalError):
    code = "VALIDATION_ERROR"
    status_code = 400


class AuthenticationError(PortalError):
    code = "UNAUTHORIZED"
    status_code = 401


class CommunityNotFound(PortalError):
    code = "COMMUNITY_NOT_FOUND"
    status_code = 404

    def __init__(self, community_id: str):
        super().__init__(
            f"Community not found: {community_id}",
            details={"community": community_id},
        )


class NotHubOperator(PortalError):
    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, account: str, tenant_id: str):
        super().__init__(
            "Not authorised to administer this hub",
            details={"account": account, "tenant": tenant_id},
        )
