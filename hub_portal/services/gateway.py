# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hive Gateway — The single path from the portal to the Hive blockchain.

Every call returns a GatewayResult. Upstream failures (unreachable node,
timeout, JSON-RPC error, missing post/account) are captured in the result;
caller mistakes (InvalidRole, ValidationError) and a missing posting key
(MissingCredential) are raised before anything is signed or sent.

Writes are a single operation in a single signed transaction, authorised by
the hub admin's posting authority, broadcast once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from hub_portal.core.errors import (
    AccountNotFound,
    CommunityNotFound,
    PortalError,
    PostNotFound,
    UpstreamUnavailable,
    ValidationError,
)
from hub_portal.core.hub import HubContext
from hub_portal.core.metrics import portal_metrics
from hub_portal.core.roles import CommunityRole, MembershipRecord, parse_assignable_role
from hub_portal.hive.discussion import Post, PostKey, resolve_reply_tree
from hub_portal.hive.permlink import generate_permlink
from hub_portal.hive.transaction import Operation, Transaction, comment_op, custom_json_op
from hub_portal.runtime.hive_rpc import HiveRPCClient
from hub_portal.services.credentials import CredentialStore

logger = logging.getLogger("hub.gateway")

RANKED_POSTS_LIMIT = 20
SUBSCRIBERS_LIMIT = 100
RANKED_SORTS = frozenset({
    "trending", "hot", "created", "promoted", "payout", "payout_comment", "muted",
})


@dataclass
class GatewayResult:
    """Uniform outcome of a gateway call."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "GatewayResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str = UpstreamUnavailable.code) -> "GatewayResult":
        return cls(success=False, error=error, error_code=error_code)


class HiveGateway:

    def __init__(
        self,
        rpc: HiveRPCClient,
        credentials: CredentialStore,
        chain_id: str,
        custom_json_id: str = "community",
        app_name: str = "hubportal/0.1.0",
        app_tag: str = "hubportal",
        fallback_category: str = "hubportal",
        tx_expiration: int = 60,
        now: Callable[[], float] = time.time,
    ) -> None:
        self._rpc = rpc
        self._credentials = credentials
        self._chain_id = chain_id
        self._custom_json_id = custom_json_id
        self._app_name = app_name
        self._app_tag = app_tag
        self._fallback_category = fallback_category
        self._tx_expiration = tx_expiration
        self._now = now

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    async def _capture(self, label: str, call: Awaitable[Any]) -> GatewayResult:
        try:
            return GatewayResult.ok(await call)
        except (UpstreamUnavailable, PostNotFound, AccountNotFound, CommunityNotFound) as e:
            logger.error("Failed to %s: %s", label, e.message)
            return GatewayResult.fail(e.message, e.code)

    # ── Reads ───────────────────────────────────────────────────

    async def get_community_details(self, hub: HubContext) -> GatewayResult:
        return await self._capture("fetch community details", self._fetch_community(hub.community_id, hub.admin_account))

    async def get_community_by_name(self, community_id: str) -> GatewayResult:
        """Community metadata for an id that need not be a configured hub."""
        return await self._capture("fetch community", self._fetch_community(community_id))

    async def _fetch_community(self, name: str, observer: Optional[str] = None) -> Dict[str, Any]:
        params = {"name": name}
        if observer:
            params["observer"] = observer
        community = await self._rpc.call("bridge", "get_community", params)
        if not community:
            raise CommunityNotFound(name)
        return community

    async def list_subscribers(
        self,
        hub: HubContext,
        limit: int = SUBSCRIBERS_LIMIT,
        last: Optional[str] = "",
    ) -> GatewayResult:
        """Alphabetical page of MembershipRecords; ``last`` is the previous page's last account."""
        params: Dict[str, Any] = {
            "community": hub.community_id,
            "limit": max(1, min(int(limit), SUBSCRIBERS_LIMIT)),
        }
        # The API treats an absent cursor and last="" differently
        if last:
            params["last"] = last

        async def fetch() -> List[MembershipRecord]:
            rows = await self._rpc.call("bridge", "list_subscribers", params) or []
            records = []
            for row in rows:
                try:
                    records.append(MembershipRecord.from_row(row))
                except (ValueError, IndexError, TypeError):
                    logger.warning("Skipping malformed subscriber row %r", row)
            return records

        return await self._capture("list subscribers", fetch())

    async def list_community_roles(self, hub: HubContext, last: Optional[str] = "") -> GatewayResult:
        """Raw (account, role, title) triples; see roles.partition_roles()."""
        params: Dict[str, Any] = {"community": hub.community_id}
        if last:
            params["last"] = last

        async def fetch() -> List[list]:
            rows = await self._rpc.call("bridge", "list_community_roles", params) or []
            return [list(row) for row in rows]

        return await self._capture("list community roles", fetch())

    async def get_ranked_posts(
        self,
        hub: HubContext,
        sort: str = "created",
        limit: int = RANKED_POSTS_LIMIT,
        start_author: Optional[str] = None,
        start_permlink: Optional[str] = None,
    ) -> GatewayResult:
        if sort not in RANKED_SORTS:
            raise ValidationError(
                f"Invalid sort: {sort}",
                details={"allowed": sorted(RANKED_SORTS)},
            )
        start_author = start_author or None
        start_permlink = start_permlink or None
        if (start_author is None) != (start_permlink is None):
            raise ValidationError("startAuthor and startPermlink must be given together")

        params: Dict[str, Any] = {
            "sort": sort,
            "tag": hub.community_id,
            "limit": max(1, min(int(limit), RANKED_POSTS_LIMIT)),
            "observer": hub.admin_account,
        }
        if start_author is not None:
            params["start_author"] = start_author
            params["start_permlink"] = start_permlink

        async def fetch() -> List[Post]:
            rows = await self._rpc.call("bridge", "get_ranked_posts", params) or []
            return [Post.from_bridge(row) for row in rows]

        return await self._capture("fetch community posts", fetch())

    async def get_account_posts(self, hub: HubContext, account: str, limit: int = RANKED_POSTS_LIMIT) -> GatewayResult:
        params = {
            "sort": "posts",
            "account": account,
            "limit": max(1, min(int(limit), RANKED_POSTS_LIMIT)),
            "observer": hub.admin_account,
        }

        async def fetch() -> List[Post]:
            rows = await self._rpc.call("bridge", "get_account_posts", params) or []
            return [Post.from_bridge(row) for row in rows]

        return await self._capture("fetch account posts", fetch())

    async def get_post_with_replies(self, author: str, permlink: str) -> GatewayResult:
        async def fetch() -> Post:
            discussion = await self._rpc.call(
                "bridge", "get_discussion", {"author": author, "permlink": permlink},
            )
            return resolve_reply_tree(discussion or {}, PostKey(author, permlink))

        return await self._capture("fetch post detail", fetch())

    async def get_account(self, username: str) -> GatewayResult:
        async def fetch() -> Dict[str, Any]:
            accounts = await self._rpc.call("condenser_api", "get_accounts", [[username]]) or []
            if not accounts:
                raise AccountNotFound(username)
            return accounts[0]

        return await self._capture("fetch account", fetch())

    async def account_exists(self, username: str) -> bool:
        result = await self.get_account(username)
        return result.success

    # ── Writes ──────────────────────────────────────────────────

    async def _broadcast(self, hub: HubContext, op: Operation, label: str) -> GatewayResult:
        key = self._credentials.get_signing_key(hub)
        try:
            props = await self._rpc.call("condenser_api", "get_dynamic_global_properties", [])
            tx = Transaction.from_global_properties(props, [op], self._tx_expiration)
            tx.sign(key, self._chain_id)
            result = await self._rpc.call(
                "condenser_api", "broadcast_transaction_synchronous", [tx.to_json()],
                broadcast=True,
            )
        except UpstreamUnavailable as e:
            logger.error("Failed to %s: %s", label, e.message, extra={"tenant_id": hub.tenant_id})
            return GatewayResult.fail(e.message, e.code)

        portal_metrics.inc(f"broadcast:{label}")
        logger.info(
            "Broadcast %s by @%s", label, hub.admin_account,
            extra={"tenant_id": hub.tenant_id},
        )
        return GatewayResult.ok(result)

    async def _community_op(self, hub: HubContext, action: str, body: Dict[str, Any]) -> GatewayResult:
        payload = [action, {"community": hub.community_id, **body}]
        op = custom_json_op(self._custom_json_id, hub.admin_account, payload)
        return await self._broadcast(hub, op, action)

    @staticmethod
    def _require(**fields: Any) -> None:
        missing = [name for name, value in fields.items() if not value]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    async def set_role(self, hub: HubContext, account: str, role: Any) -> GatewayResult:
        """Promote/demote ``account`` to member, mod or admin."""
        parsed = parse_assignable_role(role)
        self._require(account=account)
        return await self._community_op(hub, "setRole", {"account": account, "role": parsed.value})

    async def mute_user(self, hub: HubContext, account: str, reason: str = "") -> GatewayResult:
        """Mute an account. The community protocol mutes people through setRole."""
        self._require(account=account)
        body = {"account": account, "role": CommunityRole.MUTED.value}
        if reason:
            body["notes"] = reason
        return await self._community_op(hub, "setRole", body)

    async def unmute_user(self, hub: HubContext, account: str) -> GatewayResult:
        self._require(account=account)
        return await self._community_op(
            hub, "setRole", {"account": account, "role": CommunityRole.GUEST.value},
        )

    async def pin_post(
        self,
        hub: HubContext,
        account: str,
        permlink: str,
        notes: Optional[str] = None,
    ) -> GatewayResult:
        self._require(account=account, permlink=permlink)
        body = {"account": account, "permlink": permlink}
        if notes:
            body["notes"] = notes
        return await self._community_op(hub, "pinPost", body)

    async def unpin_post(self, hub: HubContext, account: str, permlink: str) -> GatewayResult:
        self._require(account=account, permlink=permlink)
        return await self._community_op(hub, "unpinPost", {"account": account, "permlink": permlink})

    async def create_post(
        self,
        hub: HubContext,
        title: str,
        body: str,
        tags: Optional[List[str]] = None,
    ) -> GatewayResult:
        """Publish a top-level post as the hub admin."""
        self._require(title=title, body=body)
        tags = [t.strip() for t in (tags or []) if t and t.strip()]
        permlink = generate_permlink(title, now=self._now)

        metadata_tags: List[str] = []
        for tag in (self._app_tag, hub.tenant_id, *tags):
            if tag not in metadata_tags:
                metadata_tags.append(tag)

        op = comment_op(
            author=hub.admin_account,
            permlink=permlink,
            title=title,
            body=body,
            parent_permlink=tags[0] if tags else self._fallback_category,
            json_metadata={"tags": metadata_tags, "app": self._app_name, "format": "markdown"},
        )
        result = await self._broadcast(hub, op, "createPost")
        if not result.success:
            return result
        return GatewayResult.ok({
            "author": hub.admin_account,
            "permlink": permlink,
            "result": result.data,
        })


def failure_status(result: GatewayResult) -> int:
    """HTTP status for a failed GatewayResult."""
    if result.error_code in (PostNotFound.code, AccountNotFound.code, CommunityNotFound.code):
        return 404
    return PortalError.status_code
