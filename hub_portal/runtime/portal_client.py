# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Portal HTTP Client — Consumer side of the HubPortal API.

Carries the selected hub and the session token on every request and drives
PostFeed over GET /api/posts for infinite-scroll style listing.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from hub_portal.core.errors import PortalError
from hub_portal.services.pagination import DEFAULT_PAGE_SIZE, PostFeed

logger = logging.getLogger("hub.portal_client")


class PortalAPIError(PortalError):
    """A non-2xx reply from the portal, carrying its error message."""

    code = "PORTAL_API_ERROR"

    def __init__(self, status_code: int, message: str):
        super().__init__(message, details={"status": status_code})
        self.status_code = status_code


class PortalClient:
    """
    HubPortal HTTP API client.

    Usage:
        client = PortalClient("http://localhost:3000", hub="hive-138395")
        community = await client.get_community()
        feed = client.feed("trending")
        page = await feed.fetch_next()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        hub: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.hub = hub
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.hub:
            headers["X-Hub-Community"] = self.hub
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._client.request(method, f"/api{path}", headers=self._headers(), **kwargs)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            raise PortalAPIError(resp.status_code, message or "Request failed")
        return data

    # ── Auth ──────────────────────────────────────────────────

    async def challenge(self, username: str) -> str:
        """Message the operator must sign before calling login()."""
        data = await self._request("POST", "/auth/challenge", json={"username": username})
        return data["message"]

    async def login(self, username: str, message: str, signature: str) -> str:
        """Exchange a Keychain signature for a session token and keep it."""
        data = await self._request(
            "POST", "/auth/login",
            json={"username": username, "message": message, "signature": signature},
        )
        self.token = data["token"]
        return self.token

    async def verify_token(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/verify")

    # ── Hubs ──────────────────────────────────────────────────

    async def get_hubs(self) -> List[Dict[str, Any]]:
        return (await self._request("GET", "/hubs"))["hubs"]

    async def get_hub(self, tenant_id: str) -> Dict[str, Any]:
        return (await self._request("GET", f"/hubs/{tenant_id}"))["hub"]

    async def register_hub(
        self,
        hive_tag: str,
        name: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"hiveTag": hive_tag, "name": name}
        if latitude is not None:
            payload["latitude"] = latitude
        if longitude is not None:
            payload["longitude"] = longitude
        return await self._request("POST", "/hubs/register", json=payload)

    # ── Community reads ───────────────────────────────────────

    async def get_community(self) -> Dict[str, Any]:
        return await self._request("GET", "/community")

    async def get_members(self, limit: int = 100, last: str = "") -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"limit": limit}
        if last:
            params["last"] = last
        return await self._request("GET", "/members", params=params)

    async def get_roles(self) -> Dict[str, List[str]]:
        return await self._request("GET", "/roles")

    async def get_user_role(self, username: str) -> Dict[str, Any]:
        return await self._request("GET", "/user-role", params={"username": username})

    async def get_posts(
        self,
        sort: str = "created",
        limit: int = DEFAULT_PAGE_SIZE,
        start_author: Optional[str] = None,
        start_permlink: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"sort": sort, "limit": limit}
        if start_author and start_permlink:
            params["startAuthor"] = start_author
            params["startPermlink"] = start_permlink
        return await self._request("GET", "/posts", params=params)

    async def get_post(self, author: str, permlink: str) -> Dict[str, Any]:
        return await self._request("GET", "/post", params={"author": author, "permlink": permlink})

    async def get_account(self, username: str) -> Dict[str, Any]:
        return await self._request("GET", f"/account/{username}")

    def feed(self, sort: str = "created", page_size: int = DEFAULT_PAGE_SIZE) -> PostFeed:
        """A PostFeed over this client's current hub."""
        return PostFeed(self.hub or "default", self.get_posts, sort_mode=sort, page_size=page_size)

    # ── Admin writes ──────────────────────────────────────────

    async def set_role(self, account: str, role: str) -> Dict[str, Any]:
        return await self._request("POST", "/role", json={"account": account, "role": role})

    async def mute_user(self, account: str, notes: Optional[str] = None) -> Dict[str, Any]:
        body = {"account": account}
        if notes:
            body["notes"] = notes
        return await self._request("POST", "/mute", json=body)

    async def unmute_user(self, account: str) -> Dict[str, Any]:
        return await self._request("POST", "/unmute", json={"account": account})

    async def pin_post(self, account: str, permlink: str, notes: Optional[str] = None) -> Dict[str, Any]:
        body = {"account": account, "permlink": permlink}
        if notes:
            body["notes"] = notes
        return await self._request("POST", "/pin", json=body)

    async def unpin_post(self, account: str, permlink: str) -> Dict[str, Any]:
        return await self._request("POST", "/unpin", json={"account": account, "permlink": permlink})

    async def create_post(self, title: str, body: str, tags: Optional[List[str]] = None) -> Dict[str, Any]:
        return await self._request(
            "POST", "/post", json={"title": title, "body": body, "tags": tags or []},
        )

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
