# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Post Feed Pagination — Cursor state machine over ranked post pages.

A feed tracks one sort mode at a time:

    Active --full page-->         Active   (cursor = last item's author/permlink)
    Active --short/empty page-->  Exhausted
    Exhausted --fetch-->          Exhausted (no upstream call, no items)
    any --set_sort_mode(other)--> Active    (cursor, posts and flag reset)

Fetches for one (tenant, sort mode) pair are serialised by a lock, so two
concurrent fetch_next() calls cannot advance the cursor from the same page.
A page that lands after the sort mode changed is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from hub_portal.core.errors import UpstreamUnavailable
from hub_portal.core.hub import HubContext
from hub_portal.hive.discussion import PostKey
from hub_portal.services.gateway import RANKED_POSTS_LIMIT, HiveGateway

logger = logging.getLogger("hub.pagination")

DEFAULT_PAGE_SIZE = RANKED_POSTS_LIMIT

# (sort, limit, start_author, start_permlink) -> page of posts
PageFetcher = Callable[[str, int, Optional[str], Optional[str]], Awaitable[List[Any]]]


@dataclass
class PaginationCursor:
    sort_mode: str
    last_author: Optional[str] = None
    last_permlink: Optional[str] = None
    exhausted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sortMode": self.sort_mode,
            "lastAuthor": self.last_author,
            "lastPermlink": self.last_permlink,
            "exhausted": self.exhausted,
        }


def _post_key(item: Any) -> PostKey:
    if isinstance(item, dict):
        return PostKey(item["author"], item["permlink"])
    return PostKey(item.author, item.permlink)


@dataclass
class _FeedState:
    cursor: PaginationCursor
    posts: List[Any] = field(default_factory=list)
    seen: Set[PostKey] = field(default_factory=set)


class PostFeed:
    """
    Accumulates ranked posts page by page for one tenant.

    Usage:
        feed = PostFeed("hive-138395", fetch_page, sort_mode="created")
        first = await feed.fetch_next()
        more = await feed.fetch_next()
    """

    def __init__(
        self,
        tenant_id: str,
        fetch_page: PageFetcher,
        sort_mode: str = "created",
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._tenant_id = tenant_id
        self._fetch_page = fetch_page
        # Upstream pages hold at most RANKED_POSTS_LIMIT posts
        self._page_size = max(1, min(page_size, RANKED_POSTS_LIMIT))
        self._state = _FeedState(cursor=PaginationCursor(sort_mode))
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    @property
    def cursor(self) -> PaginationCursor:
        return self._state.cursor

    @property
    def sort_mode(self) -> str:
        return self._state.cursor.sort_mode

    @property
    def posts(self) -> List[Any]:
        return list(self._state.posts)

    @property
    def exhausted(self) -> bool:
        return self._state.cursor.exhausted

    def set_sort_mode(self, sort_mode: str) -> None:
        """Switch sort mode; a different mode discards all accumulated state."""
        if sort_mode == self.sort_mode:
            return
        self._state = _FeedState(cursor=PaginationCursor(sort_mode))
        logger.debug("Feed %s reset for sort=%s", self._tenant_id, sort_mode)

    def _lock_for(self, sort_mode: str) -> asyncio.Lock:
        key = (self._tenant_id, sort_mode)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def fetch_next(self) -> List[Any]:
        """Fetch the next page and return only posts not seen before."""
        sort_mode = self.sort_mode
        async with self._lock_for(sort_mode):
            state = self._state
            cursor = state.cursor
            if cursor.sort_mode != sort_mode or cursor.exhausted:
                return []

            page = await self._fetch_page(
                sort_mode, self._page_size, cursor.last_author, cursor.last_permlink,
            )

            if self._state is not state:
                logger.debug("Dropping stale %s page for feed %s", sort_mode, self._tenant_id)
                return []

            if not page:
                cursor.exhausted = True
                return []

            new_items = []
            for item in page:
                key = _post_key(item)
                if key in state.seen:
                    continue
                state.seen.add(key)
                new_items.append(item)
            state.posts.extend(new_items)

            last = _post_key(page[-1])
            stalled = not new_items and last == (cursor.last_author, cursor.last_permlink)
            cursor.last_author, cursor.last_permlink = last.author, last.permlink
            if len(page) < self._page_size or stalled:
                cursor.exhausted = True
            return new_items

    def reset(self) -> None:
        """Start the current sort mode over from the first page."""
        sort_mode = self.sort_mode
        self._state = _FeedState(cursor=PaginationCursor(sort_mode))


def gateway_page_fetcher(gateway: HiveGateway, hub: HubContext) -> PageFetcher:
    """Adapt HiveGateway.get_ranked_posts to a PageFetcher for ``hub``."""

    async def fetch(sort: str, limit: int, author: Optional[str], permlink: Optional[str]) -> List[Any]:
        result = await gateway.get_ranked_posts(hub, sort, limit, author, permlink)
        if not result.success:
            raise UpstreamUnavailable(result.error or "Failed to fetch posts")
        return result.data

    return fetch
