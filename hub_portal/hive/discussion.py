# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Discussion Trees — Posts and reply-tree reconstruction.

bridge.get_discussion returns a flat map keyed by "author/permlink" whose
``replies`` fields are lists of such keys. resolve_reply_tree() turns that
map into nested Post objects:
  - keys missing from the map are dropped, never left as placeholders
  - a key is expanded at most once (visited set), so cycles and repeated
    keys cannot loop or duplicate a branch
  - nesting stops at max_depth
"""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from hub_portal.core.errors import PostNotFound

MAX_REPLY_DEPTH = 256


class PostKey(NamedTuple):
    """Node identifier of a post inside a discussion map."""

    author: str
    permlink: str

    @classmethod
    def parse(cls, key: str) -> "PostKey":
        author, sep, permlink = key.partition("/")
        if not sep or not author or not permlink:
            raise ValueError(f"Malformed post key: {key!r}")
        return cls(author, permlink)

    def __str__(self) -> str:
        return f"{self.author}/{self.permlink}"


class Post(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    author: str
    permlink: str
    title: str = ""
    body: str = ""
    created: Optional[str] = None
    category: str = ""
    payout: float = 0.0
    votes: int = 0
    comment_count: int = Field(default=0, serialization_alias="commentCount")
    depth: int = 0
    replies: List["Post"] = Field(default_factory=list)

    @property
    def key(self) -> PostKey:
        return PostKey(self.author, self.permlink)

    @classmethod
    def from_bridge(cls, raw: Dict[str, Any], replies: Optional[List["Post"]] = None) -> "Post":
        """Map a bridge API post object, ignoring its raw ``replies`` keys."""
        stats = raw.get("stats") or {}
        return cls(
            author=raw["author"],
            permlink=raw["permlink"],
            title=raw.get("title") or "",
            body=raw.get("body") or "",
            created=raw.get("created"),
            category=raw.get("category") or "",
            payout=float(raw.get("payout") or 0.0),
            votes=int(stats.get("total_votes") or 0),
            comment_count=int(raw.get("children") or 0),
            depth=int(raw.get("depth") or 0),
            replies=replies or [],
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


Post.model_rebuild()


def resolve_reply_tree(
    discussion: Dict[str, Dict[str, Any]],
    root: PostKey,
    max_depth: int = MAX_REPLY_DEPTH,
) -> Post:
    """Build the nested tree under ``root``; raise PostNotFound if it is absent."""
    raw_root = discussion.get(str(root))
    if raw_root is None:
        raise PostNotFound(root.author, root.permlink)
    visited: Set[str] = {str(root)}
    return _resolve(discussion, raw_root, visited, 0, max_depth)


def _resolve(
    discussion: Dict[str, Dict[str, Any]],
    raw: Dict[str, Any],
    visited: Set[str],
    depth: int,
    max_depth: int,
) -> Post:
    replies: List[Post] = []
    if depth < max_depth:
        for key in raw.get("replies") or []:
            if key in visited or key not in discussion:
                continue
            visited.add(key)
            replies.append(_resolve(discussion, discussion[key], visited, depth + 1, max_depth))
    return Post.from_bridge(raw, replies)
