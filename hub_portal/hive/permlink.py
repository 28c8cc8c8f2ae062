# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""Permlink synthesis for new posts."""

from __future__ import annotations

import re
import time
from typing import Callable

MAX_PERMLINK_LENGTH = 256
MAX_SLUG_LENGTH = 255
EMPTY_SLUG = "post"

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def slugify(title: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """'Hello, World! ' -> 'hello-world'."""
    slug = _DISALLOWED.sub("", title.lower()).strip()
    slug = _WHITESPACE.sub("-", slug).strip("-")
    return slug[:max_length].rstrip("-") or EMPTY_SLUG


def base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_permlink(title: str, now: Callable[[], float] = time.time) -> str:
    """Slug of the title plus a base-36 millisecond timestamp, within MAX_PERMLINK_LENGTH."""
    suffix = base36(int(now() * 1000))
    slug = slugify(title, MAX_PERMLINK_LENGTH - len(suffix) - 1)
    return f"{slug}-{suffix}"
