# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Retry Policy — Exponential backoff for read-side RPC node failover.

Broadcasts never go through here: a signed transaction is sent exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger("hub.retry")


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""
    max_attempts: int = 2
    backoff_base: float = 0.25       # seconds
    backoff_multiplier: float = 2.0  # exponential factor
    max_backoff: float = 2.0         # cap

    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry (exponential backoff)."""
        delay = self.backoff_base * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_backoff)

    def should_retry(self, attempt: int) -> bool:
        """Check if another attempt is allowed after ``attempt`` failed."""
        return attempt < self.max_attempts

    async def wait_before_retry(self, attempt: int, label: str = "") -> None:
        """Wait with exponential backoff before retrying."""
        delay = self.next_delay(attempt)
        logger.info("Retry %s: waiting %.2fs before attempt %d", label, delay, attempt + 1)
        await asyncio.sleep(delay)


# Single attempt, used for broadcasts
NO_RETRY = RetryPolicy(max_attempts=1)
