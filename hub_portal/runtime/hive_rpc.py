# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hive JSON-RPC Client — Transport to the Hive API nodes.

Reads rotate through the configured nodes with exponential backoff when a
node is unreachable, times out or rate-limits. Broadcasts make exactly one
attempt. Every failure surfaces as UpstreamUnavailable.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, List, Optional

import httpx

from hub_portal.core.errors import UpstreamUnavailable
from hub_portal.core.metrics import portal_metrics
from hub_portal.resilience.retry import NO_RETRY, RetryPolicy

logger = logging.getLogger("hub.hive_rpc")

_FRIENDLY_ERRORS = (
    ("missing required posting authority", "Insufficient permissions to perform this action"),
    ("Account not found", "Hive account does not exist"),
)


class RPCError(UpstreamUnavailable):
    """The node answered with a JSON-RPC error object."""

    code = "RPC_ERROR"

    def __init__(self, method: str, error: Any):
        raw = error.get("message", "") if isinstance(error, dict) else str(error)
        self.method = method
        self.raw_message = raw
        super().__init__(describe_rpc_error(raw), details={"method": method, "rpc_error": raw})


def describe_rpc_error(message: str) -> str:
    """Turn a node error message into something an operator can act on."""
    for needle, friendly in _FRIENDLY_ERRORS:
        if needle in message:
            return friendly
    return message or "Operation failed. Please try again."


class HiveRPCClient:
    """
    Hive API client.

    Usage:
        rpc = HiveRPCClient(["https://api.hive.blog"])
        community = await rpc.call("bridge", "get_community", {"name": "hive-138395"})
    """

    def __init__(
        self,
        nodes: List[str],
        timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not nodes:
            raise ValueError("at least one Hive RPC node is required")
        self._nodes = list(nodes)
        self._node_index = 0
        self._retry = retry_policy or RetryPolicy()
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def current_node(self) -> str:
        return self._nodes[self._node_index]

    def _rotate(self) -> None:
        self._node_index = (self._node_index + 1) % len(self._nodes)

    # ── Calls ─────────────────────────────────────────────────

    async def call(self, api: str, method: str, params: Any = None, broadcast: bool = False) -> Any:
        """Invoke ``api.method`` and return the JSON-RPC result."""
        full_method = f"{api}.{method}"
        policy = NO_RETRY if broadcast else self._retry
        payload = {
            "jsonrpc": "2.0",
            "method": full_method,
            "params": params if params is not None else {},
            "id": next(self._ids),
        }

        attempt = 0
        while True:
            attempt += 1
            node = self.current_node
            start = time.time()
            try:
                resp = await self._client.post(node, json=payload)
                resp.raise_for_status()
                body = resp.json()
            except (httpx.HTTPError, ValueError) as e:
                elapsed = (time.time() - start) * 1000
                portal_metrics.record_rpc(full_method, elapsed, ok=False)
                logger.warning(
                    "RPC %s failed on %s (attempt %d): %s",
                    full_method, node, attempt, e,
                )
                self._rotate()
                if policy.should_retry(attempt):
                    await policy.wait_before_retry(attempt, full_method)
                    continue
                raise UpstreamUnavailable(
                    "Blockchain connection error. Please try again.",
                    details={"method": full_method, "node": node, "cause": str(e)},
                ) from e

            elapsed = (time.time() - start) * 1000
            if "error" in body:
                portal_metrics.record_rpc(full_method, elapsed, ok=False)
                logger.warning("RPC %s returned error: %s", full_method, body["error"])
                raise RPCError(full_method, body["error"])

            portal_metrics.record_rpc(full_method, elapsed, ok=True)
            logger.debug("RPC %s ok on %s (%.0fms)", full_method, node, elapsed)
            return body.get("result")

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def health_check(self) -> bool:
        """Check if the current node answers."""
        try:
            await self.call("condenser_api", "get_dynamic_global_properties", [])
            return True
        except UpstreamUnavailable:
            return False
