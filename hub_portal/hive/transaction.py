# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hive Transactions — Operation builders, binary serialisation and signing.

Only the two operations the portal broadcasts are supported:
  - custom_json (community intents: setRole, pinPost, ...)
  - comment     (new top-level posts)

The digest signed is sha256(chain_id || serialised transaction).
"""

from __future__ import annotations

import hashlib
import json
import struct
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Sequence, Tuple

from hub_portal.hive.keys import SigningKey

# Operation ids from the Hive protocol's operation static_variant
OPERATION_IDS = {
    "comment": 1,
    "custom_json": 18,
}

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
_MAX_CANONICAL_ATTEMPTS = 32

Operation = Tuple[str, Dict[str, Any]]


class SigningError(RuntimeError):
    """No canonical signature could be produced."""


# ── Operation builders ──────────────────────────────────────────


def custom_json_op(
    app_id: str,
    posting_account: str,
    payload: Any,
) -> Operation:
    """A custom_json authorised by one account's posting authority."""
    return ("custom_json", {
        "required_auths": [],
        "required_posting_auths": [posting_account],
        "id": app_id,
        "json": json.dumps(payload, separators=(",", ":")),
    })


def comment_op(
    author: str,
    permlink: str,
    title: str,
    body: str,
    parent_permlink: str,
    json_metadata: Dict[str, Any],
    parent_author: str = "",
) -> Operation:
    return ("comment", {
        "parent_author": parent_author,
        "parent_permlink": parent_permlink,
        "author": author,
        "permlink": permlink,
        "title": title,
        "body": body,
        "json_metadata": json.dumps(json_metadata, separators=(",", ":")),
    })


# ── Binary serialisation ────────────────────────────────────────


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _string(value: str) -> bytes:
    data = value.encode("utf-8")
    return _varint(len(data)) + data


def _string_set(values: Sequence[str]) -> bytes:
    return _varint(len(values)) + b"".join(_string(v) for v in sorted(values))


def serialize_operation(op: Operation) -> bytes:
    name, body = op
    if name == "custom_json":
        data = (
            _string_set(body["required_auths"])
            + _string_set(body["required_posting_auths"])
            + _string(body["id"])
            + _string(body["json"])
        )
    elif name == "comment":
        data = b"".join(_string(body[k]) for k in (
            "parent_author", "parent_permlink", "author", "permlink",
            "title", "body", "json_metadata",
        ))
    else:
        raise ValueError(f"Unsupported operation: {name}")
    return _varint(OPERATION_IDS[name]) + data


def parse_chain_time(value: str) -> datetime:
    return datetime.strptime(value, _TIME_FORMAT).replace(tzinfo=timezone.utc)


# ── Transaction ─────────────────────────────────────────────────


@dataclass
class Transaction:
    """An unsigned transaction anchored to a recent block (TaPoS)."""

    ref_block_num: int
    ref_block_prefix: int
    expiration: datetime
    operations: List[Operation]
    signatures: List[str] = field(default_factory=list)

    @classmethod
    def from_global_properties(
        cls,
        props: Dict[str, Any],
        operations: List[Operation],
        expiration_seconds: int = 60,
    ) -> "Transaction":
        """Build from condenser_api.get_dynamic_global_properties output."""
        head_block_id = bytes.fromhex(props["head_block_id"])
        return cls(
            ref_block_num=props["head_block_number"] & 0xFFFF,
            ref_block_prefix=struct.unpack_from("<I", head_block_id, 4)[0],
            expiration=parse_chain_time(props["time"]) + timedelta(seconds=expiration_seconds),
            operations=list(operations),
        )

    def serialize(self) -> bytes:
        return (
            struct.pack("<HII", self.ref_block_num, self.ref_block_prefix,
                        int(self.expiration.timestamp()))
            + _varint(len(self.operations))
            + b"".join(serialize_operation(op) for op in self.operations)
            + _varint(0)  # extensions
        )

    def digest(self, chain_id: str) -> bytes:
        return hashlib.sha256(bytes.fromhex(chain_id) + self.serialize()).digest()

    def sign(self, key: SigningKey, chain_id: str) -> "Transaction":
        """
        Sign in place and return self.

        Nonces are deterministic, so when the signature is not canonical the
        expiration is pushed forward one second to get a fresh digest.
        """
        for _ in range(_MAX_CANONICAL_ATTEMPTS):
            signature = key.sign_digest(self.digest(chain_id))
            if signature is not None:
                self.signatures = [signature.hex()]
                return self
            self.expiration += timedelta(seconds=1)
        raise SigningError("could not produce a canonical signature")

    def to_json(self) -> Dict[str, Any]:
        """Legacy (condenser_api) JSON form used for broadcasting."""
        return {
            "ref_block_num": self.ref_block_num,
            "ref_block_prefix": self.ref_block_prefix,
            "expiration": self.expiration.strftime(_TIME_FORMAT),
            "operations": [[name, body] for name, body in self.operations],
            "extensions": [],
            "signatures": list(self.signatures),
        }
