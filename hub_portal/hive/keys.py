# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Hive Keys — WIF posting keys, public keys and compact signatures.

Signatures use the graphene compact format: one header byte
(recovery id + 31 for compressed keys) followed by r and s.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import base58
from coincurve import PrivateKey, PublicKey

PUBLIC_KEY_PREFIX = "STM"
_WIF_VERSION = 0x80
_COMPACT_HEADER = 27 + 4  # compressed public key


class KeyFormatError(ValueError):
    """Raised for malformed WIF keys, public keys or signatures."""


def is_canonical(signature: bytes) -> bool:
    """graphene's canonical-signature rule for a 65-byte compact signature."""
    return (
        not (signature[1] & 0x80)
        and not (signature[1] == 0 and not (signature[2] & 0x80))
        and not (signature[33] & 0x80)
        and not (signature[33] == 0 and not (signature[34] & 0x80))
    )


class SigningKey:
    """A posting private key. Never exposes its secret through repr/str."""

    def __init__(self, private_key: PrivateKey) -> None:
        self._key = private_key

    @classmethod
    def from_wif(cls, wif: str) -> "SigningKey":
        try:
            raw = base58.b58decode_check(wif.strip())
        except ValueError as e:
            raise KeyFormatError("invalid WIF checksum") from e
        if len(raw) != 33 or raw[0] != _WIF_VERSION:
            raise KeyFormatError("not a WIF private key")
        return cls(PrivateKey(raw[1:]))

    @property
    def public_key(self) -> bytes:
        """Compressed 33-byte public key."""
        return self._key.public_key.format(compressed=True)

    def sign_digest(self, digest: bytes) -> Optional[bytes]:
        """
        Sign a 32-byte digest, returning a compact signature or None.

        The nonce is deterministic, so a non-canonical result can only be
        fixed by changing the digest; the caller decides how.
        """
        raw = self._key.sign_recoverable(digest, hasher=None)
        r_s, recovery_id = raw[:64], raw[64]
        compact = bytes([recovery_id + _COMPACT_HEADER]) + r_s
        if not is_canonical(compact):
            return None
        return compact

    def __repr__(self) -> str:
        return f"SigningKey(pub={self.public_key.hex()[:12]}...)"


def decode_public_key(value: str) -> bytes:
    """Return the compressed key bytes of an ``STM...`` public key."""
    if not value.startswith(PUBLIC_KEY_PREFIX):
        raise KeyFormatError(f"public key must start with {PUBLIC_KEY_PREFIX}")
    try:
        raw = base58.b58decode(value[len(PUBLIC_KEY_PREFIX):])
    except ValueError as e:
        raise KeyFormatError("public key is not base58") from e
    if len(raw) != 37:
        raise KeyFormatError("public key has the wrong length")
    return raw[:33]


def recover_public_key(message: bytes, signature_hex: str) -> bytes:
    """
    Recover the compressed signer key of a Keychain ``signBuffer`` result.

    Keychain signs sha256(message) and returns the compact signature in hex.
    """
    try:
        compact = bytes.fromhex(signature_hex)
    except ValueError as e:
        raise KeyFormatError("signature is not hex") from e
    if len(compact) != 65:
        raise KeyFormatError("signature must be 65 bytes")
    recovery_id = compact[0] - _COMPACT_HEADER
    if recovery_id not in (0, 1, 2, 3):
        raise KeyFormatError("unsupported signature header")
    digest = hashlib.sha256(message).digest()
    try:
        key = PublicKey.from_signature_and_message(
            compact[1:] + bytes([recovery_id]), digest, hasher=None,
        )
    except Exception as e:
        raise KeyFormatError("signature does not recover a public key") from e
    return key.format(compressed=True)
