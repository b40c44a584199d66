"""Cryptographic helpers: hashing and HMAC."""

from __future__ import annotations

import hashlib
import hmac


def sha256(data: bytes) -> bytes:
    """Single SHA-256 hash."""
    return hashlib.sha256(data).digest()


def hmac_sha512(key: bytes, data: bytes) -> bytes:
    """HMAC-SHA512, the BIP32 key-derivation primitive."""
    return hmac.new(key, data, hashlib.sha512).digest()
