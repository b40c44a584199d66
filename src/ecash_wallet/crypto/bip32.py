"""BIP32 private-key derivation over secp256k1.

Only the private branch of BIP32 is needed here: the wallet derives output
secrets and blinding factors from its own seed and never shares extended
public keys.
- Master key from seed
- Hardened and normal child derivation
- Path parsing (``m/129372'/0'/...``)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Self

from ecdsa import SECP256k1, SigningKey

from ecash_wallet.utils.crypto import hmac_sha512

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CURVE = SECP256k1
_CURVE_ORDER = _CURVE.order

HARDENED_OFFSET = 0x80000000

# BIP32 seed HMAC key
_MASTER_HMAC_KEY = b"Bitcoin seed"


# ---------------------------------------------------------------------------
# Public key helpers
# ---------------------------------------------------------------------------


def private_key_to_public_key(privkey_bytes: bytes) -> bytes:
    """Derive the 33-byte SEC compressed public key from a 32-byte private key."""
    sk = SigningKey.from_string(privkey_bytes, curve=_CURVE)
    return compress_public_key(sk.get_verifying_key().to_string())


def compress_public_key(raw_pubkey: bytes) -> bytes:
    """Compress a 64-byte (or 65-byte with 0x04 prefix) raw public key to 33 bytes."""
    if len(raw_pubkey) == 65 and raw_pubkey[0] == 0x04:
        raw_pubkey = raw_pubkey[1:]
    if len(raw_pubkey) != 64:
        msg = f"Invalid raw public key length: {len(raw_pubkey)}"
        raise ValueError(msg)
    x = int.from_bytes(raw_pubkey[:32], "big")
    y = int.from_bytes(raw_pubkey[32:], "big")
    prefix = b"\x02" if y % 2 == 0 else b"\x03"
    return prefix + x.to_bytes(32, "big")


# ---------------------------------------------------------------------------
# Extended private key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExtendedKey:
    """A BIP32 extended private key.

    Attributes:
        key: 32-byte private key scalar.
        chain_code: 32-byte chain code.
        depth: Derivation depth (0 for master).
        child_index: Index used in derivation.
    """

    key: bytes
    chain_code: bytes
    depth: int = 0
    child_index: int = 0

    def public_key(self) -> bytes:
        """Return the 33-byte compressed public key."""
        return private_key_to_public_key(self.key)

    def derive_child(self, index: int) -> ExtendedKey:
        """Derive a child key at the given index.

        Use ``index >= HARDENED_OFFSET`` for hardened derivation.

        Raises:
            ValueError: If the index is out of range or the derived key is invalid.
        """
        if not 0 <= index <= 0xFFFFFFFF:
            msg = f"Child index out of range: {index}"
            raise ValueError(msg)

        if index >= HARDENED_OFFSET:
            # Data = 0x00 || private_key || index
            data = b"\x00" + self.key + struct.pack(">I", index)
        else:
            # Data = compressed_pubkey || index
            data = self.public_key() + struct.pack(">I", index)

        digest = hmac_sha512(self.chain_code, data)
        il, ir = digest[:32], digest[32:]

        il_int = int.from_bytes(il, "big")
        if il_int >= _CURVE_ORDER:
            msg = "Derived key is invalid (il >= curve order)"
            raise ValueError(msg)

        key_int = (il_int + int.from_bytes(self.key, "big")) % _CURVE_ORDER
        if key_int == 0:
            msg = "Derived key is invalid (key == 0)"
            raise ValueError(msg)

        return ExtendedKey(
            key=key_int.to_bytes(32, "big"),
            chain_code=ir,
            depth=self.depth + 1,
            child_index=index,
        )

    def derive_path(self, path: str) -> ExtendedKey:
        """Derive using a BIP32 path string like ``m/129372'/0'/1'/0'/0``.

        Apostrophe (') or h indicates hardened derivation.
        """
        key = self
        for index in parse_path(path):
            key = key.derive_child(index)
        return key

    @classmethod
    def from_seed(cls, seed: bytes) -> Self:
        """Create a master private extended key from a BIP32 seed.

        Args:
            seed: 16-64 byte seed (64 bytes from a BIP39 phrase).

        Raises:
            ValueError: If seed length is out of range.
        """
        if not 16 <= len(seed) <= 64:
            msg = f"Seed must be 16-64 bytes, got {len(seed)}"
            raise ValueError(msg)
        digest = hmac_sha512(_MASTER_HMAC_KEY, seed)
        il, ir = digest[:32], digest[32:]
        il_int = int.from_bytes(il, "big")
        if il_int == 0 or il_int >= _CURVE_ORDER:
            msg = "Invalid seed (derived key out of range)"
            raise ValueError(msg)
        return cls(key=il, chain_code=ir)


def parse_path(path: str) -> list[int]:
    """Parse a BIP32 path string into child indexes.

    Raises:
        ValueError: If a path component is not a valid index.
    """
    indexes: list[int] = []
    for part in path.strip().split("/"):
        if part in ("m", "M", ""):
            continue
        hardened = part.endswith(("'", "h", "H"))
        idx_str = part.rstrip("'hH")
        if not idx_str.isdigit():
            msg = f"Invalid path component: {part!r}"
            raise ValueError(msg)
        idx = int(idx_str)
        if idx >= HARDENED_OFFSET:
            msg = f"Path index too large: {part!r}"
            raise ValueError(msg)
        indexes.append(idx + HARDENED_OFFSET if hardened else idx)
    return indexes
