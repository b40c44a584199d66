"""Deterministic output secrets (NUT-13).

For keyset ``k`` and counter ``n`` the secret and blinding factor are the
private keys at::

    m/129372'/0'/{keyset_int(k)}'/{n}'/0   -> secret
    m/129372'/0'/{keyset_int(k)}'/{n}'/1   -> blinding factor

so every output can be regenerated from the seed alone, and a counter value
used twice yields the same blinded output twice.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ecash_wallet.crypto.bip32 import HARDENED_OFFSET, ExtendedKey

if TYPE_CHECKING:
    from ecash_wallet.engine.services.counter_service import CounterReservation

CASHU_PURPOSE = 129372
_KEYSET_MODULUS = 2**31 - 1


@dataclass(frozen=True)
class DerivedOutput:
    """Secret material for one fresh output.

    Attributes:
        keyset_id: Keyset the output will be signed under.
        counter: Derivation index.
        secret: Hex secret sent (blinded) to the mint.
        blinding_factor: 32-byte blinding scalar ``r``.
        derivation_path: BIP32 path of the secret.
    """

    keyset_id: str
    counter: int
    secret: str
    blinding_factor: bytes = field(repr=False)
    derivation_path: str


def keyset_id_to_int(keyset_id: str) -> int:
    """Map a keyset id to its hardened derivation index.

    Hex ids (current format) and legacy base64 ids are both accepted.

    Raises:
        ValueError: If the id is neither hex nor base64.
    """
    try:
        raw = bytes.fromhex(keyset_id)
    except ValueError:
        try:
            raw = base64.b64decode(keyset_id, validate=True)
        except binascii.Error as exc:
            msg = f"Keyset id is neither hex nor base64: {keyset_id!r}"
            raise ValueError(msg) from exc
    if not raw:
        msg = "Keyset id is empty"
        raise ValueError(msg)
    return int.from_bytes(raw, "big") % _KEYSET_MODULUS


def derivation_path(keyset_id: str, counter: int) -> str:
    """Return the BIP32 path of the secret for ``(keyset_id, counter)``."""
    return f"m/{CASHU_PURPOSE}'/0'/{keyset_id_to_int(keyset_id)}'/{counter}'/0"


class SecretDeriver:
    """Derives output secrets for one seed.

    The per-keyset branch ``m/129372'/0'/{k}'`` is cached so a range only
    pays for the last three derivation steps per output.
    """

    def __init__(self, seed: bytes) -> None:
        self._master = ExtendedKey.from_seed(seed)
        self._keyset_roots: dict[str, ExtendedKey] = {}

    def _keyset_root(self, keyset_id: str) -> ExtendedKey:
        root = self._keyset_roots.get(keyset_id)
        if root is None:
            root = self._master.derive_path(f"m/{CASHU_PURPOSE}'/0'/{keyset_id_to_int(keyset_id)}'")
            self._keyset_roots[keyset_id] = root
        return root

    def derive(self, keyset_id: str, counter: int) -> DerivedOutput:
        """Derive the output at one counter value."""
        if counter < 0:
            msg = f"Counter must be non-negative, got {counter}"
            raise ValueError(msg)
        branch = self._keyset_root(keyset_id).derive_child(counter + HARDENED_OFFSET)
        secret = branch.derive_child(0)
        blinding = branch.derive_child(1)
        return DerivedOutput(
            keyset_id=keyset_id,
            counter=counter,
            secret=secret.key.hex(),
            blinding_factor=blinding.key,
            derivation_path=derivation_path(keyset_id, counter),
        )

    def derive_range(self, keyset_id: str, start: int, count: int) -> list[DerivedOutput]:
        """Derive ``count`` consecutive outputs starting at ``start``."""
        return [self.derive(keyset_id, start + i) for i in range(count)]

    def derive_reservation(self, reservation: CounterReservation) -> list[DerivedOutput]:
        """Derive every output covered by a counter reservation."""
        return self.derive_range(reservation.keyset_id, reservation.start, reservation.count)
