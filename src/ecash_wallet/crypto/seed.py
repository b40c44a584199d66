"""Recovery phrase → seed and store fingerprint.

The seed is the BIP39 PBKDF2 stretch of the phrase and feeds every output
secret. The fingerprint is hashed from the phrase's raw entropy instead, so
the store a phrase maps to stays the same even if seed stretching changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mnemonic import Mnemonic

from ecash_wallet.errors.ledger_errors import InvalidRecoveryPhrase
from ecash_wallet.utils.crypto import sha256

VALID_WORD_COUNTS = (12, 15, 18, 21, 24)
FINGERPRINT_LENGTH = 16

_WORDLIST = Mnemonic("english")


@dataclass(frozen=True)
class WalletIdentity:
    """Seed material for one recovery phrase.

    Attributes:
        seed: 64-byte BIP39 seed. Never persisted.
        fingerprint: Short hex id selecting this identity's store.
        word_count: Number of words in the phrase.
    """

    seed: bytes = field(repr=False)
    fingerprint: str
    word_count: int


def normalize_phrase(phrase: str) -> str:
    """Collapse whitespace and lowercase a recovery phrase."""
    return " ".join(phrase.lower().split())


def validate_phrase(phrase: str) -> str:
    """Validate word count and checksum, returning the normalized phrase.

    Raises:
        InvalidRecoveryPhrase: If the phrase is not a valid English BIP39 phrase.
    """
    normalized = normalize_phrase(phrase)
    words = normalized.split(" ") if normalized else []
    if len(words) not in VALID_WORD_COUNTS:
        msg = f"recovery phrase must have 12, 15, 18, 21 or 24 words, got {len(words)}"
        raise InvalidRecoveryPhrase(msg)
    if not _WORDLIST.check(normalized):
        msg = "recovery phrase has an unknown word or a bad checksum"
        raise InvalidRecoveryPhrase(msg)
    return normalized


def phrase_fingerprint(phrase: str, passphrase: str = "") -> str:
    """Compute the store fingerprint from the phrase entropy.

    The passphrase is mixed in because it yields a different seed, and two
    seeds must never share counter state. The entropy is length-prefixed so
    that no (entropy, passphrase) pair encodes to the same bytes as another.
    """
    normalized = validate_phrase(phrase)
    entropy = bytes(_WORDLIST.to_entropy(normalized))
    digest = sha256(len(entropy).to_bytes(1, "big") + entropy + passphrase.encode("utf-8"))
    return digest.hex()[:FINGERPRINT_LENGTH]


def derive_identity(phrase: str, passphrase: str = "") -> WalletIdentity:
    """Derive the seed and fingerprint for a recovery phrase.

    Args:
        phrase: BIP39 recovery phrase.
        passphrase: Optional BIP39 passphrase.

    Returns:
        The :class:`WalletIdentity` for the phrase.

    Raises:
        InvalidRecoveryPhrase: If the phrase fails validation.
    """
    normalized = validate_phrase(phrase)
    return WalletIdentity(
        seed=Mnemonic.to_seed(normalized, passphrase=passphrase),
        fingerprint=phrase_fingerprint(normalized, passphrase),
        word_count=len(normalized.split(" ")),
    )
