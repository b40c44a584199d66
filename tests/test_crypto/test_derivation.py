"""Tests for deterministic output secrets."""

from __future__ import annotations

import pytest
from mnemonic import Mnemonic

from ecash_wallet.crypto.bip32 import ExtendedKey
from ecash_wallet.crypto.derivation import (
    CASHU_PURPOSE,
    SecretDeriver,
    derivation_path,
    keyset_id_to_int,
)
from ecash_wallet.engine.services.counter_service import CounterReservation
from tests.fakes import KEYSET_ID, PHRASE

SEED = Mnemonic.to_seed(PHRASE)
LEGACY_KEYSET_ID = "I2yN+iRYfkzT"


@pytest.fixture
def deriver() -> SecretDeriver:
    return SecretDeriver(SEED)


class TestKeysetIdToInt:
    def test_hex_id(self) -> None:
        assert keyset_id_to_int(KEYSET_ID) == int(KEYSET_ID, 16) % (2**31 - 1)

    def test_legacy_base64_id(self) -> None:
        value = keyset_id_to_int(LEGACY_KEYSET_ID)
        assert 0 <= value < 2**31 - 1
        assert value == keyset_id_to_int(LEGACY_KEYSET_ID)

    @pytest.mark.parametrize("keyset_id", ["", "not base64!"])
    def test_invalid(self, keyset_id: str) -> None:
        with pytest.raises(ValueError, match="Keyset id"):
            keyset_id_to_int(keyset_id)


class TestDerivationPath:
    def test_format(self) -> None:
        k = keyset_id_to_int(KEYSET_ID)
        assert derivation_path(KEYSET_ID, 7) == f"m/{CASHU_PURPOSE}'/0'/{k}'/7'/0"


class TestSecretDeriver:
    def test_deterministic(self) -> None:
        a = SecretDeriver(SEED).derive(KEYSET_ID, 3)
        b = SecretDeriver(SEED).derive(KEYSET_ID, 3)
        assert a == b

    def test_matches_bip32_path(self, deriver: SecretDeriver) -> None:
        output = deriver.derive(KEYSET_ID, 5)
        master = ExtendedKey.from_seed(SEED)
        assert output.secret == master.derive_path(output.derivation_path).key.hex()
        blinding_path = output.derivation_path[:-1] + "1"
        assert output.blinding_factor == master.derive_path(blinding_path).key

    def test_secret_is_hex_scalar(self, deriver: SecretDeriver) -> None:
        output = deriver.derive(KEYSET_ID, 0)
        assert len(output.secret) == 64
        int(output.secret, 16)
        assert len(output.blinding_factor) == 32

    def test_distinct_counters_distinct_secrets(self, deriver: SecretDeriver) -> None:
        secrets = {deriver.derive(KEYSET_ID, n).secret for n in range(20)}
        assert len(secrets) == 20

    def test_distinct_keysets_distinct_secrets(self, deriver: SecretDeriver) -> None:
        assert deriver.derive(KEYSET_ID, 0).secret != deriver.derive("00ad268c4d1f5826", 0).secret

    def test_distinct_seeds_distinct_secrets(self) -> None:
        other = SecretDeriver(Mnemonic.to_seed(PHRASE, passphrase="x"))
        assert other.derive(KEYSET_ID, 0).secret != SecretDeriver(SEED).derive(KEYSET_ID, 0).secret

    def test_blinding_factor_not_in_repr(self, deriver: SecretDeriver) -> None:
        output = deriver.derive(KEYSET_ID, 0)
        assert output.blinding_factor.hex() not in repr(output)

    def test_negative_counter(self, deriver: SecretDeriver) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            deriver.derive(KEYSET_ID, -1)

    def test_derive_range(self, deriver: SecretDeriver) -> None:
        outputs = deriver.derive_range(KEYSET_ID, 10, 4)
        assert [o.counter for o in outputs] == [10, 11, 12, 13]
        assert outputs[2] == deriver.derive(KEYSET_ID, 12)

    def test_derive_empty_range(self, deriver: SecretDeriver) -> None:
        assert deriver.derive_range(KEYSET_ID, 3, 0) == []

    def test_derive_reservation(self, deriver: SecretDeriver) -> None:
        reservation = CounterReservation(keyset_id=KEYSET_ID, start=2, count=3, next=5)
        outputs = deriver.derive_reservation(reservation)
        assert [o.counter for o in outputs] == list(reservation.indexes)
        assert all(o.keyset_id == KEYSET_ID for o in outputs)
