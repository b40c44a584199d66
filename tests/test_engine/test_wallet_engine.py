"""Tests for WalletEngine lifecycle and identity partitioning."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ecash_wallet.config.settings import AppConfig, StoreConfig
from ecash_wallet.crypto.seed import phrase_fingerprint
from ecash_wallet.engine.client import WalletEngine
from ecash_wallet.errors import InvalidRecoveryPhrase, MintCallFailed
from tests.fakes import KEYSET_ID, OTHER_PHRASE, PHRASE, FakeMint, JsonTokenCodec

if TYPE_CHECKING:
    from pathlib import Path


class TestLifecycle:
    async def test_initialize(self, engine: WalletEngine) -> None:
        assert engine.is_initialized
        assert engine.fingerprint == phrase_fingerprint(PHRASE)
        assert engine.datastore.is_open

    async def test_invalid_phrase_fails_before_io(
        self, app_config: AppConfig, state_dir: Path, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        eng = WalletEngine(app_config, "abandon " * 12, mint_client=mint, token_codec=codec)
        with pytest.raises(InvalidRecoveryPhrase):
            await eng.initialize()
        assert not eng.is_initialized
        assert not state_dir.exists()

    async def test_double_initialize(self, engine: WalletEngine) -> None:
        with pytest.raises(RuntimeError, match="already initialized"):
            await engine.initialize()

    async def test_double_close_is_safe(self, engine: WalletEngine) -> None:
        """Closing the engine twice does not raise."""
        await engine.close()
        await engine.close()
        assert not engine.is_initialized

    @pytest.mark.parametrize(
        "attr",
        ["fingerprint", "deriver", "datastore", "counter_service", "proof_service", "balance_service", "coordinator"],
    )
    def test_properties_require_initialize(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec, attr: str
    ) -> None:
        eng = WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec)
        with pytest.raises(RuntimeError, match="not initialized"):
            getattr(eng, attr)

    async def test_collaborators_exposed(
        self, engine: WalletEngine, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        assert engine.mint_client is mint
        assert engine.token_codec is codec

    async def test_async_context_manager(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as eng:
            assert eng.is_initialized
        assert not eng.is_initialized

    async def test_in_memory_store(self, memory_engine: WalletEngine) -> None:
        assert memory_engine.datastore.sqlite_path() is None
        assert await memory_engine.get_balance() == 0


# ---------------------------------------------------------------------------
# One store per identity
# ---------------------------------------------------------------------------


class TestIdentityStores:
    async def test_store_named_after_fingerprint(
        self, engine: WalletEngine, state_dir: Path
    ) -> None:
        expected = state_dir / f"wallet-{engine.fingerprint}.db"
        assert engine.datastore.sqlite_path() == expected
        assert expected.exists()

    async def test_phrases_do_not_share_state(
        self, app_config: AppConfig, state_dir: Path, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as alice:
            await alice.receive(codec.encode(mint.issue(9)))
            alice_fp = alice.fingerprint

        async with WalletEngine(app_config, OTHER_PHRASE, mint_client=mint, token_codec=codec) as bob:
            assert bob.fingerprint != alice_fp
            assert await bob.get_balance() == 0
            assert await bob.counters() == {}

        assert len(list(state_dir.glob("wallet-*.db"))) == 2

    async def test_passphrase_selects_separate_store(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as plain:
            await plain.receive(codec.encode(mint.issue(4)))
        async with WalletEngine(
            app_config, PHRASE, mint_client=mint, token_codec=codec, passphrase="hunter2"
        ) as protected:
            assert await protected.get_balance() == 0

    async def test_state_survives_restart(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as first:
            await first.receive(codec.encode(mint.issue(100)))
            await first.send(30)
            counters = await first.counters()

        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as second:
            assert await second.get_balance() == 70
            assert await second.counters() == counters


# ---------------------------------------------------------------------------
# Counter recovery
# ---------------------------------------------------------------------------


class TestRecoverCounter:
    async def test_recover_after_outputs_already_signed(
        self, tmp_path: Path, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        """A second copy of the wallet with a stale counter skips past signed outputs."""
        original = AppConfig(store=StoreConfig(state_dir=str(tmp_path / "device-a")))
        restored = AppConfig(store=StoreConfig(state_dir=str(tmp_path / "device-b")))

        async with WalletEngine(original, PHRASE, mint_client=mint, token_codec=codec) as eng:
            await eng.receive(codec.encode(mint.issue(7)))

        async with WalletEngine(restored, PHRASE, mint_client=mint, token_codec=codec) as eng:
            token = codec.encode(mint.issue(1))
            with pytest.raises(MintCallFailed, match="already been signed"):
                await eng.receive(token)
            assert await eng.counters() == {KEYSET_ID: 1}

            assert await eng.recover_counter(KEYSET_ID, by=2) == 3
            result = await eng.receive(token)
            assert result.reservation.start == 3
            assert await eng.get_balance() == 1
