"""End-to-end wallet lifecycle: receive, send, restart and hand tokens between wallets."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ecash_wallet.engine.client import WalletEngine
from ecash_wallet.errors import MintCallFailed
from tests.fakes import KEYSET_ID, OTHER_PHRASE, PHRASE, FakeMint, FakeMintError, JsonTokenCodec

if TYPE_CHECKING:
    from ecash_wallet.config.settings import AppConfig


class TestWalletLifecycle:
    """Two wallets on one mint, restarted between steps."""

    async def test_round_trip_between_wallets(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as alice:
            await alice.receive(codec.encode(mint.issue(250)))
            to_bob = await alice.send(90)

        async with WalletEngine(app_config, OTHER_PHRASE, mint_client=mint, token_codec=codec) as bob:
            await bob.receive(to_bob.token)
            to_alice = await bob.send(15)
            assert await bob.get_balance() == 75

        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as alice:
            assert await alice.get_balance() == 160
            await alice.receive(to_alice.token)
            assert await alice.get_balance() == 175
            per_keyset = await alice.balance_per_keyset()
            assert per_keyset[KEYSET_ID].amount == 175

        # Every output the mint ever signed or saw came from a distinct (seed, keyset, index)
        secrets = [o.secret for o in mint.seen_outputs]
        assert len(secrets) == len(set(secrets))

    async def test_failures_never_lose_funds(
        self, app_config: AppConfig, mint: FakeMint, codec: JsonTokenCodec
    ) -> None:
        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as wallet:
            await wallet.receive(codec.encode(mint.issue(64)))
            for _ in range(3):
                mint.fail_next = FakeMintError("flaky network")
                with pytest.raises(MintCallFailed):
                    await wallet.send(10)
                assert await wallet.get_balance() == 64
            result = await wallet.send(10)
            assert await wallet.get_balance() == 54
            counters = await wallet.counters()
            assert counters[KEYSET_ID] == result.reservation.next

        async with WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec) as wallet:
            assert await wallet.get_balance() == 54
            assert await wallet.counters() == counters
