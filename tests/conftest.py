"""Shared test fixtures for the ecash-wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.fakes import PHRASE, FakeMint, JsonTokenCodec

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ecash_wallet.config.settings import AppConfig
    from ecash_wallet.engine.client import WalletEngine

MEMORY_DSN = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def state_dir(tmp_path):
    """Directory holding the per-identity wallet files."""
    return tmp_path / "cashu-wallet"


@pytest.fixture
def app_config(state_dir) -> AppConfig:
    """Provide a test AppConfig whose stores live under a temp directory."""
    from ecash_wallet.config.settings import AppConfig, MintConfig, StoreConfig

    return AppConfig(
        debug=True,
        store=StoreConfig(state_dir=str(state_dir)),
        mint=MintConfig(url="https://mint.test", unit="sat"),
    )


@pytest.fixture
def memory_config() -> AppConfig:
    """Provide a test AppConfig backed by in-memory SQLite."""
    from ecash_wallet.config.settings import AppConfig, StoreConfig

    return AppConfig(store=StoreConfig(dsn=MEMORY_DSN))


@pytest.fixture
def mint() -> FakeMint:
    return FakeMint()


@pytest.fixture
def codec() -> JsonTokenCodec:
    return JsonTokenCodec()


@pytest.fixture
async def engine(app_config, mint, codec) -> AsyncIterator[WalletEngine]:
    """Provide an initialized engine for PHRASE, closed after the test."""
    from ecash_wallet.engine.client import WalletEngine

    eng = WalletEngine(app_config, PHRASE, mint_client=mint, token_codec=codec)
    await eng.initialize()
    yield eng
    await eng.close()


@pytest.fixture
async def memory_engine(memory_config, mint, codec) -> AsyncIterator[WalletEngine]:
    """Provide an initialized engine on in-memory SQLite."""
    from ecash_wallet.engine.client import WalletEngine

    eng = WalletEngine(memory_config, PHRASE, mint_client=mint, token_codec=codec)
    await eng.initialize()
    yield eng
    await eng.close()
