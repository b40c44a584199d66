"""WalletEngine: central engine owning the store, services and collaborators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ecash_wallet.crypto.seed import WalletIdentity, derive_identity

if TYPE_CHECKING:
    from ecash_wallet.config.settings import AppConfig
    from ecash_wallet.crypto.derivation import SecretDeriver
    from ecash_wallet.datastore.client import Datastore
    from ecash_wallet.engine.operations.coordinator import OperationCoordinator
    from ecash_wallet.engine.operations.results import ReceiveResult, SendResult
    from ecash_wallet.engine.services.balance_service import BalanceService, KeysetBalance
    from ecash_wallet.engine.services.counter_service import CounterService
    from ecash_wallet.engine.services.proof_service import ProofService
    from ecash_wallet.mint.protocols import MintClient, TokenCodec

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class WalletEngine:
    """One identity's wallet: its fingerprint-named store plus the services over it.

    The recovery phrase is validated in :meth:`initialize` before any file is
    touched. The process owns the store exclusively until :meth:`close`.

    Usage::

        engine = WalletEngine(config, phrase, mint_client=mint, token_codec=codec)
        await engine.initialize()
        try:
            await engine.receive(token)
            print(await engine.get_balance())
        finally:
            await engine.close()
    """

    def __init__(
        self,
        config: AppConfig,
        phrase: str,
        *,
        mint_client: MintClient,
        token_codec: TokenCodec,
        passphrase: str = "",
    ) -> None:
        """Initialize engine with configuration and collaborators.

        Args:
            config: Application configuration.
            phrase: BIP39 recovery phrase of this wallet.
            mint_client: Mint-client capability.
            token_codec: Interchange-token codec.
            passphrase: Optional BIP39 passphrase.
        """
        self._config = config
        self._phrase = phrase
        self._passphrase = passphrase
        self._mint_client = mint_client
        self._token_codec = token_codec
        self._initialized = False

        self._identity: WalletIdentity | None = None
        self._deriver: SecretDeriver | None = None
        self._datastore: Datastore | None = None

        self._counter_service: CounterService | None = None
        self._proof_service: ProofService | None = None
        self._balance_service: BalanceService | None = None
        self._coordinator: OperationCoordinator | None = None

    async def initialize(self) -> None:
        """Derive the identity, open its store and start services.

        Raises:
            RuntimeError: If already initialized.
            InvalidRecoveryPhrase: If the phrase is invalid (no I/O happens).
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        identity = derive_identity(self._phrase, self._passphrase)

        # Import here to avoid circular deps
        from ecash_wallet.crypto.derivation import SecretDeriver
        from ecash_wallet.datastore.client import Datastore
        from ecash_wallet.datastore.migrations import run_auto_migrate

        datastore = Datastore(self._config.store.dsn_for(identity.fingerprint), self._config.store)
        await datastore.open()
        try:
            await run_auto_migrate(datastore.engine)
        except Exception:
            await datastore.close()
            raise

        self._identity = identity
        self._deriver = SecretDeriver(identity.seed)
        self._datastore = datastore
        logger.info("Opened wallet store %s", identity.fingerprint)

        from ecash_wallet.engine.operations.coordinator import OperationCoordinator
        from ecash_wallet.engine.services.balance_service import BalanceService
        from ecash_wallet.engine.services.counter_service import CounterService
        from ecash_wallet.engine.services.proof_service import ProofService

        self._counter_service = CounterService(self)
        self._proof_service = ProofService(self)
        self._balance_service = BalanceService(self)
        self._coordinator = OperationCoordinator(self)

        self._initialized = True

    async def close(self) -> None:
        """Release the store. Can be called multiple times (idempotent)."""
        if not self._initialized:
            return

        self._coordinator = None
        self._balance_service = None
        self._proof_service = None
        self._counter_service = None
        self._deriver = None

        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        logger.info("Closed wallet store %s", self.fingerprint)
        self._initialized = False

    async def __aenter__(self) -> WalletEngine:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def fingerprint(self) -> str:
        """Get the identity fingerprint selecting this store."""
        if self._identity is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._identity.fingerprint

    @property
    def deriver(self) -> SecretDeriver:
        """Get the deterministic secret deriver for this seed."""
        if self._deriver is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._deriver

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance."""
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def mint_client(self) -> MintClient:
        """Get the mint-client capability."""
        return self._mint_client

    @property
    def token_codec(self) -> TokenCodec:
        """Get the token codec."""
        return self._token_codec

    @property
    def counter_service(self) -> CounterService:
        """Get the counter service."""
        if self._counter_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._counter_service

    @property
    def proof_service(self) -> ProofService:
        """Get the proof service."""
        if self._proof_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._proof_service

    @property
    def balance_service(self) -> BalanceService:
        """Get the balance service."""
        if self._balance_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._balance_service

    @property
    def coordinator(self) -> OperationCoordinator:
        """Get the operation coordinator."""
        if self._coordinator is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._coordinator

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_balance(self) -> int:
        """Return the wallet balance."""
        return await self.balance_service.get_balance()

    async def balance_per_keyset(self) -> dict[str, KeysetBalance]:
        """Return proof count and value per keyset."""
        return await self.balance_service.balance_per_keyset()

    async def receive(self, token: str) -> ReceiveResult:
        """Redeem an encoded token into this wallet."""
        return await self.coordinator.receive(token)

    async def send(self, amount: int, memo: str | None = None) -> SendResult:
        """Produce an encoded token worth ``amount``, optionally with a memo."""
        return await self.coordinator.send(amount, memo)

    async def counters(self) -> dict[str, int]:
        """Return the persisted ``next`` index per keyset."""
        return await self.counter_service.load_all()

    async def recover_counter(self, keyset_id: str, by: int = 1) -> int:
        """Skip a keyset's counter forward after the mint rejects reused outputs."""
        return await self.counter_service.bump(keyset_id, by)
