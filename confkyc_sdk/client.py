"""
WalletClient - orchestrates wallet bootstrap, funding and submission.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .config import NetworkConfig, LOCAL_CONFIG
from .exceptions import ConfigError
from .keys import derive_keys, generate_mnemonic
from .keys.seed import SeedInput
from .ledger.types import ProofState, PRIMARY_TOKEN
from .models import SubmitResult, TransferOutput, FundingTarget
from .transport import LedgerTransport, get_transport
from .tx.assembler import TransactionAssembler
from .tx.resource import build_resource_generation_transaction
from .wallet.session import WalletSession
from .wallet.state import WalletState

OutputLike = Union[TransferOutput, Dict[str, Any]]


class WalletClient:
    """
    Client for wallets on the privacy-preserving ledger.

    This client handles:
    1. Deriving keys and starting synchronized wallet sessions
    2. Funding fresh wallets on the local network
    3. Assembling, signing and submitting transfers and resource registrations

    Sessions returned by the client belong to the caller, who must stop them.
    A session whose bootstrap fails is stopped before the error propagates.
    """

    def __init__(
        self,
        config: Optional[NetworkConfig] = None,
        transport: Optional[LedgerTransport] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the WalletClient

        Args:
            config: Network configuration (defaults to the local network)
            transport: Ledger transport (defaults to get_transport(config))
            logger: Optional logger instance to use for debug/info logging
        """
        self.config = config or LOCAL_CONFIG
        self.transport = transport or get_transport(self.config)
        self.logger = logger or logging.getLogger(__name__)
        self.assembler = TransactionAssembler(self.transport, logger=self.logger)

    async def __aenter__(self) -> "WalletClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    def _deadline(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self.config.ttl_seconds)

    async def _synced_state(self, session: WalletSession) -> WalletState:
        return await session.wait_for_sync(interval=self.config.sync_interval, timeout=self.config.wait_timeout)

    async def bootstrap(self, seed: SeedInput) -> WalletSession:
        """
        Start a wallet session for seed and wait until it is synced.

        Args:
            seed: Seed bytes, hex string or mnemonic

        Returns:
            A started, synced session

        Raises:
            InvalidSeedError: If the seed is malformed
            WaitError: If synchronization aborts or times out
        """
        keys = derive_keys(seed)
        session = WalletSession(keys, self.transport, network_id=self.config.network_id, logger=self.logger)
        try:
            await session.start()
            await self._synced_state(session)
        except BaseException:
            self.logger.error(f"Bootstrap of wallet {session.address[:10]}… failed, stopping session")
            await session.stop()
            raise

        self.logger.info(f"Wallet {session.address[:10]}… is synced")
        return session

    async def ensure_funded(
        self,
        session: WalletSession,
        target_address: Optional[str] = None,
        bootstrap_key: Optional[SeedInput] = None
    ) -> WalletState:
        """
        Make sure a wallet holds primary tokens and resource.

        Without primary tokens, a session for bootstrap_key transfers
        funding_amount to the session's wallet and is stopped again. Without
        resource, the wallet registers its coins for resource generation once
        the primary tokens have arrived. A wallet that holds both is left
        alone.

        Args:
            session: Started session of the wallet to fund
            target_address: Address receiving the funding; must be the session's own
            bootstrap_key: Seed of a funded wallet, required only when funding is needed

        Returns:
            The latest combined snapshot

        Raises:
            ConfigError: If funding is needed and no bootstrap_key is given, or if
                target_address belongs to a different wallet
        """
        if target_address is not None and target_address.lower() != session.address.lower():
            # Arrival is observed through session, so only its own address can be awaited
            raise ConfigError(
                f"Cannot fund {target_address[:10]}… through the session of {session.address[:10]}…"
            )

        state = await self._synced_state(session)
        balance = state.balance()
        resource = state.resource_balance()

        if balance == 0:
            if bootstrap_key is None:
                raise ConfigError("Wallet holds no funds and no bootstrap key was given")
            target = FundingTarget(
                receiver_address=session.address,
                amount=self.config.funding_amount,
                token_type=PRIMARY_TOKEN
            )
            await self._fund_from(bootstrap_key, target)
            await session.wait_for_funds(interval=self.config.funds_interval, timeout=self.config.wait_timeout)

        if resource == 0:
            await session.wait_for_funds(interval=self.config.funds_interval, timeout=self.config.wait_timeout)
            await self.assemble_and_submit_resource_generation(session)
            await session.wait_for_resource(interval=self.config.funds_interval, timeout=self.config.wait_timeout)

        return session.state()

    async def _fund_from(self, bootstrap_key: SeedInput, target: FundingTarget) -> SubmitResult:
        source = await self.bootstrap(bootstrap_key)
        try:
            self.logger.info(f"Funding {target.receiver_address[:10]}… with {target.amount} from {source.address[:10]}…")
            return await self.assemble_and_submit_transfer(source, [target])
        finally:
            await source.stop()

    async def assemble_and_submit_transfer(
        self,
        session: WalletSession,
        outputs: Sequence[OutputLike]
    ) -> SubmitResult:
        """
        Transfer public pool tokens from a wallet.

        Args:
            session: Synced session paying for the transfer
            outputs: Recipients as TransferOutput or {"receiverAddress", "amount", "type"} dicts

        Returns:
            Submission result

        Raises:
            InsufficientFundsError: If the wallet cannot cover the outputs
            FinalizationError: If the signed transaction is malformed
        """
        transfer_outputs = [
            o if isinstance(o, TransferOutput) else TransferOutput.model_validate(o) for o in outputs
        ]
        state = await self._synced_state(session)
        deadline = self._deadline()

        transaction = self.assembler.build_transfer(
            state, transfer_outputs, session.public_key,
            network_id=self.config.network_id, ttl=int(deadline.timestamp())
        )
        recipe = await self.assembler.balance(transaction, session.balancing_keys(), deadline)
        self.assembler.sign(recipe, session.sign_data, base_state=ProofState.UNPROVEN)
        finalized = await self.assembler.finalize(recipe)
        return await self.assembler.submit(finalized)

    async def assemble_and_submit_resource_generation(self, session: WalletSession) -> SubmitResult:
        """
        Register a wallet's primary-token coins for resource generation.

        Returns:
            Submission result

        Raises:
            MissingIntentError: If the built transaction lacks its registration segment
        """
        state = await self._synced_state(session)
        now = datetime.now(timezone.utc)
        transaction = build_resource_generation_transaction(
            now,
            now + timedelta(seconds=self.config.ttl_seconds),
            state.available_coins,
            session.public_key,
            state.resource.address,
            network_id=self.config.network_id
        )
        recipe = self.assembler.sign_resource_generation(transaction, session.sign_data)
        finalized = await self.assembler.finalize(recipe)
        return await self.assembler.submit(finalized)

    async def build_wallet_and_wait_for_funds(self, seed: SeedInput) -> WalletSession:
        """
        Bootstrap a wallet and wait until it can pay for transactions.

        On the local network the wallet is funded from the configured
        bootstrap seed; elsewhere funding instructions are logged and the
        client waits for tokens to arrive.
        """
        session = await self.bootstrap(seed)
        try:
            if self.config.is_local:
                await self.ensure_funded(session, bootstrap_key=self.config.bootstrap_seed)
            else:
                await self._wait_for_external_funding(session)
        except BaseException:
            await session.stop()
            raise
        return session

    async def _wait_for_external_funding(self, session: WalletSession) -> None:
        state = await self._synced_state(session)
        balance = state.balance()
        resource = state.resource_balance()
        if balance and resource:
            return

        self.logger.info(f"Wallet address: {session.address}")
        if balance == 0:
            self.logger.warning(f"Wallet is unfunded: send tokens to {session.address} on {self.config.network_id}")
            await session.wait_for_funds(interval=self.config.funds_interval, timeout=self.config.wait_timeout)
        if resource == 0:
            self.logger.warning("Wallet has no resource: register its coins for resource generation")
            await session.wait_for_resource(interval=self.config.funds_interval, timeout=self.config.wait_timeout)

    async def build_fresh_wallet(self) -> Tuple[WalletSession, str]:
        """
        Create a wallet from a new 12-word mnemonic.

        Returns:
            The funded session and its mnemonic
        """
        mnemonic = generate_mnemonic(12)
        session = await self.build_wallet_and_wait_for_funds(mnemonic)
        return session, mnemonic
