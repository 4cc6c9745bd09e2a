"""
Wallet provider for contract calls.

Contract tooling hands the provider proven, unbalanced transactions; the
provider balances them with the wallet's keys, co-signs them and returns
them finalized and ready for submission.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from .ledger.types import ProofState, Transaction, FinalizedTransaction
from .models import SubmitResult
from .tx.assembler import TransactionAssembler
from .wallet.session import WalletSession

# Validity of a balanced contract call when the caller gives no ttl
DEFAULT_TTL = timedelta(minutes=30)


class WalletProvider:
    """Balances, signs and submits contract transactions for one wallet session."""

    def __init__(
        self,
        session: WalletSession,
        assembler: Optional[TransactionAssembler] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self.assembler = assembler or TransactionAssembler(session.transport, logger=self.logger)

    @property
    def coin_public_key(self) -> str:
        """Hex encoded public key that owns the wallet's coins."""
        return self.session.public_key.hex()

    async def balance_tx(self, transaction: Transaction, ttl: Optional[datetime] = None) -> FinalizedTransaction:
        """
        Balance, sign and finalize a proven contract transaction.

        The base transaction is signed as PROOF, a balancing transaction as
        PRE_PROOF.

        Args:
            transaction: Proven, unbalanced transaction
            ttl: Validity deadline (defaults to 30 minutes from now)
        """
        deadline = ttl or datetime.now(timezone.utc) + DEFAULT_TTL
        recipe = await self.assembler.balance(transaction, self.session.balancing_keys(), deadline)
        self.assembler.sign(recipe, self.session.sign_data, base_state=ProofState.PROOF)
        return await self.assembler.finalize(recipe)

    async def submit_tx(self, finalized: FinalizedTransaction) -> SubmitResult:
        return await self.assembler.submit(finalized)
