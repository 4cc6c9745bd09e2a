"""
Transport boundary to the ledger.

This module defines the interface the wallet core consumes from its external
collaborators: balancing, finalization and submission of transactions, and
the live state stream of every sub-wallet. Implementations include an
in-memory simulated ledger and an HTTP client for a local wallet bridge.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator

from ..keys import Role, BalancingKeys
from ..ledger.types import Transaction, TransactionRecipe, FinalizedTransaction
from ..models import SubmitResult
from ..wallet.state import SubWalletState

logger = logging.getLogger(__name__)


class LedgerTransport(ABC):
    """
    Abstract base class for ledger transports.

    Every operation is a coroutine; errors of an implementation propagate to
    the caller unchanged.
    """

    @abstractmethod
    async def balance(self, transaction: Transaction, keys: BalancingKeys, ttl: datetime) -> TransactionRecipe:
        """
        Cover fees and shielded inputs of an unbalanced transaction.

        Args:
            transaction: Unbalanced transaction
            keys: Secret keys used to pay fees and shielded inputs
            ttl: Time after which the transaction is invalid

        Returns:
            Recipe with the base transaction and, if needed, a balancing transaction
        """
        pass

    @abstractmethod
    async def finalize(self, recipe: TransactionRecipe) -> FinalizedTransaction:
        """
        Bind a signed recipe into a submittable transaction.

        Args:
            recipe: Signed recipe

        Returns:
            Finalized transaction
        """
        pass

    @abstractmethod
    async def submit(self, finalized: FinalizedTransaction) -> SubmitResult:
        """
        Submit a finalized transaction to the network.

        Args:
            finalized: Finalized transaction

        Returns:
            Submission result carrying the transaction id
        """
        pass

    @abstractmethod
    def state_stream(self, role: Role, credential: bytes) -> AsyncIterator[SubWalletState]:
        """
        Open the live state stream of a sub-wallet.

        Args:
            role: Pool of the sub-wallet
            credential: Public key for the public pool, secret key otherwise

        Returns:
            Async iterator of snapshots, in order
        """
        pass

    async def close(self) -> None:
        """Close any open connections or resources."""
        pass
