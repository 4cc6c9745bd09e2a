"""
Resource-generation transactions.

Registering public pool coins for resource generation spends them and
recreates them unchanged, with a registration that makes them accrue resource
(the fee-metering balance) for a receiver address over a validity window.
"""
import logging
from datetime import datetime
from typing import Sequence

from ..ledger.types import (
    Coin, Spend, Output, Offer, Intent, ProofState, ResourceRegistration, Transaction, PRIMARY_TOKEN
)
from ..signer.local import address_from_public_key
from .signing import RESOURCE_GENERATION_SEGMENT

logger = logging.getLogger(__name__)


def build_resource_generation_transaction(
    valid_from: datetime,
    valid_until: datetime,
    available_coins: Sequence[Coin],
    public_key: bytes,
    receiver_address: str,
    network_id: str = "undeployed"
) -> Transaction:
    """
    Build an unsigned resource-generation transaction.

    The result always has exactly one segment, RESOURCE_GENERATION_SEGMENT.
    Only primary-token coins owned by public_key are registered; with none
    the intent has an empty-input offer and is still signable.

    Args:
        valid_from: Start of the registration window
        valid_until: End of the registration window
        available_coins: Candidate coins of the wallet
        public_key: Compressed public key owning the coins
        receiver_address: Address of the resource sub-wallet credited
        network_id: Network the transaction is built for

    Returns:
        Unsigned transaction

    Raises:
        ValueError: If the window is empty
    """
    start = int(valid_from.timestamp())
    end = int(valid_until.timestamp())
    if end <= start:
        raise ValueError("valid_until must be later than valid_from")

    owner_address = address_from_public_key(public_key)
    coins = [
        c for c in available_coins
        if c.owner == public_key and c.token_type == PRIMARY_TOKEN
    ]
    offer = Offer(
        inputs=tuple(Spend.from_coin(c) for c in coins),
        outputs=tuple(Output(value=c.value, owner=owner_address, token_type=c.token_type) for c in coins)
    )
    registration = ResourceRegistration(
        owner_public_key=public_key,
        receiver_address=receiver_address,
        valid_from=start,
        valid_until=end
    )
    intent = Intent(
        guaranteed_offer=offer,
        ttl=end,
        resource_registration=registration,
        proof_state=ProofState.UNPROVEN
    )

    if not coins:
        logger.warning("Building resource generation transaction without coins")
    else:
        logger.debug("Registering %d coins for resource generation", len(coins))

    return Transaction(intents={RESOURCE_GENERATION_SEGMENT: intent}, network_id=network_id)
