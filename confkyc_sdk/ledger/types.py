"""
Data types for transactions on the privacy-preserving ledger.

Intents are immutable; signing produces new Intent values. A Transaction is a
mutable container mapping segment ids to intents so that signing can replace
intents in place.
"""
import hashlib
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

# Raw id of the ledger's primary (unshielded) token
PRIMARY_TOKEN = "00" * 32


class ProofState(str, Enum):
    """Whether the zero-knowledge proofs of an intent are materialized."""
    UNPROVEN = "unproven"
    PRE_PROOF = "pre-proof"
    PROOF = "proof"


@dataclass(frozen=True)
class Coin:
    """An unspent output owned by a wallet."""
    value: int
    owner: bytes
    token_type: str = PRIMARY_TOKEN
    intent_hash: str = ""
    output_no: int = 0
    ctime: Optional[datetime] = None


@dataclass(frozen=True)
class Spend:
    """A coin consumed as an offer input."""
    value: int
    owner: bytes
    token_type: str = PRIMARY_TOKEN
    intent_hash: str = ""
    output_no: int = 0

    @classmethod
    def from_coin(cls, coin: Coin) -> "Spend":
        return cls(
            value=coin.value,
            owner=coin.owner,
            token_type=coin.token_type,
            intent_hash=coin.intent_hash,
            output_no=coin.output_no
        )


@dataclass(frozen=True)
class Output:
    """A new coin created by an offer."""
    value: int
    owner: str
    token_type: str = PRIMARY_TOKEN


@dataclass(frozen=True)
class Offer:
    """
    Ordered spends paired with ordered signatures.

    signatures[i] authorizes inputs[i]; before signing the tuple may be
    shorter than inputs or hold None for unsigned slots.
    """
    inputs: Tuple[Spend, ...] = ()
    outputs: Tuple[Output, ...] = ()
    signatures: Tuple[Optional[bytes], ...] = ()

    def signature_at(self, index: int) -> Optional[bytes]:
        if index < len(self.signatures):
            return self.signatures[index]
        return None

    def add_signatures(self, signatures: Sequence[bytes]) -> "Offer":
        """
        Return a copy carrying one signature per input.

        Raises:
            ValueError: If the number of signatures differs from the number of inputs
        """
        if len(signatures) != len(self.inputs):
            raise ValueError(
                f"Offer has {len(self.inputs)} inputs but {len(signatures)} signatures were given"
            )
        return replace(self, signatures=tuple(signatures))

    @property
    def is_fully_signed(self) -> bool:
        return len(self.signatures) == len(self.inputs) and all(s for s in self.signatures)

    def total_in(self, token_type: str = PRIMARY_TOKEN) -> int:
        return sum(s.value for s in self.inputs if s.token_type == token_type)

    def total_out(self, token_type: str = PRIMARY_TOKEN) -> int:
        return sum(o.value for o in self.outputs if o.token_type == token_type)


@dataclass(frozen=True)
class ResourceRegistration:
    """Registers coins of owner_public_key to generate resource for receiver_address."""
    owner_public_key: bytes
    receiver_address: str
    valid_from: int
    valid_until: int
    signature: Optional[bytes] = None


@dataclass(frozen=True)
class Intent:
    """
    The signable unit of one transaction segment.

    proof_state is a tag only: it is not part of the serialized payload, so
    re-tagging an intent never changes its bytes.
    """
    guaranteed_offer: Optional[Offer] = None
    fallible_offer: Optional[Offer] = None
    actions: bytes = b""
    ttl: Optional[int] = None
    resource_registration: Optional[ResourceRegistration] = None
    proof_state: ProofState = ProofState.UNPROVEN

    def serialize(self) -> bytes:
        """Canonical bytes of the intent, signatures included."""
        from .codec import canonical_json, intent_to_dict
        return canonical_json(intent_to_dict(self))

    @classmethod
    def deserialize(cls, data: bytes, proof_state: ProofState) -> "Intent":
        """Rebuild an intent from serialize() output, tagged proof_state."""
        from .codec import intent_from_bytes
        return intent_from_bytes(data, ProofState(proof_state))

    def with_proof_state(self, proof_state: ProofState) -> "Intent":
        return Intent.deserialize(self.serialize(), proof_state)

    def signature_data(self, segment_id: int) -> bytes:
        """Canonical signing payload of this intent in segment segment_id."""
        from .codec import signature_data
        return signature_data(self, segment_id)


@dataclass
class Transaction:
    """A set of intents keyed by segment id."""
    intents: Dict[int, Intent] = field(default_factory=dict)
    network_id: str = "undeployed"

    def copy(self) -> "Transaction":
        return Transaction(intents=dict(self.intents), network_id=self.network_id)

    def serialize(self) -> bytes:
        from .codec import canonical_json, transaction_to_dict
        return canonical_json(transaction_to_dict(self))

    def transaction_hash(self) -> str:
        return hashlib.sha256(self.serialize()).hexdigest()

    def offers(self):
        """Yield (segment_id, offer) for every present offer."""
        for segment_id in sorted(self.intents):
            intent = self.intents[segment_id]
            for offer in (intent.guaranteed_offer, intent.fallible_offer):
                if offer is not None:
                    yield segment_id, offer


@dataclass
class TransactionRecipe:
    """Base transaction plus the optional balancing transaction produced by balancing."""
    base_transaction: Transaction
    balancing_transaction: Optional[Transaction] = None

    def transactions(self) -> Tuple[Transaction, ...]:
        if self.balancing_transaction is None:
            return (self.base_transaction,)
        return (self.base_transaction, self.balancing_transaction)


@dataclass(frozen=True)
class FinalizedTransaction:
    """A bound transaction ready for submission."""
    transaction_id: str
    recipe: TransactionRecipe
    finalized_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
