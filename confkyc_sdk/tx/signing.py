"""
Signing of transaction intents.

sign_intents co-signs every segment of a transaction. It is safe to call
repeatedly and by several parties in turn: a signature slot that is already
filled is never overwritten, so the first signer of each input wins.
"""
import logging
from dataclasses import replace
from typing import List, Optional

from ..exceptions import MissingIntentError
from ..ledger.types import Intent, Offer, ProofState, Transaction
from ..signer import SignFn

logger = logging.getLogger(__name__)

# Segment id of the single intent in a resource-generation transaction
RESOURCE_GENERATION_SEGMENT = 1


def _merge_signatures(offer: Optional[Offer], signature: bytes) -> Optional[Offer]:
    if offer is None:
        return None
    signatures: List[bytes] = [
        offer.signature_at(i) or signature for i in range(len(offer.inputs))
    ]
    return offer.add_signatures(signatures)


def sign_intents(transaction: Transaction, sign_fn: SignFn, target_proof_state: ProofState) -> None:
    """
    Sign every intent of transaction in place.

    For each segment the intent is cloned from its serialized bytes and tagged
    target_proof_state, its signing payload is signed once, and every unsigned
    input of its guaranteed and fallible offers receives that signature.

    Args:
        transaction: Transaction whose intents are replaced by signed clones
        sign_fn: Signs a payload and returns one signature
        target_proof_state: Proof state tag of the signed intents
    """
    if not transaction.intents:
        return

    for segment_id in list(transaction.intents):
        intent = transaction.intents.get(segment_id)
        if intent is None:
            continue

        cloned = Intent.deserialize(intent.serialize(), target_proof_state)
        signature = sign_fn(cloned.signature_data(segment_id))

        cloned = replace(
            cloned,
            guaranteed_offer=_merge_signatures(cloned.guaranteed_offer, signature),
            fallible_offer=_merge_signatures(cloned.fallible_offer, signature)
        )
        transaction.intents[segment_id] = cloned
        logger.debug("Signed segment %d as %s", segment_id, target_proof_state.value)


def add_resource_generation_signature(transaction: Transaction, signature: bytes) -> Transaction:
    """
    Attach the single signature of a resource-generation transaction.

    Unlike sign_intents this takes one ready-made signature for the one
    segment of the transaction. It signs the resource registration and every
    unsigned spend of the segment's offers, all of which belong to the same key.

    Args:
        transaction: Resource-generation transaction
        signature: Signature over the segment's signing payload

    Returns:
        A new transaction carrying the signature

    Raises:
        MissingIntentError: If the segment or its registration is absent
    """
    intent = transaction.intents.get(RESOURCE_GENERATION_SEGMENT)
    if intent is None:
        raise MissingIntentError(
            "Resource generation intent not found", segment_id=RESOURCE_GENERATION_SEGMENT
        )
    if intent.resource_registration is None:
        raise MissingIntentError(
            "Resource generation intent has no registration", segment_id=RESOURCE_GENERATION_SEGMENT
        )

    registration = intent.resource_registration
    if registration.signature is None:
        registration = replace(registration, signature=signature)

    signed = replace(
        intent,
        resource_registration=registration,
        guaranteed_offer=_merge_signatures(intent.guaranteed_offer, signature),
        fallible_offer=_merge_signatures(intent.fallible_offer, signature)
    )
    result = transaction.copy()
    result.intents[RESOURCE_GENERATION_SEGMENT] = signed
    return result
