"""
Canonical encoding of ledger types.

Everything is encoded as compact JSON with sorted keys and hex-encoded byte
strings, so the same value always yields the same bytes no matter which party
encodes it.
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

from .types import (
    PRIMARY_TOKEN, Coin, Spend, Output, Offer, ResourceRegistration, Intent, ProofState,
    Transaction, TransactionRecipe, FinalizedTransaction
)

SIGNATURE_DOMAIN = b"confkyc:intent-signature:v1"


def canonical_json(value: Any) -> bytes:
    """Encode value as canonical JSON bytes."""
    return json.dumps(value, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _hex(value: Optional[bytes]) -> Optional[str]:
    return value.hex() if value is not None else None


def _unhex(value: Optional[str]) -> Optional[bytes]:
    return bytes.fromhex(value) if value is not None else None


def coin_to_dict(coin: Coin) -> Dict[str, Any]:
    return {
        "value": coin.value,
        "owner": coin.owner.hex(),
        "token_type": coin.token_type,
        "intent_hash": coin.intent_hash,
        "output_no": coin.output_no,
        "ctime": coin.ctime.isoformat() if coin.ctime else None,
    }


def coin_from_dict(data: Dict[str, Any]) -> Coin:
    ctime = data.get("ctime")
    return Coin(
        value=int(data["value"]),
        owner=bytes.fromhex(data["owner"]),
        token_type=data.get("token_type", PRIMARY_TOKEN),
        intent_hash=data.get("intent_hash", ""),
        output_no=int(data.get("output_no", 0)),
        ctime=datetime.fromisoformat(ctime) if ctime else None
    )


def _spend_to_dict(spend: Spend) -> Dict[str, Any]:
    return {
        "value": spend.value,
        "owner": spend.owner.hex(),
        "token_type": spend.token_type,
        "intent_hash": spend.intent_hash,
        "output_no": spend.output_no,
    }


def _output_to_dict(output: Output) -> Dict[str, Any]:
    return {"value": output.value, "owner": output.owner, "token_type": output.token_type}


def offer_to_dict(offer: Offer, include_signatures: bool = True) -> Dict[str, Any]:
    result = {
        "inputs": [_spend_to_dict(s) for s in offer.inputs],
        "outputs": [_output_to_dict(o) for o in offer.outputs],
    }
    if include_signatures:
        result["signatures"] = [_hex(s) for s in offer.signatures]
    return result


def offer_from_dict(data: Dict[str, Any]) -> Offer:
    return Offer(
        inputs=tuple(
            Spend(
                value=int(s["value"]),
                owner=bytes.fromhex(s["owner"]),
                token_type=s["token_type"],
                intent_hash=s.get("intent_hash", ""),
                output_no=int(s.get("output_no", 0))
            )
            for s in data.get("inputs", [])
        ),
        outputs=tuple(
            Output(value=int(o["value"]), owner=o["owner"], token_type=o["token_type"])
            for o in data.get("outputs", [])
        ),
        signatures=tuple(_unhex(s) for s in data.get("signatures", []))
    )


def _registration_to_dict(reg: ResourceRegistration, include_signatures: bool) -> Dict[str, Any]:
    result = {
        "owner_public_key": reg.owner_public_key.hex(),
        "receiver_address": reg.receiver_address,
        "valid_from": reg.valid_from,
        "valid_until": reg.valid_until,
    }
    if include_signatures:
        result["signature"] = _hex(reg.signature)
    return result


def _registration_from_dict(data: Dict[str, Any]) -> ResourceRegistration:
    return ResourceRegistration(
        owner_public_key=bytes.fromhex(data["owner_public_key"]),
        receiver_address=data["receiver_address"],
        valid_from=int(data["valid_from"]),
        valid_until=int(data["valid_until"]),
        signature=_unhex(data.get("signature"))
    )


def intent_to_dict(intent: Intent, include_signatures: bool = True) -> Dict[str, Any]:
    """
    Encode an intent.

    The proof state is not encoded; it travels beside the payload.
    """
    return {
        "guaranteed_offer": (
            offer_to_dict(intent.guaranteed_offer, include_signatures)
            if intent.guaranteed_offer is not None else None
        ),
        "fallible_offer": (
            offer_to_dict(intent.fallible_offer, include_signatures)
            if intent.fallible_offer is not None else None
        ),
        "actions": intent.actions.hex(),
        "ttl": intent.ttl,
        "resource_registration": (
            _registration_to_dict(intent.resource_registration, include_signatures)
            if intent.resource_registration is not None else None
        ),
    }


def intent_from_dict(data: Dict[str, Any], proof_state: ProofState) -> Intent:
    guaranteed = data.get("guaranteed_offer")
    fallible = data.get("fallible_offer")
    registration = data.get("resource_registration")
    return Intent(
        guaranteed_offer=offer_from_dict(guaranteed) if guaranteed is not None else None,
        fallible_offer=offer_from_dict(fallible) if fallible is not None else None,
        actions=bytes.fromhex(data.get("actions", "")),
        ttl=data.get("ttl"),
        resource_registration=_registration_from_dict(registration) if registration is not None else None,
        proof_state=proof_state
    )


def intent_from_bytes(data: bytes, proof_state: ProofState) -> Intent:
    try:
        decoded = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid intent encoding: {e}")
    return intent_from_dict(decoded, proof_state)


def signature_data(intent: Intent, segment_id: int) -> bytes:
    """
    Signing payload for intent in segment_id.

    Signatures and the proof-state tag are excluded, so every co-signer
    computes the same payload regardless of who signed first.
    """
    body = canonical_json(intent_to_dict(intent, include_signatures=False))
    return SIGNATURE_DOMAIN + segment_id.to_bytes(2, "big") + body


def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "network_id": tx.network_id,
        "intents": {
            str(segment_id): {
                "proof_state": intent.proof_state.value,
                "intent": intent_to_dict(intent),
            }
            for segment_id, intent in tx.intents.items()
        },
    }


def transaction_from_dict(data: Dict[str, Any]) -> Transaction:
    intents = {}
    for segment_id, entry in data.get("intents", {}).items():
        intents[int(segment_id)] = intent_from_dict(entry["intent"], ProofState(entry["proof_state"]))
    return Transaction(intents=intents, network_id=data.get("network_id", "undeployed"))


def recipe_to_dict(recipe: TransactionRecipe) -> Dict[str, Any]:
    return {
        "base_transaction": transaction_to_dict(recipe.base_transaction),
        "balancing_transaction": (
            transaction_to_dict(recipe.balancing_transaction)
            if recipe.balancing_transaction is not None else None
        ),
    }


def recipe_from_dict(data: Dict[str, Any]) -> TransactionRecipe:
    balancing = data.get("balancing_transaction")
    return TransactionRecipe(
        base_transaction=transaction_from_dict(data["base_transaction"]),
        balancing_transaction=transaction_from_dict(balancing) if balancing is not None else None
    )


def finalized_to_dict(finalized: FinalizedTransaction) -> Dict[str, Any]:
    return {
        "transaction_id": finalized.transaction_id,
        "recipe": recipe_to_dict(finalized.recipe),
        "finalized_at": finalized.finalized_at.isoformat(),
    }


def finalized_from_dict(data: Dict[str, Any]) -> FinalizedTransaction:
    kwargs = {}
    if data.get("finalized_at"):
        kwargs["finalized_at"] = datetime.fromisoformat(data["finalized_at"])
    return FinalizedTransaction(
        transaction_id=data["transaction_id"],
        recipe=recipe_from_dict(data["recipe"]),
        **kwargs
    )
