"""
Ledger data model for the confkyc SDK.
"""
from .types import (
    PRIMARY_TOKEN, ProofState, Coin, Spend, Output, Offer, ResourceRegistration,
    Intent, Transaction, TransactionRecipe, FinalizedTransaction
)
from .codec import canonical_json, signature_data

__all__ = [
    'PRIMARY_TOKEN',
    'ProofState',
    'Coin',
    'Spend',
    'Output',
    'Offer',
    'ResourceRegistration',
    'Intent',
    'Transaction',
    'TransactionRecipe',
    'FinalizedTransaction',
    'canonical_json',
    'signature_data',
]
