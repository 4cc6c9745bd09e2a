"""
Transaction building, signing and assembly.
"""
from .signing import sign_intents, add_resource_generation_signature, RESOURCE_GENERATION_SEGMENT
from .resource import build_resource_generation_transaction
from .assembler import TransactionAssembler, AssemblyStage, select_coins, validate_recipe, TRANSFER_SEGMENT

__all__ = [
    'sign_intents',
    'add_resource_generation_signature',
    'RESOURCE_GENERATION_SEGMENT',
    'build_resource_generation_transaction',
    'TransactionAssembler',
    'AssemblyStage',
    'select_coins',
    'validate_recipe',
    'TRANSFER_SEGMENT',
]
