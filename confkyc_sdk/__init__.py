"""
confkyc SDK - wallet core for confidential KYC on a privacy-preserving ledger.
"""
from .version import __version__
from .exceptions import (
    ConfKycError, ConfigError, InvalidSeedError, WaitError, SyncAbortedError, WaitTimeoutError,
    TransactionBuildError, MissingIntentError, FinalizationError, InsufficientFundsError,
    TransportError, TransportConnectionError, TransportResponseError, TransportTimeoutError,
    IdentityStoreError
)
from .keys import Role, DerivedKeySet, BalancingKeys, derive_keys, parse_seed, generate_mnemonic
from .signer import Signer, SignFn, LocalSigner
from .ledger import (
    PRIMARY_TOKEN, ProofState, Coin, Spend, Output, Offer, ResourceRegistration,
    Intent, Transaction, TransactionRecipe, FinalizedTransaction
)
from .models import TransferOutput, FundingTarget, SubmitResult
from .wallet import SubWalletState, WalletState, StateStream, WalletSession, wait_until
from .tx import (
    sign_intents, add_resource_generation_signature, build_resource_generation_transaction,
    TransactionAssembler, AssemblyStage
)
from .transport import LedgerTransport, StubTransport, HttpTransport, get_transport
from .config import NetworkConfig, LOCAL_CONFIG, PREPROD_CONFIG, GENESIS_SEED
from .client import WalletClient
from .provider import WalletProvider

__all__ = [
    '__version__',
    'ConfKycError', 'ConfigError', 'InvalidSeedError', 'WaitError', 'SyncAbortedError',
    'WaitTimeoutError', 'TransactionBuildError', 'MissingIntentError', 'FinalizationError',
    'InsufficientFundsError', 'TransportError', 'TransportConnectionError',
    'TransportResponseError', 'TransportTimeoutError', 'IdentityStoreError',
    'Role', 'DerivedKeySet', 'BalancingKeys', 'derive_keys', 'parse_seed', 'generate_mnemonic',
    'Signer', 'SignFn', 'LocalSigner',
    'PRIMARY_TOKEN', 'ProofState', 'Coin', 'Spend', 'Output', 'Offer', 'ResourceRegistration',
    'Intent', 'Transaction', 'TransactionRecipe', 'FinalizedTransaction',
    'TransferOutput', 'FundingTarget', 'SubmitResult',
    'SubWalletState', 'WalletState', 'StateStream', 'WalletSession', 'wait_until',
    'sign_intents', 'add_resource_generation_signature', 'build_resource_generation_transaction',
    'TransactionAssembler', 'AssemblyStage',
    'LedgerTransport', 'StubTransport', 'HttpTransport', 'get_transport',
    'NetworkConfig', 'LOCAL_CONFIG', 'PREPROD_CONFIG', 'GENESIS_SEED',
    'WalletClient', 'WalletProvider',
]
