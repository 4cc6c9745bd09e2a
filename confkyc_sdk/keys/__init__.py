"""
Key derivation for the confkyc SDK.

This module turns one seed into the three independent role keys a wallet
session needs: the confidential (shielded) pool key, the public (unshielded)
pool key and the resource (fee metering) pool key.
"""
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from collections.abc import Mapping
from typing import Dict, Iterator, Sequence

from ..exceptions import InvalidSeedError
from .hd import HDContext, role_path, compressed_public_key
from .seed import SeedInput, parse_seed, generate_mnemonic, is_mnemonic, mnemonic_to_seed

__all__ = [
    'Role',
    'DerivedKeySet',
    'BalancingKeys',
    'derive_keys',
    'parse_seed',
    'generate_mnemonic',
    'is_mnemonic',
    'mnemonic_to_seed',
    'compressed_public_key',
    'DEFAULT_ROLES',
]

logger = logging.getLogger(__name__)


class Role(IntEnum):
    """Role selectors in the derivation path."""
    PUBLIC_POOL = 0
    RESOURCE_POOL = 2
    CONFIDENTIAL_POOL = 3


DEFAULT_ROLES = (Role.CONFIDENTIAL_POOL, Role.PUBLIC_POOL, Role.RESOURCE_POOL)


@dataclass(frozen=True)
class DerivedKeySet(Mapping):
    """
    Role keys derived from one seed.

    Attributes:
        account: Account index used in the derivation path
        index: Key index used in the derivation path
        secrets: Mapping of role to 32-byte secret key (never shown in repr)
    """
    account: int
    index: int
    secrets: Dict[Role, bytes] = field(repr=False)

    def __getitem__(self, role: Role) -> bytes:
        return self.secrets[role]

    def __iter__(self) -> Iterator[Role]:
        return iter(self.secrets)

    def __len__(self) -> int:
        return len(self.secrets)

    @property
    def confidential_pool(self) -> bytes:
        return self.secrets[Role.CONFIDENTIAL_POOL]

    @property
    def public_pool(self) -> bytes:
        return self.secrets[Role.PUBLIC_POOL]

    @property
    def resource_pool(self) -> bytes:
        return self.secrets[Role.RESOURCE_POOL]

    def balancing_keys(self) -> "BalancingKeys":
        return BalancingKeys(confidential=self.confidential_pool, resource=self.resource_pool)


@dataclass(frozen=True)
class BalancingKeys:
    """Secret keys a transport needs to balance a transaction (fees and shielded inputs)."""
    confidential: bytes = field(repr=False)
    resource: bytes = field(repr=False)


def derive_keys(
    seed: SeedInput,
    account: int = 0,
    index: int = 0,
    roles: Sequence[Role] = DEFAULT_ROLES
) -> DerivedKeySet:
    """
    Derive the role keys of a wallet.

    Args:
        seed: Seed bytes, hex string or mnemonic
        account: Account index (hardened in the path)
        index: Key index under each role

    Returns:
        DerivedKeySet with one key per role

    Raises:
        InvalidSeedError: If the seed is malformed or derivation fails
    """
    seed_bytes = parse_seed(seed)
    keys = {}
    with HDContext(seed_bytes) as hd:
        for role in roles:
            keys[Role(role)] = hd.derive_key(role_path(account, int(role), index))

    if len(set(keys.values())) != len(keys):
        raise InvalidSeedError("Derived role keys are not independent")

    logger.debug("Derived %d role keys at account %d", len(keys), account)
    return DerivedKeySet(account=account, index=index, secrets=keys)
