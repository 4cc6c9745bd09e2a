"""
Hierarchical deterministic derivation of role keys.

BIP-32 private child derivation over secp256k1. The master node and every
intermediate node live in mutable buffers owned by an HDContext; the context
zeroes them when it is cleared, which the context manager does on every exit
path.
"""
import hashlib
import hmac
import logging
from typing import Sequence, Tuple

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from ..exceptions import InvalidSeedError
from .ec_constants import (
    SECP256K1_N, SECP256K1_MIN, SECP256K1_MAX, MASTER_HMAC_KEY,
    HARDENED_OFFSET, PURPOSE, COIN_TYPE
)

logger = logging.getLogger(__name__)


def hardened(index: int) -> int:
    """Return the hardened form of a child index."""
    return index + HARDENED_OFFSET


def role_path(account: int, role: int, index: int) -> Tuple[int, ...]:
    """Derivation path m/44'/2400'/account'/role/index."""
    return (hardened(PURPOSE), hardened(COIN_TYPE), hardened(account), role, index)


def compressed_public_key(secret: bytes) -> bytes:
    """
    Compute the 33-byte compressed secp256k1 public key for a secret scalar.

    Args:
        secret: 32-byte big-endian private scalar

    Returns:
        SEC1 compressed point
    """
    private_key = ec.derive_private_key(int.from_bytes(secret, "big"), ec.SECP256K1())
    return private_key.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)


def _zero(buffer: bytearray) -> None:
    for i in range(len(buffer)):
        buffer[i] = 0


class HDContext:
    """
    Master node of an HD wallet.

    Usage:
        with HDContext(seed) as hd:
            key = hd.derive_key(role_path(0, 3, 0))
    """

    def __init__(self, seed: bytes):
        digest = bytearray(hmac.new(MASTER_HMAC_KEY, seed, hashlib.sha512).digest())
        self._key = digest[:32]
        self._chain_code = digest[32:]
        self._cleared = False
        _zero(digest)

        scalar = int.from_bytes(self._key, "big")
        if not SECP256K1_MIN <= scalar <= SECP256K1_MAX:
            self.clear()
            raise InvalidSeedError("Seed produces an invalid master key")

    def __enter__(self) -> "HDContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()

    @property
    def cleared(self) -> bool:
        return self._cleared

    def clear(self) -> None:
        """Zero the master key and chain code."""
        _zero(self._key)
        _zero(self._chain_code)
        self._cleared = True

    def derive_key(self, path: Sequence[int]) -> bytes:
        """
        Derive the private key at path.

        Args:
            path: Child indices below the master node

        Returns:
            32-byte private key

        Raises:
            InvalidSeedError: If the context was cleared or a child key is invalid
        """
        if self._cleared:
            raise InvalidSeedError("HD context has already been cleared")

        key = bytearray(self._key)
        chain_code = bytearray(self._chain_code)
        try:
            for index in path:
                key, chain_code = self._derive_child(key, chain_code, index)
            return bytes(key)
        finally:
            _zero(key)
            _zero(chain_code)

    @staticmethod
    def _derive_child(key: bytearray, chain_code: bytearray, index: int) -> Tuple[bytearray, bytearray]:
        if index >= HARDENED_OFFSET:
            data = b"\x00" + bytes(key) + index.to_bytes(4, "big")
        else:
            data = compressed_public_key(bytes(key)) + index.to_bytes(4, "big")

        digest = bytearray(hmac.new(bytes(chain_code), data, hashlib.sha512).digest())
        try:
            tweak = int.from_bytes(digest[:32], "big")
            if tweak >= SECP256K1_N:
                raise InvalidSeedError(f"Derivation failed at child index {index}")
            child = (tweak + int.from_bytes(key, "big")) % SECP256K1_N
            if child == 0:
                raise InvalidSeedError(f"Derivation failed at child index {index}")
            return bytearray(child.to_bytes(32, "big")), bytearray(digest[32:])
        finally:
            _zero(key)
            _zero(chain_code)
            _zero(digest)
