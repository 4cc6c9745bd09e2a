"""
Seed material parsing.

A wallet can be restored from:

- raw bytes (32 or 64 bytes),
- a hex string of 64 or 128 characters,
- a 12 or 24 word BIP-39 English mnemonic.

Everything is normalized to the 64-byte seed the HD derivation expects.
32-byte seeds are right-padded with zero bytes, so the 32-byte form and its
zero-padded 64-byte form restore the same wallet.
"""
import logging
import re
from typing import Union

from mnemonic import Mnemonic

from ..exceptions import InvalidSeedError

logger = logging.getLogger(__name__)

SHORT_SEED_LENGTH = 32
SEED_LENGTH = 64
MNEMONIC_WORD_COUNTS = (12, 24)

_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]+$")
_mnemonic = Mnemonic("english")

SeedInput = Union[str, bytes, bytearray]


def generate_mnemonic(words: int = 12) -> str:
    """
    Create a new BIP-39 English mnemonic.

    Args:
        words: Number of words, 12 or 24

    Returns:
        Space separated mnemonic phrase

    Raises:
        ValueError: If words is not 12 or 24
    """
    if words not in MNEMONIC_WORD_COUNTS:
        raise ValueError("words must be 12 or 24")
    strength = 128 if words == 12 else 256
    return _mnemonic.generate(strength=strength)


def is_mnemonic(value: str) -> bool:
    """Check whether value is a valid 12/24 word English mnemonic."""
    words = value.split()
    if len(words) not in MNEMONIC_WORD_COUNTS:
        return False
    return bool(_mnemonic.check(" ".join(words)))


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """Convert a mnemonic to its 64-byte BIP-39 seed."""
    if not is_mnemonic(phrase):
        raise InvalidSeedError("Invalid mnemonic: expected 12 or 24 valid BIP-39 words")
    return bytes(_mnemonic.to_seed(" ".join(phrase.split()), passphrase=passphrase))


def _normalize_length(raw: bytes) -> bytes:
    if len(raw) == SHORT_SEED_LENGTH:
        return raw + b"\x00" * (SEED_LENGTH - SHORT_SEED_LENGTH)
    if len(raw) == SEED_LENGTH:
        return raw
    raise InvalidSeedError(
        f"Invalid seed length {len(raw)}: expected {SHORT_SEED_LENGTH} or {SEED_LENGTH} bytes"
    )


def parse_seed(value: SeedInput) -> bytes:
    """
    Normalize seed material to a 64-byte seed.

    Args:
        value: Raw seed bytes, a hex string or a mnemonic phrase

    Returns:
        64-byte seed

    Raises:
        InvalidSeedError: If the input is none of the accepted forms
    """
    if isinstance(value, (bytes, bytearray)):
        return _normalize_length(bytes(value))

    if not isinstance(value, str):
        raise InvalidSeedError(f"Unsupported seed type: {type(value).__name__}")

    trimmed = value.strip()
    if len(trimmed.split()) in MNEMONIC_WORD_COUNTS:
        logger.debug("Parsing seed as %d-word mnemonic", len(trimmed.split()))
        return mnemonic_to_seed(trimmed)

    if _HEX_RE.match(trimmed):
        if trimmed.startswith("0x"):
            trimmed = trimmed[2:]
        if len(trimmed) not in (SHORT_SEED_LENGTH * 2, SEED_LENGTH * 2):
            raise InvalidSeedError(
                f"Invalid hex seed of {len(trimmed)} characters: expected 64 or 128"
            )
        return _normalize_length(bytes.fromhex(trimmed))

    raise InvalidSeedError(
        "Invalid input: expected a 12/24-word mnemonic or a 64/128-character hex seed"
    )
