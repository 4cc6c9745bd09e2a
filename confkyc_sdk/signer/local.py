"""
Local signer backed by an in-memory secret key.
"""
import logging
from typing import Union

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak, to_checksum_address

from ..keys.hd import compressed_public_key

logger = logging.getLogger(__name__)


def address_from_public_key(public_key: bytes) -> str:
    """
    Address of the holder of a compressed secp256k1 public key.

    Matches LocalSigner.address for the corresponding secret key.
    """
    point = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(public_key))
    uncompressed = point.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    return to_checksum_address(keccak(uncompressed[1:])[-20:])


class LocalSigner:
    """
    Signs payloads with the public pool key of a wallet.

    Signatures are deterministic (RFC 6979) 65-byte recoverable ECDSA
    signatures, so the same key and payload always give the same bytes.
    """

    def __init__(self, secret_key: Union[bytes, str]):
        """
        Initialize the signer

        Args:
            secret_key: 32-byte secret key, raw or hex encoded
        """
        if isinstance(secret_key, str):
            secret_key = bytes.fromhex(secret_key[2:] if secret_key.startswith("0x") else secret_key)
        if len(secret_key) != 32:
            raise ValueError(f"Secret key must be 32 bytes, got {len(secret_key)}")

        self._account = Account.from_key(secret_key)
        self.address: str = self._account.address
        self.public_key: bytes = compressed_public_key(secret_key)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address!r})"

    def sign_data(self, payload: bytes) -> bytes:
        """
        Sign a payload.

        Args:
            payload: Canonical signing payload

        Returns:
            65-byte signature
        """
        message = encode_defunct(primitive=bytes(payload))
        signed = self._account.sign_message(message)
        logger.debug("Signed %d-byte payload with %s…", len(payload), self.address[:10])
        return bytes(signed.signature)

    def __call__(self, payload: bytes) -> bytes:
        return self.sign_data(payload)

    @staticmethod
    def recover(payload: bytes, signature: bytes) -> str:
        """
        Recover the address that produced signature over payload.

        Returns:
            Checksummed address of the signer
        """
        return Account.recover_message(encode_defunct(primitive=bytes(payload)), signature=signature)
