"""
Encryption of locally stored identity records.
"""
import base64
import json
import logging
import os
from typing import Any, Dict, Optional

import keyring
import keyring.errors
import nacl.exceptions
import nacl.secret
import nacl.utils

from ..exceptions import IdentityStoreError

SERVICE_NAME = "confkyc-sdk"
KEY_NAME = "pii-master-key"
MASTER_KEY_ENV = "CONFKYC_MASTER_KEY"

# Module-level cache for the master key
_master_key_cache: Optional[bytes] = None
logger = logging.getLogger(__name__)


def _in_ci() -> bool:
    return os.environ.get("CI") == "true"


def get_master_key() -> bytes:
    """
    Get the 32-byte master key from the OS keyring, or the environment in CI.

    A new key is generated and stored in the keyring on first use.

    Raises:
        IdentityStoreError: If no key is available and none can be stored
    """
    global _master_key_cache

    if _master_key_cache is not None:
        return _master_key_cache

    key = None
    try:
        stored = keyring.get_password(SERVICE_NAME, KEY_NAME)
        if stored:
            key = base64.b64decode(stored)
    except keyring.errors.KeyringError as e:
        logger.debug("Keyring access failed: %s", str(e))

    if not key and _in_ci():
        env_key = os.environ.get(MASTER_KEY_ENV)
        if env_key:
            try:
                key = base64.b64decode(env_key, validate=True)
            except ValueError:
                logger.warning(f"Invalid {MASTER_KEY_ENV} format")

    if not key:
        key = nacl.utils.random(nacl.secret.SecretBox.KEY_SIZE)
        try:
            keyring.set_password(SERVICE_NAME, KEY_NAME, base64.b64encode(key).decode("ascii"))
        except keyring.errors.KeyringError as e:
            if not _in_ci():
                raise IdentityStoreError(
                    f"Failed to store the master key in the OS keyring; set CI=true and {MASTER_KEY_ENV} instead"
                ) from e
            logger.warning(f"Set {MASTER_KEY_ENV} to keep identity records readable across CI runs")

    if len(key) != nacl.secret.SecretBox.KEY_SIZE:
        raise IdentityStoreError(f"Master key must be {nacl.secret.SecretBox.KEY_SIZE} bytes, got {len(key)}")

    _master_key_cache = key
    return key


def clear_key_cache() -> None:
    global _master_key_cache
    _master_key_cache = None


def encrypt_record(data: Dict[str, Any]) -> Dict[str, Any]:
    """Encrypt a JSON-serializable record with libsodium secretbox."""
    box = nacl.secret.SecretBox(get_master_key())
    encrypted = box.encrypt(json.dumps(data).encode("utf-8"))
    return {
        "encrypted": base64.b64encode(encrypted).decode("ascii"),
        "version": 1
    }


def decrypt_record(encrypted_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decrypt a record produced by encrypt_record.

    Raises:
        IdentityStoreError: If the record is malformed or the key is wrong
    """
    box = nacl.secret.SecretBox(get_master_key())
    try:
        encrypted = base64.b64decode(encrypted_data["encrypted"])
        decrypted = box.decrypt(encrypted)
        return json.loads(decrypted.decode("utf-8"))
    except (KeyError, ValueError, nacl.exceptions.CryptoError) as e:
        raise IdentityStoreError(f"Failed to decrypt identity record: {e}") from e
