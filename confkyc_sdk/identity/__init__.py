"""
Identity payloads and local identity stores for the confkyc SDK.
"""
from .payload import PII, IdentityPayload, hash_country, MIN_AGE
from .crypto import encrypt_record, decrypt_record, get_master_key, clear_key_cache
from .store import PIIStore, DeploymentStore

__all__ = [
    'PII',
    'IdentityPayload',
    'hash_country',
    'MIN_AGE',
    'encrypt_record',
    'decrypt_record',
    'get_master_key',
    'clear_key_cache',
    'PIIStore',
    'DeploymentStore',
]
