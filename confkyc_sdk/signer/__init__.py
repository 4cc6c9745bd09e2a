"""
Signer interfaces for the confkyc SDK.
"""
from typing import Callable, Protocol

# Signs a canonical payload and returns one signature value
SignFn = Callable[[bytes], bytes]


class Signer(Protocol):
    """Protocol for role-specific signers"""
    address: str
    public_key: bytes

    def sign_data(self, payload: bytes) -> bytes:
        """Sign payload bytes and return the signature"""
        ...


from .local import LocalSigner  # noqa: E402

__all__ = ['Signer', 'SignFn', 'LocalSigner']
