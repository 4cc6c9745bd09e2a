"""
Wallet synchronization for the confkyc SDK.
"""
from .state import SubWalletState, WalletState
from .stream import StateStream, Subscription, throttle
from .wait import wait_until, wait_for_sync, wait_for_funds, wait_for_resource
from .session import SubWallet, WalletSession

__all__ = [
    'SubWalletState',
    'WalletState',
    'StateStream',
    'Subscription',
    'throttle',
    'wait_until',
    'wait_for_sync',
    'wait_for_funds',
    'wait_for_resource',
    'SubWallet',
    'WalletSession',
]
