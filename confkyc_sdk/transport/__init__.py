"""
Ledger transports for the confkyc SDK.
"""
import logging

from .base import LedgerTransport
from .stub import StubTransport, pool_address
from .http import HttpTransport, validate_url

__all__ = [
    'LedgerTransport',
    'StubTransport',
    'HttpTransport',
    'pool_address',
    'validate_url',
    'get_transport',
]

logger = logging.getLogger(__name__)


def get_transport(config) -> LedgerTransport:
    """
    Pick a transport for a NetworkConfig.

    The HTTP transport is used when the configuration names a wallet bridge;
    otherwise an in-memory stub ledger is returned.
    """
    if config.bridge_url:
        logger.debug(f"Using wallet bridge at {config.bridge_url}")
        return HttpTransport(config.bridge_url, poll_interval=min(config.sync_interval, 2.0) or 2.0)

    logger.warning("No wallet bridge configured, using the in-memory stub ledger")
    return StubTransport(network_id=config.network_id)
