"""
Waits on wallet state.

wait_until is the one generic combinator: subscribe, throttle, take the first
snapshot matching a predicate, detach. The wait_for_* helpers specialize it
for the conditions a wallet bootstrap needs.
"""
import asyncio
import logging
from contextlib import aclosing
from datetime import datetime
from typing import Callable, Optional, TypeVar

from .._rate_limited_log import rate_limited_log
from ..exceptions import WaitError, SyncAbortedError, WaitTimeoutError
from ..ledger.types import PRIMARY_TOKEN
from .state import WalletState
from .stream import StateStream, Subscription, throttle

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Sampling intervals for bursts of snapshots, in seconds
SYNC_INTERVAL = 5.0
FUNDS_INTERVAL = 10.0


async def _first_match(
    subscription: Subscription[T],
    predicate: Callable[[T], bool],
    interval: float,
    description: str
) -> T:
    async with aclosing(throttle(subscription, interval)) as snapshots:
        while True:
            # Only failures of the stream itself abort the wait; predicate errors propagate as raised
            try:
                snapshot = await anext(snapshots)
            except StopAsyncIteration:
                break
            except WaitError:
                raise
            except Exception as e:
                logger.error(f"State stream failed while waiting for {description}: {e}")
                raise SyncAbortedError(f"State stream failed while waiting for {description}: {e}") from e

            if predicate(snapshot):
                return snapshot
            rate_limited_log(f"Waiting for {description}", level="debug", logger_instance=logger)

    raise SyncAbortedError(f"State stream closed before {description}")


async def wait_until(
    stream: StateStream[T],
    predicate: Callable[[T], bool],
    *,
    interval: float = 0.0,
    timeout: Optional[float] = None,
    description: str = "condition"
) -> T:
    """
    Suspend until the stream emits a snapshot satisfying predicate.

    Args:
        stream: Stream to watch
        predicate: Condition on a snapshot
        interval: Throttle window in seconds (0 disables throttling)
        timeout: Optional deadline in seconds
        description: Human readable condition, used in logs and errors

    Returns:
        The first qualifying snapshot

    Raises:
        SyncAbortedError: If the stream ends or fails first
        WaitTimeoutError: If the deadline passes first
    """
    subscription = stream.subscribe()
    try:
        waiter = _first_match(subscription, predicate, interval, description)
        if timeout is None:
            return await waiter
        try:
            return await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {timeout}s waiting for {description}")
            raise WaitTimeoutError(
                f"Timed out after {timeout}s waiting for {description}", timeout=timeout
            )
    finally:
        subscription.close()


async def wait_for_sync(
    stream: StateStream[WalletState],
    *,
    interval: float = SYNC_INTERVAL,
    timeout: Optional[float] = None
) -> WalletState:
    """Wait until every sub-wallet is synced."""
    return await wait_until(
        stream, lambda s: s.is_synced,
        interval=interval, timeout=timeout, description="wallet sync"
    )


async def wait_for_funds(
    stream: StateStream[WalletState],
    token_type: str = PRIMARY_TOKEN,
    *,
    interval: float = FUNDS_INTERVAL,
    timeout: Optional[float] = None
) -> int:
    """
    Wait until the wallet is synced and holds a positive balance of token_type.

    Returns:
        The observed balance
    """
    state = await wait_until(
        stream, lambda s: s.is_synced and s.balance(token_type) > 0,
        interval=interval, timeout=timeout, description=f"funds of token {token_type[:8]}…"
    )
    return state.balance(token_type)


async def wait_for_resource(
    stream: StateStream[WalletState],
    *,
    now: Optional[Callable[[], datetime]] = None,
    interval: float = FUNDS_INTERVAL,
    timeout: Optional[float] = None
) -> int:
    """
    Wait until the wallet is synced and its resource balance is positive.

    Args:
        now: Clock used to evaluate the accruing resource balance

    Returns:
        The observed resource balance
    """
    clock = now or (lambda: None)
    state = await wait_until(
        stream, lambda s: s.is_synced and s.resource_balance(clock()) > 0,
        interval=interval, timeout=timeout, description="resource balance"
    )
    return state.resource_balance(clock())
