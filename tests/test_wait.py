"""
Tests for waits on wallet state.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from confkyc_sdk.exceptions import SyncAbortedError, WaitTimeoutError
from confkyc_sdk.keys import Role
from confkyc_sdk.ledger.types import PRIMARY_TOKEN
from confkyc_sdk.wallet.state import SubWalletState, WalletState
from confkyc_sdk.wallet.stream import StateStream
from confkyc_sdk.wallet.wait import wait_until, wait_for_sync, wait_for_funds, wait_for_resource

T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def wallet_state(synced=True, balance=0, resource=0, rate=0):
    return WalletState(
        confidential=SubWalletState(role=Role.CONFIDENTIAL_POOL, is_synced=synced),
        public=SubWalletState(role=Role.PUBLIC_POOL, is_synced=synced, balances={PRIMARY_TOKEN: balance}),
        resource=SubWalletState(
            role=Role.RESOURCE_POOL, is_synced=synced,
            resource_value=resource, resource_rate=rate, as_of=T0
        ),
    )


async def started(coro):
    """Schedule coro and let it subscribe before returning its task."""
    task = asyncio.create_task(coro)
    await asyncio.sleep(0)
    return task


class TestWaitUntil:
    """Tests for the generic wait combinator."""

    @pytest.mark.asyncio
    async def test_resolves_on_first_match_under_throttle(self):
        stream = StateStream()
        seen = []

        def predicate(snapshot):
            seen.append(snapshot)
            return snapshot["is_synced"]

        task = await started(wait_until(stream, predicate, interval=0.05))
        stream.publish({"is_synced": False, "n": 1})
        stream.publish({"is_synced": False, "n": 2})
        stream.publish({"is_synced": True, "n": 3})

        result = await asyncio.wait_for(task, 1)

        assert result == {"is_synced": True, "n": 3}
        # the burst collapses to its leading and trailing snapshots
        assert [s["n"] for s in seen] == [1, 3]

    @pytest.mark.asyncio
    async def test_resolves_once_and_detaches(self):
        stream = StateStream()
        calls = []

        def predicate(snapshot):
            calls.append(snapshot)
            return snapshot >= 2

        task = await started(wait_until(stream, predicate))
        assert stream.subscriber_count == 1
        for value in (1, 2):
            stream.publish(value)
        assert await task == 2

        assert stream.subscriber_count == 0
        stream.publish(3)
        stream.publish(4)
        await asyncio.sleep(0)
        assert calls == [1, 2]

    @pytest.mark.asyncio
    async def test_already_satisfied(self):
        stream = StateStream()
        stream.publish(wallet_state(synced=True))
        state = await wait_until(stream, lambda s: s.is_synced, interval=5)
        assert state.is_synced

    @pytest.mark.asyncio
    async def test_timeout(self):
        stream = StateStream()
        stream.publish(1)

        with pytest.raises(WaitTimeoutError) as excinfo:
            await wait_until(stream, lambda s: s > 1, timeout=0.05)

        assert excinfo.value.timeout == 0.05
        assert stream.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_stream_closed_first(self):
        stream = StateStream()
        task = await started(wait_until(stream, lambda s: False, description="never"))
        stream.publish(1)
        stream.close()

        with pytest.raises(SyncAbortedError) as excinfo:
            await task
        assert "never" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_stream_failed_first(self):
        stream = StateStream()
        task = await started(wait_until(stream, lambda s: False))
        stream.fail(ConnectionError("indexer went away"))

        with pytest.raises(SyncAbortedError) as excinfo:
            await task
        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert stream.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_predicate_error_propagates_unwrapped(self):
        stream = StateStream()

        def predicate(snapshot):
            raise ValueError(f"cannot judge {snapshot}")

        task = await started(wait_until(stream, predicate))
        stream.publish(7)

        with pytest.raises(ValueError) as excinfo:
            await task
        assert "cannot judge 7" in str(excinfo.value)
        assert not isinstance(excinfo.value, SyncAbortedError)
        assert stream.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_cancel_detaches(self):
        stream = StateStream()
        task = await started(wait_until(stream, lambda s: False))
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert stream.subscriber_count == 0


class TestWalletWaits:
    """Tests for the wallet-specific waits."""

    @pytest.mark.asyncio
    async def test_wait_for_sync(self):
        stream = StateStream()
        task = await started(wait_for_sync(stream, interval=0))
        stream.publish(wallet_state(synced=False))
        stream.publish(wallet_state(synced=True, balance=3))
        state = await asyncio.wait_for(task, 1)
        assert state.is_synced
        assert state.balance() == 3

    @pytest.mark.asyncio
    async def test_wait_for_funds_requires_sync(self):
        stream = StateStream()
        task = await started(wait_for_funds(stream, interval=0))
        stream.publish(wallet_state(synced=False, balance=10))
        await asyncio.sleep(0)
        assert not task.done()
        stream.publish(wallet_state(synced=True, balance=10))
        assert await asyncio.wait_for(task, 1) == 10

    @pytest.mark.asyncio
    async def test_wait_for_funds_other_token(self):
        stream = StateStream()
        stream.publish(wallet_state(synced=True, balance=10))
        with pytest.raises(WaitTimeoutError):
            await wait_for_funds(stream, "ff" * 32, interval=0, timeout=0.05)

    @pytest.mark.asyncio
    async def test_wait_for_resource_uses_clock(self):
        stream = StateStream()
        stream.publish(wallet_state(synced=True, resource=0, rate=10))

        balance = await wait_for_resource(stream, now=lambda: T0 + timedelta(seconds=2), interval=0)
        assert balance == 20

    @pytest.mark.asyncio
    async def test_wait_for_resource_zero_balance_times_out(self):
        stream = StateStream()
        stream.publish(wallet_state(synced=True, resource=0, rate=10))
        with pytest.raises(WaitTimeoutError):
            await wait_for_resource(stream, now=lambda: T0, interval=0, timeout=0.05)


class TestResourceAccrual:
    """Tests for SubWalletState.resource_balance."""

    def test_static_balance(self):
        state = SubWalletState(role=Role.RESOURCE_POOL, resource_value=5)
        assert state.resource_balance(T0) == 5

    def test_accrues_and_caps(self):
        state = SubWalletState(
            role=Role.RESOURCE_POOL, resource_value=5, resource_rate=3, resource_cap=20, as_of=T0
        )
        assert state.resource_balance(T0 + timedelta(seconds=2)) == 11
        assert state.resource_balance(T0 + timedelta(seconds=100)) == 20
        # clocks behind as_of do not reduce the balance
        assert state.resource_balance(T0 - timedelta(seconds=10)) == 5
