"""
Pytest fixtures for the confkyc SDK tests.
"""
import hashlib
from datetime import datetime, timezone

import pytest

from confkyc_sdk import _rate_limited_log
from confkyc_sdk.config import NetworkConfig, GENESIS_SEED
from confkyc_sdk.keys import derive_keys
from confkyc_sdk.ledger.types import Coin, Spend, Output, Offer, Intent, Transaction, PRIMARY_TOKEN
from confkyc_sdk.signer.local import LocalSigner
from confkyc_sdk.transport.stub import StubTransport

# Constants for testing
TEST_SEED = "ab" * 32
OTHER_SEED = "cd" * 32
TEST_ADDRESS = "0x1234567890123456789012345678901234567890"


@pytest.fixture(autouse=True)
def _reset_rate_limited_log():
    _rate_limited_log.reset()
    yield
    _rate_limited_log.reset()


@pytest.fixture
def test_keys():
    return derive_keys(TEST_SEED)


@pytest.fixture
def test_signer(test_keys):
    return LocalSigner(test_keys.public_pool)


@pytest.fixture
def other_signer():
    return LocalSigner(derive_keys(OTHER_SEED).public_pool)


@pytest.fixture
def genesis_signer():
    return LocalSigner(derive_keys(GENESIS_SEED).public_pool)


@pytest.fixture
def stub():
    return StubTransport()


@pytest.fixture
def fast_config():
    """Local network configuration without throttling"""
    return NetworkConfig(
        bootstrap_seed=GENESIS_SEED,
        sync_interval=0,
        funds_interval=0,
        wait_timeout=5
    )


def make_coin(owner: bytes, value: int, n: int = 0, token_type: str = PRIMARY_TOKEN) -> Coin:
    """Deterministic coin for tests"""
    return Coin(
        value=value,
        owner=owner,
        token_type=token_type,
        intent_hash=hashlib.sha256(f"coin:{n}".encode()).hexdigest(),
        output_no=n,
        ctime=datetime(2025, 1, 1, tzinfo=timezone.utc)
    )


def make_transaction(owner: bytes, n_inputs: int, segment_id: int = 1, fallible_inputs: int = 0) -> Transaction:
    """Unsigned single-segment transaction spending n_inputs coins of owner"""
    guaranteed = Offer(
        inputs=tuple(Spend.from_coin(make_coin(owner, 10 * (i + 1), i)) for i in range(n_inputs)),
        outputs=(Output(value=5, owner=TEST_ADDRESS),)
    )
    fallible = None
    if fallible_inputs:
        fallible = Offer(
            inputs=tuple(
                Spend.from_coin(make_coin(owner, 7, 100 + i)) for i in range(fallible_inputs)
            )
        )
    intent = Intent(guaranteed_offer=guaranteed, fallible_offer=fallible, actions=b"call", ttl=1_900_000_000)
    return Transaction(intents={segment_id: intent})
