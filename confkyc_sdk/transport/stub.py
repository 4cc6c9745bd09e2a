"""
Stub-based transport implementation.

This module provides an in-memory simulated ledger for tests, demos and the
local undeployed network when no wallet bridge is running. It keeps coins and
resource balances per address, verifies every signature at finalization and
applies submitted transactions to the accounts it tracks.
"""
import asyncio
import hashlib
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..exceptions import TransportResponseError, TransportConnectionError
from ..keys import Role, BalancingKeys
from ..ledger.types import (
    Coin, Intent, Offer, Transaction, TransactionRecipe, FinalizedTransaction, PRIMARY_TOKEN
)
from ..models import SubmitResult
from ..signer.local import LocalSigner, address_from_public_key
from ..wallet.state import SubWalletState
from ..wallet.stream import StateStream
from .base import LedgerTransport

logger = logging.getLogger(__name__)


def pool_address(role: Role, credential: bytes) -> str:
    """Address of a confidential or resource sub-wallet opened with credential."""
    digest = hashlib.sha256(role.name.lower().encode("ascii") + b":" + credential).hexdigest()
    return f"{role.name.lower()}_{digest[:40]}"


@dataclass
class _StoredCoin:
    value: int
    token_type: str
    intent_hash: str
    output_no: int
    ctime: datetime


@dataclass
class _Account:
    role: Role
    address: str
    public_key: Optional[bytes] = None
    coins: List[_StoredCoin] = field(default_factory=list)
    resource_value: int = 0
    resource_rate: int = 0
    resource_cap: int = 0
    resource_as_of: Optional[datetime] = None
    synced: bool = False
    sync_scheduled: bool = False
    stream: StateStream = field(default_factory=StateStream)

    def snapshot(self) -> SubWalletState:
        balances: Dict[str, int] = {}
        for coin in self.coins:
            balances[coin.token_type] = balances.get(coin.token_type, 0) + coin.value
        owner = self.public_key or b""
        return SubWalletState(
            role=self.role,
            is_synced=self.synced,
            address=self.address,
            balances=balances,
            available_coins=tuple(
                Coin(
                    value=c.value, owner=owner, token_type=c.token_type,
                    intent_hash=c.intent_hash, output_no=c.output_no, ctime=c.ctime
                )
                for c in self.coins
            ) if self.role == Role.PUBLIC_POOL else (),
            resource_value=self.resource_value,
            resource_rate=self.resource_rate,
            resource_cap=self.resource_cap,
            as_of=self.resource_as_of
        )


class StubTransport(LedgerTransport):
    """
    An in-memory ledger.

    Sub-wallets report an unsynced snapshot when opened and a synced one
    sync_delay seconds later. balance() stamps the ttl and, with
    balancing=True, adds a balancing transaction. Every balance, finalize and
    submit call is recorded in calls.
    """

    def __init__(
        self,
        sync_delay: float = 0.0,
        balancing: bool = False,
        resource_grant: int = 1_000_000,
        resource_rate: int = 0,
        network_id: str = "undeployed"
    ):
        self.sync_delay = sync_delay
        self.balancing = balancing
        self.resource_grant = resource_grant
        self.resource_rate = resource_rate
        self.network_id = network_id
        self.calls: List[str] = []
        self.submitted: List[FinalizedTransaction] = []
        self._accounts: Dict[Tuple[Role, str], _Account] = {}
        self._closed = False

    def _account(self, role: Role, address: str) -> _Account:
        key = (role, address)
        if key not in self._accounts:
            self._accounts[key] = _Account(role=role, address=address, stream=StateStream(address[:12]))
        return self._accounts[key]

    def _emit(self, account: _Account) -> None:
        if not account.stream.closed:
            account.stream.publish(account.snapshot())

    def _open(self, role: Role, credential: bytes) -> _Account:
        if role == Role.PUBLIC_POOL:
            account = self._account(role, address_from_public_key(credential))
            account.public_key = credential
        else:
            account = self._account(role, pool_address(role, credential))
        return account

    def mint(self, address: str, value: int, token_type: str = PRIMARY_TOKEN) -> None:
        """Create a public pool coin for address out of thin air."""
        account = self._account(Role.PUBLIC_POOL, address)
        digest = hashlib.sha256(f"mint:{address}:{len(account.coins)}:{value}".encode()).hexdigest()
        account.coins.append(_StoredCoin(
            value=value, token_type=token_type, intent_hash=digest,
            output_no=len(account.coins), ctime=datetime.now(timezone.utc)
        ))
        self._emit(account)

    def grant_resource(self, address: str, value: int) -> None:
        """Credit resource to the resource sub-wallet at address."""
        account = self._account(Role.RESOURCE_POOL, address)
        account.resource_value += value
        account.resource_as_of = datetime.now(timezone.utc)
        self._emit(account)

    def set_synced(self, role: Role, address: str, synced: bool = True) -> None:
        account = self._account(role, address)
        account.synced = synced
        self._emit(account)

    def _mark_synced(self, account: _Account) -> None:
        account.synced = True
        self._emit(account)

    async def state_stream(self, role: Role, credential: bytes) -> AsyncIterator[SubWalletState]:
        if self._closed:
            raise TransportConnectionError("Stub transport is closed")

        account = self._open(role, credential)
        self._emit(account)
        subscription = account.stream.subscribe()
        try:
            if not account.synced and not account.sync_scheduled:
                account.sync_scheduled = True
                asyncio.get_running_loop().call_later(self.sync_delay, self._mark_synced, account)
            async for state in subscription:
                yield state
        finally:
            subscription.close()

    async def balance(self, transaction: Transaction, keys: BalancingKeys, ttl: datetime) -> TransactionRecipe:
        self.calls.append("balance")
        deadline = int(ttl.timestamp())
        if deadline <= int(datetime.now(timezone.utc).timestamp()):
            raise TransportResponseError("Transaction ttl is in the past", status_code=400)

        base = transaction.copy()
        for segment_id, intent in base.intents.items():
            base.intents[segment_id] = replace(intent, ttl=intent.ttl or deadline)

        balancing = None
        if self.balancing:
            balancing = Transaction(
                intents={1: Intent(guaranteed_offer=Offer(), ttl=deadline)},
                network_id=base.network_id
            )
        logger.debug("Balanced transaction with %d segments", len(base.intents))
        return TransactionRecipe(base_transaction=base, balancing_transaction=balancing)

    def _verify(self, transaction: Transaction) -> None:
        for segment_id, intent in transaction.intents.items():
            payload = intent.signature_data(segment_id)
            for offer in (intent.guaranteed_offer, intent.fallible_offer):
                if offer is None:
                    continue
                if len(offer.signatures) != len(offer.inputs):
                    raise TransportResponseError(
                        f"Segment {segment_id}: {len(offer.inputs)} inputs but {len(offer.signatures)} signatures",
                        status_code=400
                    )
                for spend, signature in zip(offer.inputs, offer.signatures):
                    if not signature or LocalSigner.recover(payload, signature) != address_from_public_key(spend.owner):
                        raise TransportResponseError(
                            f"Segment {segment_id}: invalid signature for input", status_code=400
                        )
            registration = intent.resource_registration
            if registration is not None:
                signature = registration.signature
                if not signature or LocalSigner.recover(payload, signature) != address_from_public_key(
                    registration.owner_public_key
                ):
                    raise TransportResponseError(
                        f"Segment {segment_id}: invalid registration signature", status_code=400
                    )

    async def finalize(self, recipe: TransactionRecipe) -> FinalizedTransaction:
        self.calls.append("finalize")
        digest = hashlib.sha256()
        for transaction in recipe.transactions():
            self._verify(transaction)
            digest.update(transaction.serialize())
        return FinalizedTransaction(transaction_id=digest.hexdigest(), recipe=recipe)

    def _collect_spends(self, finalized: FinalizedTransaction) -> List[Tuple[_Account, _StoredCoin]]:
        """Resolve every input of the recipe to a stored coin without touching any account."""
        resolved: List[Tuple[_Account, _StoredCoin]] = []
        seen = set()
        for transaction in finalized.recipe.transactions():
            for segment_id, offer in transaction.offers():
                for spend in offer.inputs:
                    address = address_from_public_key(spend.owner)
                    key = (address, spend.intent_hash, spend.output_no)
                    if key in seen:
                        raise TransportResponseError(
                            f"Transaction {finalized.transaction_id[:10]}… spends a coin twice in segment {segment_id}",
                            status_code=409
                        )
                    seen.add(key)

                    account = self._accounts.get((Role.PUBLIC_POOL, address))
                    match = None if account is None else next(
                        (c for c in account.coins if c.intent_hash == spend.intent_hash and c.output_no == spend.output_no),
                        None
                    )
                    if match is None:
                        raise TransportResponseError(
                            f"Transaction {finalized.transaction_id[:10]}… spends an unknown coin in segment {segment_id}",
                            status_code=409
                        )
                    resolved.append((account, match))
        return resolved

    def _apply(self, finalized: FinalizedTransaction) -> List[_Account]:
        spends = self._collect_spends(finalized)

        touched: Dict[int, _Account] = {}
        for account, coin in spends:
            account.coins.remove(coin)
            touched[id(account)] = account

        now = datetime.now(timezone.utc)
        output_no = 0
        for transaction in finalized.recipe.transactions():
            for segment_id in sorted(transaction.intents):
                intent = transaction.intents[segment_id]
                for offer in (intent.guaranteed_offer, intent.fallible_offer):
                    if offer is None:
                        continue
                    for output in offer.outputs:
                        account = self._account(Role.PUBLIC_POOL, output.owner)
                        account.coins.append(_StoredCoin(
                            value=output.value, token_type=output.token_type,
                            intent_hash=finalized.transaction_id, output_no=output_no, ctime=now
                        ))
                        output_no += 1
                        touched[id(account)] = account

                registration = intent.resource_registration
                if registration is not None:
                    account = self._account(Role.RESOURCE_POOL, registration.receiver_address)
                    account.resource_value += self.resource_grant
                    account.resource_rate = self.resource_rate
                    account.resource_as_of = now
                    touched[id(account)] = account
        return list(touched.values())

    async def submit(self, finalized: FinalizedTransaction) -> SubmitResult:
        self.calls.append("submit")
        if any(s.transaction_id == finalized.transaction_id for s in self.submitted):
            raise TransportResponseError(
                f"Transaction {finalized.transaction_id[:10]}… was already submitted", status_code=409
            )

        touched = self._apply(finalized)
        self.submitted.append(finalized)
        for account in touched:
            self._emit(account)
        logger.info(f"Stub ledger accepted transaction {finalized.transaction_id[:10]}…")
        return SubmitResult(transaction_id=finalized.transaction_id)

    async def close(self) -> None:
        self._closed = True
        for account in self._accounts.values():
            account.stream.close()
