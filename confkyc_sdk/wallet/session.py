"""
Wallet sessions.

A WalletSession owns three sub-wallets (confidential, public and resource
pools), each fed by its own state stream from the transport, and composes
them into one combined stream of WalletState snapshots.
"""
import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, AsyncIterator, Dict, List, Optional

from ..keys import Role, DerivedKeySet, BalancingKeys
from ..ledger.types import PRIMARY_TOKEN
from ..signer.local import LocalSigner
from .state import SubWalletState, WalletState
from .stream import StateStream
from . import wait

if TYPE_CHECKING:
    from ..transport.base import LedgerTransport

logger = logging.getLogger(__name__)


class SubWallet:
    """
    One independently synchronizing pool of a wallet.

    The transport's state stream is pumped into a StateStream so that any
    number of consumers can watch it.
    """

    def __init__(self, role: Role, transport: "LedgerTransport", credential: bytes):
        self.role = role
        self._transport = transport
        self._credential = credential
        self.states: StateStream[SubWalletState] = StateStream(role.name.lower())
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        source = self._transport.state_stream(self.role, self._credential)
        self._task = asyncio.create_task(self._pump(source), name=f"subwallet-{self.role.name.lower()}")

    async def _pump(self, source: AsyncIterator[SubWalletState]) -> None:
        try:
            async for state in source:
                self.states.publish(state)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"State stream of {self.role.name} sub-wallet failed: {e}")
            self.states.fail(e)
        else:
            logger.debug("State stream of %s sub-wallet ended", self.role.name)
            self.states.close()
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self.states.close()


class WalletSession:
    """
    Aggregate of the three sub-wallets of one seed.

    The session is the single owner of the key material it was created with.
    Callers only ever see frozen WalletState snapshots.

    Usage:
        async with WalletSession(keys, transport) as session:
            state = await session.wait_for_sync()
    """

    def __init__(
        self,
        keys: DerivedKeySet,
        transport: "LedgerTransport",
        network_id: str = "undeployed",
        logger: Optional[logging.Logger] = None
    ):
        self.network_id = network_id
        self.logger = logger or logging.getLogger(__name__)
        self._keys: Optional[DerivedKeySet] = keys
        self._transport = transport
        self.signer: Optional[LocalSigner] = LocalSigner(keys.public_pool)
        self._address = self.signer.address
        self._public_key = self.signer.public_key

        self._sub_wallets: Dict[Role, SubWallet] = {
            Role.CONFIDENTIAL_POOL: SubWallet(Role.CONFIDENTIAL_POOL, transport, keys.confidential_pool),
            Role.PUBLIC_POOL: SubWallet(Role.PUBLIC_POOL, transport, self._public_key),
            Role.RESOURCE_POOL: SubWallet(Role.RESOURCE_POOL, transport, keys.resource_pool),
        }
        self.states: StateStream[WalletState] = StateStream("wallet")
        self._latest: Dict[Role, SubWalletState] = {}
        self._combiners: List[asyncio.Task] = []
        self._started = False
        self._stopped = False

    @property
    def address(self) -> str:
        """Address receiving public pool funds."""
        return self._address

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def transport(self) -> "LedgerTransport":
        return self._transport

    @property
    def started(self) -> bool:
        return self._started and not self._stopped

    def sub_wallet(self, role: Role) -> SubWallet:
        return self._sub_wallets[role]

    def balancing_keys(self) -> BalancingKeys:
        if self._keys is None:
            raise RuntimeError("Wallet session has been stopped")
        return self._keys.balancing_keys()

    def sign_data(self, payload: bytes) -> bytes:
        """Sign payload with the public pool key."""
        if self.signer is None:
            raise RuntimeError("Wallet session has been stopped")
        return self.signer.sign_data(payload)

    def state(self) -> Optional[WalletState]:
        """Latest combined snapshot, or None before every sub-wallet reported."""
        return self.states.latest

    async def start(self) -> "WalletSession":
        """
        Start the sub-wallets and the combined stream.

        Raises:
            RuntimeError: If the session was already stopped
        """
        if self._stopped:
            raise RuntimeError("Wallet session has been stopped")
        if self._started:
            return self

        self._started = True
        for sub_wallet in self._sub_wallets.values():
            sub_wallet.start()
            self._combiners.append(asyncio.create_task(
                self._combine(sub_wallet), name=f"combine-{sub_wallet.role.name.lower()}"
            ))
        self.logger.info(f"Started wallet session for {self.address[:10]}…")
        return self

    async def _combine(self, sub_wallet: SubWallet) -> None:
        with sub_wallet.states.subscribe() as subscription:
            try:
                async for state in subscription:
                    self._latest[sub_wallet.role] = state
                    if len(self._latest) == len(self._sub_wallets) and not self.states.closed:
                        self.states.publish(WalletState(
                            confidential=self._latest[Role.CONFIDENTIAL_POOL],
                            public=self._latest[Role.PUBLIC_POOL],
                            resource=self._latest[Role.RESOURCE_POOL],
                        ))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.states.fail(e)
                return
        self.states.close()

    async def stop(self) -> None:
        """Stop the sub-wallets and release the key material. Idempotent."""
        if self._stopped:
            return
        self._stopped = True

        for task in self._combiners:
            task.cancel()
        for task in self._combiners:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._combiners.clear()

        for sub_wallet in self._sub_wallets.values():
            await sub_wallet.stop()
        self.states.close()
        self._keys = None
        self.signer = None
        self.logger.info(f"Stopped wallet session for {self.address[:10]}…")

    async def __aenter__(self) -> "WalletSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def wait_for_sync(self, interval: float = wait.SYNC_INTERVAL, timeout: Optional[float] = None) -> WalletState:
        return await wait.wait_for_sync(self.states, interval=interval, timeout=timeout)

    async def wait_for_funds(
        self,
        token_type: str = PRIMARY_TOKEN,
        interval: float = wait.FUNDS_INTERVAL,
        timeout: Optional[float] = None
    ) -> int:
        return await wait.wait_for_funds(self.states, token_type, interval=interval, timeout=timeout)

    async def wait_for_resource(self, interval: float = wait.FUNDS_INTERVAL, timeout: Optional[float] = None) -> int:
        return await wait.wait_for_resource(self.states, interval=interval, timeout=timeout)
