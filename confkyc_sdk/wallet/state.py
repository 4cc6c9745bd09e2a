"""
Read-only state snapshots of sub-wallets and wallet sessions.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from ..keys import Role
from ..ledger.types import Coin, PRIMARY_TOKEN
from ..ledger.codec import coin_to_dict, coin_from_dict


@dataclass(frozen=True)
class SubWalletState:
    """
    Snapshot of one sub-wallet.

    The resource balance accrues over time: resource_value is the balance at
    as_of and grows by resource_rate per second up to resource_cap (0 means
    uncapped).
    """
    role: Role
    is_synced: bool = False
    address: str = ""
    balances: Mapping[str, int] = field(default_factory=dict)
    available_coins: Tuple[Coin, ...] = ()
    resource_value: int = 0
    resource_rate: int = 0
    resource_cap: int = 0
    as_of: Optional[datetime] = None

    def balance(self, token_type: str = PRIMARY_TOKEN) -> int:
        return int(self.balances.get(token_type, 0))

    def resource_balance(self, now: Optional[datetime] = None) -> int:
        if self.as_of is None or self.resource_rate == 0:
            return self.resource_value
        now = now or datetime.now(timezone.utc)
        elapsed = max(0.0, (now - self.as_of).total_seconds())
        value = self.resource_value + int(self.resource_rate * elapsed)
        if self.resource_cap:
            value = min(self.resource_cap, value)
        return value


@dataclass(frozen=True)
class WalletState:
    """Combined snapshot of the three sub-wallets of a session."""
    confidential: SubWalletState
    public: SubWalletState
    resource: SubWalletState

    @property
    def is_synced(self) -> bool:
        return self.confidential.is_synced and self.public.is_synced and self.resource.is_synced

    @property
    def available_coins(self) -> Tuple[Coin, ...]:
        return self.public.available_coins

    def balance(self, token_type: str = PRIMARY_TOKEN) -> int:
        """Public (unshielded) balance of token_type."""
        return self.public.balance(token_type)

    def confidential_balance(self, token_type: str = PRIMARY_TOKEN) -> int:
        return self.confidential.balance(token_type)

    def resource_balance(self, now: Optional[datetime] = None) -> int:
        return self.resource.resource_balance(now)

    def summary(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Balances per pool, for display."""
        public = self.balance()
        confidential = self.confidential_balance()
        resource = self.resource_balance(now)
        return {
            "public": public,
            "confidential": confidential,
            "resource": resource,
            "total": public + confidential + resource,
        }


def state_to_dict(state: SubWalletState) -> Dict[str, Any]:
    return {
        "role": int(state.role),
        "is_synced": state.is_synced,
        "address": state.address,
        "balances": dict(state.balances),
        "available_coins": [coin_to_dict(c) for c in state.available_coins],
        "resource_value": state.resource_value,
        "resource_rate": state.resource_rate,
        "resource_cap": state.resource_cap,
        "as_of": state.as_of.isoformat() if state.as_of else None,
    }


def state_from_dict(data: Dict[str, Any]) -> SubWalletState:
    as_of = data.get("as_of")
    return SubWalletState(
        role=Role(int(data["role"])),
        is_synced=bool(data.get("is_synced", False)),
        address=data.get("address", ""),
        balances={k: int(v) for k, v in data.get("balances", {}).items()},
        available_coins=tuple(coin_from_dict(c) for c in data.get("available_coins", [])),
        resource_value=int(data.get("resource_value", 0)),
        resource_rate=int(data.get("resource_rate", 0)),
        resource_cap=int(data.get("resource_cap", 0)),
        as_of=datetime.fromisoformat(as_of) if as_of else None
    )
