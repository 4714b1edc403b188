"""Deal ledger models — buyer-funded pools and the sellers drawing on them.

A deal is a shared pool. Every registered seller accrues against the
same deposit at their own per-cadence rate, set by the deal owner.

Invariants held by these models:
- ``cadence_seconds`` and ``service_identifier`` never change after creation.
- ``seller_order`` is append-only and lists each registered seller once.
- A seller account with ``last_settled_at is None`` is not registered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from streamledger.engine.accrual import settle

_IMMUTABLE_DEAL_FIELDS = frozenset({"deal_id", "owner", "service_identifier", "cadence_seconds"})


@dataclass
class SellerAccount:
    """One seller's standing against one deal.

    Mutable: rate is set by the deal owner, accrual grows with time and
    is drained by claims.
    """
    seller_id: str
    rate_per_cadence: int = 0
    last_settled_at: Optional[int] = None
    accrued: int = 0

    @property
    def registered(self) -> bool:
        return self.last_settled_at is not None

    def settle(self, now: int, cadence_seconds: int) -> int:
        """Bank accrual up to ``now`` at the current rate. Returns the new amount."""
        if self.last_settled_at is None:
            return 0
        newly, self.last_settled_at = settle(
            self.rate_per_cadence, self.last_settled_at, now, cadence_seconds,
        )
        self.accrued += newly
        return newly


@dataclass
class Deal:
    """A buyer-owned funding pool with a service identifier and cadence."""
    deal_id: int
    owner: str
    service_identifier: str
    cadence_seconds: int
    deposit: int = 0
    sellers: Dict[str, SellerAccount] = field(default_factory=dict)
    seller_order: List[str] = field(default_factory=list)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_DEAL_FIELDS and name in self.__dict__:
            raise AttributeError(f"Deal.{name} is immutable after creation")
        super().__setattr__(name, value)

    def register(self, seller_id: str, now: int) -> bool:
        """Register a seller at ``now``. Returns False if already registered."""
        account = self.sellers.get(seller_id)
        if account is not None and account.registered:
            return False
        if account is None:
            account = SellerAccount(seller_id=seller_id)
            self.sellers[seller_id] = account
        account.last_settled_at = now
        account.rate_per_cadence = 0
        self.seller_order.append(seller_id)
        return True

    def registered_sellers(self) -> List[SellerAccount]:
        """Registered seller accounts in registration order."""
        return [self.sellers[s] for s in self.seller_order]

    def total_accrued(self) -> int:
        return sum(a.accrued for a in self.registered_sellers())
