"""Offering ledger models — seller-published rates and isolated subscriptions.

Each subscription has its own deposit and a rate locked at subscribe
time. Raising the offering's rate never touches existing subscriptions;
lowering it below a subscription's locked rate forces that subscription
down (after settling at the old rate).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from streamledger.engine.accrual import settle

KEY_PREFIX = "sha256:"


def offering_key(name: str) -> str:
    """Derive the offering identifier for a human-readable offering name."""
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest}"


@dataclass
class Subscription:
    """One buyer's subscription to one offering.

    ``last_accrual_at is None`` means the subscription was never created.
    """
    buyer_id: str
    sub_rate: int = 0
    deposit: int = 0
    owed_to_seller: int = 0
    last_accrual_at: Optional[int] = None

    @property
    def created(self) -> bool:
        return self.last_accrual_at is not None

    def settle(self, now: int, cadence_seconds: int) -> int:
        """Bank accrual up to ``now`` at the locked rate. Returns the new amount."""
        if self.last_accrual_at is None:
            return 0
        newly, self.last_accrual_at = settle(
            self.sub_rate, self.last_accrual_at, now, cadence_seconds,
        )
        self.owed_to_seller += newly
        return newly


@dataclass
class Offering:
    """A named offering published by a seller.

    ``max_rate_seen`` is the highest ``current_rate`` the offering has
    ever had; no locked rate can exceed it.
    """
    seller_id: str
    offering_id: str
    current_rate: int = 0
    exists: bool = False
    max_rate_seen: int = 0
    subscribers: Dict[str, Subscription] = field(default_factory=dict)
    subscriber_order: List[str] = field(default_factory=list)

    def created_subscriptions(self) -> List[Subscription]:
        """Subscriptions in subscribe order, skipping never-created entries."""
        result: List[Subscription] = []
        for buyer_id in self.subscriber_order:
            sub = self.subscribers.get(buyer_id)
            if sub is not None and sub.created:
                result.append(sub)
        return result
