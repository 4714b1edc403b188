"""Offering ledger — seller-published offerings with isolated subscriptions.

A seller publishes named offerings, each with a per-cadence rate. A buyer
who subscribes gets a subscription with its own deposit and a rate locked
at the moment of first subscription.

Rate changes:
    - Raising an offering's rate affects only future subscribers.
    - Lowering it below a subscription's locked rate settles that
      subscription at its old rate, then clamps the locked rate down.
      Every affected subscription is lowered; nobody is grandfathered.

Seller claims settle every subscription, pay each one out of its own
deposit (not a shared pool), and move the total in one token transfer.
If that transfer fails, every subscription is restored.

Forfeiture policy:
    Like the deal ledger, a claim resets each subscription's owed balance
    to zero even when its deposit only covered part of it.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from streamledger.clock import Clock
from streamledger.engine.accrual import DEFAULT_CADENCE_SECONDS, preview_accrual
from streamledger.errors import (
    AuthorizationError,
    InsufficientFundsError,
    InvalidArgumentError,
    NotFoundError,
)
from streamledger.market.base import LedgerBase, require_identity, require_non_negative
from streamledger.models.offering import Offering, Subscription
from streamledger.persistence.event_log import EventKind, EventLog
from streamledger.tokens.ledger import TokenLedger

logger = logging.getLogger(__name__)

OfferingRef = Tuple[str, str]


class OfferingLedger(LedgerBase):
    """In-memory ledger of offerings keyed by (seller, offering ID).

    Usage:
        ledger = OfferingLedger(token, clock, pool_address="pool")
        key = offering_key("weather-feed")
        ledger.create_or_update_offering("seller", key, 100)
        ledger.subscribe("buyer", "seller", key, 1_000)
        # ... time passes ...
        paid = ledger.seller_claim("seller", key, "seller")
    """

    def __init__(
        self,
        token: TokenLedger,
        clock: Clock,
        pool_address: str,
        event_log: Optional[EventLog] = None,
        default_cadence_seconds: int = DEFAULT_CADENCE_SECONDS,
    ) -> None:
        super().__init__(token, clock, pool_address, event_log, default_cadence_seconds)
        self._offerings: Dict[OfferingRef, Offering] = {}

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def create_or_update_offering(
        self,
        caller: str,
        offering_id: str,
        new_rate: int,
    ) -> None:
        """Publish an offering or change its rate (owning seller only)."""
        require_identity(caller, "Caller")
        _require_offering_id(offering_id)
        require_non_negative(new_rate, "Rate")

        now = self._clock.now()
        offering = self._offerings.get((caller, offering_id))
        if offering is None or not offering.exists:
            offering = Offering(
                seller_id=caller,
                offering_id=offering_id,
                current_rate=new_rate,
                exists=True,
                max_rate_seen=new_rate,
            )
            self._offerings[(caller, offering_id)] = offering
            self._emit(
                EventKind.OFFERING_UPSERTED, caller, now,
                offering_id=offering_id, old_rate=0, new_rate=new_rate, created=True,
            )
            return

        old_rate = offering.current_rate
        if new_rate == old_rate:
            return

        lowered = 0
        if new_rate < old_rate:
            for sub in offering.created_subscriptions():
                if sub.sub_rate > new_rate:
                    sub.settle(now, self._default_cadence)
                    sub.sub_rate = new_rate
                    lowered += 1

        offering.current_rate = new_rate
        offering.max_rate_seen = max(offering.max_rate_seen, new_rate)

        self._emit(
            EventKind.OFFERING_UPSERTED, caller, now,
            offering_id=offering_id, old_rate=old_rate, new_rate=new_rate,
            created=False, subscriptions_lowered=lowered,
        )

    def subscribe(
        self,
        caller: str,
        seller: str,
        offering_id: str,
        deposit_amount: int,
    ) -> Subscription:
        """Subscribe to (or top up) an offering with a positive deposit.

        First-time subscribers lock the offering's current rate.
        Returning subscribers are settled at their locked rate first.
        """
        require_identity(caller, "Caller")
        require_non_negative(deposit_amount, "Subscription deposit")
        if deposit_amount == 0:
            raise InvalidArgumentError(
                f"Subscription deposit must be positive, got {deposit_amount}"
            )
        offering = self._get(seller, offering_id)

        now = self._clock.now()
        self._pull(caller, deposit_amount, "subscribe", lambda: None)

        sub = offering.subscribers.get(caller)
        if sub is None or not sub.created:
            sub = Subscription(
                buyer_id=caller,
                sub_rate=offering.current_rate,
                last_accrual_at=now,
            )
            offering.subscribers[caller] = sub
            offering.subscriber_order.append(caller)
        else:
            sub.settle(now, self._default_cadence)
        sub.deposit += deposit_amount

        self._emit(
            EventKind.SUBSCRIBED, caller, now,
            seller=seller, offering_id=offering_id,
            amount=deposit_amount, deposit=sub.deposit, sub_rate=sub.sub_rate,
        )
        return sub

    def buyer_withdraw(
        self,
        seller: str,
        offering_id: str,
        caller: str,
        amount: int,
    ) -> None:
        """Return uncommitted subscription funds to the buyer.

        The subscription is settled first; what remains must cover the
        amount owed to the seller.
        """
        sub = self.get_subscription(seller, offering_id, caller)
        require_non_negative(amount, "Withdrawal")

        now = self._clock.now()
        prev = (sub.deposit, sub.owed_to_seller, sub.last_accrual_at)

        def _rollback() -> None:
            sub.deposit, sub.owed_to_seller, sub.last_accrual_at = prev

        sub.settle(now, self._default_cadence)
        if sub.deposit < sub.owed_to_seller + amount:
            owed = sub.owed_to_seller
            _rollback()
            raise InsufficientFundsError(
                f"Subscription holds {sub.deposit}, {owed} is owed to {seller}; "
                f"cannot withdraw {amount}"
            )

        sub.deposit -= amount
        if amount > 0:
            self._push(caller, amount, "buyer_withdraw", _rollback)

        self._emit(
            EventKind.SUBSCRIPTION_WITHDRAWN, caller, now,
            seller=seller, offering_id=offering_id, amount=amount, deposit=sub.deposit,
        )

    def seller_claim(self, seller: str, offering_id: str, caller: str) -> int:
        """Collect from every subscription in one aggregate transfer.

        Each subscription pays min(owed, its own deposit). Returns the
        total paid; nothing owed anywhere is a successful no-op.
        """
        if caller != seller:
            raise AuthorizationError(f"Only {seller} may claim from its offerings")
        offering = self._get(seller, offering_id)

        now = self._clock.now()
        subs = offering.created_subscriptions()
        snapshot = [(s, s.deposit, s.owed_to_seller, s.last_accrual_at) for s in subs]

        def _rollback() -> None:
            for s, deposit, owed, last_accrual_at in snapshot:
                s.deposit, s.owed_to_seller, s.last_accrual_at = deposit, owed, last_accrual_at

        total_owed = 0
        total_paid = 0
        for sub in subs:
            sub.settle(now, self._default_cadence)
            owed = sub.owed_to_seller
            if owed == 0:
                continue
            pay = min(owed, sub.deposit)
            sub.deposit -= pay
            sub.owed_to_seller = 0
            total_owed += owed
            total_paid += pay

        if total_owed == 0:
            return 0
        if total_paid > 0:
            self._push(seller, total_paid, "seller_claim", _rollback)
        if total_paid < total_owed:
            logger.info(
                "Offering %s/%s underfunded: %s forfeited of %s owed",
                seller, offering_id, total_owed - total_paid, total_owed,
            )

        self._emit(
            EventKind.OFFERING_CLAIMED, caller, now,
            offering_id=offering_id, amount=total_paid, owed=total_owed,
            subscriptions=len(subs),
        )
        return total_paid

    # ------------------------------------------------------------------
    # Views (never settle, never mutate)
    # ------------------------------------------------------------------

    def get_offering(self, seller: str, offering_id: str) -> Offering:
        return self._get(seller, offering_id)

    def get_subscription(self, seller: str, offering_id: str, buyer: str) -> Subscription:
        sub = self._get(seller, offering_id).subscribers.get(buyer)
        if sub is None or not sub.created:
            raise NotFoundError(
                f"No subscription for {buyer} on offering {seller}/{offering_id}"
            )
        return sub

    def list_subscribers(self, seller: str, offering_id: str) -> List[str]:
        """Subscribers in first-subscription order."""
        return list(self._get(seller, offering_id).subscriber_order)

    def offerings_of(self, seller: str) -> List[str]:
        return [oid for (s, oid), o in self._offerings.items() if s == seller and o.exists]

    def offerings(self) -> List[Offering]:
        return [o for o in self._offerings.values() if o.exists]

    def pending_owed(self, seller: str, offering_id: str, buyer: str) -> int:
        """Owed balance plus what would accrue if settled right now."""
        sub = self.get_subscription(seller, offering_id, buyer)
        return sub.owed_to_seller + preview_accrual(
            sub.sub_rate, sub.last_accrual_at, self._clock.now(), self._default_cadence,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, seller: str, offering_id: str) -> Offering:
        offering = self._offerings.get((seller, offering_id))
        if offering is None or not offering.exists:
            raise NotFoundError(f"Unknown offering: {seller}/{offering_id}")
        return offering


def _require_offering_id(offering_id: str) -> None:
    if not offering_id or not offering_id.strip():
        raise InvalidArgumentError("Offering ID must not be blank")
