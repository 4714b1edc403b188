"""Market service — wires both ledgers to their collaborators.

The service owns nothing the ledgers don't: it builds them from a
MarketConfig, shares one clock, token ledger and event log between them,
and offers read-only status and invariant reporting across both.

Ledger errors propagate unchanged; the service never catches them.
"""

from __future__ import annotations

from typing import Any, Optional

from streamledger.clock import Clock, SystemClock
from streamledger.config import MarketConfig
from streamledger.market.deal_ledger import DealLedger
from streamledger.market.offering_ledger import OfferingLedger
from streamledger.persistence.event_log import EventLog
from streamledger.tokens.ledger import TokenLedger


class MarketService:
    """Facade over the deal ledger and the offering ledger.

    Usage:
        service = MarketService(token, MarketConfig.from_config_dir())
        deal_id = service.deals.create_deal("buyer", "svc", 0, 500)
        service.offerings.create_or_update_offering("seller", key, 10)
        service.check_invariants()  # [] when healthy
    """

    def __init__(
        self,
        token: TokenLedger,
        config: Optional[MarketConfig] = None,
        clock: Optional[Clock] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._config = config or MarketConfig()
        self._clock = clock or SystemClock()
        if event_log is None:
            event_log = EventLog(storage_path=self._config.event_log_path)
        self._event_log = event_log

        self.deals = DealLedger(
            token,
            self._clock,
            pool_address=self._config.pool_address,
            event_log=event_log,
            default_cadence_seconds=self._config.default_cadence_seconds,
        )
        self.offerings = OfferingLedger(
            token,
            self._clock,
            pool_address=self._config.pool_address,
            event_log=event_log,
            default_cadence_seconds=self._config.default_cadence_seconds,
        )

    @property
    def config(self) -> MarketConfig:
        return self._config

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def status(self) -> dict[str, Any]:
        """Summary counts across both ledgers."""
        deals = self.deals.deals()
        offerings = self.offerings.offerings()
        return {
            "now": self._clock.now(),
            "pool_address": self._config.pool_address,
            "deals": {
                "count": self.deals.deal_count,
                "pooled_deposit": sum(d.deposit for d in deals),
                "registered_sellers": sum(len(d.seller_order) for d in deals),
            },
            "offerings": {
                "count": len(offerings),
                "subscriptions": sum(len(o.created_subscriptions()) for o in offerings),
                "subscribed_deposit": sum(
                    s.deposit for o in offerings for s in o.created_subscriptions()
                ),
            },
            "events": self._event_log.count,
        }

    def check_invariants(self) -> list[str]:
        """Report hard invariant breaks. Empty list means healthy.

        Underfunding (pending obligations above deposit) is legal and
        is not reported.
        """
        violations: list[str] = []
        for deal in self.deals.deals():
            label = f"deal {deal.deal_id}"
            if deal.deposit < 0:
                violations.append(f"{label}: negative deposit {deal.deposit}")
            if len(set(deal.seller_order)) != len(deal.seller_order):
                violations.append(f"{label}: seller listed twice in registration order")
            registered = {s for s, a in deal.sellers.items() if a.registered}
            if registered != set(deal.seller_order):
                violations.append(f"{label}: registration order out of sync with accounts")
            for account in deal.sellers.values():
                if account.accrued < 0:
                    violations.append(
                        f"{label}: seller {account.seller_id} has negative accrual"
                    )

        for offering in self.offerings.offerings():
            label = f"offering {offering.seller_id}/{offering.offering_id}"
            if len(set(offering.subscriber_order)) != len(offering.subscriber_order):
                violations.append(f"{label}: subscriber listed twice in order")
            created = {b for b, s in offering.subscribers.items() if s.created}
            if created != set(offering.subscriber_order):
                violations.append(f"{label}: subscriber order out of sync with subscriptions")
            for sub in offering.created_subscriptions():
                if sub.deposit < 0:
                    violations.append(f"{label}: {sub.buyer_id} has negative deposit")
                if sub.sub_rate > offering.max_rate_seen:
                    violations.append(
                        f"{label}: {sub.buyer_id} locked rate {sub.sub_rate} exceeds "
                        f"historical maximum {offering.max_rate_seen}"
                    )
        return violations
