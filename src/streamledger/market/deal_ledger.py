"""Deal ledger — buyer-initiated pools that registered sellers draw down.

A buyer opens a deal (service identifier + cadence + optional initial
deposit). Sellers register against it and the buyer sets each seller's
per-cadence rate. All sellers of a deal accrue against the same pooled
deposit.

Every mutating operation samples the clock once, settles the accounts
it touches up to that instant, and only then applies its mutation.
Operations that call the token ledger capture the prior values of
everything they touched; if the token ledger reports failure the
captured values are restored and ExternalTransferFailure is raised.

Forfeiture policy:
    A claim pays min(owed, deposit) and resets the seller's accrued
    balance to zero. When the pool is underfunded the unpaid remainder
    is forfeited, not carried to a later claim.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from streamledger.clock import Clock
from streamledger.engine.accrual import (
    DEFAULT_CADENCE_SECONDS,
    effective_cadence,
    preview_accrual,
)
from streamledger.errors import (
    AuthorizationError,
    InsufficientFundsError,
    InvalidArgumentError,
    NotFoundError,
)
from streamledger.market.base import LedgerBase, require_identity, require_non_negative
from streamledger.models.deal import Deal, SellerAccount
from streamledger.persistence.event_log import EventKind, EventLog
from streamledger.tokens.ledger import TokenLedger

logger = logging.getLogger(__name__)

# Deal deposit, then (account, last_settled_at, accrued) per registered seller.
_DealSnapshot = Tuple[int, List[Tuple[SellerAccount, Optional[int], int]]]


class DealLedger(LedgerBase):
    """In-memory ledger of deals and their seller accounts.

    Usage:
        ledger = DealLedger(token, clock, pool_address="pool")
        deal_id = ledger.create_deal("buyer", "https://svc", 3600, 1_000)
        ledger.register_as_seller(deal_id, "seller")
        ledger.set_seller_rate(deal_id, "buyer", "seller", 100)
        # ... time passes ...
        paid = ledger.claim(deal_id, "seller")
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
        self._deals: Dict[int, Deal] = {}
        self._deal_count = 0

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def create_deal(
        self,
        caller: str,
        service_identifier: str,
        cadence_seconds: int,
        initial_deposit: int,
    ) -> int:
        """Open a new deal owned by ``caller``. Returns the new deal ID.

        A cadence of 0 is stored as the default cadence. The deal is only
        recorded once the initial deposit (if any) has been pulled.
        """
        require_identity(caller, "Caller")
        if not service_identifier or not service_identifier.strip():
            raise InvalidArgumentError("Service identifier must not be blank")
        require_non_negative(cadence_seconds, "Cadence")
        require_non_negative(initial_deposit, "Initial deposit")

        now = self._clock.now()
        if initial_deposit > 0:
            self._pull(caller, initial_deposit, "create_deal", lambda: None)

        deal_id = self._deal_count + 1
        deal = Deal(
            deal_id=deal_id,
            owner=caller,
            service_identifier=service_identifier,
            cadence_seconds=effective_cadence(cadence_seconds, self._default_cadence),
            deposit=initial_deposit,
        )
        self._deals[deal_id] = deal
        self._deal_count = deal_id

        self._emit(
            EventKind.DEAL_CREATED, caller, now,
            deal_id=deal_id,
            service_identifier=service_identifier,
            cadence_seconds=deal.cadence_seconds,
            initial_deposit=initial_deposit,
        )
        return deal_id

    def register_as_seller(self, deal_id: int, caller: str) -> bool:
        """Register ``caller`` as a seller. Returns False if already registered."""
        require_identity(caller, "Caller")
        deal = self._get(deal_id)
        now = self._clock.now()
        if not deal.register(caller, now):
            return False
        self._emit(EventKind.SELLER_REGISTERED, caller, now, deal_id=deal_id, seller=caller)
        return True

    def set_seller_rate(
        self,
        deal_id: int,
        caller: str,
        seller: str,
        new_rate: int,
    ) -> None:
        """Set a seller's per-cadence rate (deal owner only).

        Registers the seller if needed, then settles at the old rate
        before the new rate takes effect.
        """
        deal = self._get(deal_id)
        _require_owner(deal, caller)
        require_identity(seller, "Seller")
        require_non_negative(new_rate, "Rate")

        now = self._clock.now()
        if deal.register(seller, now):
            self._emit(EventKind.SELLER_REGISTERED, seller, now, deal_id=deal_id, seller=seller)

        account = deal.sellers[seller]
        account.settle(now, deal.cadence_seconds)
        old_rate = account.rate_per_cadence
        account.rate_per_cadence = new_rate

        self._emit(
            EventKind.SELLER_RATE_SET, caller, now,
            deal_id=deal_id, seller=seller, old_rate=old_rate, new_rate=new_rate,
        )

    def claim(self, deal_id: int, caller: str) -> int:
        """Pay the calling seller what it is owed, clamped to the pool.

        Returns the amount paid. Nothing owed is a successful no-op.
        """
        deal = self._get(deal_id)
        account = deal.sellers.get(caller)
        if account is None or not account.registered:
            raise NotFoundError(f"Seller {caller} is not registered on deal {deal_id}")

        now = self._clock.now()
        prev_deposit = deal.deposit
        prev_settled, prev_accrued = account.last_settled_at, account.accrued

        account.settle(now, deal.cadence_seconds)
        owed = account.accrued
        if owed == 0:
            return 0

        payout = min(owed, deal.deposit)
        deal.deposit -= payout
        account.accrued = 0

        def _rollback() -> None:
            deal.deposit = prev_deposit
            account.last_settled_at = prev_settled
            account.accrued = prev_accrued

        if payout > 0:
            self._push(caller, payout, "claim", _rollback)
        if payout < owed:
            logger.info(
                "Deal %s underfunded: seller %s forfeits %s of %s owed",
                deal_id, caller, owed - payout, owed,
            )

        self._emit(
            EventKind.DEAL_CLAIMED, caller, now,
            deal_id=deal_id, seller=caller, amount=payout, owed=owed,
        )
        return payout

    def deposit_tokens(self, deal_id: int, caller: str, amount: int) -> None:
        """Add ``amount`` to the deal's pool (deal owner only)."""
        deal = self._get(deal_id)
        _require_owner(deal, caller)
        require_non_negative(amount, "Deposit")

        now = self._clock.now()
        if amount > 0:
            self._pull(caller, amount, "deposit_tokens", lambda: None)
        deal.deposit += amount

        self._emit(
            EventKind.DEAL_DEPOSITED, caller, now,
            deal_id=deal_id, amount=amount, deposit=deal.deposit,
        )

    def buyer_withdraw(self, deal_id: int, caller: str, amount: int) -> None:
        """Return uncommitted pool funds to the deal owner.

        Every registered seller is settled first, zero-rate sellers
        included. The withdrawal must leave at least the sum of all
        accrued balances in the pool.
        """
        deal = self._get(deal_id)
        _require_owner(deal, caller)
        require_non_negative(amount, "Withdrawal")

        now = self._clock.now()
        snapshot = _snapshot(deal)

        def _rollback() -> None:
            _restore(deal, snapshot)

        self._settle_all(deal, now)
        owed = deal.total_accrued()
        if deal.deposit < owed + amount:
            _rollback()
            raise InsufficientFundsError(
                f"Deal {deal_id} holds {deal.deposit}, {owed} is owed to sellers; "
                f"cannot withdraw {amount}"
            )

        deal.deposit -= amount
        if amount > 0:
            self._push(caller, amount, "buyer_withdraw", _rollback)

        self._emit(
            EventKind.DEAL_WITHDRAWN, caller, now,
            deal_id=deal_id, amount=amount, deposit=deal.deposit,
        )

    def move_deposit(
        self,
        from_deal_id: int,
        to_deal_id: int,
        caller: str,
        amount: int,
    ) -> None:
        """Move uncommitted funds between two deals owned by ``caller``.

        Internal accounting only; the token ledger is not called.
        """
        source = self._get(from_deal_id)
        target = self._get(to_deal_id)
        _require_owner(source, caller)
        _require_owner(target, caller)
        require_non_negative(amount, "Move amount")

        now = self._clock.now()
        snapshot = _snapshot(source)
        self._settle_all(source, now)
        owed = source.total_accrued()
        if source.deposit < owed + amount:
            _restore(source, snapshot)
            raise InsufficientFundsError(
                f"Deal {from_deal_id} holds {source.deposit}, {owed} is owed to "
                f"sellers; cannot move {amount}"
            )

        source.deposit -= amount
        target.deposit += amount

        self._emit(
            EventKind.DEPOSIT_MOVED, caller, now,
            from_deal_id=from_deal_id, to_deal_id=to_deal_id, amount=amount,
        )

    # ------------------------------------------------------------------
    # Views (never settle, never mutate)
    # ------------------------------------------------------------------

    @property
    def deal_count(self) -> int:
        return self._deal_count

    def get_deal(self, deal_id: int) -> Deal:
        return self._get(deal_id)

    def get_seller_account(self, deal_id: int, seller: str) -> SellerAccount:
        account = self._get(deal_id).sellers.get(seller)
        if account is None or not account.registered:
            raise NotFoundError(f"Seller {seller} is not registered on deal {deal_id}")
        return account

    def list_sellers(self, deal_id: int) -> List[str]:
        """Registered sellers in registration order."""
        return list(self._get(deal_id).seller_order)

    def deals_owned_by(self, owner: str) -> List[int]:
        return [d.deal_id for d in self.deals() if d.owner == owner]

    def pending_owed(self, deal_id: int, seller: str) -> int:
        """Accrued balance plus what would accrue if settled right now."""
        deal = self._get(deal_id)
        account = self.get_seller_account(deal_id, seller)
        return account.accrued + preview_accrual(
            account.rate_per_cadence,
            account.last_settled_at,
            self._clock.now(),
            deal.cadence_seconds,
        )

    def total_pending(self, deal_id: int) -> int:
        return sum(self.pending_owed(deal_id, s) for s in self.list_sellers(deal_id))

    def deals(self) -> List[Deal]:
        return [self._deals[i] for i in sorted(self._deals)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, deal_id: int) -> Deal:
        deal = self._deals.get(deal_id)
        if deal is None:
            raise NotFoundError(f"Unknown deal ID: {deal_id}")
        return deal

    def _settle_all(self, deal: Deal, now: int) -> None:
        for account in deal.registered_sellers():
            account.settle(now, deal.cadence_seconds)


def _require_owner(deal: Deal, caller: str) -> None:
    if caller != deal.owner:
        raise AuthorizationError(f"Only the owner of deal {deal.deal_id} may do this")


def _snapshot(deal: Deal) -> _DealSnapshot:
    return deal.deposit, [
        (a, a.last_settled_at, a.accrued) for a in deal.registered_sellers()
    ]


def _restore(deal: Deal, snapshot: _DealSnapshot) -> None:
    deposit, accounts = snapshot
    deal.deposit = deposit
    for account, last_settled_at, accrued in accounts:
        account.last_settled_at = last_settled_at
        account.accrued = accrued
