"""Shared plumbing for the two marketplace ledgers.

Token calls and notifications go through here. Neither ledger talks to
the token collaborator or the event log directly.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from streamledger.clock import Clock
from streamledger.engine.accrual import DEFAULT_CADENCE_SECONDS
from streamledger.errors import ExternalTransferFailure, InvalidArgumentError
from streamledger.persistence.event_log import EventKind, EventLog
from streamledger.tokens.ledger import TokenLedger

logger = logging.getLogger(__name__)


class LedgerBase:
    """Token, clock and event-log wiring common to both ledgers."""

    def __init__(
        self,
        token: TokenLedger,
        clock: Clock,
        pool_address: str,
        event_log: Optional[EventLog] = None,
        default_cadence_seconds: int = DEFAULT_CADENCE_SECONDS,
    ) -> None:
        self._token = token
        self._clock = clock
        self._pool = pool_address
        self._event_log = event_log
        self._default_cadence = default_cadence_seconds

    @property
    def pool_address(self) -> str:
        return self._pool

    def _pull(
        self,
        owner: str,
        amount: int,
        operation: str,
        on_rollback: Callable[[], None],
    ) -> None:
        """transfer_from(owner -> pool). Rolls back and raises on failure."""
        try:
            ok = self._token.transfer_from(owner, self._pool, amount)
        except Exception as e:
            on_rollback()
            logger.warning(
                "%s rolled back: transfer_from %s of %s raised %r", operation, owner, amount, e,
            )
            raise
        if not ok:
            on_rollback()
            logger.warning(
                "%s rolled back: transfer_from %s of %s failed", operation, owner, amount,
            )
            raise ExternalTransferFailure(operation, self._pool, amount)

    def _push(
        self,
        recipient: str,
        amount: int,
        operation: str,
        on_rollback: Callable[[], None],
    ) -> None:
        """transfer(pool -> recipient). Rolls back and raises on failure."""
        try:
            ok = self._token.transfer(recipient, amount)
        except Exception as e:
            on_rollback()
            logger.warning(
                "%s rolled back: transfer of %s to %s raised %r", operation, amount, recipient, e,
            )
            raise
        if not ok:
            on_rollback()
            logger.warning(
                "%s rolled back: transfer of %s to %s failed", operation, amount, recipient,
            )
            raise ExternalTransferFailure(operation, recipient, amount)

    def _emit(self, kind: EventKind, actor_id: str, now: int, **payload: object) -> None:
        """Record a notification for an operation that has already committed.

        A failing event sink is logged, not propagated; the ledger state
        is already final.
        """
        logger.debug("%s by %s at %s: %s", kind.value, actor_id, now, payload)
        if self._event_log is None:
            return
        try:
            self._event_log.emit(kind, actor_id, now, **payload)
        except OSError as e:
            logger.warning("Event log degraded, %s not persisted: %s", kind.value, e)


def require_identity(identity: str, label: str) -> None:
    if not identity or not identity.strip():
        raise InvalidArgumentError(f"{label} identity must not be blank")


def require_non_negative(amount: int, label: str) -> None:
    # bool is an int subclass but never a token amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidArgumentError(
            f"{label} must be an int, got {amount!r}"
        )
    if amount < 0:
        raise InvalidArgumentError(f"{label} must not be negative, got {amount}")
