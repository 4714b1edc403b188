"""Accrual algorithm — converts elapsed time into owed tokens.

This is the single source of truth for time-based obligation growth.
Both the deal ledger and the offering ledger settle through ``settle``
before acting on any rate or deposit.

Rounding policy:
    newly_accrued = rate * (now - last_settled_at) // cadence

Integer division truncates. The fractional remainder of a partial
cadence is discarded, not carried forward to the next settlement.
Callers depend on this exact behaviour, so it must not be changed to
round or to carry remainders.

The settlement timestamp always advances to ``now`` once evaluated,
even at rate zero. A zero-rate account therefore cannot later accrue
across the interval during which it was idle.
"""

from __future__ import annotations

from typing import Tuple

DEFAULT_CADENCE_SECONDS = 3600


def effective_cadence(
    cadence_seconds: int,
    default: int = DEFAULT_CADENCE_SECONDS,
) -> int:
    """Return the cadence to divide by, falling back when unset or zero."""
    if cadence_seconds <= 0:
        return default
    return cadence_seconds


def preview_accrual(
    rate: int,
    last_settled_at: int,
    now: int,
    cadence_seconds: int,
) -> int:
    """Compute what would accrue from ``last_settled_at`` to ``now``.

    Pure function; nothing is mutated.
    """
    if now <= last_settled_at:
        return 0
    return rate * (now - last_settled_at) // effective_cadence(cadence_seconds)


def settle(
    rate: int,
    last_settled_at: int,
    now: int,
    cadence_seconds: int,
) -> Tuple[int, int]:
    """Finalize accrual up to ``now``.

    Returns:
        Tuple of (newly accrued amount, new settlement timestamp).
        When ``now`` is not after ``last_settled_at`` this is
        ``(0, last_settled_at)``.
    """
    if now <= last_settled_at:
        return 0, last_settled_at
    return preview_accrual(rate, last_settled_at, now, cadence_seconds), now
