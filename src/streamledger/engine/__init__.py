"""Accrual engine — the shared time-to-obligation primitive."""

from streamledger.engine.accrual import (
    DEFAULT_CADENCE_SECONDS,
    effective_cadence,
    preview_accrual,
    settle,
)

__all__ = [
    "DEFAULT_CADENCE_SECONDS",
    "effective_cadence",
    "preview_accrual",
    "settle",
]
