"""Error taxonomy for the accrual and settlement engine.

Every error aborts the whole operation. By the time one of these reaches
the caller, any state the operation had already touched has been restored.

All errors derive from ValueError so callers that treat domain violations
as ValueError keep working.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for all ledger operation failures."""


class AuthorizationError(LedgerError):
    """Caller is not the owner, buyer or seller the operation requires."""


class NotFoundError(LedgerError):
    """Referenced deal, offering, seller or subscription does not exist."""


class InsufficientFundsError(LedgerError):
    """Withdrawal or move would dip into funds already owed to a counterparty."""


class InvalidArgumentError(LedgerError):
    """Malformed identifier, negative amount, or zero subscription deposit."""


class ExternalTransferFailure(LedgerError):
    """The token ledger reported failure; the operation was rolled back."""

    def __init__(self, operation: str, recipient: str, amount: int) -> None:
        super().__init__(
            f"Token transfer failed during {operation}: "
            f"{amount} to {recipient}"
        )
        self.operation = operation
        self.recipient = recipient
        self.amount = amount
