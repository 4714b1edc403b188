"""streamledger — accrual and settlement engine for escrow marketplaces.

Buyers lock fungible tokens against time-based rates owed to sellers.
Two independent ledgers share one accrual primitive:

- DealLedger: a buyer opens a pooled deal; registered sellers accrue
  against the shared deposit at owner-set rates.
- OfferingLedger: a seller publishes offerings; each buyer subscription
  has its own deposit and a rate locked at subscribe time.
"""

from streamledger.clock import Clock, ManualClock, SystemClock
from streamledger.config import MarketConfig
from streamledger.errors import (
    AuthorizationError,
    ExternalTransferFailure,
    InsufficientFundsError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
)
from streamledger.market import DealLedger, OfferingLedger
from streamledger.models import offering_key
from streamledger.service import MarketService
from streamledger.tokens import InMemoryTokenLedger, TokenLedger

__all__ = [
    "AuthorizationError",
    "Clock",
    "DealLedger",
    "ExternalTransferFailure",
    "InMemoryTokenLedger",
    "InsufficientFundsError",
    "InvalidArgumentError",
    "LedgerError",
    "ManualClock",
    "MarketConfig",
    "MarketService",
    "NotFoundError",
    "OfferingLedger",
    "SystemClock",
    "TokenLedger",
    "offering_key",
]
