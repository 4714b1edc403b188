"""Marketplace ledgers — buyer-initiated deals and seller-initiated offerings.

The two ledgers are independent. They share only the accrual primitive
and the token/event plumbing in ``market.base``.
"""

from streamledger.market.deal_ledger import DealLedger
from streamledger.market.offering_ledger import OfferingLedger

__all__ = [
    "DealLedger",
    "OfferingLedger",
]
