"""Core data models for the accrual marketplaces."""

from streamledger.models.deal import Deal, SellerAccount
from streamledger.models.offering import Offering, Subscription, offering_key

__all__ = [
    "Deal",
    "SellerAccount",
    "Offering",
    "Subscription",
    "offering_key",
]
