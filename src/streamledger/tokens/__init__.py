"""Token ledger collaborator interface and in-memory backend."""

from streamledger.tokens.ledger import InMemoryTokenLedger, TokenLedger

__all__ = ["InMemoryTokenLedger", "TokenLedger"]
