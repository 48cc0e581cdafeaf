"""Token ownership bookkeeping."""

from monuverse.tokens.ledger import TokenLedger

__all__ = ["TokenLedger"]
