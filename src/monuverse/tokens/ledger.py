"""Token ownership ledger.

Minimal bookkeeping for minted tokens: sequential ids starting at 0,
owner per id, balance per account, bounded by the collection's max
supply. Transfers, approvals and burns are not modelled.
"""

from __future__ import annotations

from typing import Dict, Optional

from monuverse.crypto.hashing import checksum


class TokenLedger:
    """Tracks which account owns which token id.

    Usage:
        ledger = TokenLedger(max_supply=7777)
        ids = ledger.mint("0xabc...", 3)   # [0, 1, 2]
        ledger.balance_of("0xabc...")      # 3
    """

    def __init__(self, max_supply: int) -> None:
        if max_supply <= 0:
            raise ValueError("Max supply must be positive")
        self._max_supply = max_supply
        self._owners: list[str] = []
        self._balances: Dict[str, int] = {}

    @property
    def max_supply(self) -> int:
        return self._max_supply

    @property
    def total_supply(self) -> int:
        return len(self._owners)

    @property
    def remaining_supply(self) -> int:
        return self._max_supply - len(self._owners)

    def mint(self, to: str, quantity: int) -> list[int]:
        """Credit ``quantity`` new tokens to ``to``. Returns their ids."""
        if quantity <= 0:
            raise ValueError("Mint quantity must be positive")
        if quantity > self.remaining_supply:
            raise ValueError(
                f"Minting {quantity} exceeds remaining supply ({self.remaining_supply})"
            )
        to = checksum(to)
        first = len(self._owners)
        self._owners.extend([to] * quantity)
        self._balances[to] = self._balances.get(to, 0) + quantity
        return list(range(first, first + quantity))

    def balance_of(self, account: str) -> int:
        return self._balances.get(checksum(account), 0)

    def owner_of(self, token_id: int) -> Optional[str]:
        if 0 <= token_id < len(self._owners):
            return self._owners[token_id]
        return None
