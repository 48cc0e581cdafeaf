"""Mint results."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class MintKind(str, enum.Enum):
    """Which entry point settled a mint."""
    OPEN = "open"
    RESTRICTED = "restricted"


@dataclass(frozen=True)
class MintReceipt:
    """Outcome of a successful mint.

    Invariant: paid == quantity * unit_price
    """
    account: str
    kind: MintKind
    quantity: int
    token_ids: list[int]
    chapter_id: bytes
    origin_chapter: Optional[bytes]
    unit_price: int
    paid: int
    chapter_minted_out: bool
