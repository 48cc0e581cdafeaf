"""Episode models: chapters, minting configuration, group rules, transitions.

An episode is a directed graph of chapters. Each chapter decides whether
the whitelist may be rotated, whether and how tokens may be minted, and
whether the reveal may be requested. Edges are labelled with the event
that traverses them.

Prices are configured in ether as Decimal. No floats for money; the wei
value used for payment checks is derived exactly.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from web3 import Web3

from monuverse.crypto.hashing import ChapterRef, checksum, label_hash, resolve_chapter_id, whitelist_leaf


class EpisodeEvent(str, enum.Enum):
    """Events that move the episode from one chapter to the next.

    Values are the event names the contract emits.
    """
    ONLIFE_PROGRESSION = "EpisodeProgressedOnlife"
    MINTING_SEALED = "EpisodeMinted"
    REVEALED = "EpisodeRevealed"


@dataclass(frozen=True)
class GroupRule:
    """Grants the whitelisted natives of another chapter access to this one.

    ``fixed_price`` keeps the referenced chapter's own price for that
    group instead of the current chapter's price.
    """
    label: str
    enabled: bool = True
    fixed_price: bool = False

    @property
    def chapter_id(self) -> bytes:
        return label_hash(self.label)


@dataclass(frozen=True)
class MintingConfig:
    """How a chapter mints. ``limit == 0`` means no minting at all."""
    limit: int = 0
    price: Decimal = Decimal("0")
    rules: tuple[GroupRule, ...] = field(default_factory=tuple)
    is_open: bool = False

    @property
    def price_wei(self) -> int:
        return int(Web3.to_wei(self.price, "ether"))

    @property
    def enabled(self) -> bool:
        return self.limit > 0


@dataclass(frozen=True)
class Chapter:
    """A single node of the episode graph."""
    label: str
    whitelisting: bool = False
    minting: MintingConfig = field(default_factory=MintingConfig)
    revealing: bool = False
    is_conclusion: bool = False

    @property
    def chapter_id(self) -> bytes:
        return label_hash(self.label)

    @property
    def hex_id(self) -> str:
        return "0x" + self.chapter_id.hex()

    def rule_for(self, origin: ChapterRef) -> Optional[GroupRule]:
        """Return the first group rule referencing ``origin``, if any."""
        origin_id = resolve_chapter_id(origin)
        for rule in self.minting.rules:
            if rule.chapter_id == origin_id:
                return rule
        return None


@dataclass(frozen=True)
class Transition:
    """A labelled edge: ``from_label --event--> to_label``."""
    from_label: str
    event: EpisodeEvent
    to_label: str


@dataclass(frozen=True)
class WhitelistRecord:
    """An entry committed into the whitelist Merkle tree.

    ``chapter`` is the id of the chapter the account was whitelisted in
    (its origin group). ``limit`` is how many tokens the account may mint
    in total through restricted mints.
    """
    account: str
    limit: int
    chapter: bytes

    @staticmethod
    def create(account: str, limit: int, chapter: ChapterRef) -> WhitelistRecord:
        return WhitelistRecord(
            account=checksum(account),
            limit=limit,
            chapter=resolve_chapter_id(chapter),
        )

    @property
    def leaf(self) -> bytes:
        return whitelist_leaf(self.account, self.limit, self.chapter)
