"""Mint authorizer: validates mint requests and settles them.

Two entry points, mirroring the contract's overloaded ``mint``:

    mint_open(sender, quantity, value)
        Public mint in an open chapter at the chapter's default price.
        Capped per account by ``open_mint_limit``.

    mint_restricted(sender, quantity, value, limit, chapter, proof)
        Whitelisted mint. The (sender, limit, chapter) record must be in
        the whitelist tree; ``chapter`` selects the pricing group.
        Capped per account by the whitelisted ``limit``.

Checks run in a fixed order and every check runs before any state is
touched, so a rejected call changes nothing:

    open:        NoMintChapter → SenderNotWhitelisted (chapter not open)
                 → QuantityNotAllowed → OfferUnmatched
    restricted:  NoMintChapter → SenderNotWhitelisted → QuantityNotAllowed
                 → GroupNotAllowed → OfferUnmatched

A chapter's ``limit`` caps the total supply minted so far, across all
chapters, so earlier mints count against later chapters. A chapter whose
total supply reaches its limit is minted out. Nothing advances
automatically: the owner seals minting explicitly.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Union

from monuverse.crypto.hashing import ChapterRef, checksum, resolve_chapter_id
from monuverse.episode.state_machine import ChapterStateMachine
from monuverse.errors import (
    GroupNotAllowed,
    NoMintChapter,
    OfferUnmatched,
    QuantityNotAllowed,
    SenderNotWhitelisted,
)
from monuverse.minting.pricing import PricingGroupResolver
from monuverse.models.episode import Chapter
from monuverse.models.minting import MintKind, MintReceipt
from monuverse.tokens.ledger import TokenLedger
from monuverse.whitelist.registry import WhitelistRegistry

logger = logging.getLogger(__name__)

DEFAULT_OPEN_MINT_LIMIT = 3


class MintAuthorizer:
    """Owns the per-account mint counters.

    Usage:
        authorizer = MintAuthorizer(machine, registry, pricing, ledger)
        receipt = authorizer.mint_restricted(
            alice, 3, value=0, limit=3,
            chapter="Chapter I: The Arch Builders", proof=proof,
        )
    """

    def __init__(
        self,
        state_machine: ChapterStateMachine,
        registry: WhitelistRegistry,
        pricing: PricingGroupResolver,
        ledger: TokenLedger,
        open_mint_limit: int = DEFAULT_OPEN_MINT_LIMIT,
    ) -> None:
        if open_mint_limit < 0:
            raise ValueError("Open mint limit must be non-negative")
        self._state_machine = state_machine
        self._registry = registry
        self._pricing = pricing
        self._ledger = ledger
        self._open_mint_limit = open_mint_limit
        self._restricted_minted: Dict[str, int] = {}
        self._open_minted: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def open_mint_limit(self) -> int:
        return self._open_mint_limit

    def minted_by(self, account: str) -> int:
        """Tokens minted by ``account`` through whitelisted mints."""
        return self._restricted_minted.get(checksum(account), 0)

    def open_minted_by(self, account: str) -> int:
        return self._open_minted.get(checksum(account), 0)

    def remaining_allocation(self, chapter: Optional[ChapterRef] = None) -> int:
        """Tokens still mintable before total supply hits a chapter's limit (default: current)."""
        target = self._state_machine.current if chapter is None else self._state_machine.chapter(chapter)
        return max(target.minting.limit - self._ledger.total_supply, 0)

    def is_minted_out(self, chapter: Optional[ChapterRef] = None) -> bool:
        target = self._state_machine.current if chapter is None else self._state_machine.chapter(chapter)
        return target.minting.enabled and self.remaining_allocation(target.chapter_id) == 0

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def mint_open(self, sender: str, quantity: int, value: int) -> MintReceipt:
        sender = checksum(sender)
        chapter = self._minting_chapter()

        if not chapter.minting.is_open:
            raise SenderNotWhitelisted(detail=f"{chapter.label!r} is restricted")

        if self.open_minted_by(sender) + quantity > self._open_mint_limit:
            raise QuantityNotAllowed(
                detail=f"open mint cap {self._open_mint_limit} for {sender}"
            )
        self._check_capacity(chapter, quantity)

        unit_price = self._pricing.current_default_price()
        if value != quantity * unit_price:
            raise OfferUnmatched(detail=f"expected {quantity * unit_price} wei, got {value}")

        receipt = self._settle(sender, MintKind.OPEN, chapter, None, quantity, unit_price)
        self._open_minted[sender] = self.open_minted_by(sender) + quantity
        return receipt

    def mint_restricted(
        self,
        sender: str,
        quantity: int,
        value: int,
        limit: int,
        chapter: ChapterRef,
        proof: Sequence[Union[bytes, str]],
    ) -> MintReceipt:
        sender = checksum(sender)
        current = self._minting_chapter()

        if not self._registry.verify(sender, limit, chapter, proof):
            raise SenderNotWhitelisted(detail=sender)

        if self.minted_by(sender) + quantity > limit:
            raise QuantityNotAllowed(
                detail=f"{sender} minted {self.minted_by(sender)} of {limit}"
            )
        self._check_capacity(current, quantity)

        enabled, _ = self._pricing.group_rule(current.chapter_id, chapter)
        if not enabled:
            raise GroupNotAllowed(detail=f"origin not allowed in {current.label!r}")

        unit_price = self._pricing.current_group_price(chapter)
        if value != quantity * unit_price:
            raise OfferUnmatched(detail=f"expected {quantity * unit_price} wei, got {value}")

        origin = resolve_chapter_id(chapter)
        receipt = self._settle(sender, MintKind.RESTRICTED, current, origin, quantity, unit_price)
        self._restricted_minted[sender] = self.minted_by(sender) + quantity
        return receipt

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _minting_chapter(self) -> Chapter:
        chapter = self._state_machine.current
        if not chapter.minting.enabled:
            raise NoMintChapter(detail=chapter.label)
        return chapter

    def _check_capacity(self, chapter: Chapter, quantity: int) -> None:
        if quantity <= 0:
            raise QuantityNotAllowed(detail="quantity must be positive")
        remaining = self.remaining_allocation(chapter.chapter_id)
        if quantity > remaining:
            raise QuantityNotAllowed(
                detail=f"{quantity} exceeds {chapter.label!r} allocation ({remaining} left)"
            )
        if quantity > self._ledger.remaining_supply:
            raise QuantityNotAllowed(
                detail=f"{quantity} exceeds remaining supply ({self._ledger.remaining_supply})"
            )

    def _settle(
        self,
        sender: str,
        kind: MintKind,
        chapter: Chapter,
        origin: Optional[bytes],
        quantity: int,
        unit_price: int,
    ) -> MintReceipt:
        token_ids = self._ledger.mint(sender, quantity)
        cid = chapter.chapter_id
        minted_out = self.remaining_allocation(cid) == 0
        logger.info(
            "Minted %d token(s) to %s in %r (%s, %d wei each)%s",
            quantity, sender, chapter.label, kind.value, unit_price,
            " - chapter minted out" if minted_out else "",
        )
        return MintReceipt(
            account=sender,
            kind=kind,
            quantity=quantity,
            token_ids=token_ids,
            chapter_id=cid,
            origin_chapter=origin,
            unit_price=unit_price,
            paid=quantity * unit_price,
            chapter_minted_out=minted_out,
        )
