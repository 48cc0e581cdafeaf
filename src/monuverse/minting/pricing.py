"""Pricing groups: who may mint in the current chapter, and at what price.

Every whitelisted account belongs to the group of the chapter it was
whitelisted in (its origin chapter). In the current chapter:

- the native group (origin == current) is always enabled and pays the
  current chapter's price;
- another group is enabled only if the current chapter carries an
  enabled rule for it; a fixed-price rule keeps that group's own
  chapter price, otherwise it pays the current price;
- everyone else (open mint) pays the current chapter's price.

All prices returned here are integer wei. Offer checks are exact: no
overpayment tolerance.
"""

from __future__ import annotations

import logging

from monuverse.crypto.hashing import ChapterRef, resolve_chapter_id
from monuverse.episode.state_machine import ChapterStateMachine

logger = logging.getLogger(__name__)


class PricingGroupResolver:
    """Resolves group rules and prices against the live chapter."""

    def __init__(self, state_machine: ChapterStateMachine) -> None:
        self._state_machine = state_machine

    def group_rule(self, current: ChapterRef, origin: ChapterRef) -> tuple[bool, bool]:
        """Return ``(enabled, fixed_price)`` for ``origin`` minters in ``current``."""
        chapter = self._state_machine.chapter(current)
        if resolve_chapter_id(origin) == chapter.chapter_id:
            return True, False
        rule = chapter.rule_for(origin)
        if rule is None:
            return False, False
        return rule.enabled, rule.fixed_price

    def current_group_price(self, origin: ChapterRef) -> int:
        """Unit price in wei that ``origin`` minters pay right now."""
        current = self._state_machine.current
        enabled, fixed_price = self.group_rule(current.chapter_id, origin)
        if enabled and fixed_price:
            price = self._state_machine.chapter(origin).minting.price_wei
        else:
            price = current.minting.price_wei
        logger.debug(
            "Group price in %r for origin %s: %d wei (enabled=%s, fixed=%s)",
            current.label, _short(origin), price, enabled, fixed_price,
        )
        return price

    def current_default_price(self) -> int:
        """Unit price in wei of the current chapter (open mint price)."""
        return self._state_machine.current.minting.price_wei

    def offer_matches_group_price(self, origin: ChapterRef, quantity: int, amount: int) -> bool:
        return amount == quantity * self.current_group_price(origin)

    def offer_matches_default_price(self, quantity: int, amount: int) -> bool:
        return amount == quantity * self.current_default_price()


def _short(ref: ChapterRef) -> str:
    if isinstance(ref, (bytes, bytearray)):
        return "0x" + bytes(ref).hex()[:8]
    return repr(ref)
