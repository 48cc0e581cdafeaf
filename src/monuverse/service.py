"""ArchOfPeace: the contract-shaped facade over the episode engine.

This is the primary interface for programmatic access to an episode.
It orchestrates all subsystems:
- Episode graph and current chapter (ChapterStateMachine)
- Whitelist root and proofs (WhitelistRegistry)
- Group pricing (PricingGroupResolver)
- Mint validation and settlement (MintAuthorizer, TokenLedger)
- Reveal request/callback (RevealCoordinator, randomness oracle)
- Audit trail (EventLog)

Calls behave like contract transactions: each takes the calling address
as ``sender``, payments are integer wei passed as ``value``, and a
rejected call raises an ``EpisodeError`` with a stable reason after
changing nothing. Every successful state change appends events to the
log.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

from monuverse.config import EpisodeConfig
from monuverse.crypto.hashing import ChapterRef, checksum
from monuverse.episode.state_machine import ChapterStateMachine
from monuverse.errors import EpisodeError, NotOwner, OnlyOracleCanFulfill
from monuverse.minting.authorizer import DEFAULT_OPEN_MINT_LIMIT, MintAuthorizer
from monuverse.minting.pricing import PricingGroupResolver
from monuverse.models.episode import Chapter, EpisodeEvent, Transition
from monuverse.models.minting import MintReceipt
from monuverse.persistence.event_log import EventKind, EventLog, EventRecord
from monuverse.reveal.coordinator import RevealCoordinator, RevealState
from monuverse.reveal.oracle import LocalRandomnessOracle, RandomnessOracle
from monuverse.tokens.ledger import TokenLedger
from monuverse.whitelist.registry import WhitelistRegistry

logger = logging.getLogger(__name__)

_TRIGGER_EVENTS = {
    EpisodeEvent.ONLIFE_PROGRESSION: EventKind.EPISODE_PROGRESSED_ONLIFE,
    EpisodeEvent.MINTING_SEALED: EventKind.EPISODE_MINTED,
    EpisodeEvent.REVEALED: EventKind.EPISODE_REVEALED,
}


@contextmanager
def _rejections(action: str) -> Iterator[None]:
    try:
        yield
    except EpisodeError as e:
        logger.info("%s rejected: %s (%s)", action, e.code, e.detail or "-")
        raise


class ArchOfPeace:
    """Episode engine facade.

    Usage:
        config = EpisodeConfig.from_file(DEFAULT_EPISODE_PATH)
        aop = ArchOfPeace.from_config(config, owner=owner_address)

        aop.set_whitelist_root(owner_address, root)
        aop.emit_onlife_event(owner_address)          # → Chapter I
        aop.mint(alice, 3, value=0, limit=3,
                 chapter="Chapter I: The Arch Builders", proof=proof)
        ...
        request_id = aop.reveal(owner_address)
        oracle.fulfill(request_id)                    # → Conclusion
    """

    def __init__(
        self,
        owner: str,
        max_supply: int,
        name: str = "Arch of Peace",
        symbol: str = "AOP",
        oracle: Optional[RandomnessOracle] = None,
        open_mint_limit: int = DEFAULT_OPEN_MINT_LIMIT,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self._owner = checksum(owner)
        self.name = name
        self.symbol = symbol
        self._oracle = oracle if oracle is not None else LocalRandomnessOracle()

        self._state_machine = ChapterStateMachine()
        self._registry = WhitelistRegistry(self._state_machine)
        self._pricing = PricingGroupResolver(self._state_machine)
        self._ledger = TokenLedger(max_supply)
        self._authorizer = MintAuthorizer(
            self._state_machine,
            self._registry,
            self._pricing,
            self._ledger,
            open_mint_limit=open_mint_limit,
        )
        self._reveal = RevealCoordinator(self._oracle, max_supply)

        self._event_log = event_log if event_log is not None else EventLog()
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count

    @classmethod
    def from_config(
        cls,
        config: EpisodeConfig,
        owner: str,
        oracle: Optional[RandomnessOracle] = None,
        event_log: Optional[EventLog] = None,
    ) -> ArchOfPeace:
        """Build an instance from an episode definition and install it."""
        instance = cls(
            owner=owner,
            max_supply=config.max_supply,
            name=config.name,
            symbol=config.symbol,
            oracle=oracle,
            open_mint_limit=config.open_mint_limit,
            event_log=event_log,
        )
        instance.install(owner, config.chapters, config.transitions, config.initial_chapter)
        return instance

    # ------------------------------------------------------------------
    # Episode
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def oracle(self) -> RandomnessOracle:
        return self._oracle

    def install(
        self,
        sender: str,
        chapters: Iterable[Chapter],
        transitions: Iterable[Transition],
        initial_label: str,
    ) -> None:
        """Write the whole episode. Owner only, once."""
        with _rejections("install"):
            self._only_owner(sender)
            initial = self._state_machine.install(chapters, transitions, initial_label)

        self._record_event(EventKind.EPISODE_INSTALLED, sender, {
            "chapters": len(self._state_machine.chapters()),
            "initial_chapter": initial.label,
        })
        self._record_event(EventKind.CHAPTER_ENTERED, sender, _chapter_payload(initial))

    def current_chapter(self) -> bytes:
        return self._state_machine.current_chapter

    def current_chapter_label(self) -> str:
        return self._state_machine.current.label

    def chapter(self, ref: ChapterRef) -> Chapter:
        return self._state_machine.chapter(ref)

    def is_final_chapter(self) -> bool:
        return self._state_machine.is_final_chapter()

    def emit_onlife_event(self, sender: str) -> Chapter:
        """Progress the episode on an onlife event. Owner only."""
        return self._advance(sender, EpisodeEvent.ONLIFE_PROGRESSION)

    def seal_minting(self, sender: str) -> Chapter:
        """Declare minting over for the current chapter. Owner only.

        Emits ``EpisodeMinted`` and follows the MintingSealed transition.
        """
        return self._advance(sender, EpisodeEvent.MINTING_SEALED)

    # ------------------------------------------------------------------
    # Whitelist
    # ------------------------------------------------------------------

    def whitelist_root(self) -> bytes:
        return self._registry.root

    def set_whitelist_root(self, sender: str, root: Union[bytes, str]) -> None:
        """Publish or rotate the whitelist root. Owner only."""
        with _rejections("set_whitelist_root"):
            self._only_owner(sender)
            stored = self._registry.set_root(root)

        logger.info("Whitelist root set to 0x%s", stored.hex())
        self._record_event(EventKind.WHITELIST_ROOT_SET, sender, {
            "root": "0x" + stored.hex(),
            "chapter": self.current_chapter_label(),
        })

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def group_rule(self, current: ChapterRef, origin: ChapterRef) -> tuple[bool, bool]:
        return self._pricing.group_rule(current, origin)

    def current_group_price(self, origin: ChapterRef) -> int:
        return self._pricing.current_group_price(origin)

    def current_default_price(self) -> int:
        return self._pricing.current_default_price()

    def offer_matches_group_price(self, origin: ChapterRef, quantity: int, amount: int) -> bool:
        return self._pricing.offer_matches_group_price(origin, quantity, amount)

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def mint(
        self,
        sender: str,
        quantity: int,
        value: int = 0,
        limit: Optional[int] = None,
        chapter: Optional[ChapterRef] = None,
        proof: Optional[Sequence[Union[bytes, str]]] = None,
    ) -> MintReceipt:
        """Mint ``quantity`` tokens to ``sender`` paying ``value`` wei.

        Without whitelist arguments this is the open mint. With ``limit``,
        ``chapter`` and ``proof`` it is the restricted (whitelisted) mint.
        """
        whitelist_args = (limit, chapter, proof)
        if any(arg is not None for arg in whitelist_args) and any(arg is None for arg in whitelist_args):
            raise TypeError("Restricted mint needs limit, chapter and proof together")

        with _rejections("mint"):
            if proof is None:
                receipt = self._authorizer.mint_open(sender, quantity, value)
            else:
                receipt = self._authorizer.mint_restricted(sender, quantity, value, limit, chapter, proof)

        self._record_event(EventKind.TOKENS_MINTED, receipt.account, {
            "kind": receipt.kind.value,
            "quantity": receipt.quantity,
            "first_token_id": receipt.token_ids[0],
            "chapter": "0x" + receipt.chapter_id.hex(),
            "origin_chapter": "0x" + receipt.origin_chapter.hex() if receipt.origin_chapter else None,
            "paid": str(receipt.paid),
        })
        if receipt.chapter_minted_out:
            self._record_event(
                EventKind.CHAPTER_MINTED,
                receipt.account,
                _chapter_payload(self._state_machine.current),
            )
        return receipt

    def remaining_allocation(self, chapter: Optional[ChapterRef] = None) -> int:
        return self._authorizer.remaining_allocation(chapter)

    def minted_by(self, account: str) -> int:
        return self._authorizer.minted_by(account)

    def is_minted_out(self) -> bool:
        return self._authorizer.is_minted_out()

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._ledger.balance_of(account)

    def owner_of(self, token_id: int) -> Optional[str]:
        return self._ledger.owner_of(token_id)

    def total_supply(self) -> int:
        return self._ledger.total_supply

    @property
    def max_supply(self) -> int:
        return self._ledger.max_supply

    def metadata_id(self, token_id: int) -> Optional[int]:
        """Revealed metadata index of a minted token (None while veiled)."""
        if self._ledger.owner_of(token_id) is None:
            return None
        return self._reveal.metadata_id(token_id)

    # ------------------------------------------------------------------
    # Reveal
    # ------------------------------------------------------------------

    @property
    def reveal_state(self) -> RevealState:
        return self._reveal.state

    def reveal(self, sender: str) -> int:
        """Request the reveal randomness. Owner only. Returns the request id."""
        with _rejections("reveal"):
            self._only_owner(sender)
            request_id = self._reveal.request(self._state_machine.current, self)

        self._record_event(EventKind.RANDOMNESS_REQUESTED, sender, {"request_id": request_id})
        return request_id

    def on_randomness_fulfilled(self, sender: str, request_id: int, random_word: int) -> None:
        """Oracle callback: complete the reveal and leave the reveal chapter.

        Only the configured oracle may deliver randomness.
        """
        with _rejections("on_randomness_fulfilled"):
            sender = checksum(sender)
            if sender != checksum(self._oracle.address):
                raise OnlyOracleCanFulfill(detail=sender)
            seed = self._reveal.fulfill(request_id, random_word)

        self._record_event(EventKind.RANDOMNESS_FULFILLED, sender, {
            "request_id": request_id,
            "seed": seed,
        })
        if self._state_machine.target_of(EpisodeEvent.REVEALED) is not None:
            self._transition(sender, EpisodeEvent.REVEALED)
        else:
            self._record_event(EventKind.EPISODE_REVEALED, sender, {
                "from": self.current_chapter_label(),
                "to": None,
            })
            logger.warning(
                "Reveal fulfilled outside a revealing chapter (%r); no transition taken",
                self.current_chapter_label(),
            )

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        return self._event_log.events(kind)

    def status(self) -> dict[str, Any]:
        """Snapshot of the episode for operators."""
        current = self._state_machine.current
        return {
            "name": self.name,
            "symbol": self.symbol,
            "current_chapter": current.label,
            "current_chapter_id": current.hex_id,
            "is_final_chapter": current.is_conclusion,
            "whitelist_root": "0x" + self._registry.root.hex(),
            "total_supply": self._ledger.total_supply,
            "max_supply": self._ledger.max_supply,
            "remaining_allocation": self._authorizer.remaining_allocation(),
            "reveal_state": self._reveal.state.value,
            "events": self._event_log.count,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _only_owner(self, sender: str) -> None:
        if checksum(sender) != self._owner:
            raise NotOwner(detail=sender)

    def _advance(self, sender: str, event: EpisodeEvent) -> Chapter:
        with _rejections(event.value):
            self._only_owner(sender)
            return self._transition(sender, event)

    def _transition(self, actor: str, event: EpisodeEvent) -> Chapter:
        source = self._state_machine.current
        entered = self._state_machine.advance(event)
        self._record_event(_TRIGGER_EVENTS[event], actor, {
            "from": source.label,
            "to": entered.label,
        })
        self._record_event(EventKind.CHAPTER_ENTERED, actor, _chapter_payload(entered))
        return entered

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(self, kind: EventKind, actor: str, payload: dict[str, Any]) -> EventRecord:
        event = EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor,
            payload=payload,
        )
        self._event_log.append(event)
        return event


def _chapter_payload(chapter: Chapter) -> dict[str, Any]:
    return {"chapter": chapter.label, "chapter_id": chapter.hex_id}
