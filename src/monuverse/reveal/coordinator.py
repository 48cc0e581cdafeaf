"""Reveal coordinator: one randomness request per episode, then terminal.

State machine:
    NOT_REQUESTED → PENDING     (reveal requested in a revealing chapter)
    PENDING → REVEALED          (matching oracle callback, seed derived)

REVEALED is terminal: no further reveal requests are ever accepted. A
pending request blocks new requests but not mints, and is never
cancelled or timed out.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from monuverse.errors import AlreadyRequested, AlreadyRevealed, RevealNotAllowed, UnknownRandomnessRequest
from monuverse.models.episode import Chapter
from monuverse.reveal.oracle import RandomnessConsumer, RandomnessOracle

logger = logging.getLogger(__name__)


class RevealState(str, enum.Enum):
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    REVEALED = "revealed"


class RevealCoordinator:
    """Requests and consumes the reveal randomness exactly once."""

    def __init__(self, oracle: RandomnessOracle, max_supply: int) -> None:
        self._oracle = oracle
        self._max_supply = max_supply
        self._state = RevealState.NOT_REQUESTED
        self._request_id: Optional[int] = None
        self._seed: Optional[int] = None

    @property
    def state(self) -> RevealState:
        return self._state

    @property
    def request_id(self) -> Optional[int]:
        return self._request_id

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @property
    def is_revealed(self) -> bool:
        return self._state == RevealState.REVEALED

    def request(self, chapter: Chapter, consumer: RandomnessConsumer) -> int:
        """Issue the randomness request. Returns its id."""
        if self._state == RevealState.REVEALED:
            raise AlreadyRevealed()
        if self._state == RevealState.PENDING:
            raise AlreadyRequested(detail=f"request {self._request_id} outstanding")
        if not chapter.revealing:
            raise RevealNotAllowed(detail=chapter.label)

        request_id = self._oracle.request_random_words(consumer)
        self._request_id = request_id
        self._state = RevealState.PENDING
        logger.info("Randomness requested for reveal: request %d", request_id)
        return request_id

    def fulfill(self, request_id: int, random_word: int) -> int:
        """Consume the oracle callback. Returns the derived seed."""
        if self._state == RevealState.REVEALED:
            raise AlreadyRevealed()
        if self._state != RevealState.PENDING or request_id != self._request_id:
            raise UnknownRandomnessRequest(detail=str(request_id))

        self._seed = random_word % self._max_supply
        self._state = RevealState.REVEALED
        logger.info("Reveal fulfilled: request %d, seed %d", request_id, self._seed)
        return self._seed

    def metadata_id(self, token_id: int) -> Optional[int]:
        """Metadata index a token maps to after reveal (None while veiled)."""
        if self._seed is None:
            return None
        return (token_id + self._seed) % self._max_supply
