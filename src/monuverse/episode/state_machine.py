"""Chapter state machine: the episode graph and its current-chapter pointer.

Episode lifecycle:
    install(chapters, transitions, initial) → current = initial
    advance(event) → current = transitions[(current, event)]
    ... until a conclusion chapter is reached (terminal)

Transitions are fail-closed: any (chapter, event) pair not installed is
rejected. The graph is validated once at install time and is immutable
afterwards; only the pointer moves, and only forward.

Pure computation: side effects (event logging) are handled by the
service layer.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Optional

from monuverse.crypto.hashing import ChapterRef, label_hash, resolve_chapter_id
from monuverse.errors import (
    AlreadyInstalled,
    EpisodeNotInstalled,
    InvalidEpisode,
    NoSuchTransition,
    UnknownChapter,
)
from monuverse.models.episode import Chapter, EpisodeEvent, Transition

logger = logging.getLogger(__name__)


class ChapterStateMachine:
    """Holds the installed episode and enforces its transitions.

    Usage:
        machine = ChapterStateMachine()
        machine.install(chapters, transitions, "Introduction: The Big Bang")
        machine.advance(EpisodeEvent.ONLIFE_PROGRESSION)
        machine.current.label  # "Chapter I: The Arch Builders"
    """

    def __init__(self) -> None:
        self._chapters: dict[bytes, Chapter] = {}
        self._transitions: dict[tuple[bytes, EpisodeEvent], bytes] = {}
        self._current: Optional[bytes] = None
        self._history: list[bytes] = []

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    @property
    def is_installed(self) -> bool:
        return self._current is not None

    def install(
        self,
        chapters: Iterable[Chapter],
        transitions: Iterable[Transition],
        initial_label: str,
    ) -> Chapter:
        """Install the whole episode and enter the initial chapter.

        Callable once. Nothing is installed if validation fails.
        """
        if self.is_installed:
            raise AlreadyInstalled()

        chapters = list(chapters)
        transitions = list(transitions)
        errors = self.validate_episode(chapters, transitions, initial_label)
        if errors:
            raise InvalidEpisode(errors)

        self._chapters = {c.chapter_id: c for c in chapters}
        self._transitions = {
            (label_hash(t.from_label), t.event): label_hash(t.to_label)
            for t in transitions
        }
        self._current = label_hash(initial_label)
        self._history = [self._current]
        logger.info(
            "Episode installed: %d chapters, %d transitions, starting at %r",
            len(self._chapters), len(self._transitions), initial_label,
        )
        return self.current

    @staticmethod
    def validate_episode(
        chapters: list[Chapter],
        transitions: list[Transition],
        initial_label: str,
    ) -> list[str]:
        """Check an episode definition. Returns errors (empty = OK)."""
        errors: list[str] = []

        known = {c.chapter_id for c in chapters}
        by_id: dict[bytes, Chapter] = {}
        for chapter in chapters:
            if chapter.chapter_id in by_id:
                errors.append(f"Duplicate chapter label: {chapter.label!r}")
                continue
            by_id[chapter.chapter_id] = chapter
            if chapter.minting.limit < 0:
                errors.append(f"{chapter.label!r}: minting limit must be >= 0")
            if chapter.minting.price < 0:
                errors.append(f"{chapter.label!r}: minting price must be >= 0")
            for rule in chapter.minting.rules:
                if rule.chapter_id not in known:
                    errors.append(
                        f"{chapter.label!r}: group rule references unknown chapter {rule.label!r}"
                    )
                elif rule.chapter_id == chapter.chapter_id:
                    errors.append(f"{chapter.label!r}: group rule references itself")

        if not by_id:
            errors.append("Episode has no chapters")
            return errors

        initial_id = label_hash(initial_label)
        if initial_id not in by_id:
            errors.append(f"Unknown initial chapter: {initial_label!r}")

        edges: dict[bytes, dict[EpisodeEvent, bytes]] = {cid: {} for cid in by_id}
        for t in transitions:
            src, dst = label_hash(t.from_label), label_hash(t.to_label)
            if src not in by_id:
                errors.append(f"Transition from unknown chapter: {t.from_label!r}")
                continue
            if dst not in by_id:
                errors.append(f"Transition to unknown chapter: {t.to_label!r}")
                continue
            if t.event in edges[src]:
                errors.append(
                    f"Duplicate transition: {t.from_label!r} on {t.event.value}"
                )
                continue
            edges[src][t.event] = dst

            source = by_id[src]
            if source.is_conclusion:
                errors.append(f"Conclusion chapter {t.from_label!r} has an outgoing transition")
            if t.event == EpisodeEvent.REVEALED and not source.revealing:
                errors.append(f"{t.event.value} from non-revealing chapter {t.from_label!r}")
            if t.event == EpisodeEvent.MINTING_SEALED and not source.minting.enabled:
                errors.append(f"{t.event.value} from non-minting chapter {t.from_label!r}")

        for cid, chapter in by_id.items():
            if not chapter.is_conclusion and not edges[cid]:
                errors.append(f"Chapter {chapter.label!r} is a dead end (no outgoing transitions)")
            if chapter.revealing and EpisodeEvent.REVEALED not in edges[cid]:
                errors.append(
                    f"Revealing chapter {chapter.label!r} has no {EpisodeEvent.REVEALED.value} transition"
                )

        if _has_cycle(edges):
            errors.append("Episode graph has a cycle (chapters may not be revisited)")

        if initial_id in by_id:
            reachable = _reachable(edges, initial_id)
            for cid, chapter in by_id.items():
                if cid not in reachable:
                    errors.append(f"Chapter {chapter.label!r} is unreachable from {initial_label!r}")

        return errors

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def current_chapter(self) -> bytes:
        """Id of the active chapter."""
        if self._current is None:
            raise EpisodeNotInstalled()
        return self._current

    @property
    def current(self) -> Chapter:
        return self._chapters[self.current_chapter]

    def chapter(self, ref: ChapterRef) -> Chapter:
        """Look up an installed chapter by label or id."""
        if not self.is_installed:
            raise EpisodeNotInstalled()
        chapter = self._chapters.get(resolve_chapter_id(ref))
        if chapter is None:
            raise UnknownChapter(detail=str(ref))
        return chapter

    def has_chapter(self, ref: ChapterRef) -> bool:
        return resolve_chapter_id(ref) in self._chapters

    def chapters(self) -> list[Chapter]:
        return list(self._chapters.values())

    def is_final_chapter(self) -> bool:
        return self.current.is_conclusion

    def valid_events(self, ref: Optional[ChapterRef] = None) -> set[EpisodeEvent]:
        """Events with an outgoing transition from a chapter (default: current)."""
        cid = self.current_chapter if ref is None else resolve_chapter_id(ref)
        return {event for (src, event) in self._transitions if src == cid}

    def target_of(self, event: EpisodeEvent) -> Optional[Chapter]:
        """Chapter that ``event`` would enter from the current one, if any."""
        dst = self._transitions.get((self.current_chapter, event))
        return self._chapters[dst] if dst is not None else None

    @property
    def history(self) -> list[Chapter]:
        """Chapters entered so far, in order, starting with the initial one."""
        return [self._chapters[cid] for cid in self._history]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance(self, event: EpisodeEvent) -> Chapter:
        """Traverse the transition labelled ``event`` from the current chapter.

        Returns the entered chapter.
        """
        source = self.current
        dst = self._transitions.get((source.chapter_id, event))
        if dst is None:
            raise NoSuchTransition(detail=f"{source.label!r} on {event.value}")

        self._current = dst
        self._history.append(dst)
        entered = self._chapters[dst]
        logger.info("Chapter transition: %r --%s--> %r", source.label, event.value, entered.label)
        return entered


def _reachable(edges: dict[bytes, dict[EpisodeEvent, bytes]], start: bytes) -> set[bytes]:
    seen = {start}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for dst in edges.get(node, {}).values():
            if dst not in seen:
                seen.add(dst)
                queue.append(dst)
    return seen


def _has_cycle(edges: dict[bytes, dict[EpisodeEvent, bytes]]) -> bool:
    # Kahn's algorithm: a cycle leaves nodes with non-zero in-degree.
    in_degree = {node: 0 for node in edges}
    for targets in edges.values():
        for dst in targets.values():
            in_degree[dst] += 1
    queue = deque(node for node, deg in in_degree.items() if deg == 0)
    visited = 0
    while queue:
        node = queue.popleft()
        visited += 1
        for dst in edges[node].values():
            in_degree[dst] -= 1
            if in_degree[dst] == 0:
                queue.append(dst)
    return visited != len(edges)
