"""Episode event trail: the events a deployed episode would emit.

Each successful call appends its events in emission order (chapter
entered, tokens minted, randomness requested, ...). Indexers and the CLI
read the trail back filtered by kind. A trail may be mirrored to a JSONL
file so a simulation can be resumed with event ids that keep counting.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class EventKind(str, enum.Enum):
    """Classification of episode events."""
    EPISODE_INSTALLED = "episode_installed"
    CHAPTER_ENTERED = "chapter_entered"
    WHITELIST_ROOT_SET = "whitelist_root_set"
    TOKENS_MINTED = "tokens_minted"
    CHAPTER_MINTED = "chapter_minted"
    # Transition triggers
    EPISODE_PROGRESSED_ONLIFE = "episode_progressed_onlife"
    EPISODE_MINTED = "episode_minted"
    EPISODE_REVEALED = "episode_revealed"
    # Reveal
    RANDOMNESS_REQUESTED = "randomness_requested"
    RANDOMNESS_FULFILLED = "randomness_fulfilled"


@dataclass(frozen=True)
class EventRecord:
    """One emitted event.

    ``actor_id`` is the address whose call emitted it: the owner, a
    minter, or the oracle for fulfilment. Payload values are JSON types;
    byte values are 0x-hex.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        ts = timestamp_utc or datetime.now(timezone.utc)
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts.strftime("%Y-%m-%dT%H:%M:%SZ"),
            actor_id=actor_id,
            payload=payload,
        )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> EventRecord:
        return EventRecord(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            actor_id=data["actor_id"],
            payload=data["payload"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
        }


class EventLog:
    """Events in emission order, optionally mirrored to a JSONL file.

    An existing file is read back on construction, so ``count`` reflects
    everything emitted by earlier runs.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            with storage_path.open("r", encoding="utf-8") as f:
                self._events = [EventRecord.from_dict(json.loads(line)) for line in f if line.strip()]

    def append(self, event: EventRecord) -> None:
        self._events.append(event)
        if self._storage_path:
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict(), sort_keys=True) + "\n")

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None
