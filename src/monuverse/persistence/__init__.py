"""Persistence: the append-only episode event log."""

from monuverse.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["EventKind", "EventLog", "EventRecord"]
