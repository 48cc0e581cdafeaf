"""Core data models for the Monuverse episode engine."""

from monuverse.models.episode import (
    Chapter,
    EpisodeEvent,
    GroupRule,
    MintingConfig,
    Transition,
    WhitelistRecord,
)
from monuverse.models.minting import MintKind, MintReceipt

__all__ = [
    "Chapter",
    "EpisodeEvent",
    "GroupRule",
    "MintingConfig",
    "MintKind",
    "MintReceipt",
    "Transition",
    "WhitelistRecord",
]
