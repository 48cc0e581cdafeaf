"""Episode graph and chapter state machine."""

from monuverse.episode.state_machine import ChapterStateMachine

__all__ = ["ChapterStateMachine"]
