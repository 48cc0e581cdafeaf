"""Rejection taxonomy for episode calls.

Every failed call raises one of these. Each class carries a stable
``reason`` string (the revert message callers assert on) and ``str(exc)``
is always exactly that reason. Extra context goes in ``detail`` and is
never part of the message.
"""

from __future__ import annotations

from typing import Optional


class EpisodeError(Exception):
    """Base class for all rejected episode calls."""

    reason: str = "MonuverseEpisode: rejected"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(self.reason)
        self.detail = detail

    @property
    def code(self) -> str:
        return type(self).__name__


# Episode (state machine, whitelist, reveal)

class WhitelistingNotAllowed(EpisodeError):
    reason = "MonuverseEpisode: whitelisting not allowed"


class RevealNotAllowed(EpisodeError):
    reason = "MonuverseEpisode: reveal not allowed"


class AlreadyRequested(EpisodeError):
    reason = "MonuverseEpisode: reveal already requested"


class AlreadyRevealed(EpisodeError):
    reason = "MonuverseEpisode: already revealed"


class NoSuchTransition(EpisodeError):
    reason = "MonuverseEpisode: no such transition"


class AlreadyInstalled(EpisodeError):
    reason = "MonuverseEpisode: episode already installed"


class EpisodeNotInstalled(EpisodeError):
    reason = "MonuverseEpisode: episode not installed"


class UnknownChapter(EpisodeError):
    reason = "MonuverseEpisode: unknown chapter"


class UnknownRandomnessRequest(EpisodeError):
    reason = "MonuverseEpisode: unknown randomness request"


class OnlyOracleCanFulfill(EpisodeError):
    reason = "VRFConsumerBaseV2: only coordinator can fulfill"


class InvalidEpisode(EpisodeError):
    """Raised by install when the episode definition fails validation.

    ``errors`` holds every problem found, in the order they were detected.
    """

    reason = "MonuverseEpisode: invalid episode"

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


# Minting

class SenderNotWhitelisted(EpisodeError):
    reason = "ArchOfPeace: sender not whitelisted"


class GroupNotAllowed(EpisodeError):
    reason = "ArchOfPeace: group not allowed"


class QuantityNotAllowed(EpisodeError):
    reason = "ArchOfPeace: quantity not allowed"


class OfferUnmatched(EpisodeError):
    reason = "ArchOfPeace: offer unmatched"


class NoMintChapter(EpisodeError):
    reason = "ArchOfPeace: no mint chapter"


# Access control

class NotOwner(EpisodeError):
    reason = "Ownable: caller is not the owner"
