"""Reveal: randomness request/callback and seed derivation."""

from monuverse.reveal.coordinator import RevealCoordinator, RevealState
from monuverse.reveal.oracle import LocalRandomnessOracle

__all__ = ["RevealCoordinator", "RevealState", "LocalRandomnessOracle"]
