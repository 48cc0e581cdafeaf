"""Whitelist root storage, proof verification and tree building."""

from monuverse.whitelist.registry import WhitelistRegistry, build_whitelist, proof_for

__all__ = ["WhitelistRegistry", "build_whitelist", "proof_for"]
