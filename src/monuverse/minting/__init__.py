"""Minting: pricing groups and mint authorization."""

from monuverse.minting.authorizer import MintAuthorizer
from monuverse.minting.pricing import PricingGroupResolver

__all__ = ["MintAuthorizer", "PricingGroupResolver"]
