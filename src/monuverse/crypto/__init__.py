"""Cryptographic primitives: keccak hashing, chapter ids, whitelist Merkle trees."""

from monuverse.crypto.hashing import label_hash, whitelist_leaf
from monuverse.crypto.merkle import MerkleProof, MerkleTree, verify_proof

__all__ = ["label_hash", "whitelist_leaf", "MerkleProof", "MerkleTree", "verify_proof"]
