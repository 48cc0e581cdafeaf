"""Sorted-pair keccak Merkle tree for whitelist commitments.

Uses keccak-256 as the hash function. Leaves are sorted before tree
construction to ensure determinism (canonical ordering), and every
parent is the hash of its two children in ascending byte order, so a
proof is just the list of sibling hashes: no left/right markers.

An odd node at the end of a level is promoted unchanged to the next
level. This matches OpenZeppelin's MerkleProof and merkletreejs with
``sortPairs``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from monuverse.crypto.hashing import ZERO_BYTES32, keccak_pair, to_bytes32


@dataclass(frozen=True)
class MerkleProof:
    """An inclusion proof for a single leaf."""
    leaf: bytes
    siblings: list[bytes]
    root: bytes

    def hex_siblings(self) -> list[str]:
        return ["0x" + s.hex() for s in self.siblings]


class MerkleTree:
    """A deterministic Merkle tree over 32-byte leaves.

    Usage:
        tree = MerkleTree()
        tree.add_leaf(whitelist_leaf(alice, 3, "Chapter I: The Arch Builders"))
        tree.add_leaf(whitelist_leaf(bob, 3, "Chapter II: The Chosen Ones"))
        root = tree.compute_root()
        proof = tree.inclusion_proof(leaf)
    """

    def __init__(self) -> None:
        self._leaves: list[bytes] = []
        self._tree: list[list[bytes]] = []
        self._computed = False

    def add_leaf(self, leaf: Union[bytes, str]) -> None:
        """Add a leaf hash. Must be called before compute_root."""
        if self._computed:
            raise RuntimeError("Tree already computed. Create a new tree.")
        self._leaves.append(to_bytes32(leaf))

    @property
    def leaf_count(self) -> int:
        return len(self._leaves)

    def compute_root(self) -> bytes:
        """Compute the Merkle root.

        Leaves are sorted for determinism. If no leaves, returns the zero
        root, which no proof can ever satisfy.
        """
        if not self._leaves:
            self._tree = []
            self._computed = True
            return ZERO_BYTES32

        sorted_leaves = sorted(self._leaves)
        self._tree = [sorted_leaves]

        current_level = sorted_leaves
        while len(current_level) > 1:
            next_level: list[bytes] = []
            for i in range(0, len(current_level), 2):
                if i + 1 < len(current_level):
                    next_level.append(keccak_pair(current_level[i], current_level[i + 1]))
                else:
                    next_level.append(current_level[i])  # Promote odd node
            self._tree.append(next_level)
            current_level = next_level

        self._computed = True
        return current_level[0]

    @property
    def root(self) -> bytes:
        if not self._computed:
            raise RuntimeError("Must call compute_root first")
        return self._tree[-1][0] if self._tree else ZERO_BYTES32

    def inclusion_proof(self, leaf: Union[bytes, str]) -> MerkleProof | None:
        """Generate an inclusion proof for a leaf.

        Returns None if the leaf is not in the tree.
        Must call compute_root first.
        """
        if not self._computed:
            raise RuntimeError("Must call compute_root before generating proofs")

        leaf = to_bytes32(leaf)
        if not self._tree or leaf not in self._tree[0]:
            return None

        siblings: list[bytes] = []
        current_idx = self._tree[0].index(leaf)
        for level in self._tree[:-1]:
            sibling_idx = current_idx ^ 1
            if sibling_idx < len(level):
                siblings.append(level[sibling_idx])
            current_idx //= 2

        return MerkleProof(leaf=leaf, siblings=siblings, root=self.root)


def process_proof(proof: Sequence[Union[bytes, str]], leaf: bytes) -> bytes:
    """Fold a proof onto a leaf and return the implied root."""
    computed = to_bytes32(leaf)
    for sibling in proof:
        computed = keccak_pair(computed, to_bytes32(sibling))
    return computed


def verify_proof(proof: Sequence[Union[bytes, str]], root: bytes, leaf: bytes) -> bool:
    """Check that ``leaf`` is committed under ``root``.

    The zero root never verifies. Malformed proof entries are a failed
    verification, not an exception.
    """
    if root == ZERO_BYTES32:
        return False
    try:
        return process_proof(proof, leaf) == root
    except ValueError:
        return False
