"""Whitelist registry: the published Merkle root and membership checks.

The whitelist is a set of (account, limit, origin chapter) records
committed into a sorted-pair keccak Merkle tree off-chain. Only the root
lives here. The root may be rotated while the current chapter allows
whitelisting; verification is pure and does no bookkeeping (the mint
authorizer tracks how much each account has minted).
"""

from __future__ import annotations

from typing import Iterable, Sequence, Union

from monuverse.crypto.hashing import ZERO_BYTES32, ChapterRef, to_bytes32, whitelist_leaf
from monuverse.crypto.merkle import MerkleProof, MerkleTree, verify_proof
from monuverse.episode.state_machine import ChapterStateMachine
from monuverse.errors import WhitelistingNotAllowed
from monuverse.models.episode import WhitelistRecord


class WhitelistRegistry:
    """Stores the whitelist root and verifies membership proofs."""

    def __init__(self, state_machine: ChapterStateMachine) -> None:
        self._state_machine = state_machine
        self._root: bytes = ZERO_BYTES32

    @property
    def root(self) -> bytes:
        return self._root

    def set_root(self, root: Union[bytes, str]) -> bytes:
        """Replace the root. Only allowed while the current chapter whitelists."""
        root = to_bytes32(root)
        if not self._state_machine.current.whitelisting:
            raise WhitelistingNotAllowed(detail=self._state_machine.current.label)
        self._root = root
        return root

    def verify(
        self,
        account: str,
        limit: int,
        origin_chapter: ChapterRef,
        proof: Sequence[Union[bytes, str]],
    ) -> bool:
        """Recompute the record's leaf and check it against the stored root."""
        try:
            leaf = whitelist_leaf(account, limit, origin_chapter)
        except ValueError:
            return False
        return verify_proof(proof, self._root, leaf)


def build_whitelist(records: Iterable[WhitelistRecord]) -> tuple[MerkleTree, bytes]:
    """Commit whitelist records into a tree. Returns (tree, root)."""
    tree = MerkleTree()
    for record in records:
        tree.add_leaf(record.leaf)
    root = tree.compute_root()
    return tree, root


def proof_for(tree: MerkleTree, record: WhitelistRecord) -> MerkleProof | None:
    """Inclusion proof for a record, or None if it was never committed."""
    return tree.inclusion_proof(record.leaf)
