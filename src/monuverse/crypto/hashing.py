"""Keccak-256 helpers shared by the episode and the whitelist.

Chapter identifiers are content-addressed: the id of a chapter is the
keccak-256 of its UTF-8 label, so labels and ids can be used
interchangeably wherever a chapter is referenced. Whitelist leaves follow
``keccak256(abi.encodePacked(address, uint256, bytes32))``.
"""

from __future__ import annotations

import re
from typing import Union

from web3 import Web3


ZERO_BYTES32 = b"\x00" * 32

ChapterRef = Union[str, bytes]

_HEX32 = re.compile(r"^0x[0-9a-fA-F]{64}$")


def label_hash(label: str) -> bytes:
    """Return the 32-byte chapter id for a human-readable label."""
    return bytes(Web3.keccak(text=label))


def to_bytes32(value: Union[str, bytes]) -> bytes:
    """Normalise a 32-byte value given as raw bytes or ``0x`` hex."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError(f"Expected 32 bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, str) and _HEX32.match(value):
        return bytes.fromhex(value[2:])
    raise ValueError(f"Not a bytes32 value: {value!r}")


def resolve_chapter_id(ref: ChapterRef) -> bytes:
    """Resolve a chapter reference to its id.

    Accepts a raw 32-byte id, a ``0x``-prefixed 64-digit hex id, or a
    label (hashed).
    """
    if isinstance(ref, (bytes, bytearray)):
        return to_bytes32(ref)
    if _HEX32.match(ref):
        return bytes.fromhex(ref[2:])
    return label_hash(ref)


def checksum(account: str) -> str:
    """Return the EIP-55 checksum form of an address (ValueError if invalid)."""
    return Web3.to_checksum_address(account)


def whitelist_leaf(account: str, limit: int, chapter: ChapterRef) -> bytes:
    """Compute the Merkle leaf of a whitelist record."""
    if limit < 0:
        raise ValueError("Whitelist limit must be non-negative")
    return bytes(
        Web3.solidity_keccak(
            ["address", "uint256", "bytes32"],
            [checksum(account), limit, resolve_chapter_id(chapter)],
        )
    )


def keccak_pair(left: bytes, right: bytes) -> bytes:
    """Hash two nodes after sorting them, so sibling order never matters."""
    first, second = (left, right) if left <= right else (right, left)
    return bytes(Web3.keccak(first + second))
