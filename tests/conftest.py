"""Shared fixtures: deterministic accounts, the shipped episode, a whitelist."""

from pathlib import Path

import pytest
from eth_account import Account

from monuverse.config import EpisodeConfig
from monuverse.crypto.merkle import MerkleTree
from monuverse.models.episode import WhitelistRecord
from monuverse.reveal.oracle import LocalRandomnessOracle
from monuverse.service import ArchOfPeace
from monuverse.whitelist.registry import build_whitelist


EPISODE_PATH = Path(__file__).resolve().parents[1] / "config" / "episode.json"

WHITELIST_LIMIT = 3
ORIGIN_LABELS = (
    "Chapter I: The Arch Builders",
    "Chapter II: The Chosen Ones",
    "Chapter III: The Believers",
)
USERS_PER_ORIGIN = 4


def _make_address(index: int) -> str:
    return Account.from_key("0x" + f"{index + 1:064x}").address


@pytest.fixture
def episode_config() -> EpisodeConfig:
    return EpisodeConfig.from_file(EPISODE_PATH)


@pytest.fixture
def owner() -> str:
    return _make_address(0)


@pytest.fixture
def accounts() -> list[str]:
    return [_make_address(i) for i in range(1, 21)]


@pytest.fixture
def whitelisted(accounts: list[str]) -> dict[str, list[WhitelistRecord]]:
    """Origin label -> whitelisted records (first twelve accounts)."""
    result: dict[str, list[WhitelistRecord]] = {}
    for n, label in enumerate(ORIGIN_LABELS):
        chunk = accounts[n * USERS_PER_ORIGIN:(n + 1) * USERS_PER_ORIGIN]
        result[label] = [WhitelistRecord.create(a, WHITELIST_LIMIT, label) for a in chunk]
    return result


@pytest.fixture
def public_minters(accounts: list[str]) -> list[str]:
    return accounts[len(ORIGIN_LABELS) * USERS_PER_ORIGIN:]


@pytest.fixture
def whitelist_tree(whitelisted: dict[str, list[WhitelistRecord]]) -> tuple[MerkleTree, bytes]:
    records = [r for chunk in whitelisted.values() for r in chunk]
    return build_whitelist(records)


@pytest.fixture
def oracle() -> LocalRandomnessOracle:
    return LocalRandomnessOracle()


@pytest.fixture
def aop(episode_config: EpisodeConfig, owner: str, oracle: LocalRandomnessOracle) -> ArchOfPeace:
    return ArchOfPeace.from_config(episode_config, owner=owner, oracle=oracle)
