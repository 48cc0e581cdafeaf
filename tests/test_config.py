"""Tests for episode definitions and runtime settings."""

from decimal import Decimal
from pathlib import Path

import pytest

from monuverse.config import DEFAULT_EPISODE_PATH, EpisodeConfig, load_settings
from monuverse.models.episode import EpisodeEvent


class TestEpisodeConfig:
    def test_shipped_episode(self, episode_config: EpisodeConfig) -> None:
        assert episode_config.name == "Arch of Peace"
        assert episode_config.max_supply == 7777
        assert episode_config.open_mint_limit == 3
        assert len(episode_config.chapters) == 7
        assert len(episode_config.transitions) == 9
        assert episode_config.initial_chapter == "Introduction: The Big Bang"

    def test_prices_are_exact_decimals(self, episode_config: EpisodeConfig) -> None:
        prices = {c.label: c.minting.price for c in episode_config.chapters}
        assert prices["Chapter II: The Chosen Ones"] == Decimal("0.09")
        assert prices["Chapter IV: The Brave"] == Decimal("0.12")

    def test_round_trip_through_dict(self, episode_config: EpisodeConfig) -> None:
        assert EpisodeConfig.from_dict(episode_config.to_dict()) == episode_config

    def test_missing_field(self) -> None:
        with pytest.raises(ValueError, match="missing field: chapters"):
            EpisodeConfig.from_dict({"name": "X", "symbol": "X", "max_supply": 1})

    def test_no_chapters(self) -> None:
        with pytest.raises(ValueError, match="no chapters"):
            EpisodeConfig.from_dict({"name": "X", "symbol": "X", "max_supply": 1,
                                     "chapters": [], "transitions": []})

    def test_unknown_event(self) -> None:
        data = {
            "name": "X", "symbol": "X", "max_supply": 1,
            "chapters": [{"label": "A"}],
            "transitions": [{"from": "A", "event": "EpisodeTeleported", "to": "A"}],
        }
        with pytest.raises(ValueError, match="Unknown transition event"):
            EpisodeConfig.from_dict(data)

    def test_invalid_price(self) -> None:
        data = {
            "name": "X", "symbol": "X", "max_supply": 1,
            "chapters": [{"label": "A", "minting": {"limit": 1, "price": "cheap"}}],
            "transitions": [],
        }
        with pytest.raises(ValueError, match="Invalid price"):
            EpisodeConfig.from_dict(data)

    def test_transition_events_parsed(self, episode_config: EpisodeConfig) -> None:
        events = [t.event for t in episode_config.transitions]
        assert events.count(EpisodeEvent.MINTING_SEALED) == 3
        assert events.count(EpisodeEvent.REVEALED) == 1


ENV_VARS = ("MONUVERSE_EPISODE", "MONUVERSE_LOG_LEVEL", "MONUVERSE_EVENT_LOG")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    # setenv first so teardown also removes whatever load_dotenv writes
    for name in ENV_VARS:
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)
    return monkeypatch


class TestSettings:
    def test_defaults(self, tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
        settings = load_settings(tmp_path / "missing.env")
        assert settings.episode_path == DEFAULT_EPISODE_PATH
        assert settings.log_level == "WARNING"
        assert settings.event_log_path is None

    def test_env_file(self, tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"MONUVERSE_EPISODE={tmp_path / 'episode.json'}\n"
            "MONUVERSE_LOG_LEVEL=debug\n"
            f"MONUVERSE_EVENT_LOG={tmp_path / 'events.jsonl'}\n",
            encoding="utf-8",
        )
        settings = load_settings(env_file)
        assert settings.episode_path == tmp_path / "episode.json"
        assert settings.log_level == "DEBUG"
        assert settings.event_log_path == tmp_path / "events.jsonl"

    def test_environment_wins_over_env_file(self, tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("MONUVERSE_LOG_LEVEL=debug\n", encoding="utf-8")
        clean_env.setenv("MONUVERSE_LOG_LEVEL", "error")
        assert load_settings(env_file).log_level == "ERROR"
