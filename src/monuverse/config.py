"""Configuration: episode definitions and runtime settings.

Episode definitions are JSON documents (see ``config/episode.json``)
describing the collection, the chapters and the transitions between them.
Prices are written as strings and parsed as Decimal so that 0.09 ether
stays exactly 0.09 ether.

Runtime settings come from the environment. A ``.env`` file in the
working directory is loaded first (python-dotenv); real environment
variables win over it.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from monuverse.models.episode import Chapter, EpisodeEvent, GroupRule, MintingConfig, Transition


ROOT = Path(__file__).resolve().parents[2]
DEFAULT_EPISODE_PATH = ROOT / "config" / "episode.json"


@dataclass(frozen=True)
class EpisodeConfig:
    """A complete, not yet validated, episode definition."""
    name: str
    symbol: str
    max_supply: int
    initial_chapter: str
    chapters: list[Chapter]
    transitions: list[Transition]
    open_mint_limit: int = 3

    @staticmethod
    def from_file(path: Path) -> EpisodeConfig:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        return EpisodeConfig.from_dict(data)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> EpisodeConfig:
        """Parse an episode document. Raises ValueError on malformed input."""
        try:
            chapters = [_parse_chapter(c) for c in data["chapters"]]
            transitions = [_parse_transition(t) for t in data["transitions"]]
            initial = data.get("initial_chapter") or chapters[0].label
            return EpisodeConfig(
                name=str(data["name"]),
                symbol=str(data["symbol"]),
                max_supply=int(data["max_supply"]),
                initial_chapter=initial,
                chapters=chapters,
                transitions=transitions,
                open_mint_limit=int(data.get("open_mint_limit", 3)),
            )
        except KeyError as e:
            raise ValueError(f"Episode definition missing field: {e.args[0]}") from e
        except IndexError as e:
            raise ValueError("Episode definition has no chapters") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "max_supply": self.max_supply,
            "open_mint_limit": self.open_mint_limit,
            "initial_chapter": self.initial_chapter,
            "chapters": [
                {
                    "label": c.label,
                    "id": c.hex_id,
                    "whitelisting": c.whitelisting,
                    "minting": {
                        "limit": c.minting.limit,
                        "price": str(c.minting.price),
                        "rules": [
                            {"label": r.label, "enabled": r.enabled, "fixed_price": r.fixed_price}
                            for r in c.minting.rules
                        ],
                        "is_open": c.minting.is_open,
                    },
                    "revealing": c.revealing,
                    "is_conclusion": c.is_conclusion,
                }
                for c in self.chapters
            ],
            "transitions": [
                {"from": t.from_label, "event": t.event.value, "to": t.to_label}
                for t in self.transitions
            ],
        }


def _parse_price(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {value!r}") from e


def _parse_chapter(data: dict[str, Any]) -> Chapter:
    minting = data.get("minting", {})
    rules = tuple(
        GroupRule(
            label=r["label"],
            enabled=bool(r.get("enabled", True)),
            fixed_price=bool(r.get("fixed_price", False)),
        )
        for r in minting.get("rules", [])
    )
    return Chapter(
        label=data["label"],
        whitelisting=bool(data.get("whitelisting", False)),
        minting=MintingConfig(
            limit=int(minting.get("limit", 0)),
            price=_parse_price(minting.get("price", "0")),
            rules=rules,
            is_open=bool(minting.get("is_open", False)),
        ),
        revealing=bool(data.get("revealing", False)),
        is_conclusion=bool(data.get("is_conclusion", False)),
    )


def _parse_transition(data: dict[str, Any]) -> Transition:
    try:
        event = EpisodeEvent(data["event"])
    except ValueError as e:
        valid = ", ".join(ev.value for ev in EpisodeEvent)
        raise ValueError(f"Unknown transition event {data['event']!r} (valid: {valid})") from e
    return Transition(from_label=data["from"], event=event, to_label=data["to"])


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""
    episode_path: Path = DEFAULT_EPISODE_PATH
    log_level: str = "WARNING"
    event_log_path: Optional[Path] = None


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Resolve settings from ``.env`` and the process environment."""
    load_dotenv(env_file)
    episode = os.getenv("MONUVERSE_EPISODE")
    event_log = os.getenv("MONUVERSE_EVENT_LOG")
    return Settings(
        episode_path=Path(episode) if episode else DEFAULT_EPISODE_PATH,
        log_level=os.getenv("MONUVERSE_LOG_LEVEL", "WARNING").upper(),
        event_log_path=Path(event_log) if event_log else None,
    )
