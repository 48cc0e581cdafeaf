"""Monuverse CLI: inspect, validate and simulate episodes.

Usage:
    python -m monuverse.cli episode
    python -m monuverse.cli check-episode --episode config/episode.json
    python -m monuverse.cli label-hash "Chapter I: The Arch Builders"
    python -m monuverse.cli whitelist --file whitelist.json
    python -m monuverse.cli simulate --events EpisodeProgressedOnlife,EpisodeMinted --reveal
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from eth_account import Account

from monuverse.config import EpisodeConfig, Settings, load_settings
from monuverse.crypto.hashing import label_hash
from monuverse.episode.state_machine import ChapterStateMachine
from monuverse.errors import EpisodeError
from monuverse.models.episode import EpisodeEvent, WhitelistRecord
from monuverse.persistence.event_log import EventLog
from monuverse.reveal.oracle import LocalRandomnessOracle
from monuverse.service import ArchOfPeace
from monuverse.whitelist.registry import build_whitelist, proof_for


# Deterministic operator key for local simulations only.
SIMULATION_OWNER_KEY = "0x" + "01".rjust(64, "0")


def _load_episode(args: argparse.Namespace) -> EpisodeConfig:
    return EpisodeConfig.from_file(args.episode or args.settings.episode_path)


def cmd_episode(args: argparse.Namespace) -> int:
    config = _load_episode(args)
    print(json.dumps(config.to_dict(), indent=2))
    return 0


def cmd_check_episode(args: argparse.Namespace) -> int:
    config = _load_episode(args)
    errors = ChapterStateMachine.validate_episode(
        config.chapters, config.transitions, config.initial_chapter,
    )
    if errors:
        for error in errors:
            print(f"  FAIL: {error}", file=sys.stderr)
        return 1
    print(f"Episode OK: {len(config.chapters)} chapters, {len(config.transitions)} transitions")
    return 0


def cmd_label_hash(args: argparse.Namespace) -> int:
    print("0x" + label_hash(args.label).hex())
    return 0


def cmd_whitelist(args: argparse.Namespace) -> int:
    """Build the whitelist tree from a JSON list of {account, limit, chapter}."""
    with Path(args.file).open("r", encoding="utf-8") as handle:
        entries = json.load(handle)
    try:
        records = [
            WhitelistRecord.create(e["account"], int(e["limit"]), e["chapter"])
            for e in entries
        ]
    except (KeyError, ValueError) as e:
        print(f"Invalid whitelist entry: {e}", file=sys.stderr)
        return 1

    tree, root = build_whitelist(records)
    output = {
        "root": "0x" + root.hex(),
        "entries": [
            {
                "account": record.account,
                "limit": record.limit,
                "chapter": "0x" + record.chapter.hex(),
                "proof": proof_for(tree, record).hex_siblings(),
            }
            for record in records
        ],
    }
    print(json.dumps(output, indent=2))
    return 0


def _parse_events(raw: str) -> list[EpisodeEvent]:
    events: list[EpisodeEvent] = []
    for token in filter(None, (t.strip() for t in raw.split(","))):
        try:
            events.append(EpisodeEvent(token))
        except ValueError:
            events.append(EpisodeEvent[token.upper()])
    return events


def cmd_simulate(args: argparse.Namespace) -> int:
    """Walk an episode with the owner account and the local oracle."""
    config = _load_episode(args)
    try:
        events = _parse_events(args.events)
    except KeyError as e:
        valid = ", ".join(ev.value for ev in EpisodeEvent)
        print(f"Unknown event {e.args[0]!r} (valid: {valid})", file=sys.stderr)
        return 1
    if args.reveal:
        events.append(EpisodeEvent.REVEALED)

    owner = args.owner or Account.from_key(SIMULATION_OWNER_KEY).address
    oracle = LocalRandomnessOracle()
    event_log = EventLog(storage_path=args.settings.event_log_path)

    try:
        aop = ArchOfPeace.from_config(config, owner=owner, oracle=oracle, event_log=event_log)
        for event in events:
            if event == EpisodeEvent.ONLIFE_PROGRESSION:
                aop.emit_onlife_event(owner)
            elif event == EpisodeEvent.MINTING_SEALED:
                aop.seal_minting(owner)
            else:
                request_id = aop.reveal(owner)
                oracle.fulfill(request_id, args.random_word)
    except EpisodeError as e:
        print(f"Failed: {e} ({e.code})", file=sys.stderr)
        return 1

    print(json.dumps({
        "status": aop.status(),
        "events": [record.to_dict() for record in aop.events()],
    }, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monuverse",
        description="Monuverse episode engine CLI",
    )
    parser.add_argument(
        "--episode", type=Path, default=None,
        help="Episode definition (default: $MONUVERSE_EPISODE or config/episode.json)",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Logging level (default: $MONUVERSE_LOG_LEVEL or WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("episode", help="Print the episode definition as JSON")
    sub.add_parser("check-episode", help="Validate the episode definition")

    p_hash = sub.add_parser("label-hash", help="Print the chapter id of a label")
    p_hash.add_argument("label", help="Chapter label")

    p_wl = sub.add_parser("whitelist", help="Build a whitelist root and proofs")
    p_wl.add_argument("--file", required=True, help="JSON list of {account, limit, chapter}")

    p_sim = sub.add_parser("simulate", help="Run the episode locally and print its events")
    p_sim.add_argument("--events", default="", help="Comma-separated events, in order")
    p_sim.add_argument("--reveal", action="store_true", help="Request and fulfil the reveal at the end")
    p_sim.add_argument("--owner", default=None, help="Owner address (default: simulation key)")
    p_sim.add_argument("--random-word", type=int, default=None, help="Random word the oracle delivers")

    return parser


def main(argv: list[str] | None = None, settings: Optional[Settings] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.settings = settings or load_settings()
    logging.basicConfig(
        level=(args.log_level or args.settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "episode": cmd_episode,
        "check-episode": cmd_check_episode,
        "label-hash": cmd_label_hash,
        "whitelist": cmd_whitelist,
        "simulate": cmd_simulate,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
