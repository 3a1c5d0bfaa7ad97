"""Utility script to run a complete simulated cup from the CLI."""

from __future__ import annotations

import argparse
import logging
import pathlib
import random
import sys
from dataclasses import replace

ROOT_DIR = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:  # pragma: no cover - simple environment setup
    sys.path.insert(0, str(ROOT_DIR))

from tournament_engine.bracket import render_bracket
from tournament_engine.config import read_engine_config
from tournament_engine.draw import DrawStep
from tournament_engine.service import TournamentService
from tournament_engine.simulator import DEFAULT_NAMES, run_cup
from tournament_engine.standings import render_standings
from tournament_engine.storage import TournamentStorage, connect_table


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate a groups-then-knockout cup with random results"
    )
    parser.add_argument(
        "--tournament-id",
        type=str,
        default=None,
        help="Tournament id to store the simulation under (defaults to TOURNAMENT_ID)",
    )
    parser.add_argument(
        "--table",
        type=str,
        default=None,
        help="DynamoDB table name; omit to keep everything in memory",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for a reproducible simulation",
    )
    parser.add_argument(
        "--participants",
        type=str,
        default=None,
        help="Comma separated participant names (defaults to 18 sample names)",
    )
    parser.add_argument(
        "--no-bracket",
        action="store_true",
        help="Skip printing the standings and the rendered bracket",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: TOURNAMENT_LOG_LEVEL or INFO)",
    )
    return parser.parse_args()


def print_draw_step(step: DrawStep) -> None:
    print(
        f"Pick {step.position}: {step.participant.name} "
        f"({step.participant.club.name}) -> Group {chr(64 + step.group_id)}"
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def main() -> None:
    args = parse_args()
    config = read_engine_config()
    if args.table:
        config = replace(config, table_name=args.table)
    configure_logging(args.log_level or config.log_level)

    names = DEFAULT_NAMES
    if args.participants:
        names = tuple(
            name.strip() for name in args.participants.split(",") if name.strip()
        )

    storage = TournamentStorage(connect_table(config))
    tournament_id = args.tournament_id or config.tournament_id
    rng = random.Random(args.seed)
    service = TournamentService(
        storage,
        tournament_id,
        group_count=config.group_count,
        group_size=config.group_size,
        rng=rng,
    )
    service.clear_all()
    bracket = run_cup(
        service,
        names,
        rng=rng,
        on_draw_step=print_draw_step if config.reveal_draw else None,
    )

    if not args.no_bracket:
        print("\n=== Group Stage ===")
        print(render_standings(service.standings()))
        print("\n=== Knockout Stage ===")
        print(render_bracket(bracket))
        print("===================\n")


if __name__ == "__main__":
    main()
