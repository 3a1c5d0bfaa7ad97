"""Play a whole cup with random results, for demos and smoke testing."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from itertools import combinations

from .bracket import STAGE_NAMES, random_result
from .draw import DrawStep
from .models import FINAL, QUARTERFINAL, SEMIFINAL, THIRD_PLACE, KnockoutBracket
from .service import TournamentService

log = logging.getLogger("tournament-engine")

DEFAULT_NAMES = (
    "Alex",
    "Bea",
    "Carlos",
    "Dana",
    "Eli",
    "Farah",
    "Gus",
    "Hana",
    "Ivan",
    "Jade",
    "Kofi",
    "Lena",
    "Milo",
    "Nora",
    "Omar",
    "Pia",
    "Quinn",
    "Rosa",
)


def play_group_stage(service: TournamentService, rng: random.Random) -> int:
    """Record one random result for every pairing in every group."""
    played = 0
    for table in service.standings():
        ids = [row.participant_id for row in table.teams]
        for home_id, away_id in combinations(ids, 2):
            service.record_group_match(
                table.group_id, home_id, away_id, rng.randint(0, 4), rng.randint(0, 4)
            )
            played += 1
    return played


def play_knockout(service: TournamentService, rng: random.Random) -> KnockoutBracket:
    bracket = service.seed_bracket()
    for stage in (QUARTERFINAL, SEMIFINAL, THIRD_PLACE, FINAL):
        for match in bracket.stage_matches(stage):
            if match.winner is None:
                service.record_knockout_result(match.match_id, **random_result(rng))
        bracket = service.knockout_bracket()
        log.info("Finished %s", STAGE_NAMES[stage])
    return bracket


def run_cup(
    service: TournamentService,
    names: Sequence[str] = DEFAULT_NAMES,
    *,
    rng: random.Random | None = None,
    on_draw_step: Callable[[DrawStep], None] | None = None,
) -> KnockoutBracket:
    randomizer = rng or random.Random()
    for name in names:
        service.add_participant(name)
    service.assign_order()
    service.assign_all_clubs()
    service.draw_groups(on_step=on_draw_step)
    played = play_group_stage(service, randomizer)
    log.info("Played %s group matches", played)
    return play_knockout(service, randomizer)


__all__ = ["DEFAULT_NAMES", "play_group_stage", "play_knockout", "run_cup"]
