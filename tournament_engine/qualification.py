"""Qualification from the group stage and the split into seeding pots.

Every group sends its winner and runner-up through; the two best third-placed
teams across all groups complete the field. Pot 1 holds the group winners and
the best runner-up, Pot 2 everybody else.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .models import GroupStandings, QualifiedTeam, StandingRow
from .ranking import rank_group, rank_third_placed

log = logging.getLogger("tournament-engine")

THIRD_PLACE_QUALIFIERS = 2
MIN_RANKED_TEAMS = 3


def _snapshot(row: StandingRow) -> StandingRow:
    return StandingRow.from_dict(row.to_dict())


def expected_qualifier_count(group_count: int) -> int:
    return 2 * group_count + THIRD_PLACE_QUALIFIERS


def select_qualifiers(standings: Sequence[GroupStandings]) -> list[QualifiedTeam]:
    """Return the qualified teams annotated with group, position and pot.

    An empty list means the group stage cannot produce a full field yet.
    """
    if not standings:
        return []
    short = [
        table.group_name
        for table in standings
        if len(table.teams) < MIN_RANKED_TEAMS
    ]
    if short:
        log.info("Qualification not ready; too few teams in %s", ", ".join(short))
        return []

    winners: list[QualifiedTeam] = []
    runners_up: list[QualifiedTeam] = []
    third_placed: list[QualifiedTeam] = []
    for table in standings:
        ranked = rank_group(table.teams)
        for position, bucket in ((1, winners), (2, runners_up), (3, third_placed)):
            bucket.append(
                QualifiedTeam(
                    row=_snapshot(ranked[position - 1]),
                    group_id=table.group_id,
                    group_name=table.group_name,
                    position=position,
                )
            )

    best_third = rank_third_placed(third_placed)[:THIRD_PLACE_QUALIFIERS]
    ranked_runners_up = rank_group(runners_up)
    for team in winners:
        team.pot = 1
    for index, team in enumerate(ranked_runners_up):
        team.pot = 1 if index == 0 else 2
    for team in best_third:
        team.pot = 2

    qualifiers = winners + runners_up + best_third
    if len(qualifiers) < expected_qualifier_count(len(standings)):
        return []
    return qualifiers


def split_pots(
    qualifiers: Sequence[QualifiedTeam],
) -> tuple[list[QualifiedTeam], list[QualifiedTeam]]:
    pot1 = [team for team in qualifiers if team.pot == 1]
    pot2 = [team for team in qualifiers if team.pot == 2]
    return pot1, pot2


__all__ = [
    "MIN_RANKED_TEAMS",
    "THIRD_PLACE_QUALIFIERS",
    "expected_qualifier_count",
    "select_qualifiers",
    "split_pots",
]
