from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from .models import (
    AWAY,
    FINAL,
    HOME,
    LOSER,
    QUARTERFINAL,
    SEMIFINAL,
    THIRD_PLACE,
    WINNER,
    KnockoutBracket,
    KnockoutMatch,
    KnockoutSlot,
    QualifiedTeam,
    utc_now_iso,
)
from .qualification import split_pots
from .sequencing import shuffle
from .validation import (
    InvalidGoalsError,
    PreconditionError,
    ValidationError,
    parse_score,
    validate_penalties,
)

log = logging.getLogger("tournament-engine")

BRACKET_SIZE = 8
QUARTERFINAL_IDS = ("QF1", "QF2", "QF3", "QF4")
SEMIFINAL_IDS = ("SF1", "SF2")
FINAL_ID = "F"
THIRD_PLACE_ID = "3P"

STAGE_NAMES = {
    QUARTERFINAL: "Quarterfinals",
    SEMIFINAL: "Semifinals",
    THIRD_PLACE: "Third-place match",
    FINAL: "Final",
}


def pair_pots(
    pot1: Sequence[QualifiedTeam], pot2: Sequence[QualifiedTeam]
) -> list[tuple[QualifiedTeam, QualifiedTeam]]:
    """Pair each Pot 1 team with the first unused Pot 2 team from another group.

    When only same-group opponents are left the constraint is relaxed rather
    than leaving a quarterfinal empty.
    """
    if len(pot1) != len(pot2):
        raise PreconditionError(
            f"Pots must be the same size (pot 1: {len(pot1)}, pot 2: {len(pot2)})"
        )
    used: set[str] = set()
    pairs: list[tuple[QualifiedTeam, QualifiedTeam]] = []
    for home in pot1:
        available = [team for team in pot2 if team.participant_id not in used]
        away = next(
            (team for team in available if team.group_id != home.group_id), None
        )
        if away is None:
            away = available[0]
            log.warning(
                "No opponent from another group left for %s; pairing with %s",
                home.label(),
                away.label(),
            )
        used.add(away.participant_id)
        pairs.append((home, away))
    return pairs


def _source(match_id: str, outcome: str = WINNER) -> KnockoutSlot:
    return KnockoutSlot(source_match_id=match_id, source_outcome=outcome)


def create_bracket(
    qualifiers: Sequence[QualifiedTeam], *, rng: random.Random | None = None
) -> KnockoutBracket:
    if len(qualifiers) != BRACKET_SIZE:
        raise PreconditionError(
            f"{BRACKET_SIZE} qualified teams are required to seed the knockout stage "
            f"(found {len(qualifiers)})"
        )
    pot1, pot2 = split_pots(qualifiers)
    if len(pot1) != BRACKET_SIZE // 2 or len(pot2) != BRACKET_SIZE // 2:
        raise PreconditionError("Qualified teams are not split into two equal pots")

    randomizer = rng or random.Random()
    pairs = pair_pots(shuffle(pot1, randomizer), shuffle(pot2, randomizer))
    matches = [
        KnockoutMatch(
            match_id=match_id,
            stage=QUARTERFINAL,
            home=KnockoutSlot(team=home),
            away=KnockoutSlot(team=away),
        )
        for match_id, (home, away) in zip(QUARTERFINAL_IDS, pairs, strict=True)
    ]
    for index, match_id in enumerate(SEMIFINAL_IDS):
        matches.append(
            KnockoutMatch(
                match_id=match_id,
                stage=SEMIFINAL,
                home=_source(QUARTERFINAL_IDS[2 * index]),
                away=_source(QUARTERFINAL_IDS[2 * index + 1]),
            )
        )
    matches.append(
        KnockoutMatch(
            match_id=FINAL_ID,
            stage=FINAL,
            home=_source(SEMIFINAL_IDS[0]),
            away=_source(SEMIFINAL_IDS[1]),
        )
    )
    matches.append(
        KnockoutMatch(
            match_id=THIRD_PLACE_ID,
            stage=THIRD_PLACE,
            home=_source(SEMIFINAL_IDS[0], LOSER),
            away=_source(SEMIFINAL_IDS[1], LOSER),
        )
    )
    for match in matches[: len(QUARTERFINAL_IDS)]:
        log.info(
            "%s: %s vs %s",
            match.match_id,
            match.home.team.label(),
            match.away.team.label(),
        )
    return KnockoutBracket(created_at=utc_now_iso(), matches=matches)


def _propagate(bracket: KnockoutBracket, match: KnockoutMatch) -> None:
    for downstream, slot in list(bracket.dependents(match.match_id)):
        team = match.outcome_team(slot.source_outcome or WINNER)
        new_id = team.participant_id if team is not None else None
        if slot.team_id == new_id:
            continue
        slot.team = team
        if downstream.winner is not None:
            log.warning(
                "Clearing result of %s after %s changed who advances",
                downstream.match_id,
                match.match_id,
            )
            downstream.clear_result()
        _propagate(bracket, downstream)


def _refresh_outcomes(bracket: KnockoutBracket) -> None:
    final = bracket.find_match(FINAL_ID)
    third_place = bracket.find_match(THIRD_PLACE_ID)
    bracket.champion = final.winner_team() if final else None
    bracket.runner_up = final.loser_team() if final else None
    bracket.third_place_winner = third_place.winner_team() if third_place else None


def _require_match(bracket: KnockoutBracket, match_id: str) -> KnockoutMatch:
    match = bracket.find_match(match_id)
    if match is None:
        raise ValidationError(f"Match {match_id} not found")
    return match


def record_knockout_result(
    bracket: KnockoutBracket,
    match_id: str,
    home_goals: object,
    away_goals: object,
    home_extra_time_goals: object = None,
    away_extra_time_goals: object = None,
    home_penalties: object = None,
    away_penalties: object = None,
) -> KnockoutMatch:
    """Record (or correct) a knockout result and move teams along the bracket."""
    match = _require_match(bracket, match_id)
    if match.home.team is None or match.away.team is None:
        raise PreconditionError(f"{match_id} is waiting for both teams to be known")

    home, away = parse_score(home_goals, away_goals, "Goals")
    extra_home = extra_away = pens_home = pens_away = None
    if home == away:
        if home_extra_time_goals is None or away_extra_time_goals is None:
            raise InvalidGoalsError(
                "Extra time goals are required when regular time ends level"
            )
        extra_home, extra_away = parse_score(
            home_extra_time_goals, away_extra_time_goals, "Extra time goals"
        )
        if extra_home == extra_away:
            pens_home, pens_away = validate_penalties(home_penalties, away_penalties)

    if home != away:
        winner = HOME if home > away else AWAY
    elif extra_home != extra_away:
        winner = HOME if extra_home > extra_away else AWAY
    else:
        winner = HOME if pens_home > pens_away else AWAY

    match.home_goals = home
    match.away_goals = away
    match.home_extra_time_goals = extra_home
    match.away_extra_time_goals = extra_away
    match.home_penalties = pens_home
    match.away_penalties = pens_away
    match.winner = winner
    _propagate(bracket, match)
    _refresh_outcomes(bracket)
    log.info(
        "%s: %s %s %s (winner %s)",
        match.match_id,
        match.home.display(),
        format_score(match),
        match.away.display(),
        match.winner_team().participant_name,
    )
    return match


def clear_knockout_result(bracket: KnockoutBracket, match_id: str) -> KnockoutMatch:
    match = _require_match(bracket, match_id)
    match.clear_result()
    _propagate(bracket, match)
    _refresh_outcomes(bracket)
    return match


def format_score(match: KnockoutMatch) -> str:
    if match.winner is None or match.home_goals is None:
        return "vs"
    score = f"{match.home_goals}-{match.away_goals}"
    if match.home_extra_time_goals is not None:
        extra = f"{match.home_extra_time_goals}-{match.away_extra_time_goals}"
        score += f" (a.e.t. {extra})"
    if match.home_penalties is not None:
        score += f" (pens {match.home_penalties}-{match.away_penalties})"
    return score


def render_bracket(bracket: KnockoutBracket, *, shrink_completed: bool = False) -> str:
    stages = [QUARTERFINAL, SEMIFINAL, THIRD_PLACE, FINAL]
    if shrink_completed:
        pending = [
            stage
            for stage in stages
            if any(match.winner is None for match in bracket.stage_matches(stage))
        ]
        stages = pending or stages[-1:]

    lines: list[str] = []
    for stage in stages:
        lines.append(STAGE_NAMES[stage])
        for match in bracket.stage_matches(stage):
            lines.append(
                f"  [{match.match_id}] {match.home.display()} "
                f"{format_score(match)} {match.away.display()}"
            )
            winner = match.winner_team()
            if winner is not None:
                lines.append(f"    -> Winner: {winner.participant_name}")
            else:
                lines.append("    -> Winner: TBD")
        lines.append("")
    if lines and not lines[-1]:
        lines.pop()
    for label, team in (
        ("Champion", bracket.champion),
        ("Runner-up", bracket.runner_up),
        ("Third place", bracket.third_place_winner),
    ):
        if team is not None:
            lines.append(f"{label}: {team.participant_name}")
    return "\n".join(line.rstrip() for line in lines)


def random_result(rng: random.Random) -> dict[str, int]:
    result = {"home_goals": rng.randint(0, 4), "away_goals": rng.randint(0, 4)}
    if result["home_goals"] == result["away_goals"]:
        result["home_extra_time_goals"] = rng.randint(0, 2)
        result["away_extra_time_goals"] = rng.randint(0, 2)
        if result["home_extra_time_goals"] == result["away_extra_time_goals"]:
            home_pens = rng.randint(3, 5)
            choices = [value for value in range(2, 6) if value != home_pens]
            away_pens = rng.choice(choices)
            result["home_penalties"] = home_pens
            result["away_penalties"] = away_pens
    return result


def simulate_knockout(
    bracket: KnockoutBracket, *, rng: random.Random | None = None
) -> tuple[KnockoutBracket, list[tuple[str, KnockoutBracket]]]:
    randomizer = rng or random.Random()
    working = bracket.clone()
    snapshots: list[tuple[str, KnockoutBracket]] = [
        ("Initial Bracket", working.clone())
    ]
    for stage in (QUARTERFINAL, SEMIFINAL, THIRD_PLACE, FINAL):
        for match in working.stage_matches(stage):
            if match.winner is not None:
                continue
            record_knockout_result(working, match.match_id, **random_result(randomizer))
        snapshots.append((f"After {STAGE_NAMES[stage]}", working.clone()))
    return working, snapshots


__all__ = [
    "BRACKET_SIZE",
    "FINAL_ID",
    "QUARTERFINAL_IDS",
    "SEMIFINAL_IDS",
    "STAGE_NAMES",
    "THIRD_PLACE_ID",
    "clear_knockout_result",
    "create_bracket",
    "format_score",
    "pair_pots",
    "random_result",
    "record_knockout_result",
    "render_bracket",
    "simulate_knockout",
]
