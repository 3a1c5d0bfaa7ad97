from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from .models import (
    Group,
    GroupStandings,
    MatchRecord,
    StandingRow,
    TeamRef,
    utc_now_iso,
)
from .ranking import rank_group
from .validation import (
    ConsistencyError,
    PreconditionError,
    ValidationError,
    parse_score,
    validate_distinct_teams,
)

log = logging.getLogger("tournament-engine")


def initialize_standings(groups: Sequence[Group]) -> list[GroupStandings]:
    return [
        GroupStandings(
            group_id=group.id,
            group_name=group.name,
            teams=rank_group(StandingRow.for_participant(team) for team in group.teams),
        )
        for group in groups
    ]


def check_structure(saved: Sequence[GroupStandings], groups: Sequence[Group]) -> None:
    """Raise ``ConsistencyError`` when ``saved`` does not describe ``groups``."""
    if len(saved) != len(groups):
        raise ConsistencyError(
            f"Stored standings cover {len(saved)} groups, draw has {len(groups)}"
        )
    groups_by_id = {group.id: group for group in groups}
    for table in saved:
        group = groups_by_id.get(table.group_id)
        if group is None:
            raise ConsistencyError(
                f"Stored standings reference unknown group {table.group_id}"
            )
        if len(table.teams) != len(group.teams):
            raise ConsistencyError(f"{group.name} membership changed")
        current_ids = group.team_ids()
        for row in table.teams:
            if row.participant_id not in current_ids:
                raise ConsistencyError(
                    f"{group.name} no longer contains {row.participant_name}"
                )


def reconcile_standings(
    saved: Sequence[GroupStandings] | None, groups: Sequence[Group]
) -> list[GroupStandings]:
    """Return standings that match ``groups``.

    Stored statistics survive only when the stored structure still matches the
    drawn groups exactly; any mismatch reinitializes every row to zero.
    """
    if not saved:
        return initialize_standings(groups)
    try:
        check_structure(saved, groups)
    except ConsistencyError as exc:
        log.warning("Reinitializing group standings: %s", exc)
        return initialize_standings(groups)

    saved_by_id = {table.group_id: table for table in saved}
    reconciled: list[GroupStandings] = []
    for group in groups:
        table = saved_by_id[group.id]
        rows: list[StandingRow] = []
        for participant in group.teams:
            stored = table.find(participant.id)
            row = StandingRow.for_participant(participant)
            if stored is not None:
                row.played = stored.played
                row.won = stored.won
                row.drawn = stored.drawn
                row.lost = stored.lost
                row.goals_for = stored.goals_for
                row.goals_against = stored.goals_against
                row.goal_difference = stored.goal_difference
                row.points = stored.points
            rows.append(row)
        reconciled.append(
            GroupStandings(
                group_id=group.id, group_name=group.name, teams=rank_group(rows)
            )
        )
    return reconciled


class StandingsLedger:
    """Group tables plus the match log that produced them."""

    def __init__(
        self,
        standings: Sequence[GroupStandings],
        history: Sequence[MatchRecord] = (),
    ) -> None:
        self.standings = list(standings)
        self.history = list(history)

    @classmethod
    def for_groups(
        cls,
        groups: Sequence[Group],
        saved: Sequence[GroupStandings] | None = None,
        history: Sequence[MatchRecord] | None = None,
    ) -> StandingsLedger:
        if not saved:
            # statistics were never stored, so no match log can back them
            return cls(initialize_standings(groups))
        try:
            check_structure(saved, groups)
        except ConsistencyError as exc:
            log.warning("Reinitializing group standings and match history: %s", exc)
            return cls(initialize_standings(groups))
        return cls(reconcile_standings(saved, groups), history or ())

    def group(self, group_id: int) -> GroupStandings:
        for table in self.standings:
            if table.group_id == group_id:
                return table
        raise PreconditionError(f"Group {group_id} has not been drawn")

    def record_match(
        self,
        group_id: int,
        home_team_id: str,
        away_team_id: str,
        home_goals: object,
        away_goals: object,
        *,
        match_id: str | None = None,
        timestamp: str | None = None,
    ) -> MatchRecord:
        validate_distinct_teams(home_team_id, away_team_id)
        table = self.group(group_id)
        home = table.find(home_team_id)
        away = table.find(away_team_id)
        if home is None or away is None:
            raise ValidationError(f"Both teams must belong to {table.group_name}")
        home_score, away_score = parse_score(home_goals, away_goals, "Goals")

        home.apply(home_score, away_score)
        away.apply(away_score, home_score)
        record = MatchRecord(
            id=match_id or str(uuid.uuid4()),
            timestamp=timestamp or utc_now_iso(),
            group_id=group_id,
            home_team=TeamRef(id=home.participant_id, name=home.participant_name),
            away_team=TeamRef(id=away.participant_id, name=away.participant_name),
            home_goals=home_score,
            away_goals=away_score,
            result=MatchRecord.outcome(home_score, away_score),
        )
        self.history.append(record)
        table.teams = rank_group(table.teams)
        log.info(
            "%s: %s %s-%s %s",
            table.group_name,
            home.participant_name,
            home_score,
            away_score,
            away.participant_name,
        )
        return record

    def find_match(self, match_id: str) -> MatchRecord | None:
        for record in self.history:
            if record.id == match_id:
                return record
        return None

    def retract_match(self, match_id: str) -> MatchRecord:
        record = self.find_match(match_id)
        if record is None:
            raise ValidationError(f"Match {match_id} not found")
        table = self.group(record.group_id)
        home = table.find(record.home_team.id)
        away = table.find(record.away_team.id)
        if home is None or away is None:
            raise ConsistencyError(
                f"Match {match_id} references teams outside {table.group_name}"
            )
        home.apply(record.home_goals, record.away_goals, sign=-1)
        away.apply(record.away_goals, record.home_goals, sign=-1)
        self.history.remove(record)
        table.teams = rank_group(table.teams)
        log.info(
            "%s: retracted %s %s-%s %s",
            table.group_name,
            record.home_team.name,
            record.home_goals,
            record.away_goals,
            record.away_team.name,
        )
        return record

    def group_history(self, group_id: int) -> list[MatchRecord]:
        return [record for record in self.history if record.group_id == group_id]


def render_standings(standings: Sequence[GroupStandings]) -> str:
    lines: list[str] = []
    for table in standings:
        lines.append(table.group_name)
        lines.append(
            f"  {'#':>2} {'Team':<24} {'P':>2} {'W':>2} {'D':>2} {'L':>2} "
            f"{'GF':>3} {'GA':>3} {'GD':>4} {'Pts':>3}"
        )
        for position, row in enumerate(table.teams, start=1):
            lines.append(
                f"  {position:>2} {row.participant_name[:24]:<24} {row.played:>2} "
                f"{row.won:>2} {row.drawn:>2} {row.lost:>2} {row.goals_for:>3} "
                f"{row.goals_against:>3} {row.goal_difference:>+4} {row.points:>3}"
            )
        lines.append("")
    if lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


__all__ = [
    "StandingsLedger",
    "render_standings",
    "check_structure",
    "initialize_standings",
    "reconcile_standings",
]
