from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

HOME = "home"
AWAY = "away"
DRAW = "draw"

QUARTERFINAL = "quarterfinal"
SEMIFINAL = "semifinal"
FINAL = "final"
THIRD_PLACE = "thirdPlace"

WINNER = "winner"
LOSER = "loser"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format (ms precision)."""
    return datetime.now(UTC).strftime(ISO_FORMAT)


def _as_int(value: object, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return int(value)
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):  # pragma: no cover - malformed stored value
        return default


def _as_optional_int(value: object) -> int | None:
    if value is None or value == "":
        return None
    return _as_int(value)


def _as_optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def group_name_for(index: int) -> str:
    """Return the display name for the zero-based group ``index``."""
    return f"Group {chr(ord('A') + index)}"


@dataclass(slots=True)
class Club:
    id: str
    name: str
    league: str
    logo: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "league": self.league,
            "logo": self.logo,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Club:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            league=str(data.get("league", "")),
            logo=str(data.get("logo", "") or ""),
        )


@dataclass(slots=True)
class Participant:
    id: str
    name: str
    avatar: dict[str, object] | None = None
    custom_image: str | None = None
    order: int | None = None
    club: Club | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"id": self.id, "name": self.name}
        if self.avatar is not None:
            data["avatar"] = dict(self.avatar)
        if self.custom_image is not None:
            data["customImage"] = self.custom_image
        if self.order is not None:
            data["order"] = self.order
        if self.club is not None:
            data["club"] = self.club.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Participant:
        avatar = data.get("avatar")
        club = data.get("club")
        return cls(
            id=str(data.get("id") or data.get("userId") or ""),
            name=str(data.get("name", "")),
            avatar=dict(avatar) if isinstance(avatar, dict) else None,
            custom_image=_as_optional_str(data.get("customImage")),
            order=_as_optional_int(data.get("order")),
            club=Club.from_dict(club) if isinstance(club, dict) else None,
        )


@dataclass(slots=True)
class Group:
    id: int
    name: str
    teams: list[Participant] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "teams": [team.to_dict() for team in self.teams],
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Group:
        teams_data: Iterable[dict[str, object]] = data.get("teams", [])  # type: ignore[assignment]
        return cls(
            id=_as_int(data.get("id")),
            name=str(data.get("name", "")),
            teams=[Participant.from_dict(item) for item in teams_data],
        )

    def team_ids(self) -> set[str]:
        return {team.id for team in self.teams}


@dataclass(slots=True)
class StandingRow:
    participant_id: str
    participant_name: str
    club: str | None = None
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0

    POINTS_FOR_WIN: ClassVar[int] = 3
    POINTS_FOR_DRAW: ClassVar[int] = 1

    @classmethod
    def for_participant(cls, participant: Participant) -> StandingRow:
        return cls(
            participant_id=participant.id,
            participant_name=participant.name,
            club=participant.club.name if participant.club else None,
        )

    def apply(self, goals_for: int, goals_against: int, sign: int = 1) -> None:
        """Add (``sign=1``) or retract (``sign=-1``) one match from this row."""
        won = 1 if goals_for > goals_against else 0
        drawn = 1 if goals_for == goals_against else 0
        lost = 1 if goals_for < goals_against else 0
        self.played += sign
        self.won += sign * won
        self.drawn += sign * drawn
        self.lost += sign * lost
        self.goals_for += sign * goals_for
        self.goals_against += sign * goals_against
        self.goal_difference = self.goals_for - self.goals_against
        self.points = self.POINTS_FOR_WIN * self.won + self.POINTS_FOR_DRAW * self.drawn

    def statistics(self) -> tuple[int, ...]:
        return (
            self.played,
            self.won,
            self.drawn,
            self.lost,
            self.goals_for,
            self.goals_against,
            self.goal_difference,
            self.points,
        )

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "participantId": self.participant_id,
            "participantName": self.participant_name,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "goalDifference": self.goal_difference,
            "points": self.points,
        }
        if self.club is not None:
            data["club"] = self.club
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> StandingRow:
        return cls(
            participant_id=str(data.get("participantId", "")),
            participant_name=str(data.get("participantName", "")),
            club=_as_optional_str(data.get("club")),
            played=_as_int(data.get("played")),
            won=_as_int(data.get("won")),
            drawn=_as_int(data.get("drawn")),
            lost=_as_int(data.get("lost")),
            goals_for=_as_int(data.get("goalsFor")),
            goals_against=_as_int(data.get("goalsAgainst")),
            goal_difference=_as_int(data.get("goalDifference")),
            points=_as_int(data.get("points")),
        )


@dataclass(slots=True)
class GroupStandings:
    group_id: int
    group_name: str
    teams: list[StandingRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "groupId": self.group_id,
            "groupName": self.group_name,
            "teams": [row.to_dict() for row in self.teams],
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> GroupStandings:
        rows: Iterable[dict[str, object]] = data.get("teams", [])  # type: ignore[assignment]
        return cls(
            group_id=_as_int(data.get("groupId")),
            group_name=str(data.get("groupName", "")),
            teams=[StandingRow.from_dict(item) for item in rows],
        )

    def find(self, participant_id: str) -> StandingRow | None:
        for row in self.teams:
            if row.participant_id == participant_id:
                return row
        return None


@dataclass(slots=True)
class TeamRef:
    id: str
    name: str

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> TeamRef:
        return cls(id=str(data.get("id", "")), name=str(data.get("name", "")))


@dataclass(slots=True)
class MatchRecord:
    id: str
    timestamp: str
    group_id: int
    home_team: TeamRef
    away_team: TeamRef
    home_goals: int
    away_goals: int
    result: str

    @staticmethod
    def outcome(home_goals: int, away_goals: int) -> str:
        if home_goals > away_goals:
            return HOME
        if home_goals < away_goals:
            return AWAY
        return DRAW

    def involves(self, participant_id: str) -> bool:
        return participant_id in (self.home_team.id, self.away_team.id)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "groupId": self.group_id,
            "homeTeam": self.home_team.to_dict(),
            "awayTeam": self.away_team.to_dict(),
            "homeGoals": self.home_goals,
            "awayGoals": self.away_goals,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> MatchRecord:
        home_goals = _as_int(data.get("homeGoals"))
        away_goals = _as_int(data.get("awayGoals"))
        return cls(
            id=str(data.get("id", "")),
            timestamp=str(data.get("timestamp", "")),
            group_id=_as_int(data.get("groupId")),
            home_team=TeamRef.from_dict(
                data.get("homeTeam", {})  # type: ignore[arg-type]
            ),
            away_team=TeamRef.from_dict(
                data.get("awayTeam", {})  # type: ignore[arg-type]
            ),
            home_goals=home_goals,
            away_goals=away_goals,
            result=str(data.get("result") or cls.outcome(home_goals, away_goals)),
        )


@dataclass(slots=True)
class QualifiedTeam:
    row: StandingRow
    group_id: int
    group_name: str
    position: int
    pot: int | None = None

    @property
    def participant_id(self) -> str:
        return self.row.participant_id

    @property
    def participant_name(self) -> str:
        return self.row.participant_name

    @property
    def points(self) -> int:
        return self.row.points

    @property
    def goal_difference(self) -> int:
        return self.row.goal_difference

    @property
    def goals_for(self) -> int:
        return self.row.goals_for

    def label(self) -> str:
        return f"{self.participant_name} ({self.group_name} #{self.position})"

    def to_dict(self) -> dict[str, object]:
        data = self.row.to_dict()
        data.update(
            {
                "groupId": self.group_id,
                "groupName": self.group_name,
                "position": self.position,
            }
        )
        if self.pot is not None:
            data["pot"] = self.pot
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> QualifiedTeam:
        return cls(
            row=StandingRow.from_dict(data),
            group_id=_as_int(data.get("groupId")),
            group_name=str(data.get("groupName", "")),
            position=_as_int(data.get("position")),
            pot=_as_optional_int(data.get("pot")),
        )


@dataclass(slots=True)
class KnockoutSlot:
    team: QualifiedTeam | None = None
    source_match_id: str | None = None
    source_outcome: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {}
        if self.team is not None:
            data["team"] = self.team.to_dict()
        if self.source_match_id is not None:
            data["sourceMatchId"] = self.source_match_id
            data["sourceOutcome"] = self.source_outcome or WINNER
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> KnockoutSlot:
        data = data or {}
        team = data.get("team")
        return cls(
            team=QualifiedTeam.from_dict(team) if isinstance(team, dict) else None,
            source_match_id=_as_optional_str(data.get("sourceMatchId")),
            source_outcome=_as_optional_str(data.get("sourceOutcome")),
        )

    @property
    def team_id(self) -> str | None:
        return self.team.participant_id if self.team is not None else None

    def display(self) -> str:
        if self.team is not None:
            return self.team.participant_name
        if self.source_match_id is not None:
            outcome = (self.source_outcome or WINNER).capitalize()
            return f"{outcome} {self.source_match_id}"
        return "TBD"


_SCORE_FIELDS = (
    ("home_goals", "homeGoals"),
    ("away_goals", "awayGoals"),
    ("home_extra_time_goals", "homeExtraTimeGoals"),
    ("away_extra_time_goals", "awayExtraTimeGoals"),
    ("home_penalties", "homePenalties"),
    ("away_penalties", "awayPenalties"),
)


@dataclass(slots=True)
class KnockoutMatch:
    match_id: str
    stage: str
    home: KnockoutSlot
    away: KnockoutSlot
    home_goals: int | None = None
    away_goals: int | None = None
    home_extra_time_goals: int | None = None
    away_extra_time_goals: int | None = None
    home_penalties: int | None = None
    away_penalties: int | None = None
    winner: str | None = None

    PENDING: ClassVar[str] = "pending"
    READY: ClassVar[str] = "ready"
    DECIDED: ClassVar[str] = "decided"

    @property
    def status(self) -> str:
        if self.winner is not None:
            return self.DECIDED
        if self.home.team is None or self.away.team is None:
            return self.PENDING
        return self.READY

    def slot(self, side: str) -> KnockoutSlot:
        return self.home if side == HOME else self.away

    def winner_team(self) -> QualifiedTeam | None:
        if self.winner is None:
            return None
        return self.slot(self.winner).team

    def loser_team(self) -> QualifiedTeam | None:
        if self.winner is None:
            return None
        return self.slot(AWAY if self.winner == HOME else HOME).team

    def outcome_team(self, outcome: str) -> QualifiedTeam | None:
        return self.winner_team() if outcome == WINNER else self.loser_team()

    def clear_result(self) -> None:
        for attr, _ in _SCORE_FIELDS:
            setattr(self, attr, None)
        self.winner = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.match_id,
            "stage": self.stage,
            "homeTeam": self.home.to_dict(),
            "awayTeam": self.away.to_dict(),
        }
        for attr, key in _SCORE_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        if self.winner is not None:
            data["winner"] = self.winner
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> KnockoutMatch:
        match = cls(
            match_id=str(data.get("id", "")),
            stage=str(data.get("stage", "")),
            home=KnockoutSlot.from_dict(data.get("homeTeam")),  # type: ignore[arg-type]
            away=KnockoutSlot.from_dict(data.get("awayTeam")),  # type: ignore[arg-type]
            winner=_as_optional_str(data.get("winner")),
        )
        for attr, key in _SCORE_FIELDS:
            setattr(match, attr, _as_optional_int(data.get(key)))
        return match


@dataclass(slots=True)
class KnockoutBracket:
    created_at: str
    matches: list[KnockoutMatch]
    champion: QualifiedTeam | None = None
    runner_up: QualifiedTeam | None = None
    third_place_winner: QualifiedTeam | None = None

    SEEDED: ClassVar[str] = "seeded"
    IN_PROGRESS: ClassVar[str] = "in_progress"
    COMPLETE: ClassVar[str] = "complete"

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "createdAt": self.created_at,
            "matches": [match.to_dict() for match in self.matches],
        }
        for key, team in (
            ("champion", self.champion),
            ("runnerUp", self.runner_up),
            ("thirdPlaceWinner", self.third_place_winner),
        ):
            if team is not None:
                data[key] = team.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> KnockoutBracket:
        matches_data: Iterable[dict[str, object]] = data.get("matches", [])  # type: ignore[assignment]

        def _team(key: str) -> QualifiedTeam | None:
            value = data.get(key)
            return QualifiedTeam.from_dict(value) if isinstance(value, dict) else None

        return cls(
            created_at=str(data.get("createdAt", "")),
            matches=[KnockoutMatch.from_dict(item) for item in matches_data],
            champion=_team("champion"),
            runner_up=_team("runnerUp"),
            third_place_winner=_team("thirdPlaceWinner"),
        )

    def clone(self) -> KnockoutBracket:
        return KnockoutBracket.from_dict(self.to_dict())

    def find_match(self, match_id: str) -> KnockoutMatch | None:
        for match in self.matches:
            if match.match_id == match_id:
                return match
        return None

    def stage_matches(self, stage: str) -> list[KnockoutMatch]:
        return [match for match in self.matches if match.stage == stage]

    def dependents(self, match_id: str) -> Iterator[tuple[KnockoutMatch, KnockoutSlot]]:
        for match in self.matches:
            for slot in (match.home, match.away):
                if slot.source_match_id == match_id:
                    yield match, slot

    @property
    def status(self) -> str:
        if (
            self.champion is not None
            and self.runner_up is not None
            and self.third_place_winner is not None
        ):
            return self.COMPLETE
        if any(match.winner is not None for match in self.matches):
            return self.IN_PROGRESS
        return self.SEEDED


@dataclass(slots=True)
class TournamentSettings:
    participant_management_enabled: bool = True
    random_ordering_enabled: bool = True
    club_selection_enabled: bool = True
    group_draw_enabled: bool = True
    tournament_table_enabled: bool = True
    knockout_stage_enabled: bool = True
    qualified_teams_enabled: bool = True

    KEYS: ClassVar[dict[str, str]] = {
        "participant_management_enabled": "participantManagementEnabled",
        "random_ordering_enabled": "randomOrderingEnabled",
        "club_selection_enabled": "clubSelectionEnabled",
        "group_draw_enabled": "groupDrawEnabled",
        "tournament_table_enabled": "tournamentTableEnabled",
        "knockout_stage_enabled": "knockoutStageEnabled",
        "qualified_teams_enabled": "qualifiedTeamsEnabled",
    }

    def to_dict(self) -> dict[str, object]:
        return {key: getattr(self, attr) for attr, key in self.KEYS.items()}

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> TournamentSettings:
        data = data or {}
        values = {
            attr: bool(data[key]) for attr, key in cls.KEYS.items() if key in data
        }
        return cls(**values)

    def enabled_pages(self) -> list[str]:
        """Return the page keys the presentation layer should show."""
        return [
            key.removesuffix("Enabled")
            for attr, key in self.KEYS.items()
            if getattr(self, attr)
        ]

    def toggle(self, key: str) -> TournamentSettings:
        for attr, stored_key in self.KEYS.items():
            if key in (attr, stored_key):
                values = {f.name: getattr(self, f.name) for f in fields(self)}
                values[attr] = not values[attr]
                return TournamentSettings(**values)
        raise KeyError(key)


__all__ = [
    "ISO_FORMAT",
    "HOME",
    "AWAY",
    "DRAW",
    "QUARTERFINAL",
    "SEMIFINAL",
    "FINAL",
    "THIRD_PLACE",
    "WINNER",
    "LOSER",
    "Club",
    "Participant",
    "Group",
    "StandingRow",
    "GroupStandings",
    "TeamRef",
    "MatchRecord",
    "QualifiedTeam",
    "KnockoutSlot",
    "KnockoutMatch",
    "KnockoutBracket",
    "TournamentSettings",
    "group_name_for",
    "utc_now_iso",
]
