"""Tournament progression engine for a groups-then-knockout football cup."""

from .models import (
    Club,
    Group,
    GroupStandings,
    KnockoutBracket,
    KnockoutMatch,
    MatchRecord,
    Participant,
    QualifiedTeam,
    StandingRow,
    TournamentSettings,
    utc_now_iso,
)
from .service import TournamentService
from .storage import InMemoryTable, TournamentStorage
from .validation import (
    ConsistencyError,
    InvalidGoalsError,
    InvalidParticipantError,
    InvalidPenaltiesError,
    PreconditionError,
    TournamentError,
    ValidationError,
    parse_goals,
    validate_participant_name,
)

__all__ = [
    "Club",
    "Group",
    "GroupStandings",
    "KnockoutBracket",
    "KnockoutMatch",
    "MatchRecord",
    "Participant",
    "QualifiedTeam",
    "StandingRow",
    "TournamentSettings",
    "utc_now_iso",
    "TournamentService",
    "InMemoryTable",
    "TournamentStorage",
    "ConsistencyError",
    "InvalidGoalsError",
    "InvalidParticipantError",
    "InvalidPenaltiesError",
    "PreconditionError",
    "TournamentError",
    "ValidationError",
    "parse_goals",
    "validate_participant_name",
]
