from __future__ import annotations

import re
from collections.abc import Iterable


class TournamentError(Exception):
    """Base exception for tournament engine failures."""


class ValidationError(TournamentError, ValueError):
    """Raised when caller input is malformed or out of range."""


class InvalidGoalsError(ValidationError):
    """Raised when a goal count is missing, non-numeric or negative."""


class InvalidPenaltiesError(ValidationError):
    """Raised when a penalty shoot-out result cannot decide a winner."""


class InvalidParticipantError(ValidationError):
    """Raised when participant input cannot be accepted."""


class PreconditionError(TournamentError, RuntimeError):
    """Raised when an operation runs before its prerequisite stage is complete."""


class ConsistencyError(TournamentError):
    """Raised when persisted data no longer matches the current structure."""


_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

MAX_NAME_LENGTH = 60


def is_uuid(value: str | None) -> bool:
    if not value:
        return False
    return bool(_UUID_PATTERN.match(value))


def parse_goals(value: object, label: str = "Goals") -> int:
    """Return ``value`` as a non-negative integer goal count.

    Accepts ints and integer strings (form input); rejects booleans, floats
    with a fractional part, blanks and negative numbers.
    """
    if value is None or isinstance(value, bool):
        raise InvalidGoalsError(f"{label} must be a whole number")
    if isinstance(value, int):
        goals = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise InvalidGoalsError(f"{label} must be a whole number")
        goals = int(value)
    else:
        raw = str(value).strip()
        if not _INTEGER_PATTERN.match(raw):
            raise InvalidGoalsError(
                f"{label} must be a whole number: {raw or '(empty)'}"
            )
        try:
            goals = int(raw)
        except ValueError as exc:  # pragma: no cover - guarded by the pattern
            raise InvalidGoalsError(f"{label} must be a whole number") from exc
    if goals < 0:
        raise InvalidGoalsError(f"{label} cannot be negative")
    return goals


def parse_score(home: object, away: object, label: str) -> tuple[int, int]:
    return (
        parse_goals(home, f"{label} (home)"),
        parse_goals(away, f"{label} (away)"),
    )


def validate_penalties(home: object, away: object) -> tuple[int, int]:
    if home is None or away is None:
        raise InvalidPenaltiesError(
            "Penalty scores are required when extra time ends level"
        )
    try:
        home_pens, away_pens = parse_score(home, away, "Penalties")
    except InvalidGoalsError as exc:
        raise InvalidPenaltiesError(str(exc)) from exc
    if home_pens == away_pens:
        raise InvalidPenaltiesError("Penalties cannot be equal. One team must win")
    return home_pens, away_pens


def validate_participant_name(raw: str, existing: Iterable[str] = ()) -> str:
    name = (raw or "").strip()
    if not name:
        raise InvalidParticipantError("Please enter a participant name")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidParticipantError(
            f"Participant name must be {MAX_NAME_LENGTH} characters or fewer"
        )
    if name in set(existing):
        raise InvalidParticipantError(f"Participant already exists: {name}")
    return name


def validate_distinct_teams(home_id: str, away_id: str) -> None:
    if not home_id or not away_id:
        raise ValidationError("Please select both teams")
    if home_id == away_id:
        raise ValidationError("Teams must be different")


def validate_group_layout(group_count: int, group_size: int) -> tuple[int, int]:
    if group_count < 1:
        raise ValidationError("At least one group is required")
    if group_count > 26:
        raise ValidationError("More than 26 groups are not supported")
    if group_size < 1:
        raise ValidationError("Group size must be at least 1")
    return group_count, group_size


__all__ = [
    "TournamentError",
    "ValidationError",
    "InvalidGoalsError",
    "InvalidPenaltiesError",
    "InvalidParticipantError",
    "PreconditionError",
    "ConsistencyError",
    "MAX_NAME_LENGTH",
    "is_uuid",
    "parse_goals",
    "parse_score",
    "validate_penalties",
    "validate_participant_name",
    "validate_distinct_teams",
    "validate_group_layout",
]
