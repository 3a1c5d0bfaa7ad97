from __future__ import annotations

import random

import pytest

from tournament_engine import (
    Club,
    GroupStandings,
    InMemoryTable,
    Participant,
    StandingRow,
    TournamentService,
    TournamentStorage,
)
from tournament_engine.clubs import load_club_catalog


def make_club(index: int) -> Club:
    return Club(
        id=f"club-{index}",
        name=f"Club {index}",
        league="Test League",
        logo=f"logos/club-{index}.png",
    )


def make_participant(index: int, *, with_club: bool = True) -> Participant:
    return Participant(
        id=f"00000000-0000-4000-8000-{index:012d}",
        name=f"Player {index:02d}",
        order=index,
        club=make_club(index) if with_club else None,
    )


def make_row(
    name: str,
    *,
    points: int = 0,
    goal_difference: int = 0,
    goals_for: int = 0,
) -> StandingRow:
    return StandingRow(
        participant_id=f"id-{name}",
        participant_name=name,
        goals_for=goals_for,
        goals_against=goals_for - goal_difference,
        goal_difference=goal_difference,
        points=points,
    )


def make_table(group_id: int, rows: list[StandingRow]) -> GroupStandings:
    return GroupStandings(
        group_id=group_id, group_name=f"Group {chr(64 + group_id)}", teams=rows
    )


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def table() -> InMemoryTable:
    return InMemoryTable()


@pytest.fixture
def storage(table: InMemoryTable) -> TournamentStorage:
    return TournamentStorage(table)


@pytest.fixture
def service(storage: TournamentStorage, rng: random.Random) -> TournamentService:
    return TournamentService(
        storage, "cup-1", club_catalog=load_club_catalog(), rng=rng
    )
