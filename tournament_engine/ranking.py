"""Ordering rules for group tables and third-placed teams."""

from __future__ import annotations

from collections.abc import Iterable
from functools import cmp_to_key
from typing import Protocol, TypeVar


class Rankable(Protocol):
    @property
    def points(self) -> int: ...

    @property
    def goal_difference(self) -> int: ...

    @property
    def goals_for(self) -> int: ...

    @property
    def participant_name(self) -> str: ...


T = TypeVar("T", bound=Rankable)


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def compare_for_group_ranking(a: Rankable, b: Rankable) -> int:
    """Negative when ``a`` ranks above ``b``.

    Points, goal difference and goals scored (all descending), then
    participant name ascending so the order is always fully determined.
    """
    if a.points != b.points:
        return _sign(b.points - a.points)
    if a.goal_difference != b.goal_difference:
        return _sign(b.goal_difference - a.goal_difference)
    if a.goals_for != b.goals_for:
        return _sign(b.goals_for - a.goals_for)
    if a.participant_name < b.participant_name:
        return -1
    if a.participant_name > b.participant_name:
        return 1
    return 0


def compare_for_third_place_ranking(a: Rankable, b: Rankable) -> int:
    """Points then goal difference; anything else counts as a tie."""
    if a.points != b.points:
        return _sign(b.points - a.points)
    return _sign(b.goal_difference - a.goal_difference)


def rank_group(rows: Iterable[T]) -> list[T]:
    return sorted(rows, key=cmp_to_key(compare_for_group_ranking))


def rank_third_placed(rows: Iterable[T]) -> list[T]:
    # sorted() is stable, so residual ties keep their input order
    return sorted(rows, key=cmp_to_key(compare_for_third_place_ranking))


__all__ = [
    "Rankable",
    "compare_for_group_ranking",
    "compare_for_third_place_ranking",
    "rank_group",
    "rank_third_placed",
]
