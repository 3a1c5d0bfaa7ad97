"""Group draw allocation.

The partition is computed in one pass before anything is shown. The reveal
steps only describe how to present it one participant at a time, so stopping a
reveal halfway (or skipping it) leaves the drawn groups untouched.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from .models import Club, Group, Participant, group_name_for
from .sequencing import shuffle
from .validation import PreconditionError, validate_group_layout

log = logging.getLogger("tournament-engine")

DEFAULT_GROUP_COUNT = 3
DEFAULT_GROUP_SIZE = 6


@dataclass(slots=True)
class DrawStep:
    position: int
    participant: Participant
    group_id: int
    remaining_clubs: list[Club]


@dataclass(slots=True)
class GroupDraw:
    groups: list[Group]
    steps: list[DrawStep] = field(default_factory=list)

    def reveal(self, limit: int | None = None) -> Iterator[list[Group]]:
        """Yield the partially filled groups after each revealed participant."""
        partial = [Group(id=group.id, name=group.name) for group in self.groups]
        by_id = {group.id: group for group in partial}
        for step in self.steps[:limit]:
            by_id[step.group_id].teams.append(step.participant)
            yield [
                Group(id=group.id, name=group.name, teams=list(group.teams))
                for group in partial
            ]


def empty_groups(group_count: int) -> list[Group]:
    return [
        Group(id=index + 1, name=group_name_for(index)) for index in range(group_count)
    ]


def draw_groups(
    participants: Sequence[Participant],
    group_count: int = DEFAULT_GROUP_COUNT,
    group_size: int = DEFAULT_GROUP_SIZE,
    *,
    rng: random.Random | None = None,
) -> GroupDraw:
    """Split ``participants`` round-robin over ``group_count`` groups."""
    validate_group_layout(group_count, group_size)
    if not participants:
        raise PreconditionError("No participants with selected clubs found")
    missing = [entry.name for entry in participants if entry.club is None]
    if missing:
        raise PreconditionError(
            "Every participant needs a club before the draw: " + ", ".join(missing)
        )
    capacity = group_count * group_size
    if len(participants) > capacity:
        raise PreconditionError(
            f"{len(participants)} participants do not fit into "
            f"{group_count} groups of {group_size}"
        )
    if len(participants) < group_count:
        raise PreconditionError(
            f"At least {group_count} participants are needed for {group_count} groups"
        )

    randomizer = rng or random.Random()
    drawn = shuffle(participants, randomizer)
    groups = empty_groups(group_count)
    steps: list[DrawStep] = []
    for index, participant in enumerate(drawn):
        group = groups[index % group_count]
        group.teams.append(participant)
        remaining = [entry.club for entry in drawn[index:] if entry.club is not None]
        steps.append(
            DrawStep(
                position=index + 1,
                participant=participant,
                group_id=group.id,
                remaining_clubs=shuffle(remaining, randomizer),
            )
        )
    log.info(
        "Drew %s participants into %s groups (%s)",
        len(drawn),
        group_count,
        ", ".join(f"{group.name}: {len(group.teams)}" for group in groups),
    )
    return GroupDraw(groups=groups, steps=steps)


__all__ = [
    "DEFAULT_GROUP_COUNT",
    "DEFAULT_GROUP_SIZE",
    "DrawStep",
    "GroupDraw",
    "draw_groups",
    "empty_groups",
]
