"""Participant intake helpers and the legacy record normalizer.

Stored participant lists predate the structured format: entries may be bare
name strings or objects keyed by ``userId``. Everything read from storage goes
through ``normalize_participant`` so the engine only ever sees ``Participant``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from .models import Participant
from .validation import InvalidParticipantError, is_uuid

AVATAR_COLORS = (
    "#667eea",
    "#764ba2",
    "#f59e0b",
    "#10b981",
    "#ef4444",
    "#8b5cf6",
    "#06b6d4",
    "#ec4899",
)


def initials_avatar(name: str) -> dict[str, object]:
    words = [word for word in name.split() if word]
    initials = "".join(word[0] for word in words).upper()[:2] or "?"
    color = AVATAR_COLORS[sum(ord(char) for char in name) % len(AVATAR_COLORS)]
    return {"initials": initials, "color": color}


def new_participant(
    name: str,
    *,
    avatar: dict[str, object] | None = None,
    custom_image: str | None = None,
) -> Participant:
    return Participant(
        id=str(uuid.uuid4()),
        name=name,
        avatar=avatar if avatar is not None else initials_avatar(name),
        custom_image=(custom_image or "").strip() or None,
    )


def normalize_participant(record: object) -> Participant:
    if isinstance(record, Participant):
        return record
    if isinstance(record, str):
        name = record.strip()
        if not name:
            raise InvalidParticipantError("Stored participant has an empty name")
        return new_participant(name)
    if isinstance(record, dict):
        participant = Participant.from_dict(record)
        if not participant.id:
            participant.id = str(uuid.uuid4())
        if participant.avatar is None:
            participant.avatar = initials_avatar(participant.name)
        return participant
    raise InvalidParticipantError(
        f"Unsupported participant record: {type(record).__name__}"
    )


def migrate_participants(
    records: Iterable[object], id_map: dict[str, str] | None = None
) -> tuple[list[Participant], dict[str, str]]:
    """Normalize ``records`` and give every participant a UUID id.

    ``id_map`` carries legacy id -> UUID assignments between calls so the same
    legacy id maps to the same UUID in every stored field of one migration.
    """
    mapping = dict(id_map or {})
    migrated: list[Participant] = []
    for record in records:
        legacy_id = None
        if isinstance(record, dict):
            raw = record.get("userId") or record.get("id")
            legacy_id = str(raw) if raw else None
        participant = normalize_participant(record)
        if legacy_id and not is_uuid(legacy_id):
            participant.id = mapping.setdefault(legacy_id, str(uuid.uuid4()))
        migrated.append(participant)
    return migrated, mapping


__all__ = [
    "AVATAR_COLORS",
    "initials_avatar",
    "migrate_participants",
    "new_participant",
    "normalize_participant",
]
