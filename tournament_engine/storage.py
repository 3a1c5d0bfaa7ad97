"""Tournament data store backed by a DynamoDB table.

Each tournament field is one item: ``pk="TOURNAMENT#<id>"``,
``sk="FIELD#<field>"`` and the JSON-shaped payload under ``value``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .config import EngineConfig
from .models import (
    Club,
    Group,
    GroupStandings,
    KnockoutBracket,
    MatchRecord,
    Participant,
    TournamentSettings,
)
from .participants import normalize_participant

log = logging.getLogger("tournament-engine")

PARTICIPANT_NAMES = "participantNames"
PARTICIPANTS = "participants"
AVAILABLE_CLUBS = "availableClubs"
GROUPS = "groups"
GROUP_STANDINGS = "groupStandings"
MATCH_HISTORY = "matchHistory"
KNOCKOUT_MATCHES = "knockoutMatches"
TOURNAMENT_SETTINGS = "tournamentSettings"

FIELDS = (
    PARTICIPANT_NAMES,
    PARTICIPANTS,
    AVAILABLE_CLUBS,
    GROUPS,
    GROUP_STANDINGS,
    MATCH_HISTORY,
    KNOCKOUT_MATCHES,
    TOURNAMENT_SETTINGS,
)

Listener = Callable[[str, object], None]


def _check_field(field: str) -> None:
    if field not in FIELDS:
        raise ValueError(f"Unknown tournament field: {field}")


class TournamentStorage:
    PK_TEMPLATE = "TOURNAMENT#%s"
    SK_TEMPLATE = "FIELD#%s"

    def __init__(self, table) -> None:
        self._table = table
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("Tournament table is not configured")

    @classmethod
    def key(cls, tournament_id: str, field: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % tournament_id, "sk": cls.SK_TEMPLATE % field}

    # ----- Raw fields -----
    def get(self, tournament_id: str, field: str) -> Any | None:
        _check_field(field)
        self.ensure_table()
        resp = self._table.get_item(Key=self.key(tournament_id, field))
        item = resp.get("Item")
        if not item:
            return None
        return item.get("value")

    def set(self, tournament_id: str, field: str, value: object) -> None:
        _check_field(field)
        if value is None:
            self.delete(tournament_id, field)
            return
        self.ensure_table()
        item = self.key(tournament_id, field)
        item["value"] = value
        self._table.put_item(Item=item)
        self._notify(tournament_id, field, value)

    def delete(self, tournament_id: str, field: str) -> None:
        _check_field(field)
        self.ensure_table()
        try:
            self._table.delete_item(
                Key=self.key(tournament_id, field),
                ConditionExpression="attribute_exists(pk)",
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code != "ConditionalCheckFailedException":
                raise
            return
        self._notify(tournament_id, field, None)

    def list_fields(self, tournament_id: str) -> list[str]:
        self.ensure_table()
        resp = self._table.query(
            KeyConditionExpression=Key("pk").eq(self.PK_TEMPLATE % tournament_id)
            & Key("sk").begins_with("FIELD#"),
            Select="ALL_ATTRIBUTES",
        )
        items = resp.get("Items", [])
        return sorted(str(item["sk"]).split("#", 1)[1] for item in items)

    def clear(self, tournament_id: str) -> int:
        fields = self.list_fields(tournament_id)
        for field in fields:
            self.delete(tournament_id, field)
        return len(fields)

    def subscribe(self, tournament_id: str, callback: Listener) -> Callable[[], None]:
        """Call ``callback(field, value)`` after every write for ``tournament_id``.

        Only writes made through this storage instance are observed.
        """
        self._listeners[tournament_id].append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(tournament_id, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _notify(self, tournament_id: str, field: str, value: object) -> None:
        for callback in list(self._listeners.get(tournament_id, ())):
            callback(field, value)

    # ----- Participants -----
    def get_participant_names(self, tournament_id: str) -> list[Participant]:
        return self._participants(tournament_id, PARTICIPANT_NAMES)

    def set_participant_names(
        self, tournament_id: str, participants: Iterable[Participant]
    ) -> None:
        self.set(
            tournament_id,
            PARTICIPANT_NAMES,
            [participant.to_dict() for participant in participants],
        )

    def get_participants(self, tournament_id: str) -> list[Participant]:
        return self._participants(tournament_id, PARTICIPANTS)

    def set_participants(
        self, tournament_id: str, participants: Iterable[Participant]
    ) -> None:
        self.set(
            tournament_id,
            PARTICIPANTS,
            [participant.to_dict() for participant in participants],
        )

    def _participants(self, tournament_id: str, field: str) -> list[Participant]:
        records = self.get(tournament_id, field) or []
        participants = [normalize_participant(record) for record in records]
        if any(not isinstance(entry, dict) or not entry.get("id") for entry in records):
            # pin the ids generated for legacy records
            log.info(
                "Normalized %s stored participant records in %s", len(records), field
            )
            self.set(tournament_id, field, [entry.to_dict() for entry in participants])
        return participants

    # ----- Clubs -----
    def get_available_clubs(self, tournament_id: str) -> list[Club] | None:
        data = self.get(tournament_id, AVAILABLE_CLUBS)
        if data is None:
            return None
        return [Club.from_dict(item) for item in data]

    def set_available_clubs(self, tournament_id: str, clubs: Iterable[Club]) -> None:
        self.set(tournament_id, AVAILABLE_CLUBS, [club.to_dict() for club in clubs])

    # ----- Group stage -----
    def get_groups(self, tournament_id: str) -> list[Group] | None:
        data = self.get(tournament_id, GROUPS)
        if not data:
            return None
        groups = [Group.from_dict(item) for item in data]
        groups.sort(key=lambda group: group.id)
        return groups

    def set_groups(self, tournament_id: str, groups: Iterable[Group]) -> None:
        self.set(tournament_id, GROUPS, [group.to_dict() for group in groups])

    def get_group_standings(self, tournament_id: str) -> list[GroupStandings] | None:
        data = self.get(tournament_id, GROUP_STANDINGS)
        if not data:
            return None
        return [GroupStandings.from_dict(item) for item in data]

    def set_group_standings(
        self, tournament_id: str, standings: Iterable[GroupStandings]
    ) -> None:
        self.set(
            tournament_id, GROUP_STANDINGS, [table.to_dict() for table in standings]
        )

    def get_match_history(self, tournament_id: str) -> list[MatchRecord]:
        data = self.get(tournament_id, MATCH_HISTORY) or []
        return [MatchRecord.from_dict(item) for item in data]

    def set_match_history(
        self, tournament_id: str, history: Iterable[MatchRecord]
    ) -> None:
        records = [record.to_dict() for record in history]
        if records:
            self.set(tournament_id, MATCH_HISTORY, records)
        else:
            self.delete(tournament_id, MATCH_HISTORY)

    # ----- Knockout -----
    def get_knockout_bracket(self, tournament_id: str) -> KnockoutBracket | None:
        data = self.get(tournament_id, KNOCKOUT_MATCHES)
        if not data:
            return None
        return KnockoutBracket.from_dict(data)

    def set_knockout_bracket(
        self, tournament_id: str, bracket: KnockoutBracket
    ) -> None:
        self.set(tournament_id, KNOCKOUT_MATCHES, bracket.to_dict())

    # ----- Settings -----
    def get_settings(self, tournament_id: str) -> TournamentSettings:
        data = self.get(tournament_id, TOURNAMENT_SETTINGS)
        return TournamentSettings.from_dict(data)

    def set_settings(self, tournament_id: str, settings: TournamentSettings) -> None:
        self.set(tournament_id, TOURNAMENT_SETTINGS, settings.to_dict())


def _key_conditions(expression) -> Iterator[tuple[str, str, object]]:
    parts = expression.get_expression()
    if parts["operator"] == "AND":
        for condition in parts["values"]:
            yield from _key_conditions(condition)
        return
    key, value = parts["values"]
    yield parts["operator"], key.name, value


class InMemoryTable:
    """Dict-backed stand-in for the handful of DynamoDB table calls used here."""

    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict[str, Any]] = {}

    def get_item(self, *, Key):
        item = self.items.get((Key["pk"], Key["sk"]))
        return {"Item": dict(item)} if item is not None else {}

    def put_item(self, *, Item):
        self.items[(Item["pk"], Item["sk"])] = dict(Item)
        return {}

    def delete_item(self, *, Key, ConditionExpression=None):
        item_key = (Key["pk"], Key["sk"])
        if item_key not in self.items:
            if ConditionExpression is not None:
                raise ClientError(
                    {
                        "Error": {
                            "Code": "ConditionalCheckFailedException",
                            "Message": "The conditional request failed",
                        }
                    },
                    "DeleteItem",
                )
            return {}
        self.items.pop(item_key)
        return {}

    def query(self, *, KeyConditionExpression, Select="ALL_ATTRIBUTES", **_kwargs):
        matches = []
        for item_key in sorted(self.items):
            item = self.items[item_key]
            for operator, name, value in _key_conditions(KeyConditionExpression):
                current = str(item.get(name, ""))
                if operator == "=" and current != value:
                    break
                if operator == "begins_with" and not current.startswith(str(value)):
                    break
            else:
                matches.append(dict(item))
        if Select == "COUNT":
            return {"Count": len(matches)}
        return {"Items": matches, "Count": len(matches)}


def connect_table(config: EngineConfig):
    """Return the configured DynamoDB table, or an in-memory one without a name."""
    if not config.table_name:
        log.info("No tournament table configured; using in-memory storage")
        return InMemoryTable()
    dynamodb = boto3.resource("dynamodb", region_name=config.aws_region)
    return dynamodb.Table(config.table_name)


__all__ = [
    "AVAILABLE_CLUBS",
    "FIELDS",
    "GROUPS",
    "GROUP_STANDINGS",
    "InMemoryTable",
    "KNOCKOUT_MATCHES",
    "MATCH_HISTORY",
    "PARTICIPANTS",
    "PARTICIPANT_NAMES",
    "TOURNAMENT_SETTINGS",
    "TournamentStorage",
    "connect_table",
]
