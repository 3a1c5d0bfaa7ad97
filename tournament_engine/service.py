"""State transitions for one tournament, persisted through ``TournamentStorage``.

Every public method validates first and writes afterwards, so a rejected call
never leaves partial state behind. Resets cascade to every later stage.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence

from .bracket import (
    BRACKET_SIZE,
    clear_knockout_result,
    create_bracket,
    record_knockout_result,
)
from .clubs import draw_club, load_club_catalog
from .draw import (
    DEFAULT_GROUP_COUNT,
    DEFAULT_GROUP_SIZE,
    DrawStep,
    GroupDraw,
    draw_groups,
)
from .models import (
    Club,
    Group,
    GroupStandings,
    KnockoutBracket,
    KnockoutMatch,
    MatchRecord,
    Participant,
    QualifiedTeam,
    TournamentSettings,
)
from .participants import new_participant
from .qualification import select_qualifiers
from .sequencing import shuffle
from .standings import StandingsLedger
from .storage import (
    AVAILABLE_CLUBS,
    GROUP_STANDINGS,
    GROUPS,
    KNOCKOUT_MATCHES,
    MATCH_HISTORY,
    PARTICIPANTS,
    TournamentStorage,
)
from .validation import (
    InvalidParticipantError,
    PreconditionError,
    ValidationError,
    validate_group_layout,
    validate_participant_name,
)

log = logging.getLogger("tournament-engine")

MIN_PARTICIPANTS = 2


class TournamentService:
    def __init__(
        self,
        storage: TournamentStorage,
        tournament_id: str,
        *,
        group_count: int = DEFAULT_GROUP_COUNT,
        group_size: int = DEFAULT_GROUP_SIZE,
        club_catalog: Sequence[Club] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        validate_group_layout(group_count, group_size)
        self.storage = storage
        self.tournament_id = tournament_id
        self.group_count = group_count
        self.group_size = group_size
        self.club_catalog = list(club_catalog) if club_catalog is not None else None
        self.rng = rng or random.Random()

    # ----- Participants -----
    def participant_names(self) -> list[Participant]:
        return self.storage.get_participant_names(self.tournament_id)

    def add_participant(
        self,
        name: str,
        *,
        avatar: dict[str, object] | None = None,
        custom_image: str | None = None,
    ) -> Participant:
        existing = self.participant_names()
        cleaned = validate_participant_name(name, (entry.name for entry in existing))
        participant = new_participant(cleaned, avatar=avatar, custom_image=custom_image)
        self.storage.set_participant_names(self.tournament_id, [*existing, participant])
        log.info("Added participant %s (%s)", participant.name, participant.id)
        return participant

    def remove_participant(self, participant_id: str) -> Participant:
        names = self.participant_names()
        removed = next((entry for entry in names if entry.id == participant_id), None)
        if removed is None:
            raise InvalidParticipantError(f"Participant {participant_id} not found")
        tid = self.tournament_id
        self.storage.set_participant_names(
            tid, [entry for entry in names if entry.id != participant_id]
        )

        ordered = self.storage.get_participants(tid)
        stored = next((entry for entry in ordered if entry.id == participant_id), None)
        remaining = [entry for entry in ordered if entry.id != participant_id]
        if remaining:
            self.storage.set_participants(tid, remaining)
        else:
            self.storage.delete(tid, PARTICIPANTS)

        if stored is not None and stored.club is not None:
            pool = self.storage.get_available_clubs(tid)
            if pool is not None:
                self.storage.set_available_clubs(tid, [*pool, stored.club])

        groups = self.storage.get_groups(tid)
        if groups:
            for group in groups:
                group.teams = [
                    team for team in group.teams if team.id != participant_id
                ]
            groups = [group for group in groups if group.teams]
            if groups:
                self.storage.set_groups(tid, groups)
            else:
                self.storage.delete(tid, GROUPS)

        standings = self.storage.get_group_standings(tid)
        if standings:
            for table in standings:
                table.teams = [
                    row for row in table.teams if row.participant_id != participant_id
                ]
            standings = [table for table in standings if table.teams]
            if standings:
                self.storage.set_group_standings(tid, standings)
            else:
                self.storage.delete(tid, GROUP_STANDINGS)

        history = self.storage.get_match_history(tid)
        self.storage.set_match_history(
            tid, [record for record in history if not record.involves(participant_id)]
        )
        self.storage.delete(tid, KNOCKOUT_MATCHES)
        log.info("Removed participant %s (%s)", removed.name, removed.id)
        return removed

    # ----- Ordering -----
    def ordered_participants(self) -> list[Participant]:
        participants = self.storage.get_participants(self.tournament_id)
        return sorted(
            participants,
            key=lambda entry: entry.order if entry.order is not None else 1_000_000,
        )

    def is_ordered(self) -> bool:
        participants = self.storage.get_participants(self.tournament_id)
        return bool(participants) and all(
            entry.order is not None for entry in participants
        )

    def assign_order(self) -> list[Participant]:
        if self.is_ordered():
            raise PreconditionError(
                "Participants are already ordered; reset the order first"
            )
        names = self.participant_names()
        if len(names) < MIN_PARTICIPANTS:
            raise PreconditionError(
                f"Please add at least {MIN_PARTICIPANTS} participants"
            )
        ordered = shuffle(names, self.rng)
        for position, participant in enumerate(ordered, start=1):
            participant.order = position
            participant.club = None
        self.storage.set_participants(self.tournament_id, ordered)
        if self.storage.get_available_clubs(self.tournament_id) is None:
            self.storage.set_available_clubs(self.tournament_id, self._catalog())
        log.info(
            "Assigned order: %s",
            ", ".join(f"{entry.order}. {entry.name}" for entry in ordered),
        )
        return ordered

    # ----- Clubs -----
    def _catalog(self) -> list[Club]:
        if self.club_catalog is None:
            self.club_catalog = load_club_catalog()
        return list(self.club_catalog)

    def available_clubs(self) -> list[Club]:
        pool = self.storage.get_available_clubs(self.tournament_id)
        return pool if pool is not None else self._catalog()

    def assign_club(self, participant_id: str | None = None) -> Participant:
        if not self.is_ordered():
            raise PreconditionError("Generate the random order before selecting clubs")
        participants = self.ordered_participants()
        if participant_id is None:
            target = next((entry for entry in participants if entry.club is None), None)
            if target is None:
                raise PreconditionError("Every participant already has a club")
        else:
            target = next(
                (entry for entry in participants if entry.id == participant_id), None
            )
            if target is None:
                raise InvalidParticipantError(f"Participant {participant_id} not found")
            if target.club is not None:
                raise ValidationError("This participant already has a club")
        taken = {entry.club.id for entry in participants if entry.club is not None}
        pool = [club for club in self.available_clubs() if club.id not in taken]
        if not pool:
            raise PreconditionError("No more clubs available")

        club, remaining = draw_club(pool, self.rng)
        target.club = club
        self.storage.set_participants(self.tournament_id, participants)
        self.storage.set_available_clubs(self.tournament_id, remaining)
        log.info("%s drew %s (%s clubs left)", target.name, club.name, len(remaining))
        return target

    def assign_all_clubs(self) -> list[Participant]:
        assigned: list[Participant] = []
        while any(entry.club is None for entry in self.ordered_participants()):
            assigned.append(self.assign_club())
        return assigned

    # ----- Group draw -----
    def groups(self) -> list[Group] | None:
        return self.storage.get_groups(self.tournament_id)

    def draw_groups(
        self, *, on_step: Callable[[DrawStep], None] | None = None
    ) -> GroupDraw:
        """Draw and persist the groups, then replay the reveal through ``on_step``."""
        if self.groups():
            raise PreconditionError("Groups are already drawn; reset the draw first")
        participants = self.ordered_participants()
        if not participants:
            raise PreconditionError("Generate the random order before the group draw")
        if any(entry.club is None for entry in participants):
            raise PreconditionError("Please select clubs for all participants first")
        result = draw_groups(
            participants, self.group_count, self.group_size, rng=self.rng
        )
        ledger = StandingsLedger.for_groups(result.groups)
        self.storage.set_groups(self.tournament_id, result.groups)
        self.storage.set_group_standings(self.tournament_id, ledger.standings)
        self.storage.delete(self.tournament_id, MATCH_HISTORY)
        self.storage.delete(self.tournament_id, KNOCKOUT_MATCHES)
        if on_step is not None:
            for step in result.steps:
                on_step(step)
        return result

    # ----- Group stage -----
    def ledger(self) -> StandingsLedger:
        groups = self.groups()
        if not groups:
            raise PreconditionError("Groups have not been drawn yet")
        saved = self.storage.get_group_standings(self.tournament_id)
        history = self.storage.get_match_history(self.tournament_id)
        ledger = StandingsLedger.for_groups(groups, saved, history)
        if saved is None or [table.to_dict() for table in saved] != [
            table.to_dict() for table in ledger.standings
        ]:
            self._save_ledger(ledger)
        return ledger

    def _save_ledger(self, ledger: StandingsLedger) -> None:
        self.storage.set_group_standings(self.tournament_id, ledger.standings)
        self.storage.set_match_history(self.tournament_id, ledger.history)

    def standings(self) -> list[GroupStandings]:
        return self.ledger().standings

    def match_history(self) -> list[MatchRecord]:
        return self.ledger().history

    def record_group_match(
        self,
        group_id: int,
        home_team_id: str,
        away_team_id: str,
        home_goals: object,
        away_goals: object,
    ) -> MatchRecord:
        ledger = self.ledger()
        record = ledger.record_match(
            group_id, home_team_id, away_team_id, home_goals, away_goals
        )
        self._save_ledger(ledger)
        return record

    def retract_group_match(self, match_id: str) -> MatchRecord:
        ledger = self.ledger()
        record = ledger.retract_match(match_id)
        self._save_ledger(ledger)
        return record

    # ----- Qualification & knockout -----
    def compute_qualifiers(self) -> list[QualifiedTeam]:
        if not self.groups():
            return []
        return select_qualifiers(self.standings())

    def knockout_bracket(self) -> KnockoutBracket | None:
        return self.storage.get_knockout_bracket(self.tournament_id)

    def seed_bracket(self) -> KnockoutBracket:
        existing = self.knockout_bracket()
        if existing is not None:
            return existing
        qualifiers = self.compute_qualifiers()
        if not qualifiers:
            raise PreconditionError(
                "Group stage results are not complete enough to qualify teams"
            )
        bracket = create_bracket(qualifiers, rng=self.rng)
        self.storage.set_knockout_bracket(self.tournament_id, bracket)
        log.info("Seeded knockout bracket from %s qualifiers", len(qualifiers))
        return bracket

    def _require_bracket(self) -> KnockoutBracket:
        bracket = self.knockout_bracket()
        if bracket is None:
            raise PreconditionError("The knockout bracket has not been seeded yet")
        return bracket

    def record_knockout_result(
        self,
        match_id: str,
        home_goals: object,
        away_goals: object,
        home_extra_time_goals: object = None,
        away_extra_time_goals: object = None,
        home_penalties: object = None,
        away_penalties: object = None,
    ) -> KnockoutMatch:
        bracket = self._require_bracket()
        match = record_knockout_result(
            bracket,
            match_id,
            home_goals,
            away_goals,
            home_extra_time_goals,
            away_extra_time_goals,
            home_penalties,
            away_penalties,
        )
        self.storage.set_knockout_bracket(self.tournament_id, bracket)
        if bracket.status == KnockoutBracket.COMPLETE:
            log.info(
                "Tournament complete: champion %s, runner-up %s, third place %s",
                bracket.champion.participant_name,
                bracket.runner_up.participant_name,
                bracket.third_place_winner.participant_name,
            )
        return match

    def clear_knockout_result(self, match_id: str) -> KnockoutMatch:
        bracket = self._require_bracket()
        match = clear_knockout_result(bracket, match_id)
        self.storage.set_knockout_bracket(self.tournament_id, bracket)
        return match

    # ----- Resets -----
    def reset_knockout(self) -> KnockoutBracket | None:
        """Discard the bracket and reseed it from the current group tables."""
        self.storage.delete(self.tournament_id, KNOCKOUT_MATCHES)
        log.info("Reset knockout stage")
        if len(self.compute_qualifiers()) != BRACKET_SIZE:
            return None
        return self.seed_bracket()

    def reset_group_stage(self) -> None:
        for field in (GROUP_STANDINGS, MATCH_HISTORY, KNOCKOUT_MATCHES):
            self.storage.delete(self.tournament_id, field)
        log.info("Reset group stage results")

    def reset_draw(self) -> None:
        self.storage.delete(self.tournament_id, GROUPS)
        self.reset_group_stage()
        log.info("Reset group draw")

    def reset_clubs(self) -> None:
        participants = self.ordered_participants()
        for participant in participants:
            participant.club = None
        if participants:
            self.storage.set_participants(self.tournament_id, participants)
        self.storage.set_available_clubs(self.tournament_id, self._catalog())
        self.reset_draw()
        log.info("Reset club selections")

    def reset_ordering(self) -> None:
        names = self.participant_names()
        for participant in names:
            participant.order = None
            participant.club = None
        if names:
            self.storage.set_participant_names(self.tournament_id, names)
        self.storage.delete(self.tournament_id, PARTICIPANTS)
        self.storage.delete(self.tournament_id, AVAILABLE_CLUBS)
        self.reset_draw()
        log.info("Reset participant ordering")

    def clear_all(self) -> int:
        removed = self.storage.clear(self.tournament_id)
        log.info("Cleared %s fields for tournament %s", removed, self.tournament_id)
        return removed

    # ----- Settings -----
    def settings(self) -> TournamentSettings:
        return self.storage.get_settings(self.tournament_id)

    def toggle_setting(self, key: str) -> TournamentSettings:
        try:
            updated = self.settings().toggle(key)
        except KeyError as exc:
            raise ValidationError(f"Unknown setting: {key}") from exc
        self.storage.set_settings(self.tournament_id, updated)
        return updated


__all__ = ["MIN_PARTICIPANTS", "TournamentService"]
