import copy
import random
from itertools import combinations

import pytest

from tournament_engine import (
    InMemoryTable,
    KnockoutBracket,
    TournamentService,
    TournamentStorage,
)
from tournament_engine.bracket import BRACKET_SIZE
from tournament_engine.clubs import load_club_catalog
from tournament_engine.simulator import DEFAULT_NAMES, play_group_stage
from tournament_engine.storage import (
    GROUP_STANDINGS,
    GROUPS,
    KNOCKOUT_MATCHES,
    MATCH_HISTORY,
)
from tournament_engine.validation import (
    InvalidGoalsError,
    InvalidParticipantError,
    InvalidPenaltiesError,
    PreconditionError,
    ValidationError,
)


def fields(service: TournamentService) -> list[str]:
    return service.storage.list_fields(service.tournament_id)


def prepare(service: TournamentService, count: int = 18) -> None:
    for name in DEFAULT_NAMES[:count]:
        service.add_participant(name)
    service.assign_order()
    service.assign_all_clubs()


def drawn_service(service: TournamentService, count: int = 18) -> TournamentService:
    prepare(service, count)
    service.draw_groups()
    return service


def completed_group_stage(service: TournamentService) -> TournamentService:
    drawn_service(service)
    play_group_stage(service, random.Random(77))
    return service


def test_add_participant_trims_and_rejects_duplicates(service):
    participant = service.add_participant("  Alex  ")

    assert participant.name == "Alex"
    assert participant.avatar["initials"] == "A"
    with pytest.raises(InvalidParticipantError, match="already exists"):
        service.add_participant("Alex")
    with pytest.raises(InvalidParticipantError, match="enter a participant name"):
        service.add_participant("   ")
    assert [entry.name for entry in service.participant_names()] == ["Alex"]


def test_add_participant_keeps_custom_image(service):
    participant = service.add_participant("Bea", custom_image=" https://img/bea.png ")
    assert participant.custom_image == "https://img/bea.png"


def test_assign_order_needs_two_participants(service):
    service.add_participant("Solo")
    with pytest.raises(PreconditionError, match="at least 2"):
        service.assign_order()
    assert fields(service) == ["participantNames"]


def test_assign_order_numbers_participants_once(service):
    for name in ("A", "B", "C"):
        service.add_participant(name)

    ordered = service.assign_order()

    assert [entry.order for entry in ordered] == [1, 2, 3]
    assert sorted(entry.name for entry in ordered) == ["A", "B", "C"]
    assert service.is_ordered()
    assert len(service.available_clubs()) == len(load_club_catalog())
    with pytest.raises(PreconditionError, match="already ordered"):
        service.assign_order()


def test_assign_club_requires_order(service):
    service.add_participant("A")
    with pytest.raises(PreconditionError, match="random order"):
        service.assign_club()


def test_assign_club_follows_order_and_shrinks_the_pool(service):
    for name in ("A", "B", "C"):
        service.add_participant(name)
    ordered = service.assign_order()
    pool_size = len(service.available_clubs())

    first = service.assign_club()

    assert first.id == ordered[0].id
    assert first.club is not None
    remaining = service.available_clubs()
    assert len(remaining) == pool_size - 1
    assert first.club.id not in {club.id for club in remaining}
    with pytest.raises(ValidationError, match="already has a club"):
        service.assign_club(first.id)
    with pytest.raises(InvalidParticipantError):
        service.assign_club("nobody")


def test_assign_club_fails_when_pool_is_empty(storage):
    catalog = load_club_catalog()[:2]
    service = TournamentService(
        storage, "tiny", club_catalog=catalog, rng=random.Random(1)
    )
    for name in ("A", "B", "C"):
        service.add_participant(name)
    service.assign_order()
    service.assign_club()
    service.assign_club()

    with pytest.raises(PreconditionError, match="No more clubs available"):
        service.assign_club()


def test_club_assignment_never_duplicates_clubs(service):
    prepare(service)

    participants = service.ordered_participants()
    club_ids = [entry.club.id for entry in participants]
    assert len(set(club_ids)) == 18
    assert len(service.available_clubs()) == len(load_club_catalog()) - 18
    with pytest.raises(PreconditionError, match="already has a club"):
        service.assign_club()


def test_draw_groups_persists_groups_and_fresh_standings(service):
    prepare(service)
    steps = []

    result = service.draw_groups(on_step=steps.append)

    assert len(steps) == 18
    groups = service.groups()
    assert [len(group.teams) for group in groups] == [6, 6, 6]
    assert [group.to_dict() for group in groups] == [
        group.to_dict() for group in result.groups
    ]
    standings = service.standings()
    assert all(row.played == 0 for table in standings for row in table.teams)
    with pytest.raises(PreconditionError, match="already drawn"):
        service.draw_groups()


def test_draw_groups_requires_clubs(service):
    for name in ("A", "B", "C"):
        service.add_participant(name)
    service.assign_order()

    with pytest.raises(PreconditionError, match="select clubs"):
        service.draw_groups()
    assert GROUPS not in fields(service)


def test_draw_is_persisted_before_the_reveal_runs(service):
    prepare(service)

    def interrupt(step):
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        service.draw_groups(on_step=interrupt)

    assert sum(len(group.teams) for group in service.groups()) == 18


def test_record_and_retract_group_match(service):
    drawn_service(service)
    table = service.standings()[0]
    home, away = table.teams[0].participant_id, table.teams[1].participant_id

    record = service.record_group_match(table.group_id, home, away, "3", "0")

    updated = service.standings()[0]
    assert updated.find(home).points == 3
    assert service.match_history()[0].id == record.id

    service.retract_group_match(record.id)
    assert service.standings()[0].find(home).points == 0
    assert service.match_history() == []


def test_rejected_group_result_leaves_storage_untouched(service, table):
    drawn_service(service)
    standings = service.standings()[0]
    home, away = standings.teams[0].participant_id, standings.teams[1].participant_id
    before = copy.deepcopy(table.items)

    with pytest.raises(InvalidGoalsError):
        service.record_group_match(standings.group_id, home, away, -1, 2)

    assert table.items == before


def test_ledger_self_heals_when_groups_change(service):
    drawn_service(service)
    table = service.standings()[0]
    home, away = table.teams[0].participant_id, table.teams[1].participant_id
    service.record_group_match(table.group_id, home, away, 1, 0)
    groups = service.groups()
    groups[0].teams.pop()
    service.storage.set_groups(service.tournament_id, groups)

    healed = service.standings()

    assert len(healed[0].teams) == 5
    assert all(row.played == 0 for table in healed for row in table.teams)
    assert service.match_history() == []
    assert MATCH_HISTORY not in fields(service)


def test_qualifiers_need_a_drawn_group_stage(service):
    assert service.compute_qualifiers() == []
    prepare(service)
    assert service.compute_qualifiers() == []
    with pytest.raises(PreconditionError):
        service.seed_bracket()


def test_full_cup_from_sign_up_to_champion(service):
    completed_group_stage(service)
    assert len(service.match_history()) == 3 * len(list(combinations(range(6), 2)))

    qualifiers = service.compute_qualifiers()
    assert len(qualifiers) == BRACKET_SIZE
    assert sorted(team.position for team in qualifiers).count(1) == 3

    bracket = service.seed_bracket()
    quarterfinals = bracket.stage_matches("quarterfinal")
    assert len(quarterfinals) == 4
    assert service.seed_bracket().to_dict() == bracket.to_dict()

    for match in quarterfinals:
        service.record_knockout_result(match.match_id, 2, 0)
    service.record_knockout_result("SF1", 1, 1, 0, 0, 4, 2)
    service.record_knockout_result("SF2", 0, 1)
    service.record_knockout_result("3P", 3, 3, 1, 0)
    service.record_knockout_result("F", 2, 1)

    final_state = service.knockout_bracket()
    assert final_state.status == KnockoutBracket.COMPLETE
    podium = {
        final_state.champion.participant_id,
        final_state.runner_up.participant_id,
        final_state.third_place_winner.participant_id,
    }
    assert len(podium) == 3


def test_knockout_errors_do_not_touch_storage(service, table):
    completed_group_stage(service)
    service.seed_bracket()
    before = copy.deepcopy(table.items)

    with pytest.raises(InvalidPenaltiesError):
        service.record_knockout_result("QF1", 1, 1, 0, 0, 3, 3)
    with pytest.raises(PreconditionError):
        service.record_knockout_result("F", 1, 0)

    assert table.items == before


def test_knockout_actions_need_a_bracket(service):
    with pytest.raises(PreconditionError, match="not been seeded"):
        service.record_knockout_result("QF1", 1, 0)
    with pytest.raises(PreconditionError):
        service.clear_knockout_result("QF1")


def test_reset_knockout_reseeds_from_current_tables(service):
    completed_group_stage(service)
    service.seed_bracket()
    service.record_knockout_result("QF1", 1, 0)

    reseeded = service.reset_knockout()

    assert reseeded is not None
    assert reseeded.status == KnockoutBracket.SEEDED


def test_reset_group_stage_clears_results_and_bracket(service):
    completed_group_stage(service)
    service.seed_bracket()

    service.reset_group_stage()

    remaining = fields(service)
    for field in (GROUP_STANDINGS, MATCH_HISTORY, KNOCKOUT_MATCHES):
        assert field not in remaining
    assert GROUPS in remaining
    assert all(row.points == 0 for table in service.standings() for row in table.teams)


def test_reset_draw_keeps_clubs(service):
    drawn_service(service)

    service.reset_draw()

    assert GROUPS not in fields(service)
    assert all(entry.club is not None for entry in service.ordered_participants())


def test_reset_clubs_returns_every_club_to_the_pool(service):
    drawn_service(service)

    service.reset_clubs()

    assert all(entry.club is None for entry in service.ordered_participants())
    assert len(service.available_clubs()) == len(load_club_catalog())
    assert GROUPS not in fields(service)


def test_reset_ordering_goes_back_to_sign_up(service):
    drawn_service(service)

    service.reset_ordering()

    remaining = fields(service)
    assert remaining == ["participantNames"]
    assert not service.is_ordered()
    assert all(entry.order is None for entry in service.participant_names())
    service.assign_order()


def test_clear_all_removes_every_field(service):
    drawn_service(service)
    service.toggle_setting("knockoutStageEnabled")

    removed = service.clear_all()

    assert removed == 6
    assert fields(service) == []


def test_remove_participant_cascades_everywhere(service):
    completed_group_stage(service)
    service.seed_bracket()
    victim = service.groups()[0].teams[0]
    pool_before = len(service.available_clubs())

    removed = service.remove_participant(victim.id)

    assert removed.id == victim.id
    assert victim.id not in {entry.id for entry in service.participant_names()}
    assert victim.id not in {entry.id for entry in service.ordered_participants()}
    assert len(service.groups()[0].teams) == 5
    assert all(
        row.participant_id != victim.id
        for table in service.standings()
        for row in table.teams
    )
    assert not any(record.involves(victim.id) for record in service.match_history())
    assert len(service.available_clubs()) == pool_before + 1
    assert victim.club.id in {club.id for club in service.available_clubs()}
    assert service.knockout_bracket() is None


def test_remove_unknown_participant(service):
    with pytest.raises(InvalidParticipantError, match="not found"):
        service.remove_participant("missing")


def test_toggle_setting(service):
    updated = service.toggle_setting("tournamentTableEnabled")

    assert updated.tournament_table_enabled is False
    assert "tournamentTable" not in service.settings().enabled_pages()
    with pytest.raises(ValidationError, match="Unknown setting"):
        service.toggle_setting("nope")


def test_services_share_state_through_storage():
    table = InMemoryTable()
    first = TournamentService(TournamentStorage(table), "shared", rng=random.Random(2))
    first.add_participant("A")

    second = TournamentService(TournamentStorage(table), "shared")
    assert [entry.name for entry in second.participant_names()] == ["A"]


def test_invalid_group_layout_is_rejected(storage):
    with pytest.raises(ValidationError):
        TournamentService(storage, "cup", group_count=0)
