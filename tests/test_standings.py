import pytest
from conftest import make_participant

from tournament_engine.models import DRAW, HOME, Group, GroupStandings
from tournament_engine.standings import (
    StandingsLedger,
    check_structure,
    initialize_standings,
    reconcile_standings,
    render_standings,
)
from tournament_engine.validation import (
    ConsistencyError,
    InvalidGoalsError,
    PreconditionError,
    ValidationError,
)


def build_groups() -> list[Group]:
    return [
        Group(id=1, name="Group A", teams=[make_participant(i) for i in (1, 2, 3)]),
        Group(id=2, name="Group B", teams=[make_participant(i) for i in (4, 5, 6)]),
    ]


def ids(group: Group) -> list[str]:
    return [team.id for team in group.teams]


def snapshot(ledger: StandingsLedger) -> list[dict[str, object]]:
    return [
        {row.participant_id: row.statistics() for row in table.teams}
        for table in ledger.standings
    ]


def test_initialize_standings_starts_every_row_at_zero():
    standings = initialize_standings(build_groups())

    assert [table.group_name for table in standings] == ["Group A", "Group B"]
    for table in standings:
        assert len(table.teams) == 3
        for row in table.teams:
            assert row.statistics() == (0, 0, 0, 0, 0, 0, 0, 0)
            assert row.club is not None


def test_record_match_updates_both_rows_and_ranks():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    home_id, away_id, _ = ids(groups[0])

    record = ledger.record_match(1, home_id, away_id, 2, 1)

    table = ledger.group(1)
    home = table.find(home_id)
    away = table.find(away_id)
    assert (home.played, home.won, home.points, home.goal_difference) == (1, 1, 3, 1)
    assert (away.played, away.lost, away.points, away.goal_difference) == (1, 1, 0, -1)
    assert table.teams[0].participant_id == home_id
    assert table.teams[-1].participant_id == away_id
    assert record.result == HOME
    assert record.home_team.name == "Player 01"
    assert ledger.history == [record]


def test_draw_awards_one_point_each():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    home_id, away_id, _ = ids(groups[0])

    record = ledger.record_match(1, home_id, away_id, "1", "1")

    table = ledger.group(1)
    assert table.find(home_id).points == 1
    assert table.find(away_id).points == 1
    assert table.find(home_id).drawn == 1
    assert record.result == DRAW


def test_points_always_match_wins_and_draws():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, c = ids(groups[0])
    ledger.record_match(1, a, b, 3, 0)
    ledger.record_match(1, b, c, 2, 2)
    ledger.record_match(1, c, a, 1, 0)

    for row in ledger.group(1).teams:
        assert row.points == 3 * row.won + row.drawn
        assert row.goal_difference == row.goals_for - row.goals_against
        assert row.played == row.won + row.drawn + row.lost


def test_record_then_retract_restores_rows_exactly():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, c = ids(groups[0])
    ledger.record_match(1, a, c, 1, 1)
    before = snapshot(ledger)

    record = ledger.record_match(1, a, b, 4, 2)
    ledger.retract_match(record.id)

    assert snapshot(ledger) == before
    assert ledger.find_match(record.id) is None
    assert len(ledger.history) == 1


def test_retract_unknown_match_is_rejected():
    ledger = StandingsLedger.for_groups(build_groups())
    with pytest.raises(ValidationError, match="not found"):
        ledger.retract_match("missing")


@pytest.mark.parametrize(
    ("home_goals", "away_goals"),
    [(-1, 0), (0, -2), ("", 1), (None, 1), (1.5, 0), ("two", 1), (True, 0)],
)
def test_record_match_rejects_invalid_goals(home_goals, away_goals):
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    before = snapshot(ledger)

    with pytest.raises(InvalidGoalsError):
        ledger.record_match(1, a, b, home_goals, away_goals)

    assert snapshot(ledger) == before
    assert ledger.history == []


def test_record_match_rejects_same_team_and_foreign_team():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, _, _ = ids(groups[0])
    foreign = ids(groups[1])[0]

    with pytest.raises(ValidationError, match="different"):
        ledger.record_match(1, a, a, 1, 0)
    with pytest.raises(ValidationError, match="belong"):
        ledger.record_match(1, a, foreign, 1, 0)
    with pytest.raises(ValidationError, match="both teams"):
        ledger.record_match(1, a, "", 1, 0)
    with pytest.raises(PreconditionError):
        ledger.record_match(9, a, foreign, 1, 0)


def test_group_history_filters_by_group():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    d, e, _ = ids(groups[1])
    ledger.record_match(1, a, b, 1, 0)
    ledger.record_match(2, d, e, 0, 0)

    assert [record.group_id for record in ledger.group_history(2)] == [2]


def test_reconcile_keeps_statistics_when_structure_matches():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    ledger.record_match(1, a, b, 2, 0)
    groups[0].teams[0].name = "Renamed"

    reconciled = reconcile_standings(ledger.standings, groups)

    row = reconciled[0].find(a)
    assert row.participant_name == "Renamed"
    assert row.points == 3


def test_reconcile_reinitializes_when_membership_changed(caplog):
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    ledger.record_match(1, a, b, 2, 0)
    groups[0].teams[2] = make_participant(9)

    with caplog.at_level("WARNING", logger="tournament-engine"):
        reconciled = reconcile_standings(ledger.standings, groups)

    assert all(
        row.statistics() == (0, 0, 0, 0, 0, 0, 0, 0)
        for table in reconciled
        for row in table.teams
    )
    assert "Reinitializing" in caplog.text


def test_check_structure_detects_each_kind_of_mismatch():
    groups = build_groups()
    saved = initialize_standings(groups)

    check_structure(saved, groups)
    with pytest.raises(ConsistencyError):
        check_structure(saved[:1], groups)
    unknown_group = GroupStandings(group_id=7, group_name="G", teams=saved[1].teams)
    with pytest.raises(ConsistencyError):
        check_structure([saved[0], unknown_group], groups)
    shrunk = GroupStandings(group_id=2, group_name="Group B", teams=saved[1].teams[:2])
    with pytest.raises(ConsistencyError):
        check_structure([saved[0], shrunk], groups)


def test_for_groups_drops_history_when_structure_changed():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    ledger.record_match(1, a, b, 2, 0)
    groups.append(Group(id=3, name="Group C", teams=[make_participant(10)]))

    healed = StandingsLedger.for_groups(groups, ledger.standings, ledger.history)

    assert len(healed.standings) == 3
    assert healed.history == []


def test_for_groups_keeps_history_when_structure_matches():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    ledger.record_match(1, a, b, 2, 0)

    restored = StandingsLedger.for_groups(groups, ledger.standings, ledger.history)

    assert len(restored.history) == 1
    assert restored.group(1).find(a).points == 3


def test_render_standings_lists_every_group():
    groups = build_groups()
    ledger = StandingsLedger.for_groups(groups)
    a, b, _ = ids(groups[0])
    ledger.record_match(1, a, b, 3, 1)

    text = render_standings(ledger.standings)

    assert text.startswith("Group A")
    assert "Group B" in text
    assert "Player 01" in text
    assert "+2" in text
