import json
import random

import pytest

from tournament_engine.clubs import draw_club, load_club_catalog


def test_default_catalog_has_unique_clubs():
    clubs = load_club_catalog()

    assert len(clubs) >= 18
    assert len({club.id for club in clubs}) == len(clubs)
    assert all(club.name and club.league for club in clubs)


def test_load_catalog_from_file(tmp_path):
    path = tmp_path / "clubs.json"
    path.write_text(
        json.dumps([{"id": "a", "name": "Alpha", "league": "One", "logo": "a.png"}]),
        encoding="utf-8",
    )

    clubs = load_club_catalog(path)

    assert [club.name for club in clubs] == ["Alpha"]
    assert clubs[0].logo == "a.png"


def test_load_catalog_rejects_missing_empty_and_duplicate(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_club_catalog(tmp_path / "missing.json")

    empty = tmp_path / "empty.json"
    empty.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError, match="did not contain"):
        load_club_catalog(empty)

    duplicate = tmp_path / "duplicate.json"
    duplicate.write_text(
        json.dumps(
            [
                {"id": "a", "name": "Alpha", "league": "One"},
                {"id": "a", "name": "Again", "league": "One"},
            ]
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Duplicate club id"):
        load_club_catalog(duplicate)


def test_draw_club_removes_the_pick_from_the_pool():
    pool = load_club_catalog()[:5]

    club, remaining = draw_club(pool, random.Random(6))

    assert club in pool
    assert club not in remaining
    assert len(remaining) == 4
    assert len(pool) == 5


def test_draw_club_from_empty_pool():
    with pytest.raises(ValueError):
        draw_club([])
