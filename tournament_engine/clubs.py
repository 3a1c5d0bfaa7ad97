"""Club catalog and the random club assignment pool."""

from __future__ import annotations

import json
import random
from collections.abc import Sequence
from importlib import resources
from pathlib import Path

from .models import Club
from .sequencing import pick_index

DEFAULT_DATA_PACKAGE = "tournament_engine.data"
DEFAULT_CATALOG_FILENAME = "clubs.json"


def load_club_catalog(catalog_file: Path | None = None) -> list[Club]:
    """Load the clubs participants can be assigned."""
    if catalog_file is None:
        content = (
            resources.files(DEFAULT_DATA_PACKAGE) / DEFAULT_CATALOG_FILENAME
        ).read_text(encoding="utf-8")
    else:
        path = Path(catalog_file)
        if not path.exists():
            raise FileNotFoundError(f"Club catalog not found: {catalog_file}")
        content = path.read_text(encoding="utf-8")

    clubs = [Club.from_dict(item) for item in json.loads(content)]
    if not clubs:
        raise ValueError("Club catalog did not contain any clubs")
    seen: set[str] = set()
    for club in clubs:
        if club.id in seen:
            raise ValueError(f"Duplicate club id in catalog: {club.id}")
        seen.add(club.id)
    return clubs


def draw_club(
    pool: Sequence[Club], rng: random.Random | None = None
) -> tuple[Club, list[Club]]:
    """Pick a club at random and return it with the pool that remains."""
    index = pick_index(len(pool), rng)
    remaining = [club for position, club in enumerate(pool) if position != index]
    return pool[index], remaining


__all__ = ["load_club_catalog", "draw_club"]
