"""Configuration helpers for the tournament engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .draw import DEFAULT_GROUP_COUNT, DEFAULT_GROUP_SIZE

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

DEFAULT_TOURNAMENT_ID = "default"


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class EngineConfig:
    table_name: str | None
    aws_region: str
    tournament_id: str
    group_count: int
    group_size: int
    log_level: str
    reveal_draw: bool


def read_engine_config() -> EngineConfig:
    return EngineConfig(
        table_name=os.getenv("TOURNAMENT_TABLE_NAME") or None,
        aws_region=os.getenv("AWS_REGION", "us-east-1"),
        tournament_id=os.getenv("TOURNAMENT_ID") or DEFAULT_TOURNAMENT_ID,
        group_count=env_int("TOURNAMENT_GROUP_COUNT", default=DEFAULT_GROUP_COUNT)
        or DEFAULT_GROUP_COUNT,
        group_size=env_int("TOURNAMENT_GROUP_SIZE", default=DEFAULT_GROUP_SIZE)
        or DEFAULT_GROUP_SIZE,
        log_level=os.getenv("TOURNAMENT_LOG_LEVEL", "INFO").upper(),
        reveal_draw=env_bool("TOURNAMENT_REVEAL_DRAW", default=False),
    )


__all__ = [
    "DEFAULT_TOURNAMENT_ID",
    "EngineConfig",
    "env_bool",
    "env_int",
    "read_engine_config",
]
