"""Utilities module for the Daily Picks Engine."""

from .dates import (
    get_eastern_now,
    get_eastern_date,
    get_today_str,
    parse_game_time,
)
from .normalization import (
    team_name_key,
    match_team_names,
)

__all__ = [
    "get_eastern_now",
    "get_eastern_date",
    "get_today_str",
    "parse_game_time",
    "team_name_key",
    "match_team_names",
]
