"""
Team-name normalization for matching records across data sources.

Scoreboard and odds feeds name teams differently ("Boston Celtics" vs
"Celtics"), so matching falls back to the last word of the name.
"""

from typing import Optional


def team_name_key(name: Optional[str]) -> str:
    """
    Lowercased last whitespace-delimited token of a team name.

    Examples:
        "Los Angeles Lakers" -> "lakers"
        "  BOS " -> "bos"
        None -> ""
    """
    if not name:
        return ""
    parts = str(name).strip().lower().split()
    return parts[-1] if parts else ""


def match_team_names(name_a: Optional[str], name_b: Optional[str]) -> bool:
    """True when both names are present and share the same last token."""
    key_a = team_name_key(name_a)
    key_b = team_name_key(name_b)
    return bool(key_a) and key_a == key_b


def matchup_label(away_team: str, home_team: str) -> str:
    """Display label 'AWAY @ HOME'."""
    return f"{away_team} @ {home_team}"
