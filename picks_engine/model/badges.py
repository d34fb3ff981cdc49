"""
Badge catalog.

Every badge is a predicate over the user's progression. Awarding is
idempotent: a held badge is never added twice.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    category: str
    predicate: Callable[[object], bool]


def _sport_correct(progression, sport: str) -> int:
    return progression.stats.by_sport.get(sport, {}).get("correct", 0)


def _market_correct(progression, market: str) -> int:
    return progression.stats.by_market.get(market, {}).get("correct", 0)


_CATALOG = [
    # Getting started
    Badge("first_pick", "First Pick", "Make your first pick", "starter",
          lambda p: p.stats.total_picks > 0 or p.stats.days_played > 0),
    Badge("first_card", "Card Submitted", "Submit your first daily card", "starter",
          lambda p: p.stats.days_played > 0),
    Badge("first_win", "Winner!", "Get your first correct pick", "starter",
          lambda p: p.stats.correct_picks > 0),

    # Perfect cards
    Badge("perfect_day", "Perfect Card", "Finish a card with no misses", "achievement",
          lambda p: p.stats.perfect_days >= 1),
    Badge("perfect_three", "Hat Trick", "3 perfect cards", "achievement",
          lambda p: p.stats.perfect_days >= 3),
    Badge("perfect_ten", "Perfectionist", "10 perfect cards", "achievement",
          lambda p: p.stats.perfect_days >= 10),

    # Streaks (high-water mark, so a streak broken later in the card still counts)
    Badge("three_streak", "Hot Streak", "3 correct picks in a row", "streak",
          lambda p: p.stats.best_pick_streak >= 3),
    Badge("five_streak", "On Fire", "5 correct picks in a row", "streak",
          lambda p: p.stats.best_pick_streak >= 5),
    Badge("ten_streak", "Unstoppable", "10 correct picks in a row", "streak",
          lambda p: p.stats.best_pick_streak >= 10),

    Badge("lock_master", "Lock Master", "Win 10 Lock of the Day picks", "achievement",
          lambda p: p.stats.lock_of_day_wins >= 10),

    # Dedication
    Badge("week_warrior", "Week Warrior", "Finish 7 daily cards", "dedication",
          lambda p: p.stats.current_day_streak >= 7),
    Badge("daily_grinder", "Daily Grinder", "Play 30 days total", "dedication",
          lambda p: p.stats.days_played >= 30),
    Badge("century", "Century Club", "100 correct picks", "dedication",
          lambda p: p.stats.correct_picks >= 100),

    # Specialists
    Badge("nba_specialist", "NBA Specialist", "50 correct NBA picks", "specialist",
          lambda p: _sport_correct(p, "NBA") >= 50),
    Badge("nfl_specialist", "NFL Specialist", "50 correct NFL picks", "specialist",
          lambda p: _sport_correct(p, "NFL") >= 50),
    Badge("nhl_specialist", "NHL Specialist", "50 correct NHL picks", "specialist",
          lambda p: _sport_correct(p, "NHL") >= 50),
    Badge("mlb_specialist", "MLB Specialist", "50 correct MLB picks", "specialist",
          lambda p: _sport_correct(p, "MLB") >= 50),
    Badge("prop_master", "Prop Master", "25 correct prop picks", "specialist",
          lambda p: _sport_correct(p, "PROP") >= 25 or _market_correct(p, "prop") >= 25),
    Badge("spread_king", "Spread King", "50 spread wins", "specialist",
          lambda p: _market_correct(p, "spread") >= 50),

    # Levels
    Badge("level_5", "Rising Star", "Reach Level 5", "level", lambda p: p.level >= 5),
    Badge("level_10", "All-Star", "Reach Level 10", "level", lambda p: p.level >= 10),
    Badge("level_15", "Legend", "Reach Level 15", "level", lambda p: p.level >= 15),
]

BADGES: Dict[str, Badge] = {badge.id: badge for badge in _CATALOG}


def award_badge(progression, badge_id: str) -> bool:
    """
    Add a badge to the user's set.

    Returns:
        True if newly awarded; False if unknown or already held
    """
    if badge_id not in BADGES or badge_id in progression.badges:
        return False
    progression.badges.add(badge_id)
    return True


def evaluate_badges(progression) -> List[str]:
    """Award every badge whose predicate now holds. Returns the new badge ids in catalog order."""
    awarded = []
    for badge in _CATALOG:
        if badge.id in progression.badges:
            continue
        if badge.predicate(progression) and award_badge(progression, badge.id):
            awarded.append(badge.id)
    return awarded
