"""
Progression system: XP, levels, coins, streaks, badges and daily challenges.

apply_card_rewards() is the only function that mutates a UserProgression
for a finished card. Rewards are applied in a fixed order:

    1. base points -> XP, coins per correct pick
    2. perfect / near-perfect bonus
    3. lock of the day bonus (or competitive penalty)
    4. streak update, then streak-tier coins
    5. daily challenges (level recomputed again afterwards)
    6. badges

Level is recomputed after every XP change and is always level_for_xp(xp).
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from picks_engine.model.config import (
    COINS_CORRECT_PICK,
    COINS_LOCK_BONUS,
    COINS_PERFECT_DAY,
    LEVEL_THRESHOLDS,
    MAX_LEVEL,
    STREAK_COIN_TIERS,
    XP_LOCK_BONUS,
    XP_LOCK_PENALTY,
    XP_NEAR_PERFECT,
    XP_PERFECT_DAY,
)
from picks_engine.model.badges import evaluate_badges
from picks_engine.model.challenges import (
    ChallengeContext,
    evaluate_challenges,
    select_daily_challenges,
)
from picks_engine.model.enums import PickStatus, ScoringMode
from picks_engine.utils.dates import format_date, parse_date


# ============================================================================
# LEVELS
# ============================================================================

@dataclass(frozen=True)
class LevelReward:
    name: str
    kind: str       # title, border, badge


LEVEL_REWARDS: Dict[int, LevelReward] = {
    1: LevelReward("Rookie", "title"),
    5: LevelReward("Bronze Border", "border"),
    10: LevelReward("Silver Border", "border"),
    12: LevelReward("Hot Streak Badge", "badge"),
    15: LevelReward("Gold Border", "border"),
    18: LevelReward("Sharp Eye Badge", "badge"),
    20: LevelReward("Platinum Border", "border"),
    22: LevelReward("Elite Title", "title"),
    25: LevelReward("Champion Border", "border"),
}


def level_for_xp(xp: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """Largest level whose threshold is <= xp. Below the first threshold is level 1."""
    if xp < 0:
        return 1
    for i in range(len(thresholds) - 1, -1, -1):
        if xp >= thresholds[i]:
            return min(i + 1, MAX_LEVEL)
    return 1


def xp_for_level(level: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """XP needed to reach a level. Clamped to the table."""
    if level < 1:
        return 0
    if level > MAX_LEVEL:
        return thresholds[MAX_LEVEL - 1]
    return thresholds[level - 1]


def level_tier(level: int) -> str:
    if level >= 25:
        return "Champion"
    if level >= 20:
        return "Platinum"
    if level >= 15:
        return "Gold"
    if level >= 10:
        return "Silver"
    if level >= 5:
        return "Bronze"
    return "Rookie"


def next_reward(level: int) -> Optional[Tuple[int, LevelReward]]:
    """The first milestone reward above the given level."""
    for reward_level in sorted(LEVEL_REWARDS):
        if reward_level > level:
            return reward_level, LEVEL_REWARDS[reward_level]
    return None


def unlocked_rewards(level: int) -> List[Tuple[int, LevelReward]]:
    return [(lvl, LEVEL_REWARDS[lvl]) for lvl in sorted(LEVEL_REWARDS) if lvl <= level]


def locked_rewards(level: int, xp: int) -> List[Tuple[int, LevelReward, int]]:
    """Rewards not yet reached, with the XP still needed for each."""
    return [
        (lvl, LEVEL_REWARDS[lvl], xp_for_level(lvl) - xp)
        for lvl in sorted(LEVEL_REWARDS)
        if lvl > level
    ]


@dataclass(frozen=True)
class LevelProgress:
    level: int
    total_xp: int
    is_max_level: bool
    current_level_xp: int
    next_level_xp: int
    xp_into_level: int
    xp_needed_for_next: int
    xp_to_next_level: int
    progress: float                 # percent, 2 dp
    reward: Optional[LevelReward]
    next_reward: Optional[Tuple[int, LevelReward]]

    @property
    def progress_percent(self) -> str:
        return f"{round(self.progress)}%"


def level_progress(total_xp: int) -> LevelProgress:
    level = level_for_xp(total_xp)
    is_max = level >= MAX_LEVEL
    current_xp = xp_for_level(level)
    next_xp = current_xp if is_max else xp_for_level(level + 1)
    into = total_xp - current_xp
    needed = next_xp - current_xp

    if is_max or needed <= 0:
        progress = 100.0
    else:
        progress = min(100.0, into / needed * 100)

    return LevelProgress(
        level=level,
        total_xp=total_xp,
        is_max_level=is_max,
        current_level_xp=current_xp,
        next_level_xp=next_xp,
        xp_into_level=into,
        xp_needed_for_next=needed,
        xp_to_next_level=0 if is_max else next_xp - total_xp,
        progress=round(progress, 2),
        reward=LEVEL_REWARDS.get(level),
        next_reward=next_reward(level),
    )


def format_xp(xp: int) -> str:
    if xp >= 10000:
        return f"{xp / 1000:.1f}K"
    return f"{xp:,}"


# ============================================================================
# USER PROGRESSION
# ============================================================================

def _week_start(date_str: str) -> str:
    d = parse_date(date_str)
    return format_date(d - timedelta(days=d.weekday()))


def _month(date_str: str) -> str:
    return date_str[:7]


@dataclass
class PickStats:
    total_picks: int = 0
    correct_picks: int = 0
    days_played: int = 0
    perfect_days: int = 0
    current_pick_streak: int = 0
    best_pick_streak: int = 0
    current_day_streak: int = 0
    best_day_streak: int = 0
    last_played_date: Optional[str] = None
    lock_of_day_wins: int = 0
    best_daily_score: int = 0
    challenges_completed: int = 0
    by_sport: Dict[str, Dict[str, int]] = field(default_factory=dict)
    by_market: Dict[str, Dict[str, int]] = field(default_factory=dict)
    weekly: Dict[str, Any] = field(default_factory=dict)
    monthly: Dict[str, Any] = field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        if self.total_picks == 0:
            return 0.0
        return self.correct_picks / self.total_picks

    def roll_periods(self, date_str: str):
        """Start fresh weekly/monthly counters when the card's period changes."""
        week = _week_start(date_str)
        if self.weekly.get("week_start") != week:
            self.weekly = {"week_start": week, "picks": 0, "correct": 0, "perfect_days": 0}
        month = _month(date_str)
        if self.monthly.get("month") != month:
            self.monthly = {"month": month, "picks": 0, "correct": 0, "perfect_days": 0}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_picks": self.total_picks,
            "correct_picks": self.correct_picks,
            "days_played": self.days_played,
            "perfect_days": self.perfect_days,
            "current_pick_streak": self.current_pick_streak,
            "best_pick_streak": self.best_pick_streak,
            "current_day_streak": self.current_day_streak,
            "best_day_streak": self.best_day_streak,
            "last_played_date": self.last_played_date,
            "lock_of_day_wins": self.lock_of_day_wins,
            "best_daily_score": self.best_daily_score,
            "challenges_completed": self.challenges_completed,
            "by_sport": {k: dict(v) for k, v in self.by_sport.items()},
            "by_market": {k: dict(v) for k, v in self.by_market.items()},
            "weekly": dict(self.weekly),
            "monthly": dict(self.monthly),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PickStats":
        stats = cls()
        for name in cls.__dataclass_fields__:
            if name in data and data[name] is not None:
                setattr(stats, name, data[name])
        return stats


@dataclass
class UserProgression:
    xp: int = 0
    level: int = 1
    coins: int = 0
    stats: PickStats = field(default_factory=PickStats)
    badges: Set[str] = field(default_factory=set)
    # {"date": "YYYY-MM-DD", "completed": [challenge ids]}
    challenge_state: Dict[str, Any] = field(default_factory=dict)

    def recompute_level(self) -> int:
        self.level = level_for_xp(self.xp)
        return self.level

    def completed_challenges_for(self, date_str: str) -> List[str]:
        if self.challenge_state.get("date") != date_str:
            return []
        return list(self.challenge_state.get("completed", []))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "coins": self.coins,
            "stats": self.stats.to_dict(),
            "badges": sorted(self.badges),
            "challenge_state": {
                "date": self.challenge_state.get("date"),
                "completed": list(self.challenge_state.get("completed", [])),
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProgression":
        xp = max(0, int(data.get("xp") or 0))
        challenge_state = data.get("challenge_state") or {}
        return cls(
            xp=xp,
            level=level_for_xp(xp),
            coins=max(0, int(data.get("coins") or 0)),
            stats=PickStats.from_dict(data.get("stats") or {}),
            badges=set(data.get("badges") or []),
            challenge_state={
                "date": challenge_state.get("date"),
                "completed": list(challenge_state.get("completed") or []),
            },
        )


# ============================================================================
# REWARD APPLICATION
# ============================================================================

@dataclass
class RewardSummary:
    """What one finalized card earned. Consumed by display collaborators."""
    xp_earned: int = 0
    coins_earned: int = 0
    old_level: int = 1
    new_level: int = 1
    level_ups: List[Tuple[str, int]] = field(default_factory=list)   # (stage, level reached)
    challenges_completed: List[str] = field(default_factory=list)
    badges_awarded: List[str] = field(default_factory=list)
    applied: bool = False

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level

    def to_dict(self) -> Dict[str, Any]:
        return {
            "xp_earned": self.xp_earned,
            "coins_earned": self.coins_earned,
            "old_level": self.old_level,
            "new_level": self.new_level,
            "level_ups": [list(lu) for lu in self.level_ups],
            "challenges_completed": list(self.challenges_completed),
            "badges_awarded": list(self.badges_awarded),
            "applied": self.applied,
        }


def streak_coins(streak: int) -> int:
    """Cumulative coin bonus for the current pick streak."""
    return sum(coins for min_streak, coins in STREAK_COIN_TIERS if streak >= min_streak)


def _bump(bucket: Dict[str, Dict[str, int]], key: str, won: bool):
    entry = bucket.setdefault(key, {"total": 0, "correct": 0})
    entry["total"] = entry.get("total", 0) + 1
    if won:
        entry["correct"] = entry.get("correct", 0) + 1


def apply_card_rewards(
    progression: UserProgression,
    score_result,
    picks: Sequence,
    slate_picks: Sequence,
    date_str: str,
) -> RewardSummary:
    """
    Apply one finalized card to the user's progression.

    Args:
        progression: Mutated in place
        score_result: Valid ScoreResult for the card
        picks: The card's UserPick list (all terminal)
        slate_picks: SlatePick list in the same order (may be empty)
        date_str: Card date, YYYY-MM-DD

    Returns:
        RewardSummary. If score_result is invalid nothing is changed and
        summary.applied is False.
    """
    summary = RewardSummary(old_level=progression.level, new_level=progression.level)
    if score_result is None or not score_result.is_valid:
        return summary

    stats = progression.stats
    stats.roll_periods(date_str)
    start_level = progression.recompute_level()
    summary.old_level = start_level

    def add_xp(amount: int, stage: str):
        before = progression.level
        progression.xp += amount
        summary.xp_earned += amount
        after = progression.recompute_level()
        if after > before:
            summary.level_ups.append((stage, after))

    def add_coins(amount: int):
        progression.coins += amount
        summary.coins_earned += amount

    correct = score_result.correct_count
    graded = score_result.graded_count

    # 1. base
    add_xp(score_result.base_points, "base")
    add_coins(correct * COINS_CORRECT_PICK)

    # 2. perfect / near perfect
    if score_result.is_perfect:
        add_xp(XP_PERFECT_DAY, "perfect")
        add_coins(COINS_PERFECT_DAY)
        stats.perfect_days += 1
        stats.weekly["perfect_days"] = stats.weekly.get("perfect_days", 0) + 1
        stats.monthly["perfect_days"] = stats.monthly.get("perfect_days", 0) + 1
    elif score_result.is_near_perfect:
        add_xp(XP_NEAR_PERFECT, "near_perfect")

    # 3. lock of the day
    if score_result.lock_result == "won":
        add_xp(XP_LOCK_BONUS, "lock")
        add_coins(COINS_LOCK_BONUS)
        stats.lock_of_day_wins += 1
    elif (
        score_result.lock_result == "lost"
        and score_result.scoring_mode == ScoringMode.COMPETITIVE
    ):
        # Penalty comes out of this card's earnings only
        penalty = min(XP_LOCK_PENALTY, summary.xp_earned)
        progression.xp -= penalty
        summary.xp_earned -= penalty
        progression.recompute_level()

    # 4. streaks, in slate order
    for i, pick in enumerate(picks):
        if pick.status not in (PickStatus.WON, PickStatus.LOST):
            continue
        won = pick.status == PickStatus.WON
        if won:
            stats.current_pick_streak += 1
            stats.best_pick_streak = max(stats.best_pick_streak, stats.current_pick_streak)
        else:
            stats.current_pick_streak = 0
        if i < len(slate_picks):
            _bump(stats.by_sport, slate_picks[i].sport, won)
            _bump(stats.by_market, slate_picks[i].market.value, won)

    add_coins(streak_coins(stats.current_pick_streak))

    stats.total_picks += graded
    stats.correct_picks += correct
    stats.days_played += 1
    stats.weekly["picks"] = stats.weekly.get("picks", 0) + graded
    stats.weekly["correct"] = stats.weekly.get("correct", 0) + correct
    stats.monthly["picks"] = stats.monthly.get("picks", 0) + graded
    stats.monthly["correct"] = stats.monthly.get("correct", 0) + correct
    stats.best_daily_score = max(stats.best_daily_score, score_result.total_points)

    # one step per finalized day; gaps between days do not break it
    if stats.last_played_date != date_str:
        stats.current_day_streak += 1
    stats.best_day_streak = max(stats.best_day_streak, stats.current_day_streak)
    stats.last_played_date = date_str

    # 5. daily challenges
    already = progression.completed_challenges_for(date_str)
    ctx = ChallengeContext(
        score_result=score_result,
        picks=picks,
        slate_picks=slate_picks,
        current_pick_streak=stats.current_pick_streak,
    )
    newly_completed = evaluate_challenges(select_daily_challenges(date_str), ctx, already)
    challenge_xp = sum(c.xp for c in newly_completed)
    add_coins(sum(c.coins for c in newly_completed))
    if challenge_xp:
        add_xp(challenge_xp, "challenges")
    stats.challenges_completed += len(newly_completed)
    progression.challenge_state = {
        "date": date_str,
        "completed": already + [c.id for c in newly_completed],
    }
    summary.challenges_completed = [c.id for c in newly_completed]

    # 6. badges
    summary.badges_awarded = evaluate_badges(progression)

    summary.new_level = progression.level
    summary.applied = True
    return summary
