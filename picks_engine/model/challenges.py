"""
Daily challenges.

Each date gets 3 of the 7 challenges in the pool. The choice is seeded
by the date string alone, so every user sees the same three on the same
day and re-running the selection never changes them.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from picks_engine.model.enums import Choice, Market, PickStatus


@dataclass(frozen=True)
class DailyChallenge:
    id: str
    name: str
    description: str
    xp: int
    coins: int


@dataclass
class ChallengeContext:
    """What a challenge predicate can look at once a card is scored."""
    score_result: object                # ScoreResult
    picks: Sequence                     # UserPick list, slate order
    slate_picks: Sequence = ()          # SlatePick list, slate order
    current_pick_streak: int = 0


DAILY_CHALLENGES: List[DailyChallenge] = [
    DailyChallenge("sweep", "Clean Sweep", "Get every pick correct", 75, 50),
    DailyChallenge("lock_win", "Lock It In", "Win your Lock of the Day", 30, 25),
    DailyChallenge("no_pass", "All In", "Submit without using PASS", 25, 20),
    DailyChallenge("streak_3", "Hot Hand", "Hit 3+ picks in a row", 20, 15),
    DailyChallenge("five_correct", "High Five", "Get at least 5 picks correct", 20, 15),
    DailyChallenge("underdog", "Underdog Day", "Win 3+ spread picks", 30, 25),
    DailyChallenge("multi_sport", "Well Rounded", "Get correct picks in 2+ sports", 25, 20),
]

CHALLENGES_PER_DAY = 3


def _won_indices(ctx: ChallengeContext) -> List[int]:
    return [i for i, p in enumerate(ctx.picks) if p.status == PickStatus.WON]


def _sweep(ctx: ChallengeContext) -> bool:
    return len(ctx.picks) > 0 and ctx.score_result.correct_count == len(ctx.picks)


def _lock_win(ctx: ChallengeContext) -> bool:
    return ctx.score_result.lock_result == "won"


def _no_pass(ctx: ChallengeContext) -> bool:
    return all(p.choice != Choice.PASS and p.status != PickStatus.PASSED for p in ctx.picks)


def _streak_3(ctx: ChallengeContext) -> bool:
    return ctx.current_pick_streak >= 3


def _five_correct(ctx: ChallengeContext) -> bool:
    return ctx.score_result.correct_count >= 5


def _underdog(ctx: ChallengeContext) -> bool:
    spread_wins = 0
    for i in _won_indices(ctx):
        if i < len(ctx.slate_picks) and ctx.slate_picks[i].market == Market.SPREAD:
            spread_wins += 1
    return spread_wins >= 3


def _multi_sport(ctx: ChallengeContext) -> bool:
    sports = {ctx.slate_picks[i].sport for i in _won_indices(ctx) if i < len(ctx.slate_picks)}
    return len(sports) >= 2


CHALLENGE_PREDICATES: Dict[str, Callable[[ChallengeContext], bool]] = {
    "sweep": _sweep,
    "lock_win": _lock_win,
    "no_pass": _no_pass,
    "streak_3": _streak_3,
    "five_correct": _five_correct,
    "underdog": _underdog,
    "multi_sport": _multi_sport,
}


def date_seed(date_str: str) -> int:
    """Sum of the character codes of the date string."""
    return sum(ord(c) for c in date_str)


def select_daily_challenges(
    date_str: str,
    pool: Sequence[DailyChallenge] = DAILY_CHALLENGES,
    count: int = CHALLENGES_PER_DAY,
) -> List[DailyChallenge]:
    """
    The challenges for a date.

    Sorted by (seed * 31 + ord(first letter of id) * 17) % 97; ties keep
    pool order.
    """
    seed = date_seed(date_str)
    ordered = sorted(pool, key=lambda c: (seed * 31 + ord(c.id[0]) * 17) % 97)
    return ordered[:count]


def get_challenge(challenge_id: str) -> Optional[DailyChallenge]:
    for challenge in DAILY_CHALLENGES:
        if challenge.id == challenge_id:
            return challenge
    return None


def evaluate_challenges(
    challenges: Iterable[DailyChallenge],
    ctx: ChallengeContext,
    already_completed: Iterable[str] = (),
) -> List[DailyChallenge]:
    """
    Challenges newly satisfied by this card.

    Challenges in already_completed are skipped so each pays out once.
    """
    done = set(already_completed)
    completed = []
    for challenge in challenges:
        if challenge.id in done:
            continue
        predicate = CHALLENGE_PREDICATES.get(challenge.id)
        if predicate is not None and predicate(ctx):
            completed.append(challenge)
    return completed
