"""
Scoring engine for daily pick cards.

Pure functions only: (picks, graded results, scoring mode) -> ScoreResult.
Nothing here touches storage, the network or the clock.

Per-pick evaluation, first matching rule wins:
    1. choice is PASS or None            -> PASS      (0)
    2. result status is canceled         -> CANCELED  (0)
    3. result status is push, or the
       game is final with no answer      -> PUSH      (0)
    4. result status is pending          -> PENDING   (not counted)
    5. choice == correct answer          -> CORRECT   (10), else INCORRECT (0)

Card bonuses (once per card):
    Perfect Card   graded >= 1, no misses, >= 1 correct       +15
    Near Perfect   not perfect, graded >= 2, exactly 1 miss   +5
    Lock of Day    won +5 (both modes); lost -5 (competitive only)

total_points = max(0, base_points + bonus_points)
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from picks_engine.model.config import (
    POINTS_CORRECT_PICK,
    BONUS_PERFECT_CARD,
    BONUS_NEAR_PERFECT,
    BONUS_LOCK_CORRECT,
    PENALTY_LOCK_INCORRECT,
    MIN_GRADED_FOR_PERFECT,
    MIN_GRADED_FOR_NEAR_PERFECT,
)
from picks_engine.model.enums import Choice, PickStatus, ScoringMode


# ============================================================================
# TYPES
# ============================================================================

class ResultType(Enum):
    """Outcome of evaluating one pick."""
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PUSH = "push"
    PASS = "pass"
    CANCELED = "canceled"
    PENDING = "pending"


class ResultStatus(Enum):
    """Status of the real-world result a pick is graded against."""
    FINAL = "final"
    CANCELED = "canceled"
    PUSH = "push"
    PENDING = "pending"


@dataclass(frozen=True)
class ScoringRules:
    """Point values and bonus thresholds used by score()."""
    correct_pick: int = POINTS_CORRECT_PICK
    perfect_bonus: int = BONUS_PERFECT_CARD
    near_perfect_bonus: int = BONUS_NEAR_PERFECT
    lock_bonus: int = BONUS_LOCK_CORRECT
    lock_penalty: int = PENALTY_LOCK_INCORRECT
    min_graded_for_perfect: int = MIN_GRADED_FOR_PERFECT
    min_graded_for_near_perfect: int = MIN_GRADED_FOR_NEAR_PERFECT

    @classmethod
    def from_settings(cls, settings) -> "ScoringRules":
        return cls(
            min_graded_for_perfect=settings.min_graded_for_perfect,
            min_graded_for_near_perfect=settings.min_graded_for_near_perfect,
        )


DEFAULT_RULES = ScoringRules()


@dataclass(frozen=True)
class ScoringPick:
    """The part of a user pick the scoring engine needs."""
    choice: Optional[Choice]
    is_lock_of_day: bool = False


@dataclass(frozen=True)
class GameResult:
    """The graded truth for one pick. correct_answer None means no winner."""
    status: ResultStatus
    correct_answer: Optional[Choice] = None
    original_line: Optional[str] = None


@dataclass(frozen=True)
class PickEvaluation:
    user_choice: Optional[Choice]
    correct_answer: Optional[Choice]
    status: ResultStatus
    result_type: ResultType
    points: int
    is_lock_of_day: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_choice": self.user_choice.value if self.user_choice else None,
            "correct_answer": self.correct_answer.value if self.correct_answer else None,
            "status": self.status.value,
            "result_type": self.result_type.value,
            "points": self.points,
            "is_lock_of_day": self.is_lock_of_day,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PickEvaluation":
        return cls(
            user_choice=Choice.parse(data.get("user_choice")),
            correct_answer=Choice.parse(data.get("correct_answer")),
            status=ResultStatus(data.get("status", "pending")),
            result_type=ResultType(data.get("result_type", "pending")),
            points=int(data.get("points", 0)),
            is_lock_of_day=bool(data.get("is_lock_of_day", False)),
        )


@dataclass(frozen=True)
class ScoreResult:
    """Immutable score breakdown for one card."""
    total_points: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    push_count: int = 0
    pass_count: int = 0
    canceled_count: int = 0
    pending_count: int = 0
    graded_count: int = 0
    bonuses_applied: Tuple[str, ...] = ()
    base_points: int = 0
    bonus_points: int = 0
    is_perfect: bool = False
    is_near_perfect: bool = False
    lock_result: Optional[str] = None   # won, lost, push, pass or None
    lock_points: int = 0
    lock_index: Optional[int] = None
    pick_results: Tuple[PickEvaluation, ...] = ()
    scoring_mode: ScoringMode = ScoringMode.CLASSIC
    is_valid: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["bonuses_applied"] = list(self.bonuses_applied)
        data["pick_results"] = [p.to_dict() for p in self.pick_results]
        data["scoring_mode"] = self.scoring_mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreResult":
        known = set(cls.__dataclass_fields__)
        values = {k: v for k, v in data.items() if k in known}
        values["bonuses_applied"] = tuple(data.get("bonuses_applied") or ())
        values["pick_results"] = tuple(
            PickEvaluation.from_dict(p) for p in (data.get("pick_results") or ())
        )
        values["scoring_mode"] = ScoringMode.parse(data.get("scoring_mode"))
        return cls(**values)


def invalid_score_result(error: str, mode: ScoringMode = ScoringMode.CLASSIC) -> ScoreResult:
    """The sentinel returned for unusable input. Callers check is_valid."""
    return ScoreResult(scoring_mode=mode, is_valid=False, error=error)


# ============================================================================
# EVALUATION
# ============================================================================

def _as_pick(pick) -> ScoringPick:
    if isinstance(pick, ScoringPick):
        return pick
    if isinstance(pick, dict):
        return ScoringPick(
            choice=Choice.parse(pick.get("choice")),
            is_lock_of_day=bool(pick.get("is_lock_of_day", False)),
        )
    raise TypeError(f"Cannot score pick of type {type(pick).__name__}")


def _as_result(result) -> GameResult:
    if isinstance(result, GameResult):
        return result
    if isinstance(result, dict):
        return GameResult(
            status=ResultStatus(result.get("status", "pending")),
            correct_answer=Choice.parse(result.get("correct_answer")),
            original_line=result.get("original_line"),
        )
    raise TypeError(f"Cannot score result of type {type(result).__name__}")


def evaluate_pick(pick: ScoringPick, result: GameResult, rules: ScoringRules = DEFAULT_RULES) -> PickEvaluation:
    """Evaluate one pick against its result, in rule priority order."""
    def outcome(result_type: ResultType, points: int = 0) -> PickEvaluation:
        return PickEvaluation(
            user_choice=pick.choice,
            correct_answer=result.correct_answer,
            status=result.status,
            result_type=result_type,
            points=points,
            is_lock_of_day=pick.is_lock_of_day,
        )

    if pick.choice is None or pick.choice == Choice.PASS:
        return outcome(ResultType.PASS)

    if result.status == ResultStatus.CANCELED:
        return outcome(ResultType.CANCELED)

    if result.status == ResultStatus.PUSH or (
        result.status == ResultStatus.FINAL and result.correct_answer is None
    ):
        return outcome(ResultType.PUSH)

    if result.status == ResultStatus.PENDING:
        return outcome(ResultType.PENDING)

    if pick.choice == result.correct_answer:
        return outcome(ResultType.CORRECT, rules.correct_pick)
    return outcome(ResultType.INCORRECT)


_LOCK_RESULTS = {
    ResultType.CORRECT: "won",
    ResultType.INCORRECT: "lost",
    ResultType.PUSH: "push",
    ResultType.CANCELED: "push",
    ResultType.PASS: "pass",
}


def lock_points(
    lock_result: Optional[str],
    mode: ScoringMode = ScoringMode.CLASSIC,
    rules: ScoringRules = DEFAULT_RULES,
) -> int:
    """Points for the lock of the day: bonus when won, penalty only in competitive."""
    if lock_result == "won":
        return rules.lock_bonus
    if lock_result == "lost" and mode == ScoringMode.COMPETITIVE:
        return rules.lock_penalty
    return 0


def score(
    user_picks: Sequence,
    results: Sequence,
    mode: ScoringMode = ScoringMode.CLASSIC,
    rules: ScoringRules = DEFAULT_RULES,
) -> ScoreResult:
    """
    Score a card.

    Args:
        user_picks: ScoringPick (or dict) per slate pick, in slate order
        results: GameResult (or dict) per slate pick, same order
        mode: Classic or Competitive
        rules: Point values and bonus thresholds

    Returns:
        ScoreResult. Invalid input yields is_valid=False with an error
        message instead of raising.
    """
    mode = ScoringMode.parse(mode)

    if not isinstance(user_picks, (list, tuple)) or not isinstance(results, (list, tuple)):
        return invalid_score_result("Invalid input: picks and results must be arrays", mode)
    if len(user_picks) == 0:
        return invalid_score_result("No picks submitted", mode)
    if len(user_picks) != len(results):
        return invalid_score_result("Mismatch: picks and results arrays must have same length", mode)

    try:
        picks = [_as_pick(p) for p in user_picks]
        graded_results = [_as_result(r) for r in results]
    except (TypeError, ValueError) as e:
        return invalid_score_result(f"Invalid input: {e}", mode)

    counts = {result_type: 0 for result_type in ResultType}
    base_points = 0
    lock_index = None
    lock_result = None
    evaluations: List[PickEvaluation] = []

    for i, (pick, result) in enumerate(zip(picks, graded_results)):
        evaluation = evaluate_pick(pick, result, rules)
        evaluations.append(evaluation)
        counts[evaluation.result_type] += 1
        base_points += evaluation.points

        if pick.is_lock_of_day:
            lock_index = i
            lock_result = _LOCK_RESULTS.get(evaluation.result_type)

    correct = counts[ResultType.CORRECT]
    incorrect = counts[ResultType.INCORRECT]
    graded = correct + incorrect

    bonuses: List[str] = []
    bonus_points = 0

    is_perfect = graded >= rules.min_graded_for_perfect and incorrect == 0 and correct > 0
    is_near_perfect = (
        graded >= rules.min_graded_for_near_perfect and incorrect == 1 and correct >= 1
    )

    if is_perfect:
        bonus_points += rules.perfect_bonus
        bonuses.append(f"Perfect Card (+{rules.perfect_bonus})")
    elif is_near_perfect:
        bonus_points += rules.near_perfect_bonus
        bonuses.append(f"Near Perfect (+{rules.near_perfect_bonus})")

    lock_pts = lock_points(lock_result, mode, rules)
    if lock_pts > 0:
        bonuses.append(f"Lock of Day (+{lock_pts})")
    elif lock_pts < 0:
        bonuses.append(f"Lock of Day ({lock_pts})")
    bonus_points += lock_pts

    return ScoreResult(
        total_points=max(0, base_points + bonus_points),
        correct_count=correct,
        incorrect_count=incorrect,
        push_count=counts[ResultType.PUSH],
        pass_count=counts[ResultType.PASS],
        canceled_count=counts[ResultType.CANCELED],
        pending_count=counts[ResultType.PENDING],
        graded_count=graded,
        bonuses_applied=tuple(bonuses),
        base_points=base_points,
        bonus_points=bonus_points,
        is_perfect=is_perfect,
        is_near_perfect=is_near_perfect,
        lock_result=lock_result,
        lock_points=lock_pts,
        lock_index=lock_index,
        pick_results=tuple(evaluations),
        scoring_mode=mode,
    )


# ============================================================================
# HELPERS
# ============================================================================

def _opposite(choice: Optional[Choice]) -> Optional[Choice]:
    if choice == Choice.A:
        return Choice.B
    if choice == Choice.B:
        return Choice.A
    return None


def prepare_picks_for_scoring(picks, slate_picks=None) -> Tuple[List[ScoringPick], List[GameResult]]:
    """
    Turn card picks with lifecycle statuses into scoring inputs.

    A won pick means the user's choice was the answer; a lost pick means
    the other side was.

    Args:
        picks: UserPick objects from a DailyCard
        slate_picks: Matching SlatePick objects, used for the original line

    Returns:
        Tuple of (user_picks, results)
    """
    user_picks = []
    results = []

    for i, pick in enumerate(picks):
        slate_pick = slate_picks[i] if slate_picks and i < len(slate_picks) else None
        line = getattr(slate_pick, "market_detail", None) if slate_pick else None
        user_picks.append(ScoringPick(choice=pick.choice, is_lock_of_day=pick.is_lock_of_day))

        if pick.status == PickStatus.WON:
            result = GameResult(ResultStatus.FINAL, pick.choice, line)
        elif pick.status == PickStatus.LOST:
            result = GameResult(ResultStatus.FINAL, _opposite(pick.choice), line)
        elif pick.status == PickStatus.PUSH:
            result = GameResult(ResultStatus.PUSH, None, line)
        elif pick.status == PickStatus.PASSED:
            result = GameResult(ResultStatus.FINAL, None, line)
        else:
            result = GameResult(ResultStatus.PENDING, None, line)
        results.append(result)

    return user_picks, results


def quick_calculate_score(
    statuses: Sequence[PickStatus],
    lock_index: Optional[int] = None,
    mode: ScoringMode = ScoringMode.CLASSIC,
    rules: ScoringRules = DEFAULT_RULES,
) -> int:
    """Running total from pick statuses alone, for display while a card is in play."""
    points = 0
    correct = 0
    incorrect = 0
    lock_result = None

    for i, status in enumerate(statuses):
        if status == PickStatus.WON:
            points += rules.correct_pick
            correct += 1
            if i == lock_index:
                lock_result = "won"
        elif status == PickStatus.LOST:
            incorrect += 1
            if i == lock_index:
                lock_result = "lost"
        elif status == PickStatus.PUSH and i == lock_index:
            lock_result = "push"

    graded = correct + incorrect
    if graded >= rules.min_graded_for_perfect and incorrect == 0 and correct > 0:
        points += rules.perfect_bonus
    elif graded >= rules.min_graded_for_near_perfect and incorrect == 1 and correct >= 1:
        points += rules.near_perfect_bonus

    points += lock_points(lock_result, mode, rules)
    return max(0, points)


def max_possible_score(pick_count: int, has_lock: bool = True, rules: ScoringRules = DEFAULT_RULES) -> int:
    """Best case for a card: every pick correct, perfect bonus, lock won."""
    best = pick_count * rules.correct_pick + rules.perfect_bonus
    if has_lock:
        best += rules.lock_bonus
    return best


def format_score_breakdown(result: ScoreResult, rules: ScoringRules = DEFAULT_RULES) -> str:
    lines = [f"Base: {result.correct_count} x {rules.correct_pick} = {result.base_points} pts"]
    if result.bonuses_applied:
        lines.append("Bonuses:")
        for bonus in result.bonuses_applied:
            lines.append(f"  {bonus}")
    lines.append(f"Total: {result.total_points} pts")
    return "\n".join(lines)


def scoring_rules_description(mode: ScoringMode = ScoringMode.CLASSIC, rules: ScoringRules = DEFAULT_RULES) -> Dict[str, Any]:
    """Rule table for display, with the lock penalty shown only in competitive mode."""
    mode = ScoringMode.parse(mode)
    competitive = mode == ScoringMode.COMPETITIVE
    return {
        "mode": mode.value,
        "mode_name": "Competitive" if competitive else "Classic",
        "mode_description": (
            "Higher risk, higher reward. Wrong locks cost you points!"
            if competitive else
            "Standard scoring. No penalties for wrong picks."
        ),
        "rules": {
            "correct_pick": {"label": "Correct Pick", "value": f"+{rules.correct_pick}"},
            "wrong_pick": {"label": "Wrong Pick", "value": "0"},
            "push": {"label": "Push", "value": "0"},
            "lock_correct": {"label": "Lock Correct", "value": f"+{rules.lock_bonus}"},
            "lock_wrong": {
                "label": "Lock Wrong",
                "value": f"{rules.lock_penalty}" if competitive else "0",
                "highlight": competitive,
            },
            "perfect_card": {"label": "Perfect Card", "value": f"+{rules.perfect_bonus}"},
            "near_perfect": {"label": "Near Perfect", "value": f"+{rules.near_perfect_bonus}"},
        },
    }
