"""
Pick and card lifecycle.

Pick statuses move forward only:

    unselected -> selected -> pending -> won | lost | push
                  selected (PASS) -> pending -> passed

Card states: editable -> submitted -> graded. Every status change goes
through advance_pick_status(), which checks ALLOWED_TRANSITIONS.
Rejected operations leave the card untouched and return (False, notice).
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from picks_engine.model.enums import CardState, Choice, PickStatus, ScoringMode
from picks_engine.model.scoring import (
    DEFAULT_RULES,
    ScoreResult,
    ScoringRules,
    prepare_picks_for_scoring,
    score,
)
from picks_engine.utils.dates import format_game_time


# ============================================================================
# TRANSITIONS
# ============================================================================

ALLOWED_TRANSITIONS = {
    PickStatus.UNSELECTED: {PickStatus.SELECTED},
    PickStatus.SELECTED: {PickStatus.SELECTED, PickStatus.PENDING},
    PickStatus.PENDING: {PickStatus.WON, PickStatus.LOST, PickStatus.PUSH, PickStatus.PASSED},
    PickStatus.WON: set(),
    PickStatus.LOST: set(),
    PickStatus.PUSH: set(),
    PickStatus.PASSED: set(),
}

# Notices returned with rejected (or notable) operations
NOTICE_LOCKED = "locked"
NOTICE_SUBMITTED = "already submitted"
NOTICE_INCOMPLETE = "incomplete card"
NOTICE_EMPTY = "empty card"
NOTICE_INVALID_INDEX = "invalid pick"
NOTICE_INVALID_CHOICE = "invalid choice"
NOTICE_NO_CHOICE = "choose a side first"
NOTICE_PASS_LOCK = "cannot lock a pass"
NOTICE_LOCK_SET = "lock set"
NOTICE_LOCK_MOVED = "lock moved"
NOTICE_LOCK_REMOVED = "lock removed"
NOTICE_SELECTED = "selected"
NOTICE_OK = "submitted"


class IllegalTransition(Exception):
    """Raised by advance_pick_status for a transition the lifecycle forbids."""


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class UserPick:
    choice: Optional[Choice] = None
    status: PickStatus = PickStatus.UNSELECTED
    is_lock_of_day: bool = False
    final_score: Optional[str] = None   # "away-home"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "choice": self.choice.value if self.choice else None,
            "status": self.status.value,
            "is_lock_of_day": self.is_lock_of_day,
            "final_score": self.final_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPick":
        try:
            status = PickStatus(str(data.get("status", "unselected")).lower())
        except ValueError:
            status = PickStatus.UNSELECTED
        return cls(
            choice=Choice.parse(data.get("choice")),
            status=status,
            is_lock_of_day=bool(data.get("is_lock_of_day", False)),
            final_score=data.get("final_score"),
        )


@dataclass
class DailyCard:
    """A user's picks for one date. Read-modify-write as one unit."""
    date: str
    picks: List[UserPick] = field(default_factory=list)
    lock_index: Optional[int] = None
    submitted: bool = False
    submitted_at: Optional[str] = None
    graded: bool = False
    graded_at: Optional[str] = None
    score_result: Optional[ScoreResult] = None
    scoring_mode: Optional[ScoringMode] = None

    @property
    def state(self) -> CardState:
        return card_state(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "picks": [p.to_dict() for p in self.picks],
            "lock_index": self.lock_index,
            "submitted": self.submitted,
            "submitted_at": self.submitted_at,
            "graded": self.graded,
            "graded_at": self.graded_at,
            "score_result": self.score_result.to_dict() if self.score_result else None,
            "scoring_mode": self.scoring_mode.value if self.scoring_mode else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyCard":
        picks = [UserPick.from_dict(p) for p in data.get("picks") or [] if isinstance(p, dict)]
        lock_index = data.get("lock_index")
        if not isinstance(lock_index, int) or not (0 <= lock_index < len(picks)):
            lock_index = None
        score_data = data.get("score_result")
        return cls(
            date=data["date"],
            picks=picks,
            lock_index=lock_index,
            submitted=bool(data.get("submitted", False)),
            submitted_at=data.get("submitted_at"),
            graded=bool(data.get("graded", False)),
            graded_at=data.get("graded_at"),
            score_result=ScoreResult.from_dict(score_data) if isinstance(score_data, dict) else None,
            scoring_mode=ScoringMode.parse(data["scoring_mode"]) if data.get("scoring_mode") else None,
        )


# ============================================================================
# CARD CONSTRUCTION
# ============================================================================

def new_card(date_str: str, pick_count: int) -> DailyCard:
    """Fresh editable card with one unselected pick per slate pick."""
    return DailyCard(date=date_str, picks=[UserPick() for _ in range(pick_count)])


def ensure_card_matches_slate(card: DailyCard, slate) -> bool:
    """
    Keep one UserPick per SlatePick.

    An editable card whose pick count no longer matches the slate is
    reset. A submitted card is never reset.

    Returns:
        True if the card's picks were rebuilt
    """
    if len(card.picks) == len(slate.picks):
        return False
    if card.submitted:
        return False
    card.picks = [UserPick() for _ in slate.picks]
    card.lock_index = None
    return True


def card_state(card: DailyCard) -> CardState:
    if card.graded:
        return CardState.GRADED
    if card.submitted:
        return CardState.SUBMITTED
    return CardState.EDITABLE


def all_picks_terminal(card: DailyCard) -> bool:
    return bool(card.picks) and all(p.status.is_terminal for p in card.picks)


def pending_indices(card: DailyCard) -> List[int]:
    return [i for i, p in enumerate(card.picks) if p.status == PickStatus.PENDING]


# ============================================================================
# TRANSITIONS
# ============================================================================

def advance_pick_status(pick: UserPick, new_status: PickStatus):
    """
    Move a pick to new_status.

    Raises:
        IllegalTransition: If the lifecycle does not allow the move
    """
    if new_status not in ALLOWED_TRANSITIONS[pick.status]:
        raise IllegalTransition(f"{pick.status.value} -> {new_status.value}")
    pick.status = new_status


def _sync_lock_flags(card: DailyCard):
    for i, pick in enumerate(card.picks):
        pick.is_lock_of_day = card.lock_index == i


def select_pick(
    card: DailyCard,
    slate_pick,
    index: int,
    choice,
    now: datetime,
) -> Tuple[bool, str]:
    """
    Record the user's choice for one pick.

    Rejected once the card is submitted or once the pick's game has
    started. Choosing PASS on the current lock clears the lock.

    Returns:
        Tuple of (accepted, notice)
    """
    if card.submitted:
        return False, NOTICE_SUBMITTED
    if not (0 <= index < len(card.picks)):
        return False, NOTICE_INVALID_INDEX

    parsed = Choice.parse(choice)
    if parsed is None:
        return False, NOTICE_INVALID_CHOICE

    if slate_pick is not None and slate_pick.is_locked(now):
        return False, NOTICE_LOCKED

    pick = card.picks[index]
    if PickStatus.SELECTED not in ALLOWED_TRANSITIONS[pick.status]:
        return False, NOTICE_SUBMITTED

    advance_pick_status(pick, PickStatus.SELECTED)
    pick.choice = parsed

    if parsed == Choice.PASS and card.lock_index == index:
        card.lock_index = None
    _sync_lock_flags(card)
    return True, NOTICE_SELECTED


def toggle_lock(card: DailyCard, index: int) -> Tuple[bool, str]:
    """
    Set, move or remove the Lock of the Day.

    Only before submission and only on a pick with an A/B choice.
    Setting a new lock clears the previous one.
    """
    if card.submitted:
        return False, NOTICE_SUBMITTED
    if not (0 <= index < len(card.picks)):
        return False, NOTICE_INVALID_INDEX

    pick = card.picks[index]
    if pick.choice is None:
        return False, NOTICE_NO_CHOICE
    if pick.choice == Choice.PASS:
        return False, NOTICE_PASS_LOCK

    if card.lock_index == index:
        card.lock_index = None
        notice = NOTICE_LOCK_REMOVED
    else:
        notice = NOTICE_LOCK_MOVED if card.lock_index is not None else NOTICE_LOCK_SET
        card.lock_index = index

    _sync_lock_flags(card)
    return True, notice


def submit_card(card: DailyCard, now: Optional[datetime] = None) -> Tuple[bool, str]:
    """
    Submit every pick at once.

    Requires a choice on every pick. All picks go to pending, then PASS
    picks settle straight to passed. The lock index is snapshotted onto
    each pick's is_lock_of_day flag.
    """
    if card.submitted:
        return False, NOTICE_SUBMITTED
    if not card.picks:
        return False, NOTICE_EMPTY
    if any(p.choice is None for p in card.picks):
        return False, NOTICE_INCOMPLETE

    if card.lock_index is not None and card.picks[card.lock_index].choice == Choice.PASS:
        card.lock_index = None

    for pick in card.picks:
        advance_pick_status(pick, PickStatus.PENDING)
        if pick.choice == Choice.PASS:
            advance_pick_status(pick, PickStatus.PASSED)
    _sync_lock_flags(card)

    card.submitted = True
    card.submitted_at = format_game_time(now) if now else None
    return True, NOTICE_OK


def apply_grade(
    card: DailyCard,
    index: int,
    status: PickStatus,
    final_score: Optional[str] = None,
) -> bool:
    """
    Settle one pending pick as won, lost or push.

    Returns:
        False (and no change) if the pick is not pending
    """
    if status not in (PickStatus.WON, PickStatus.LOST, PickStatus.PUSH):
        return False
    if not (0 <= index < len(card.picks)):
        return False
    pick = card.picks[index]
    if pick.status != PickStatus.PENDING:
        return False
    advance_pick_status(pick, status)
    if final_score is not None:
        pick.final_score = final_score
    return True


def grade_card(
    card: DailyCard,
    mode: ScoringMode = ScoringMode.CLASSIC,
    rules: ScoringRules = DEFAULT_RULES,
    slate=None,
    now: Optional[datetime] = None,
) -> Optional[ScoreResult]:
    """
    Score a submitted card once every pick is terminal.

    Single-fire: returns None if the card is already graded, not
    submitted, or still has open picks. An invalid score leaves the card
    ungraded.
    """
    if card.graded or not card.submitted or not all_picks_terminal(card):
        return None

    slate_picks = list(slate.picks) if slate is not None else None
    user_picks, results = prepare_picks_for_scoring(card.picks, slate_picks)
    result = score(user_picks, results, mode, rules)
    if not result.is_valid:
        return result

    card.score_result = result
    card.scoring_mode = result.scoring_mode
    card.graded = True
    card.graded_at = format_game_time(now) if now else None
    return result
