"""
Persisted user state.

Layout in the key-value store:
- user-state                -> UserState JSON (schema_version 2)
- testing-state             -> sandbox copy of UserState
- results:<date>:<pick_id>  -> StoredResult JSON

State is migrated exactly once, at load, by migrate_state(). Anything
unreadable falls back to a default state instead of raising.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from picks_engine.model.card import DailyCard
from picks_engine.model.enums import Choice, ScoringMode
from picks_engine.model.progression import UserProgression
from picks_engine.storage.kv import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


SCHEMA_VERSION = 2

USER_STATE_KEY = "user-state"
TESTING_STATE_KEY = "testing-state"
RESULTS_PREFIX = "results"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class HistoryEntry:
    """One archived card."""
    date: str
    picks: List[Dict[str, Any]] = field(default_factory=list)
    score: Optional[int] = None             # correct picks
    total_points: Optional[int] = None
    is_perfect: bool = False
    lock_won: bool = False
    xp_earned: int = 0
    coins_earned: int = 0
    challenges_completed: List[str] = field(default_factory=list)
    scoring_mode: Optional[str] = None
    submitted: bool = True
    graded: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "picks": [dict(p) for p in self.picks],
            "score": self.score,
            "total_points": self.total_points,
            "is_perfect": self.is_perfect,
            "lock_won": self.lock_won,
            "xp_earned": self.xp_earned,
            "coins_earned": self.coins_earned,
            "challenges_completed": list(self.challenges_completed),
            "scoring_mode": self.scoring_mode,
            "submitted": self.submitted,
            "graded": self.graded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        entry = cls(date=str(data.get("date", "")))
        for name in cls.__dataclass_fields__:
            if name != "date" and data.get(name) is not None:
                setattr(entry, name, data[name])
        return entry


@dataclass
class UserState:
    user_id: str
    progression: UserProgression
    today: DailyCard
    history: List[HistoryEntry] = field(default_factory=list)
    scoring_mode: ScoringMode = ScoringMode.CLASSIC
    schema_version: int = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "user_id": self.user_id,
            "progression": self.progression.to_dict(),
            "today": self.today.to_dict(),
            "history": [h.to_dict() for h in self.history],
            "scoring_mode": self.scoring_mode.value,
        }

    def copy(self) -> "UserState":
        """Deep copy through the serialized form."""
        return _parse_v2(json.loads(json.dumps(self.to_dict())))


@dataclass(frozen=True)
class StoredResult:
    """A settled game outcome for one slate pick."""
    winner: Optional[Choice]        # None means push
    final_score: Optional[str] = None
    resolved_at: Optional[str] = None

    @property
    def is_push(self) -> bool:
        return self.winner is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner.value if self.winner else None,
            "final_score": self.final_score,
            "resolved_at": self.resolved_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredResult":
        return cls(
            winner=Choice.parse(data.get("winner")),
            final_score=data.get("final_score"),
            resolved_at=data.get("resolved_at"),
        )


# ============================================================================
# DEFAULTS & MIGRATION
# ============================================================================

def new_user_id() -> str:
    return f"user_{uuid4().hex[:9]}"


def default_user_state(
    today: str,
    user_id: Optional[str] = None,
    scoring_mode: ScoringMode = ScoringMode.CLASSIC,
) -> UserState:
    return UserState(
        user_id=user_id or new_user_id(),
        progression=UserProgression(),
        today=DailyCard(date=today),
        scoring_mode=scoring_mode,
    )


_LEGACY_STAT_FIELDS = {
    "totalPicks": "total_picks",
    "correctPicks": "correct_picks",
    "daysPlayed": "days_played",
    "perfectDays": "perfect_days",
    "currentPickStreak": "current_pick_streak",
    "bestPickStreak": "best_pick_streak",
    "currentDayStreak": "current_day_streak",
    "bestDayStreak": "best_day_streak",
    "lockOfDayWins": "lock_of_day_wins",
    "bestDailyScore": "best_daily_score",
    "challengesCompleted": "challenges_completed",
    "bySport": "by_sport",
    "byMarket": "by_market",
}


def _upgrade_v1(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert the flat version-1 layout (camelCase keys, progression fields
    at the top level, today.lockOfDayIndex) into the version-2 layout.
    """
    stats_raw = (raw.get("stats") or {}).get("allTime") or {}
    stats = {new: stats_raw[old] for old, new in _LEGACY_STAT_FIELDS.items() if old in stats_raw}

    today_raw = raw.get("today") or {}
    today = None
    if today_raw.get("date"):
        today = {
            "date": today_raw["date"],
            "picks": [
                {
                    "choice": p.get("choice"),
                    "status": str(p.get("status") or "unselected").lower(),
                    "is_lock_of_day": bool(p.get("isLockOfDay", False)),
                    "final_score": p.get("finalScore"),
                }
                for p in today_raw.get("picks") or []
                if isinstance(p, dict)
            ],
            "lock_index": today_raw.get("lockOfDayIndex"),
            "submitted": bool(today_raw.get("submitted", False)),
            "submitted_at": today_raw.get("submittedAt"),
            "graded": bool(today_raw.get("graded", False)),
            "graded_at": today_raw.get("gradedAt"),
        }

    history = []
    for h in raw.get("history") or []:
        if not isinstance(h, dict):
            continue
        history.append({
            "date": h.get("date", ""),
            "picks": [p for p in h.get("picks") or [] if isinstance(p, dict)],
            "score": h.get("score"),
            "is_perfect": bool(h.get("isPerfect", False)),
            "lock_won": bool(h.get("lockWon", False)),
            "xp_earned": h.get("xpEarned") or 0,
            "coins_earned": h.get("coinsEarned") or 0,
            "challenges_completed": h.get("challengesCompleted") or [],
            "graded": bool(h.get("graded", True)),
        })

    return {
        "schema_version": SCHEMA_VERSION,
        "user_id": raw.get("userId"),
        "progression": {
            "xp": raw.get("xp") or 0,
            "coins": raw.get("coins") or 0,
            "stats": stats,
            "badges": raw.get("badges") or [],
        },
        "today": today,
        "history": history,
        "scoring_mode": raw.get("scoringMode"),
    }


def _parse_v2(raw: Dict[str, Any]) -> UserState:
    today_raw = raw.get("today")
    today = DailyCard.from_dict(today_raw) if isinstance(today_raw, dict) and today_raw.get("date") else None
    return UserState(
        user_id=raw.get("user_id") or new_user_id(),
        progression=UserProgression.from_dict(raw.get("progression") or {}),
        today=today if today is not None else DailyCard(date=""),
        history=[HistoryEntry.from_dict(h) for h in raw.get("history") or [] if isinstance(h, dict)],
        scoring_mode=ScoringMode.parse(raw.get("scoring_mode")),
    )


def archive_card(card: DailyCard) -> HistoryEntry:
    """History entry for a card that was submitted but never graded."""
    result = card.score_result
    return HistoryEntry(
        date=card.date,
        picks=[p.to_dict() for p in card.picks],
        score=result.correct_count if result else None,
        total_points=result.total_points if result else None,
        is_perfect=bool(result and result.is_perfect),
        lock_won=bool(result and result.lock_result == "won"),
        scoring_mode=card.scoring_mode.value if card.scoring_mode else None,
        submitted=card.submitted,
        graded=card.graded,
    )


def migrate_state(raw: Any, today: str) -> UserState:
    """
    Bring any stored state up to the current schema for today's date.

    - version 1 (legacy flat layout) is upgraded to version 2
    - missing fields get defaults
    - a card from an earlier date is rolled over: an ungraded submitted
      card is archived to history (graded cards were archived when they
      were finalized) and a fresh card is opened for today

    Malformed input yields a default state.
    """
    if not isinstance(raw, dict):
        logger.warning("Unexpected user state shape (%s); using defaults", type(raw).__name__)
        return default_user_state(today)

    try:
        version = int(raw.get("schema_version") or 1)
        if version < 2:
            raw = _upgrade_v1(raw)
        state = _parse_v2(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.warning("Could not migrate user state (%s); using defaults", e)
        return default_user_state(today)

    if state.today.date != today:
        old = state.today
        if old.date and old.submitted and not old.graded and old.picks:
            state.history.insert(0, archive_card(old))
        state.today = DailyCard(date=today)

    state.schema_version = SCHEMA_VERSION
    return state


# ============================================================================
# LOAD / SAVE
# ============================================================================

def load_user_state(
    store: KeyValueStore,
    today: str,
    key: str = USER_STATE_KEY,
    scoring_mode: ScoringMode = ScoringMode.CLASSIC,
) -> UserState:
    """
    Load and migrate state. Absent or corrupt state yields defaults.

    scoring_mode only applies to a new default state; saved state keeps
    the mode the user chose.
    """
    raw_text = store.get(key)
    if raw_text is None:
        return default_user_state(today, scoring_mode=scoring_mode)
    try:
        raw = json.loads(raw_text)
    except (TypeError, ValueError) as e:
        logger.warning("Corrupt %s (%s); resetting to defaults", key, e)
        return default_user_state(today, scoring_mode=scoring_mode)
    return migrate_state(raw, today)


def save_user_state(store: KeyValueStore, state: UserState, key: str = USER_STATE_KEY):
    """Persist state. StorageError propagates to the caller."""
    store.set(key, json.dumps(state.to_dict()))


def load_testing_state(store: KeyValueStore, today: str) -> Optional[UserState]:
    """The sandbox copy, or None if there is none (or it is unreadable)."""
    raw_text = store.get(TESTING_STATE_KEY)
    if raw_text is None:
        return None
    try:
        raw = json.loads(raw_text)
    except (TypeError, ValueError):
        return None
    return migrate_state(raw, today)


def save_testing_state(store: KeyValueStore, state: UserState):
    save_user_state(store, state, TESTING_STATE_KEY)


def clear_testing_state(store: KeyValueStore):
    store.delete(TESTING_STATE_KEY)


def preview_store(store: KeyValueStore) -> MemoryStore:
    """
    In-memory copy of the saved user state, for viewing another date.

    Loading the copy for a date other than the card's rolls it over in
    memory only; the real card and history stay as saved.
    """
    preview = MemoryStore()
    raw = store.get(USER_STATE_KEY)
    if raw is not None:
        preview.set(USER_STATE_KEY, raw)
    return preview


# ============================================================================
# STORED RESULTS
# ============================================================================

def result_key(date_str: str, pick_id) -> str:
    return f"{RESULTS_PREFIX}:{date_str}:{pick_id}"


def store_game_result(
    store: KeyValueStore,
    date_str: str,
    pick_id,
    winner: Optional[Choice],
    final_score: Optional[str] = None,
) -> StoredResult:
    result = StoredResult(
        winner=Choice.parse(winner),
        final_score=final_score,
        resolved_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    store.set(result_key(date_str, pick_id), json.dumps(result.to_dict()))
    return result


def get_stored_result(store: KeyValueStore, date_str: str, pick_id) -> Optional[StoredResult]:
    raw_text = store.get(result_key(date_str, pick_id))
    if raw_text is None:
        return None
    try:
        data = json.loads(raw_text)
    except (TypeError, ValueError):
        logger.warning("Corrupt stored result %s; ignoring", result_key(date_str, pick_id))
        return None
    if not isinstance(data, dict):
        return None
    return StoredResult.from_dict(data)


def clear_results_for_date(store: KeyValueStore, date_str: str) -> int:
    keys = store.keys(f"{RESULTS_PREFIX}:{date_str}:")
    for key in keys:
        store.delete(key)
    return len(keys)
