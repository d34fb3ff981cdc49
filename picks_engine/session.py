"""
Game session: the single mutation path for a user's state.

GameSession loads (and migrates) the user state once, keeps today's card
in step with the slate, and persists after every accepted operation.
Testing mode swaps in a shadow copy stored under testing-state so the
real progression is never touched.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from picks_engine.model.card import (
    NOTICE_INVALID_CHOICE,
    NOTICE_INVALID_INDEX,
    NOTICE_SUBMITTED,
    DailyCard,
    all_picks_terminal,
    apply_grade,
    ensure_card_matches_slate,
    grade_card,
    new_card,
    select_pick,
    submit_card,
    toggle_lock,
)
from picks_engine.model.config import EngineSettings
from picks_engine.model.enums import Choice, PickStatus, ScoringMode
from picks_engine.model.progression import RewardSummary, UserProgression, apply_card_rewards
from picks_engine.model.scoring import ScoringRules
from picks_engine.model.slate import Slate
from picks_engine.services.grading import ResolutionReport, resolve_card_results, status_for
from picks_engine.storage.kv import KeyValueStore
from picks_engine.storage.state import (
    HistoryEntry,
    UserState,
    clear_testing_state,
    load_testing_state,
    load_user_state,
    save_testing_state,
    save_user_state,
    store_game_result,
)
from picks_engine.utils.dates import get_today_str, utc_now

logger = logging.getLogger(__name__)


NOTICE_NOT_SUBMITTED = "card not submitted"
NOTICE_NOT_PENDING = "pick not pending"
NOTICE_GRADED = "already graded"
NOTICE_RESOLVED = "resolved"
NOTICE_RESET = "card reset"

_PUSH_VALUES = ("push", "tie", "draw")


class GameSession:
    """
    One user's session against one day's slate.

    Args:
        store: Key-value store holding user state and stored results
        slate: Today's slate
        today: Date string (defaults to today in Eastern time)
        clock: Returns the current aware datetime (defaults to UTC now)
        settings: EngineSettings for scoring thresholds
    """

    def __init__(
        self,
        store: KeyValueStore,
        slate: Slate,
        today: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.store = store
        self.slate = slate
        self.today = today or get_today_str()
        self.clock = clock or utc_now
        self.settings = settings or EngineSettings()
        self.rules = ScoringRules.from_settings(self.settings)
        self.default_mode = ScoringMode.parse(self.settings.scoring_mode)
        self.testing = False
        self.last_rewards: Optional[RewardSummary] = None

        self.state = load_user_state(store, self.today, scoring_mode=self.default_mode)
        self._real_state = self.state
        if ensure_card_matches_slate(self.state.today, slate):
            logger.info("Card for %s rebuilt to match slate (%d picks)", self.today, len(slate))
        self.save()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def card(self) -> DailyCard:
        return self.state.today

    @property
    def progression(self) -> UserProgression:
        return self.state.progression

    @property
    def scoring_mode(self) -> ScoringMode:
        return self.state.scoring_mode

    def save(self):
        """Persist the active state (testing-state while in testing mode)."""
        if self.testing:
            save_testing_state(self.store, self.state)
        else:
            save_user_state(self.store, self.state)

    def _slate_pick(self, index: int):
        if 0 <= index < len(self.slate.picks):
            return self.slate.picks[index]
        return None

    # ------------------------------------------------------------------
    # Card operations
    # ------------------------------------------------------------------

    def select_pick(self, index: int, choice) -> Tuple[bool, str]:
        ok, notice = select_pick(self.card, self._slate_pick(index), index, choice, self.clock())
        if ok:
            self.save()
        return ok, notice

    def toggle_lock(self, index: int) -> Tuple[bool, str]:
        ok, notice = toggle_lock(self.card, index)
        if ok:
            self.save()
        return ok, notice

    def submit(self) -> Tuple[bool, str]:
        ok, notice = submit_card(self.card, self.clock())
        if ok:
            logger.info("Card %s submitted (%d picks, lock=%s)",
                        self.card.date, len(self.card.picks), self.card.lock_index)
            self.save()
            # a card of all passes is already settled
            if all_picks_terminal(self.card):
                self.finalize_card()
        return ok, notice

    def set_scoring_mode(self, mode) -> ScoringMode:
        """Switch scoring mode for cards not yet graded. Anything but 'competitive' is classic."""
        self.state.scoring_mode = ScoringMode.parse(mode, ScoringMode.CLASSIC)
        self.save()
        return self.state.scoring_mode

    def reset_todays_card(self) -> Tuple[bool, str]:
        """
        Discard today's card and start a fresh one matching the slate.

        A submitted card is kept: it can only be replayed in testing mode.
        """
        if not self.testing and (self.card.submitted or self.card.graded):
            return False, NOTICE_GRADED if self.card.graded else NOTICE_SUBMITTED
        self.state.today = new_card(self.today, len(self.slate.picks))
        self.save()
        return True, NOTICE_RESET

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def resolve_result(self, index: int, result, final_score: Optional[str] = None) -> Tuple[bool, str]:
        """
        Settle one pending pick by hand.

        Args:
            index: Pick index
            result: 'A', 'B' or 'push'
            final_score: Optional "away-home" score

        Returns:
            Tuple of (accepted, notice)
        """
        card = self.card
        if card.graded:
            return False, NOTICE_GRADED
        if not card.submitted:
            return False, NOTICE_NOT_SUBMITTED
        if not (0 <= index < len(card.picks)):
            return False, NOTICE_INVALID_INDEX
        if card.picks[index].status != PickStatus.PENDING:
            return False, NOTICE_NOT_PENDING

        if isinstance(result, str) and result.strip().lower() in _PUSH_VALUES:
            winner = None
        else:
            winner = Choice.parse(result)
            if winner not in (Choice.A, Choice.B):
                return False, NOTICE_INVALID_CHOICE

        slate_pick = self._slate_pick(index)
        if slate_pick is not None and not self.testing:
            store_game_result(self.store, card.date, slate_pick.pick_id, winner, final_score)

        apply_grade(card, index, status_for(card.picks[index].choice, winner), final_score)
        self.save()

        if all_picks_terminal(card):
            self.finalize_card()
        return True, NOTICE_RESOLVED

    def check_results(self, service) -> ResolutionReport:
        """Run the resolver once and finalize if every pick has settled."""
        report = resolve_card_results(self.card, self.slate, service, self.store, self.card.date)
        if report.graded:
            self.save()
        if self.card.submitted and not self.card.graded and all_picks_terminal(self.card):
            self.finalize_card()
        return report

    def finalize_card(self) -> Optional[RewardSummary]:
        """
        Score the card and apply progression. Runs at most once per card.

        Returns:
            RewardSummary, or None if the card was already graded, is not
            ready, or could not be scored
        """
        card = self.card
        if card.graded:
            return None

        result = grade_card(card, self.scoring_mode, self.rules, self.slate, self.clock())
        if result is None:
            return None
        if not result.is_valid:
            logger.warning("Card %s could not be scored: %s", card.date, result.error)
            return None

        rewards = apply_card_rewards(self.progression, result, card.picks, self.slate.picks, card.date)
        self.state.history.insert(0, HistoryEntry(
            date=card.date,
            picks=[p.to_dict() for p in card.picks],
            score=result.correct_count,
            total_points=result.total_points,
            is_perfect=result.is_perfect,
            lock_won=result.lock_result == "won",
            xp_earned=rewards.xp_earned,
            coins_earned=rewards.coins_earned,
            challenges_completed=list(rewards.challenges_completed),
            scoring_mode=result.scoring_mode.value,
        ))
        self.save()
        self.last_rewards = rewards

        logger.info(
            "Card %s graded: %d pts, %d/%d correct, +%d XP, +%d coins",
            card.date, result.total_points, result.correct_count, result.graded_count,
            rewards.xp_earned, rewards.coins_earned,
        )
        return rewards

    # ------------------------------------------------------------------
    # Testing mode
    # ------------------------------------------------------------------

    def enable_testing_mode(self) -> UserState:
        """
        Play against a shadow copy of the state.

        The copy lives under testing-state; the real user state is not
        read or written again until testing mode is disabled.
        """
        if self.testing:
            return self.state
        shadow = load_testing_state(self.store, self.today)
        if shadow is None:
            shadow = self._real_state.copy()
        ensure_card_matches_slate(shadow.today, self.slate)
        self.state = shadow
        self.testing = True
        self.save()
        logger.info("Testing mode enabled")
        return self.state

    def disable_testing_mode(self) -> UserState:
        """Drop the shadow copy and return to the real state."""
        if not self.testing:
            return self.state
        clear_testing_state(self.store)
        self.testing = False
        self.state = load_user_state(self.store, self.today, scoring_mode=self.default_mode)
        ensure_card_matches_slate(self.state.today, self.slate)
        self._real_state = self.state
        logger.info("Testing mode disabled")
        return self.state
