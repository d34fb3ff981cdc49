"""
Tests for levels, rewards, streaks, badges and daily challenges.
"""

import pytest

from picks_engine.model.badges import BADGES, award_badge, evaluate_badges
from picks_engine.model.card import UserPick
from picks_engine.model.challenges import (
    DAILY_CHALLENGES,
    ChallengeContext,
    evaluate_challenges,
    get_challenge,
    select_daily_challenges,
)
from picks_engine.model.config import LEVEL_THRESHOLDS, MAX_LEVEL
from picks_engine.model.enums import Choice, Market, PickStatus, ScoringMode
from picks_engine.model.progression import (
    UserProgression,
    apply_card_rewards,
    level_for_xp,
    level_progress,
    streak_coins,
    xp_for_level,
)
from picks_engine.model.scoring import ScoringPick, GameResult, ResultStatus, score

from conftest import make_pick


def settled_card(statuses, lock=None, mode=ScoringMode.CLASSIC):
    """UserPicks plus a matching ScoreResult for a list of terminal statuses."""
    picks = []
    scoring_picks = []
    results = []
    for i, status in enumerate(statuses):
        choice = Choice.PASS if status == PickStatus.PASSED else Choice.A
        picks.append(UserPick(choice=choice, status=status, is_lock_of_day=(i == lock)))
        scoring_picks.append(ScoringPick(choice, is_lock_of_day=(i == lock)))
        if status == PickStatus.WON:
            results.append(GameResult(ResultStatus.FINAL, Choice.A))
        elif status == PickStatus.LOST:
            results.append(GameResult(ResultStatus.FINAL, Choice.B))
        elif status == PickStatus.PUSH:
            results.append(GameResult(ResultStatus.PUSH))
        else:
            results.append(GameResult(ResultStatus.FINAL))
    return picks, score(scoring_picks, results, mode)


def slate_picks(count, sport="NBA", market=Market.SPREAD):
    return [make_pick(i + 1, market=market, sport=sport) for i in range(count)]


class TestLevels:
    """XP to level mapping."""

    def test_level_boundaries(self):
        assert level_for_xp(0) == 1
        assert level_for_xp(99) == 1
        assert level_for_xp(100) == 2
        assert level_for_xp(249) == 2
        assert level_for_xp(250) == 3

    def test_max_level(self):
        assert level_for_xp(LEVEL_THRESHOLDS[-1]) == MAX_LEVEL
        assert level_for_xp(10 ** 9) == MAX_LEVEL

    def test_xp_for_level(self):
        assert xp_for_level(1) == 0
        assert xp_for_level(2) == 100

    def test_level_monotonic(self):
        levels = [level_for_xp(xp) for xp in range(0, 5000, 37)]
        assert levels == sorted(levels)

    def test_level_progress(self):
        progress = level_progress(175)
        assert progress.level == 2
        assert progress.xp_into_level == 75
        assert progress.xp_needed_for_next == 150
        assert progress.progress == 50.0
        assert progress.xp_to_next_level == 75

    def test_level_progress_at_max(self):
        progress = level_progress(LEVEL_THRESHOLDS[-1] + 500)
        assert progress.is_max_level
        assert progress.progress == 100.0


class TestApplyCardRewards:
    """Reward application on a finalized card."""

    def test_perfect_card_rewards(self):
        """7 won with a won lock: 70 base + 50 perfect + 15 lock XP before challenges."""
        picks, result = settled_card([PickStatus.WON] * 7, lock=0)
        progression = UserProgression()
        summary = apply_card_rewards(progression, result, picks, slate_picks(7), "2026-02-04")

        assert summary.applied
        challenge_xp = sum(get_challenge(c).xp for c in summary.challenges_completed)
        challenge_coins = sum(get_challenge(c).coins for c in summary.challenges_completed)
        assert progression.xp == 70 + 50 + 15 + challenge_xp
        # 35 per-pick + 100 perfect + 25 lock + 175 streak tiers (25+50+100)
        assert progression.coins == 35 + 100 + 25 + 175 + challenge_coins
        assert progression.level == level_for_xp(progression.xp)
        assert progression.stats.perfect_days == 1
        assert progression.stats.lock_of_day_wins == 1
        assert progression.stats.best_pick_streak == 7

    def test_invalid_result_changes_nothing(self):
        picks, _ = settled_card([PickStatus.WON])
        invalid = score([], [])
        progression = UserProgression(xp=40)
        summary = apply_card_rewards(progression, invalid, picks, [], "2026-02-04")
        assert not summary.applied
        assert progression.xp == 40
        assert progression.stats.days_played == 0

    def test_competitive_lock_penalty_never_goes_below_prior_xp(self):
        """A lost lock on a zero-point card costs nothing already earned."""
        picks, result = settled_card([PickStatus.LOST], lock=0, mode=ScoringMode.COMPETITIVE)
        progression = UserProgression(xp=100)
        apply_card_rewards(progression, result, picks, slate_picks(1), "2026-02-04")
        assert progression.xp >= 100

    def test_competitive_lock_penalty_from_earnings(self):
        picks, result = settled_card(
            [PickStatus.WON, PickStatus.WON, PickStatus.LOST], lock=2, mode=ScoringMode.COMPETITIVE
        )
        progression = UserProgression()
        summary = apply_card_rewards(progression, result, picks, slate_picks(3), "2026-02-04")
        challenge_xp = sum(get_challenge(c).xp for c in summary.challenges_completed)
        # 20 base + 5 near perfect - 5 lock penalty
        assert progression.xp == 20 + challenge_xp

    def test_level_up_recorded(self):
        picks, result = settled_card([PickStatus.WON] * 7, lock=0)
        progression = UserProgression(xp=95)
        summary = apply_card_rewards(progression, result, picks, slate_picks(7), "2026-02-04")
        assert summary.leveled_up
        assert summary.level_ups[0] == ("base", 2)

    def test_streak_resets_on_loss(self):
        picks, result = settled_card([PickStatus.WON, PickStatus.WON, PickStatus.LOST, PickStatus.WON])
        progression = UserProgression()
        apply_card_rewards(progression, result, picks, slate_picks(4), "2026-02-04")
        assert progression.stats.current_pick_streak == 1
        assert progression.stats.best_pick_streak == 2

    def test_push_and_pass_leave_streak(self):
        picks, result = settled_card([PickStatus.WON, PickStatus.PUSH, PickStatus.PASSED, PickStatus.WON])
        progression = UserProgression()
        apply_card_rewards(progression, result, picks, slate_picks(4), "2026-02-04")
        assert progression.stats.current_pick_streak == 2

    def test_day_streak(self):
        progression = UserProgression()
        for date_str in ("2026-02-04", "2026-02-05"):
            picks, result = settled_card([PickStatus.LOST])
            apply_card_rewards(progression, result, picks, slate_picks(1), date_str)
        assert progression.stats.current_day_streak == 2

    def test_day_streak_counts_across_gaps(self):
        """Every finalized day adds one, even after days off."""
        progression = UserProgression()
        for date_str in ("2026-02-04", "2026-02-05", "2026-02-09"):
            picks, result = settled_card([PickStatus.WON])
            apply_card_rewards(progression, result, picks, slate_picks(1), date_str)
        assert progression.stats.current_day_streak == 3
        assert progression.stats.best_day_streak == 3

    def test_by_sport_and_market(self):
        picks, result = settled_card([PickStatus.WON, PickStatus.LOST])
        progression = UserProgression()
        apply_card_rewards(progression, result, picks, slate_picks(2, sport="NHL", market=Market.TOTAL),
                           "2026-02-04")
        assert progression.stats.by_sport["NHL"] == {"total": 2, "correct": 1}
        assert progression.stats.by_market["total"] == {"total": 2, "correct": 1}

    def test_streak_coin_tiers(self):
        assert streak_coins(2) == 0
        assert streak_coins(3) == 25
        assert streak_coins(5) == 75
        assert streak_coins(7) == 175

    def test_round_trip(self):
        picks, result = settled_card([PickStatus.WON] * 3, lock=1)
        progression = UserProgression()
        apply_card_rewards(progression, result, picks, slate_picks(3), "2026-02-04")
        restored = UserProgression.from_dict(progression.to_dict())
        assert restored == progression


class TestBadges:
    """Badge awarding is idempotent."""

    def test_first_card_badges(self):
        picks, result = settled_card([PickStatus.WON])
        progression = UserProgression()
        summary = apply_card_rewards(progression, result, picks, slate_picks(1), "2026-02-04")
        assert {"first_pick", "first_card", "first_win", "perfect_day"} <= set(summary.badges_awarded)

    def test_award_twice(self):
        progression = UserProgression()
        assert award_badge(progression, "first_win") is True
        assert award_badge(progression, "first_win") is False
        assert award_badge(progression, "no_such_badge") is False

    def test_evaluate_skips_held(self):
        progression = UserProgression()
        progression.stats.correct_picks = 1
        progression.stats.days_played = 1
        first = evaluate_badges(progression)
        assert "first_win" in first
        assert evaluate_badges(progression) == []

    def test_catalog_ids_unique(self):
        assert len(BADGES) == 22


class TestDailyChallenges:
    """Deterministic per-date challenge selection."""

    def test_three_per_day(self):
        assert len(select_daily_challenges("2026-02-04")) == 3

    def test_same_date_same_challenges(self):
        first = [c.id for c in select_daily_challenges("2026-02-04")]
        second = [c.id for c in select_daily_challenges("2026-02-04")]
        assert first == second

    def test_selection_from_pool(self):
        ids = {c.id for c in DAILY_CHALLENGES}
        for day in range(1, 29):
            chosen = select_daily_challenges(f"2026-02-{day:02d}")
            assert {c.id for c in chosen} <= ids
            assert len({c.id for c in chosen}) == 3

    def test_sweep_requires_every_pick(self):
        picks, result = settled_card([PickStatus.WON, PickStatus.PASSED])
        ctx = ChallengeContext(result, picks, slate_picks(2))
        completed = evaluate_challenges([get_challenge("sweep")], ctx)
        assert completed == []

    def test_already_completed_skipped(self):
        picks, result = settled_card([PickStatus.WON] * 5)
        ctx = ChallengeContext(result, picks, slate_picks(5), current_pick_streak=5)
        challenges = [get_challenge("five_correct"), get_challenge("streak_3")]
        completed = evaluate_challenges(challenges, ctx, already_completed=["streak_3"])
        assert [c.id for c in completed] == ["five_correct"]

    def test_challenges_pay_once_per_date(self):
        progression = UserProgression()
        picks, result = settled_card([PickStatus.WON] * 7, lock=0)
        first = apply_card_rewards(progression, result, picks, slate_picks(7), "2026-02-04")
        second = apply_card_rewards(progression, result, picks, slate_picks(7), "2026-02-04")
        assert second.challenges_completed == []
        assert progression.completed_challenges_for("2026-02-04") == first.challenges_completed

    @pytest.mark.parametrize("challenge_id", ["underdog", "multi_sport"])
    def test_slate_aware_challenges(self, challenge_id):
        picks, result = settled_card([PickStatus.WON] * 3)
        mixed = [make_pick(1, sport="NBA"), make_pick(2, sport="NHL"), make_pick(3, sport="NFL")]
        ctx = ChallengeContext(result, picks, mixed)
        assert evaluate_challenges([get_challenge(challenge_id)], ctx) != []
