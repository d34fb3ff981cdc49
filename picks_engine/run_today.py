#!/usr/bin/env python3
"""
Daily Picks Engine - Daily Runner

Builds today's slate from live scoreboards, lets you fill in a card from
the command line, and settles it as games finish.

Usage:
    picks-engine                          # Show today's slate and card
    picks-engine --pick 0 A --pick 1 PASS # Make picks
    picks-engine --lock 0 --submit        # Lock of the Day, then submit
    picks-engine --check                  # One results check
    picks-engine --poll                   # Keep refreshing until graded
    picks-engine --simulate --seed 7      # Play out the day (testing mode)
    picks-engine --export                 # Export history to Excel
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from picks_engine.jobs import check_pending_results, export_history_to_excel, simulate_end_of_day
from picks_engine.model.config import EngineSettings
from picks_engine.model.progression import level_progress
from picks_engine.model.scoring import format_score_breakdown, quick_calculate_score
from picks_engine.paths import get_db_path, setup_file_logging, startup_banner
from picks_engine.services import (
    OddsProvider,
    RefreshPoller,
    ScoreboardService,
    game_status_display,
    generate_daily_slate,
)
from picks_engine.session import GameSession
from picks_engine.storage import SQLiteStore, StorageError, preview_store
from picks_engine.utils.cache import CacheManager
from picks_engine.utils.dates import get_today_str, parse_date

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Daily Picks Engine - Daily Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  picks-engine --pick 0 A --pick 1 B --lock 0 --submit
  picks-engine --check
  picks-engine --simulate --seed 42
        """
    )

    parser.add_argument(
        "--date", help="Slate date (YYYY-MM-DD). Default: today (Eastern). Other dates are a preview"
    )
    parser.add_argument("--db", type=Path, help="SQLite store path")
    parser.add_argument(
        "--pick", nargs=2, action="append", metavar=("INDEX", "CHOICE"), default=[],
        help="Choose A, B or PASS for a pick (repeatable)"
    )
    parser.add_argument("--lock", type=int, metavar="INDEX", help="Toggle Lock of the Day")
    parser.add_argument("--submit", action="store_true", help="Submit the card")
    parser.add_argument(
        "--resolve", nargs=2, action="append", metavar=("INDEX", "RESULT"), default=[],
        help="Settle a pending pick by hand (A, B or push)"
    )
    parser.add_argument("--check", "-c", action="store_true", help="Check results once")
    parser.add_argument("--poll", "-p", action="store_true", help="Poll scores and results until graded")
    parser.add_argument("--simulate", action="store_true", help="Simulate end of day in testing mode")
    parser.add_argument("--seed", type=int, help="Random seed for --simulate")
    parser.add_argument("--export", "-e", action="store_true", help="Export history to Excel")
    parser.add_argument("--mode", choices=["classic", "competitive"], help="Set scoring mode")
    parser.add_argument("--reset", action="store_true", help="Reset today's card")

    return parser.parse_args(argv)


def print_slate(session: GameSession):
    card = session.card
    now = session.clock()
    print("=" * 78)
    print(f"SLATE {session.slate.slate_id} ({session.slate.source})")
    print("=" * 78)
    if not session.slate.picks:
        print("  No picks available today.")
        return

    print(f"{'#':<3} {'Sport':<6} {'Matchup':<34} {'Market':<16} {'Pick':<6} {'Status':<10}")
    print("-" * 78)
    for index, slate_pick in enumerate(session.slate.picks):
        pick = card.picks[index] if index < len(card.picks) else None
        choice = pick.choice.value if pick and pick.choice else "-"
        if pick and pick.is_lock_of_day:
            choice += "*"
        if pick and pick.status.is_terminal:
            status = pick.status.value.upper()
        else:
            status = game_status_display(slate_pick.game_time, now=now).text
        print(f"{index:<3} {slate_pick.sport:<6} {slate_pick.matchup[:34]:<34} "
              f"{slate_pick.market_detail[:16]:<16} {choice:<6} {status:<10}")
        print(f"    A: {slate_pick.option_a.label:<20} B: {slate_pick.option_b.label}")
    print("-" * 78)


def print_progress(session: GameSession):
    card = session.card
    progression = session.progression
    progress = level_progress(progression.xp)

    if card.graded and card.score_result is not None:
        print("CARD GRADED")
        print(format_score_breakdown(card.score_result, session.rules))
    elif card.submitted:
        running = quick_calculate_score(
            [p.status for p in card.picks], card.lock_index, session.scoring_mode, session.rules
        )
        print(f"CARD SUBMITTED - running score: {running} pts")
    else:
        chosen = sum(1 for p in card.picks if p.choice is not None)
        print(f"CARD OPEN - {chosen}/{len(card.picks)} picks made")

    print(f"Mode: {session.scoring_mode.value}" + ("  [TESTING]" if session.testing else ""))
    print(f"Level {progress.level} ({progress.progress_percent})  XP {progression.xp}  "
          f"Coins {progression.coins}  Badges {len(progression.badges)}")
    stats = progression.stats
    if stats.total_picks:
        print(f"Record: {stats.correct_picks}/{stats.total_picks} ({stats.accuracy:.1%})  "
              f"Pick streak {stats.current_pick_streak}  Day streak {stats.current_day_streak}")
    print()


def main(argv=None) -> int:
    """Main entry point for the daily runner."""
    args = parse_args(argv)
    settings = EngineSettings.from_env()

    setup_file_logging()
    logger.info(startup_banner())

    today = get_today_str()
    if args.date:
        try:
            date_str = parse_date(args.date).strftime("%Y-%m-%d")
        except ValueError as e:
            print(f"[ERROR] {e}")
            return 1
    else:
        date_str = today

    try:
        store = SQLiteStore(args.db or get_db_path())
    except StorageError as e:
        print(f"[ERROR] Could not open store: {e}")
        return 1

    cache = CacheManager(store)
    removed = cache.clear_old_entries()
    if removed:
        logger.info("Removed %d old cache entries", removed)

    odds_provider = OddsProvider(settings.odds_api_key, timeout=settings.request_timeout) \
        if settings.odds_api_key else None
    service = ScoreboardService(cache, odds_provider=odds_provider, settings=settings)

    print(f"Building slate for {date_str}...")
    slate = generate_daily_slate(service, cache, date_str, settings.sports, is_today=(date_str == today))
    print(f"  {service.status.badge_text()}")
    print()

    state_store = store
    if date_str != today:
        print(f"[WARN] {date_str} is not today: showing a preview, card changes are not saved")
        print()
        state_store = preview_store(store)

    try:
        session = GameSession(state_store, slate, today=date_str, settings=settings)

        if args.mode:
            mode = session.set_scoring_mode(args.mode)
            print(f"Scoring mode set to {mode.value}")

        if args.reset:
            ok, notice = session.reset_todays_card()
            print(f"  Reset: {notice}")

        for index, choice in args.pick:
            ok, notice = session.select_pick(int(index), choice)
            print(f"  Pick {index} -> {choice.upper()}: {'OK' if ok else notice}")

        if args.lock is not None:
            ok, notice = session.toggle_lock(args.lock)
            print(f"  Lock {args.lock}: {notice}")

        if args.submit:
            ok, notice = session.submit()
            print(f"  Submit: {notice}")

        for index, result in args.resolve:
            ok, notice = session.resolve_result(int(index), result)
            print(f"  Resolve {index} -> {result}: {notice}")

        if args.simulate:
            session.enable_testing_mode()
            rng = random.Random(args.seed)
            rewards = simulate_end_of_day(session, rng)
            if rewards is not None:
                print(f"Simulated day: +{rewards.xp_earned} XP, +{rewards.coins_earned} coins")
                for challenge in rewards.challenges_completed:
                    print(f"  Challenge completed: {challenge}")
                for badge in rewards.badges_awarded:
                    print(f"  Badge earned: {badge}")
            print_slate(session)
            print_progress(session)
            session.disable_testing_mode()
            return 0

        if args.check:
            check_pending_results(session, service)

        if args.poll:
            poller = RefreshPoller(session, service, settings)
            print("Polling (Ctrl+C to stop)...")
            try:
                poller.run()
            except KeyboardInterrupt:
                poller.stop()
                print("\nStopped")

        if args.export:
            try:
                path = export_history_to_excel(session.state)
                print(f"History exported to: {path}")
            except ValueError as e:
                print(f"  {e}")

        print_slate(session)
        print_progress(session)

    except StorageError as e:
        print(f"[ERROR] Could not save state: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
