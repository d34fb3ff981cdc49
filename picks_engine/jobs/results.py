"""
Results Update Job for the Daily Picks Engine.

One pass of the results check: settle what can be settled, finalize the
card when everything has resolved, and print a short report.
"""

from typing import Optional

from picks_engine.model.scoring import format_score_breakdown
from picks_engine.services.grading import ResolutionReport
from picks_engine.services.scores import ScoreboardService


def check_pending_results(session, service: ScoreboardService) -> Optional[ResolutionReport]:
    """
    Check results for today's card.

    Args:
        session: GameSession holding the card
        service: Cached scoreboard service

    Returns:
        ResolutionReport, or None if there was nothing to check
    """
    card = session.card
    print(f"Checking results for {card.date}...")

    if not card.submitted:
        print("  Card not submitted yet")
        return None
    if card.graded:
        print("  Card already graded")
        return None

    report = session.check_results(service)
    print(f"  {report.summary()}")

    for index in report.graded:
        slate_pick = session.slate.picks[index]
        pick = card.picks[index]
        print(f"    {slate_pick.matchup} [{slate_pick.market_detail}]: "
              f"{pick.status.value.upper()} ({pick.final_score or '-'})")

    if report.failed_sports:
        print(f"  Could not fetch: {', '.join(report.failed_sports)}")
    if report.used_stale_data:
        print(f"  {service.status.badge_text()}")

    if card.graded and card.score_result is not None:
        print(f"  Card graded: {format_score_breakdown(card.score_result)}")
        rewards = session.last_rewards
        if rewards is not None:
            print(f"  +{rewards.xp_earned} XP, +{rewards.coins_earned} coins")
            if rewards.leveled_up:
                print(f"  LEVEL UP! {rewards.old_level} -> {rewards.new_level}")

    return report
