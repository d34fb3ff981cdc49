"""
End-of-day simulation for trying the engine without waiting on games.

Fills any open choices, picks a lock if there is none, submits, settles
every pending pick at random and finalizes. Meant for testing mode: the
randomness comes from an injected random.Random so runs are repeatable.
"""

import logging
import random
from typing import Optional

from picks_engine.model.card import apply_grade, select_pick, toggle_lock
from picks_engine.model.enums import Choice, PickStatus
from picks_engine.model.progression import RewardSummary

logger = logging.getLogger(__name__)


PUSH_RATE = 0.05
WIN_RATE = 0.50
SCORE_RANGE = (80, 129)


def _random_score(rng: random.Random) -> str:
    return f"{rng.randint(*SCORE_RANGE)}-{rng.randint(*SCORE_RANGE)}"


def simulate_end_of_day(session, rng: Optional[random.Random] = None) -> Optional[RewardSummary]:
    """
    Play out today's card with random results.

    Start-time locks are ignored so a slate whose games have begun can
    still be simulated.

    Args:
        session: GameSession (normally in testing mode)
        rng: Random source (a fresh unseeded one if None)

    Returns:
        RewardSummary from finalization, or None if the card was already graded
    """
    rng = rng or random.Random()
    card = session.card
    if card.graded:
        logger.info("Card %s already graded; nothing to simulate", card.date)
        return None

    if not card.submitted:
        for index, pick in enumerate(card.picks):
            if pick.choice is None:
                choice = Choice.A if rng.random() > 0.5 else Choice.B
                select_pick(card, None, index, choice, session.clock())

        if card.lock_index is None:
            candidates = [i for i, p in enumerate(card.picks) if p.choice in (Choice.A, Choice.B)]
            if candidates:
                toggle_lock(card, rng.choice(candidates))

        session.save()
        ok, notice = session.submit()
        if not ok:
            logger.warning("Simulated submit rejected: %s", notice)
            return None
        if card.graded:
            return session.last_rewards

    for index, pick in enumerate(card.picks):
        if pick.status != PickStatus.PENDING:
            continue
        roll = rng.random()
        if roll < PUSH_RATE:
            status = PickStatus.PUSH
        elif roll < PUSH_RATE + WIN_RATE:
            status = PickStatus.WON
        else:
            status = PickStatus.LOST
        apply_grade(card, index, status, _random_score(rng))

    session.save()
    return session.finalize_card()
