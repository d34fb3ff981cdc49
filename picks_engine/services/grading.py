"""
Result resolution for the Daily Picks Engine.

Settles pending picks against final scores. Stored outcomes are applied
first, then each sport with open picks is fetched through the cached
ScoreboardService. Only final games grade; every outcome is stored under
results:<date>:<pick_id> so a pick is never graded twice.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from picks_engine.model.card import DailyCard, apply_grade, pending_indices
from picks_engine.model.enums import Choice, Market, PickStatus
from picks_engine.model.slate import Slate, SlatePick
from picks_engine.services.scores import GameRecord, ScoreboardService
from picks_engine.storage.kv import KeyValueStore, StorageError
from picks_engine.storage.state import StoredResult, get_stored_result, store_game_result
from picks_engine.utils.normalization import match_team_names

logger = logging.getLogger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class GradeOutcome:
    winner: Optional[Choice]        # None means push
    final_score: str                # "away-home"

    @property
    def is_push(self) -> bool:
        return self.winner is None


@dataclass
class ResolutionReport:
    """What one resolver pass did."""
    graded: List[int] = field(default_factory=list)
    from_stored: List[int] = field(default_factory=list)
    still_pending: int = 0
    failed_sports: List[str] = field(default_factory=list)
    used_stale_data: bool = False

    @property
    def graded_count(self) -> int:
        return len(self.graded)

    @property
    def all_settled(self) -> bool:
        return self.still_pending == 0

    def summary(self) -> str:
        parts = [f"graded {self.graded_count}", f"pending {self.still_pending}"]
        if self.failed_sports:
            parts.append(f"failed: {', '.join(self.failed_sports)}")
        if self.used_stale_data:
            parts.append("stale data")
        return ", ".join(parts)


# ============================================================================
# GRADING RULES
# ============================================================================

def grade_pick_against_game(slate_pick: SlatePick, game: GameRecord) -> Optional[GradeOutcome]:
    """
    Grade one slate pick against a final game.

    - spread: away margin plus the away line; positive covers A, zero pushes
    - total: combined score against the line; over is A, exact is push
    - moneyline: away win is A, home win is B, tie is push

    Returns:
        GradeOutcome, or None if the pick cannot be graded from this game
    """
    away = game.away_score
    home = game.home_score
    final_score = f"{away}-{home}"

    if slate_pick.market == Market.SPREAD:
        if slate_pick.line is None:
            return None
        away_covered = (away - home) + slate_pick.line
        if away_covered == 0:
            return GradeOutcome(None, final_score)
        return GradeOutcome(Choice.A if away_covered > 0 else Choice.B, final_score)

    if slate_pick.market == Market.TOTAL:
        if slate_pick.line is None:
            return None
        total = away + home
        if total == slate_pick.line:
            return GradeOutcome(None, final_score)
        return GradeOutcome(Choice.A if total > slate_pick.line else Choice.B, final_score)

    if slate_pick.market == Market.MONEYLINE:
        if away == home:
            return GradeOutcome(None, final_score)
        return GradeOutcome(Choice.A if away > home else Choice.B, final_score)

    return None


def find_matching_game(slate_pick: SlatePick, games: Sequence[GameRecord]) -> Optional[GameRecord]:
    """
    Game record for a slate pick.

    Matches on game_id first; falls back to team names (both home and
    away last words must agree).
    """
    if slate_pick.game_id:
        for game in games:
            if game.game_id and str(game.game_id) == str(slate_pick.game_id):
                return game

    for game in games:
        if (match_team_names(game.home_team, slate_pick.home_team)
                and match_team_names(game.away_team, slate_pick.away_team)):
            return game
    return None


def status_for(choice: Optional[Choice], winner: Optional[Choice]) -> PickStatus:
    if winner is None:
        return PickStatus.PUSH
    return PickStatus.WON if choice == winner else PickStatus.LOST


# ============================================================================
# RESOLVER
# ============================================================================

def _apply_stored(card: DailyCard, index: int, stored: StoredResult) -> bool:
    pick = card.picks[index]
    return apply_grade(card, index, status_for(pick.choice, stored.winner), stored.final_score)


def resolve_card_results(
    card: DailyCard,
    slate: Slate,
    service: ScoreboardService,
    store: KeyValueStore,
    date_str: Optional[str] = None,
) -> ResolutionReport:
    """
    Settle every pending pick on a submitted card that can be settled now.

    Args:
        card: Today's card (mutated in place)
        slate: The slate the card was played against
        service: Cached scoreboard boundary
        store: Key-value store holding stored outcomes
        date_str: Slate date (defaults to the card's date)

    Returns:
        ResolutionReport
    """
    report = ResolutionReport()
    if not card.submitted or card.graded:
        return report

    date_str = date_str or card.date
    slate_picks = list(slate.picks)

    # 1. Outcomes already on record
    for index in pending_indices(card):
        if index >= len(slate_picks):
            continue
        stored = get_stored_result(store, date_str, slate_picks[index].pick_id)
        if stored is not None and _apply_stored(card, index, stored):
            report.graded.append(index)
            report.from_stored.append(index)

    # 2. Fetch per sport for whatever is still open
    open_by_sport: Dict[str, List[int]] = {}
    for index in pending_indices(card):
        if index < len(slate_picks):
            open_by_sport.setdefault(slate_picks[index].sport, []).append(index)

    for sport, indices in open_by_sport.items():
        games = service.get_games(sport, date_str)
        if service.fetch_failed(sport):
            report.failed_sports.append(sport)
        if not games:
            continue

        for index in indices:
            slate_pick = slate_picks[index]
            game = find_matching_game(slate_pick, games)
            if game is None or not game.is_final:
                continue

            outcome = grade_pick_against_game(slate_pick, game)
            if outcome is None:
                logger.warning("Cannot grade pick %s (%s)", slate_pick.pick_id, slate_pick.market.value)
                continue

            try:
                store_game_result(store, date_str, slate_pick.pick_id, outcome.winner, outcome.final_score)
            except StorageError as e:
                logger.error("Could not store result for pick %s: %s", slate_pick.pick_id, e)
            status = status_for(card.picks[index].choice, outcome.winner)
            if apply_grade(card, index, status, outcome.final_score):
                report.graded.append(index)
                logger.info(
                    "Pick %s %s: %s (%s)",
                    slate_pick.pick_id, slate_pick.matchup, status.value, outcome.final_score,
                )

    report.still_pending = len(pending_indices(card))
    report.used_stale_data = bool(service.status.stale_sports & set(open_by_sport))
    return report
