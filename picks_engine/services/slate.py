"""
Daily slate generation.

Turns the day's scoreboard into a fixed list of picks: a spread and a
total per game where lines exist, then moneylines. The slate is cached
under slate_<date> and is read-only once built.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from picks_engine.model.config import CACHE_TTL_SLATE, SLATE_MAX_PICKS, SLATE_START_GRACE_MINUTES
from picks_engine.model.enums import Market
from picks_engine.model.slate import Slate, SlateOption, SlatePick
from picks_engine.services.odds import ODDS_SOURCE
from picks_engine.services.scores import GameRecord, ScoreboardService
from picks_engine.utils.cache import CacheManager
from picks_engine.utils.dates import format_game_time, parse_game_time, to_compact_date, utc_now
from picks_engine.utils.normalization import team_name_key

logger = logging.getLogger(__name__)


def slate_cache_key(date_str: str) -> str:
    return f"slate_{date_str}"


def _last_word(name: str) -> str:
    parts = (name or "").split()
    return parts[-1] if parts else (name or "")


def _signed(value: float) -> str:
    return f"+{value:g}" if value > 0 else f"{value:g}"


def _spread_pick(pick_id: int, game: GameRecord) -> SlatePick:
    spread = float(game.spread)
    away = _last_word(game.away_team)
    home = _last_word(game.home_team)
    detail = f"{away} {_signed(spread)}"
    return SlatePick(
        pick_id=pick_id,
        sport=game.sport,
        game_id=game.game_id,
        market=Market.SPREAD,
        line=spread,
        option_a=SlateOption(label=detail, short=game.away_abbrev, value="away"),
        option_b=SlateOption(label=f"{home} {_signed(-spread)}", short=game.home_abbrev, value="home"),
        game_time=game.game_time,
        home_team=game.home_team,
        away_team=game.away_team,
        market_detail=detail,
    )


def _total_pick(pick_id: int, game: GameRecord) -> SlatePick:
    total = float(game.over_under)
    return SlatePick(
        pick_id=pick_id,
        sport=game.sport,
        game_id=game.game_id,
        market=Market.TOTAL,
        line=total,
        option_a=SlateOption(label=f"Over {total:g}", short="O", value="over"),
        option_b=SlateOption(label=f"Under {total:g}", short="U", value="under"),
        game_time=game.game_time,
        home_team=game.home_team,
        away_team=game.away_team,
        market_detail=f"O/U {total:g}",
    )


def _moneyline_pick(pick_id: int, game: GameRecord) -> SlatePick:
    return SlatePick(
        pick_id=pick_id,
        sport=game.sport,
        game_id=game.game_id,
        market=Market.MONEYLINE,
        line=None,
        option_a=SlateOption(label=_last_word(game.away_team), short=game.away_abbrev, value="away"),
        option_b=SlateOption(label=_last_word(game.home_team), short=game.home_abbrev, value="home"),
        game_time=game.game_time,
        home_team=game.home_team,
        away_team=game.away_team,
        market_detail="Moneyline",
    )


def _eligible_games(games: Sequence[GameRecord], now: Optional[datetime]) -> List[GameRecord]:
    """Drop games that started more than the grace window ago, then sort by start."""
    far_future = datetime.max.replace(tzinfo=utc_now().tzinfo)
    cutoff = now - timedelta(minutes=SLATE_START_GRACE_MINUTES) if now is not None else None

    eligible = []
    for game in games:
        if not team_name_key(game.home_team) or not team_name_key(game.away_team):
            continue
        start = parse_game_time(game.game_time)
        if cutoff is not None and start is not None and start <= cutoff:
            continue
        eligible.append(game)
    return sorted(eligible, key=lambda g: parse_game_time(g.game_time) or far_future)


def build_slate(
    games: Sequence[GameRecord],
    date_str: str,
    now: Optional[datetime] = None,
    max_picks: int = SLATE_MAX_PICKS,
) -> Slate:
    """
    Build the slate for a date from its games.

    Args:
        games: Games for the date, any order
        date_str: Date in YYYY-MM-DD format
        now: Current time for today's slate; None keeps started games
        max_picks: Maximum number of picks

    Returns:
        Slate with pick ids 1..N (possibly empty)
    """
    eligible = _eligible_games(games, now)

    builders = []
    for game in eligible:
        if game.spread is not None:
            builders.append((_spread_pick, game))
        if game.over_under is not None:
            builders.append((_total_pick, game))
    for game in eligible:
        if game.moneyline:
            builders.append((_moneyline_pick, game))

    picks = tuple(build(i, game) for i, (build, game) in enumerate(builders[:max_picks], start=1))

    source = "ESPN"
    if any(g.odds_source == ODDS_SOURCE for g in eligible):
        source = "theOddsAPI+ESPN"

    return Slate(
        slate_id=f"slate_{to_compact_date(date_str)}",
        date=date_str,
        picks=picks,
        generated_at=format_game_time(now or utc_now()),
        source=source,
    )


def generate_daily_slate(
    service: ScoreboardService,
    cache: CacheManager,
    date_str: str,
    sports: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
    is_today: bool = True,
) -> Slate:
    """
    The slate for a date, building and caching it on first request.

    A build that yields no picks falls back to the stale cached slate so
    an outage never wipes out a day that was already generated.
    """
    key = slate_cache_key(date_str)
    cached = cache.get(key)
    if cached is not None:
        return Slate.from_dict(cached)

    sports = list(sports or service.settings.sports)
    if is_today:
        games = service.get_games_for_sports(sports)
        slate = build_slate(games, date_str, now=now or utc_now(),
                            max_picks=service.settings.slate_max_picks)
    else:
        games = service.get_games_for_sports(sports, date_str)
        slate = build_slate(games, date_str, max_picks=service.settings.slate_max_picks)

    if not slate.picks:
        stale = cache.get_stale(key)
        if stale is not None:
            logger.warning("No picks built for %s; using cached slate", date_str)
            return Slate.from_dict(stale)
        logger.info("No games available for %s", date_str)
        return slate

    cache.set(key, slate.to_dict(), CACHE_TTL_SLATE)
    logger.info("Generated slate %s with %d picks (%s)", slate.slate_id, len(slate), slate.source)
    return slate
