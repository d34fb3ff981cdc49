"""
Scoreboard fetching for the Daily Picks Engine.

ESPN's public scoreboard is the free baseline source for games, scores
and (sometimes) lines. Providers only fetch and normalize; callers go
through ScoreboardService, which fronts every fetch with the TTL cache
and turns failures into stale data or an empty list.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Set

import requests

from picks_engine.model.config import (
    CACHE_TTL_COMPLETED,
    REQUEST_TIMEOUT,
    EngineSettings,
)
from picks_engine.utils.cache import CacheManager
from picks_engine.utils.dates import to_compact_date

logger = logging.getLogger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

class GameStatus(Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    HALFTIME = "halftime"
    FINAL = "final"
    POSTPONED = "postponed"
    DELAYED = "delayed"


class TransportError(Exception):
    """A provider could not deliver data (network, HTTP status, bad payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class GameRecord:
    """Normalized game state from a provider. Immutable once received."""
    game_id: Optional[str]
    sport: str
    home_team: str
    away_team: str
    home_score: int = 0
    away_score: int = 0
    status: GameStatus = GameStatus.SCHEDULED
    game_time: Optional[str] = None
    home_abbrev: str = ""
    away_abbrev: str = ""
    spread: Optional[float] = None          # away team's line
    over_under: Optional[float] = None
    moneyline: Optional[Dict[str, Any]] = None
    odds_source: Optional[str] = None

    @property
    def is_final(self) -> bool:
        return self.status == GameStatus.FINAL

    @property
    def is_live(self) -> bool:
        return self.status in (GameStatus.LIVE, GameStatus.HALFTIME)

    @property
    def final_score(self) -> str:
        return f"{self.away_score}-{self.home_score}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "sport": self.sport,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "status": self.status.value,
            "game_time": self.game_time,
            "home_abbrev": self.home_abbrev,
            "away_abbrev": self.away_abbrev,
            "spread": self.spread,
            "over_under": self.over_under,
            "moneyline": dict(self.moneyline) if self.moneyline else None,
            "odds_source": self.odds_source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameRecord":
        try:
            status = GameStatus(data.get("status", "scheduled"))
        except ValueError:
            status = GameStatus.SCHEDULED
        return cls(
            game_id=data.get("game_id"),
            sport=data.get("sport", ""),
            home_team=data.get("home_team", ""),
            away_team=data.get("away_team", ""),
            home_score=_to_int(data.get("home_score")),
            away_score=_to_int(data.get("away_score")),
            status=status,
            game_time=data.get("game_time"),
            home_abbrev=data.get("home_abbrev", ""),
            away_abbrev=data.get("away_abbrev", ""),
            spread=_to_float(data.get("spread")),
            over_under=_to_float(data.get("over_under")),
            moneyline=data.get("moneyline"),
            odds_source=data.get("odds_source"),
        )


def _to_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _to_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ============================================================================
# SPORTS
# ============================================================================

SPORT_API_MAP = {
    "NBA": {"espn": "basketball/nba", "odds": "basketball_nba", "name": "NBA Basketball"},
    "NFL": {"espn": "football/nfl", "odds": "americanfootball_nfl", "name": "NFL Football"},
    "NHL": {"espn": "hockey/nhl", "odds": "icehockey_nhl", "name": "NHL Hockey"},
    "MLB": {"espn": "baseball/mlb", "odds": "baseball_mlb", "name": "MLB Baseball"},
    "NCAAB": {
        "espn": "basketball/mens-college-basketball",
        "odds": "basketball_ncaab",
        "name": "College Basketball",
    },
}


# ============================================================================
# SCORE PROVIDER INTERFACE
# ============================================================================

class ScoreProvider(ABC):
    """Abstract base class for scoreboard providers."""

    @abstractmethod
    def fetch_scoreboard(self, sport: str, date_str: Optional[str] = None) -> List[GameRecord]:
        """
        Fetch all games for a sport.

        Args:
            sport: Sport code (NBA, NFL, ...)
            date_str: Date in YYYY-MM-DD format, None for the current slate

        Returns:
            List of GameRecord objects

        Raises:
            TransportError: On any network, HTTP or parse failure
        """
        pass


# ============================================================================
# ESPN PROVIDER
# ============================================================================

def parse_espn_status(status: Optional[Dict[str, Any]]) -> GameStatus:
    """Map an ESPN event status block onto GameStatus."""
    if not status:
        return GameStatus.SCHEDULED

    status_type = status.get("type") or {}
    name = str(status_type.get("name") or "").lower()
    state = str(status_type.get("state") or "").lower()

    if status_type.get("completed") or name == "status_final":
        return GameStatus.FINAL
    if state == "in" or name == "status_in_progress":
        return GameStatus.LIVE
    if name == "status_halftime":
        return GameStatus.HALFTIME
    if name == "status_postponed":
        return GameStatus.POSTPONED
    if name == "status_delayed":
        return GameStatus.DELAYED
    return GameStatus.SCHEDULED


def parse_espn_games(data: Dict[str, Any], sport: str) -> List[GameRecord]:
    """Normalize an ESPN scoreboard payload."""
    games = []
    for event in data.get("events") or []:
        competitions = event.get("competitions") or [{}]
        competition = competitions[0] or {}
        competitors = competition.get("competitors") or []
        home = next((c for c in competitors if c.get("homeAway") == "home"), {})
        away = next((c for c in competitors if c.get("homeAway") == "away"), {})
        home_team = home.get("team") or {}
        away_team = away.get("team") or {}

        odds_list = competition.get("odds") or [{}]
        odds = odds_list[0] or {}

        games.append(GameRecord(
            game_id=str(event["id"]) if event.get("id") is not None else None,
            sport=sport,
            home_team=home_team.get("displayName") or home_team.get("name") or "TBD",
            away_team=away_team.get("displayName") or away_team.get("name") or "TBD",
            home_score=_to_int(home.get("score")),
            away_score=_to_int(away.get("score")),
            status=parse_espn_status(event.get("status")),
            game_time=event.get("date"),
            home_abbrev=home_team.get("abbreviation") or "TBD",
            away_abbrev=away_team.get("abbreviation") or "TBD",
            spread=_to_float(odds.get("spread")) or None,
            over_under=_to_float(odds.get("overUnder")) or None,
            odds_source="espn" if (odds.get("spread") or odds.get("overUnder")) else None,
        ))
    return games


class ESPNScoreProvider(ScoreProvider):
    """
    Score provider using ESPN's public scoreboard API.

    No key and no published rate limit, but responses are cached anyway.
    """

    BASE_URL = "https://site.api.espn.com/apis/site/v2/sports"

    def __init__(self, timeout: int = REQUEST_TIMEOUT):
        self.timeout = timeout

    def scoreboard_url(self, sport: str) -> str:
        return f"{self.BASE_URL}/{SPORT_API_MAP[sport]['espn']}/scoreboard"

    def fetch_scoreboard(self, sport: str, date_str: Optional[str] = None) -> List[GameRecord]:
        if sport not in SPORT_API_MAP:
            logger.error("Unknown sport: %s", sport)
            return []

        params = {"dates": to_compact_date(date_str)} if date_str else None
        try:
            response = requests.get(self.scoreboard_url(sport), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"ESPN request failed for {sport}: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                f"ESPN API error for {sport}: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            return parse_espn_games(data, sport)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"Bad ESPN payload for {sport}: {e}") from e


# ============================================================================
# CACHED SCOREBOARD SERVICE
# ============================================================================

@dataclass
class DataStatus:
    """Flags for display collaborators. Never a hard failure."""
    api_available: bool = True
    using_cached_data: bool = False
    odds_enabled: bool = False
    failed_sports: Dict[str, str] = field(default_factory=dict)
    stale_sports: Set[str] = field(default_factory=set)

    def mark_stale(self, sport: str, stale: bool = True):
        """Record whether a sport is currently served from an expired cache entry."""
        if stale:
            self.stale_sports.add(sport)
        else:
            self.stale_sports.discard(sport)
        self.using_cached_data = bool(self.stale_sports)

    @property
    def source(self) -> str:
        return "TheOddsAPI + ESPN" if self.odds_enabled else "ESPN (Free)"

    def badge_text(self) -> str:
        if not self.api_available:
            return "Using Cached Odds - No Live Updates"
        if self.using_cached_data:
            return "Using Last Known Odds"
        if self.odds_enabled:
            return "Lines Powered By TheOddsAPI - Real-Time Odds"
        return "Lines Powered By ESPN - Real-Time Odds"


def games_from_cache(value) -> Optional[List[GameRecord]]:
    """Cached scoreboard payload as records, or None if it has the wrong shape."""
    if not isinstance(value, list) or not all(isinstance(g, dict) for g in value):
        return None
    return [GameRecord.from_dict(g) for g in value]


def scoreboard_cache_key(sport: str, date_str: Optional[str] = None) -> str:
    suffix = f"_{date_str}" if date_str else ""
    return f"espn_{sport}_scoreboard{suffix}"


class ScoreboardService:
    """
    The only path from the engine to providers.

    Every fetch goes through the cache. Short TTL while any game is live,
    long TTL otherwise. A failed fetch returns the stale copy (or []) and
    flips the status flags instead of raising.
    """

    def __init__(
        self,
        cache: CacheManager,
        provider: Optional[ScoreProvider] = None,
        odds_provider=None,
        settings: Optional[EngineSettings] = None,
    ):
        self.cache = cache
        self.settings = settings or EngineSettings()
        self.provider = provider or ESPNScoreProvider(timeout=self.settings.request_timeout)
        self.odds_provider = odds_provider
        self.status = DataStatus(odds_enabled=self.odds_enabled)

    @property
    def odds_enabled(self) -> bool:
        return bool(self.odds_provider is not None and self.odds_provider.enabled)

    def _ttl_for(self, games: List[GameRecord]) -> int:
        if any(g.is_live for g in games):
            return self.settings.cache_ttl_live
        if games and all(g.is_final for g in games):
            return CACHE_TTL_COMPLETED
        return self.settings.cache_ttl_standard

    def get_games(self, sport: str, date_str: Optional[str] = None) -> List[GameRecord]:
        """
        Games for one sport, from cache when fresh.

        Returns:
            List of GameRecord (possibly stale, possibly empty)
        """
        key = scoreboard_cache_key(sport, date_str)
        cached = games_from_cache(self.cache.get(key))
        if cached is not None:
            return cached

        try:
            games = self.provider.fetch_scoreboard(sport, date_str)
        except TransportError as e:
            logger.warning("Scoreboard fetch failed for %s: %s", sport, e)
            self.status.failed_sports[sport] = str(e)
            stale = games_from_cache(self.cache.get_stale(key))
            if stale is not None:
                self.status.mark_stale(sport)
                return stale
            self.status.api_available = False
            return []

        self.status.failed_sports.pop(sport, None)
        self.status.mark_stale(sport, False)
        self.status.api_available = True

        if date_str is None:
            games = self._merge_odds(sport, games)

        self.cache.set(key, [g.to_dict() for g in games], self._ttl_for(games))
        return games

    def fetch_failed(self, sport: str) -> bool:
        """True if the most recent provider fetch for this sport failed."""
        return sport in self.status.failed_sports

    def get_games_for_sports(self, sports: List[str], date_str: Optional[str] = None) -> List[GameRecord]:
        all_games = []
        for sport in sports:
            all_games.extend(self.get_games(sport, date_str))
        return all_games

    def has_live_games(self, games: List[GameRecord]) -> bool:
        return any(g.is_live for g in games)

    def _merge_odds(self, sport: str, games: List[GameRecord]) -> List[GameRecord]:
        if not self.odds_enabled:
            self.status.odds_enabled = False
            return games
        # imported here: odds imports GameRecord from this module
        from picks_engine.services.odds import merge_odds

        lines = self.get_odds(sport)
        self.status.odds_enabled = self.odds_enabled
        return merge_odds(games, lines)

    def get_odds(self, sport: str) -> list:
        """Odds lines for a sport. Paid source failures degrade to stale or []."""
        from picks_engine.services.odds import odds_cache_key, odds_from_cache

        if not self.odds_enabled:
            return []
        key = odds_cache_key(sport)
        cached = odds_from_cache(self.cache.get(key))
        if cached is not None:
            return cached

        try:
            lines = self.odds_provider.fetch_odds(sport)
        except TransportError as e:
            logger.warning("Odds fetch failed for %s: %s", sport, e)
            stale = odds_from_cache(self.cache.get_stale(key))
            if stale is not None:
                self.status.mark_stale(sport)
                return stale
            return []

        self.cache.set(key, [o.to_dict() for o in lines], self.settings.cache_ttl_standard)
        return lines


def with_odds(game: GameRecord, **changes) -> GameRecord:
    """Copy of a game record with odds fields replaced."""
    return replace(game, **changes)
