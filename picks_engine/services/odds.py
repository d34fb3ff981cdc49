"""
TheOddsAPI client (optional, paid).

Enabled only when an API key is configured. A 401 or 429 disables the
source for the rest of the session; callers fall back to ESPN lines.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from picks_engine.model.config import REQUEST_TIMEOUT
from picks_engine.services.scores import SPORT_API_MAP, GameRecord, TransportError, with_odds
from picks_engine.utils.normalization import match_team_names

logger = logging.getLogger(__name__)


ODDS_API_BASE = "https://api.the-odds-api.com/v4/sports"
ODDS_SOURCE = "theOddsAPI"


def odds_cache_key(sport: str) -> str:
    return f"odds_{sport}"


@dataclass(frozen=True)
class OddsLine:
    """First bookmaker's lines for one event."""
    event_id: str
    sport: str
    home_team: str
    away_team: str
    commence_time: Optional[str] = None
    home_spread: Optional[float] = None
    away_spread: Optional[float] = None
    total: Optional[float] = None
    home_moneyline: Optional[int] = None
    away_moneyline: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "sport": self.sport,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "commence_time": self.commence_time,
            "home_spread": self.home_spread,
            "away_spread": self.away_spread,
            "total": self.total,
            "home_moneyline": self.home_moneyline,
            "away_moneyline": self.away_moneyline,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OddsLine":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__})


def odds_from_cache(value) -> Optional[List[OddsLine]]:
    """Cached odds payload as lines, or None if it has the wrong shape."""
    if not isinstance(value, list) or not all(isinstance(o, dict) for o in value):
        return None
    return [OddsLine.from_dict(o) for o in value]


def parse_odds_event(event: Dict[str, Any], sport: str) -> OddsLine:
    home = event.get("home_team", "")
    away = event.get("away_team", "")
    values = {}

    bookmakers = event.get("bookmakers") or []
    markets = bookmakers[0].get("markets", []) if bookmakers else []
    for market in markets:
        outcomes = market.get("outcomes") or []
        key = market.get("key")
        if key == "spreads":
            for o in outcomes:
                if o.get("name") == home:
                    values["home_spread"] = o.get("point")
                elif o.get("name") == away:
                    values["away_spread"] = o.get("point")
        elif key == "totals" and outcomes:
            values["total"] = outcomes[0].get("point")
        elif key == "h2h":
            for o in outcomes:
                if o.get("name") == home:
                    values["home_moneyline"] = o.get("price")
                elif o.get("name") == away:
                    values["away_moneyline"] = o.get("price")

    return OddsLine(
        event_id=str(event.get("id", "")),
        sport=sport,
        home_team=home,
        away_team=away,
        commence_time=event.get("commence_time"),
        **values,
    )


class OddsProvider:
    """
    Client for TheOddsAPI.

    fetch_odds raises TransportError on failure; ScoreboardService owns
    caching and stale fallback.
    """

    def __init__(self, api_key: Optional[str], timeout: int = REQUEST_TIMEOUT):
        self.api_key = api_key or None
        self.timeout = timeout
        self.enabled = self.api_key is not None
        self.requests_remaining: Optional[str] = None

    def disable(self, reason: str):
        if self.enabled:
            logger.warning("TheOddsAPI disabled for this session: %s", reason)
        self.enabled = False

    def fetch_odds(self, sport: str) -> List[OddsLine]:
        if not self.enabled:
            return []
        sport_info = SPORT_API_MAP.get(sport)
        if not sport_info:
            return []

        url = f"{ODDS_API_BASE}/{sport_info['odds']}/odds/"
        params = {
            "apiKey": self.api_key,
            "regions": "us",
            "markets": "spreads,totals,h2h",
            "oddsFormat": "american",
        }
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"TheOddsAPI request failed for {sport}: {e}") from e

        if response.status_code == 401:
            self.disable("invalid API key")
            raise TransportError("TheOddsAPI rejected the API key", status_code=401)
        if response.status_code == 429:
            self.disable("rate limit exceeded")
            raise TransportError("TheOddsAPI rate limit exceeded", status_code=429)
        if response.status_code != 200:
            raise TransportError(
                f"TheOddsAPI error for {sport}: {response.status_code}",
                status_code=response.status_code,
            )

        self.requests_remaining = response.headers.get("x-requests-remaining")
        if self.requests_remaining is not None:
            logger.info("TheOddsAPI requests remaining: %s", self.requests_remaining)

        try:
            return [parse_odds_event(e, sport) for e in response.json()]
        except (ValueError, TypeError, AttributeError) as e:
            raise TransportError(f"Bad TheOddsAPI payload for {sport}: {e}") from e


def merge_odds(games: List[GameRecord], lines: List[OddsLine]) -> List[GameRecord]:
    """
    Overlay odds lines on games, matched by team name.

    Games with no matching line keep their ESPN values.
    """
    if not lines:
        return games

    merged = []
    for game in games:
        line = next(
            (o for o in lines
             if match_team_names(o.home_team, game.home_team)
             or match_team_names(o.away_team, game.away_team)),
            None,
        )
        if line is None:
            merged.append(game)
            continue

        changes = {"odds_source": ODDS_SOURCE}
        if line.away_spread is not None:
            changes["spread"] = float(line.away_spread)
        if line.total is not None:
            changes["over_under"] = float(line.total)
        if line.home_moneyline is not None or line.away_moneyline is not None:
            changes["moneyline"] = {"home": line.home_moneyline, "away": line.away_moneyline}
        merged.append(with_odds(game, **changes))
    return merged
