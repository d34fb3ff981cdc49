"""
Shared fixtures: in-memory stores, fake clocks and a small slate.
"""

from datetime import datetime, timezone

import pytest

from picks_engine.model.config import EngineSettings
from picks_engine.model.enums import Market
from picks_engine.model.slate import Slate, SlateOption, SlatePick
from picks_engine.services.scores import GameRecord, GameStatus, ScoreProvider, TransportError
from picks_engine.storage.kv import MemoryStore
from picks_engine.utils.cache import CacheManager


TODAY = "2026-02-04"
# Noon UTC on the slate date, before every sample game starts
NOON = datetime(2026, 2, 4, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Epoch-seconds clock the test moves by hand."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeProvider(ScoreProvider):
    """Scoreboard provider returning canned games, or failing on demand."""

    def __init__(self, games_by_sport=None):
        self.games_by_sport = games_by_sport or {}
        self.fail_sports = set()
        self.calls = []

    def fetch_scoreboard(self, sport, date_str=None):
        self.calls.append((sport, date_str))
        if sport in self.fail_sports:
            raise TransportError(f"{sport} down")
        return list(self.games_by_sport.get(sport, []))


def make_game(game_id="401", sport="NBA", home="New York Knicks", away="Boston Celtics",
              home_score=0, away_score=0, status=GameStatus.SCHEDULED,
              game_time="2026-02-05T00:30:00Z", spread=None, over_under=None, moneyline=None,
              odds_source=None):
    return GameRecord(
        game_id=game_id,
        sport=sport,
        home_team=home,
        away_team=away,
        home_score=home_score,
        away_score=away_score,
        status=status,
        game_time=game_time,
        home_abbrev=home[:3].upper(),
        away_abbrev=away[:3].upper(),
        spread=spread,
        over_under=over_under,
        moneyline=moneyline,
        odds_source=odds_source,
    )


def make_pick(pick_id, market=Market.SPREAD, line=-3.5, sport="NBA", game_id="401",
              home="New York Knicks", away="Boston Celtics", game_time="2026-02-05T00:30:00Z"):
    return SlatePick(
        pick_id=pick_id,
        sport=sport,
        game_id=game_id,
        market=market,
        line=line,
        option_a=SlateOption("A side", "A", "away" if market != Market.TOTAL else "over"),
        option_b=SlateOption("B side", "B", "home" if market != Market.TOTAL else "under"),
        game_time=game_time,
        home_team=home,
        away_team=away,
        market_detail=f"{market.value} {line}",
    )


def make_slate(count=7, date_str=TODAY, game_time="2026-02-05T00:30:00Z"):
    picks = tuple(
        make_pick(i + 1, game_id=str(400 + i), game_time=game_time,
                  home=f"Home Team{i}", away=f"Away Team{i}")
        for i in range(count)
    )
    return Slate(slate_id=f"slate_{date_str.replace('-', '')}", date=date_str, picks=picks)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(store, clock):
    return CacheManager(store, clock=clock)


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def slate():
    return make_slate()


@pytest.fixture
def now():
    return NOON
