"""
Tests for the scoreboard, odds and slate services.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from picks_engine.model.config import CACHE_TTL_COMPLETED, EngineSettings
from picks_engine.model.enums import Market
from picks_engine.services.odds import OddsLine, OddsProvider, merge_odds, parse_odds_event
from picks_engine.services.scores import (
    DataStatus,
    ESPNScoreProvider,
    GameRecord,
    GameStatus,
    ScoreboardService,
    TransportError,
    parse_espn_games,
    parse_espn_status,
    scoreboard_cache_key,
)
from picks_engine.services.slate import build_slate, generate_daily_slate

from conftest import TODAY, FakeProvider, make_game


ESPN_PAYLOAD = {
    "events": [
        {
            "id": "401585",
            "date": "2026-02-05T00:30Z",
            "status": {"type": {"name": "STATUS_SCHEDULED", "state": "pre", "completed": False}},
            "competitions": [{
                "competitors": [
                    {"homeAway": "home", "score": "0",
                     "team": {"displayName": "New York Knicks", "abbreviation": "NYK"}},
                    {"homeAway": "away", "score": "0",
                     "team": {"displayName": "Boston Celtics", "abbreviation": "BOS"}},
                ],
                "odds": [{"spread": -3.5, "overUnder": 221.5}],
            }],
        },
        {
            "id": "401586",
            "date": "2026-02-05T03:00Z",
            "status": {"type": {"name": "STATUS_FINAL", "state": "post", "completed": True}},
            "competitions": [{
                "competitors": [
                    {"homeAway": "home", "score": "118",
                     "team": {"name": "Lakers", "abbreviation": "LAL"}},
                    {"homeAway": "away", "score": "112",
                     "team": {"displayName": "Golden State Warriors", "abbreviation": "GSW"}},
                ],
            }],
        },
    ]
}

ODDS_PAYLOAD = [
    {
        "id": "abc",
        "home_team": "New York Knicks",
        "away_team": "Boston Celtics",
        "commence_time": "2026-02-05T00:30:00Z",
        "bookmakers": [{
            "markets": [
                {"key": "spreads", "outcomes": [
                    {"name": "New York Knicks", "point": 2.5},
                    {"name": "Boston Celtics", "point": -2.5},
                ]},
                {"key": "totals", "outcomes": [
                    {"name": "Over", "point": 224.0},
                    {"name": "Under", "point": 224.0},
                ]},
                {"key": "h2h", "outcomes": [
                    {"name": "New York Knicks", "price": 120},
                    {"name": "Boston Celtics", "price": -140},
                ]},
            ]
        }],
    }
]


def mock_response(status_code=200, payload=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.headers = headers or {}
    return response


class TestESPNParsing:
    """Tests for ESPN payload normalization."""

    def test_parse_games(self):
        games = parse_espn_games(ESPN_PAYLOAD, "NBA")
        assert len(games) == 2
        first = games[0]
        assert first.game_id == "401585"
        assert first.home_team == "New York Knicks"
        assert first.away_abbrev == "BOS"
        assert first.spread == -3.5
        assert first.over_under == 221.5
        assert first.status == GameStatus.SCHEDULED

    def test_parse_final_game(self):
        final = parse_espn_games(ESPN_PAYLOAD, "NBA")[1]
        assert final.is_final
        assert final.home_team == "Lakers"
        assert final.home_score == 118
        assert final.away_score == 112
        assert final.spread is None

    @pytest.mark.parametrize("status,expected", [
        ({"type": {"completed": True}}, GameStatus.FINAL),
        ({"type": {"name": "STATUS_FINAL"}}, GameStatus.FINAL),
        ({"type": {"state": "in"}}, GameStatus.LIVE),
        ({"type": {"name": "STATUS_HALFTIME"}}, GameStatus.HALFTIME),
        ({"type": {"name": "STATUS_POSTPONED"}}, GameStatus.POSTPONED),
        ({"type": {"name": "STATUS_DELAYED"}}, GameStatus.DELAYED),
        ({"type": {"name": "STATUS_SCHEDULED"}}, GameStatus.SCHEDULED),
        (None, GameStatus.SCHEDULED),
    ])
    def test_parse_status(self, status, expected):
        assert parse_espn_status(status) == expected

    def test_record_round_trip(self):
        game = make_game(moneyline={"home": 120, "away": -140}, spread=-2.5)
        assert GameRecord.from_dict(game.to_dict()) == game


class TestESPNProvider:
    """Tests for the ESPN HTTP client."""

    @patch("picks_engine.services.scores.requests.get")
    def test_fetch_with_date(self, mock_get):
        mock_get.return_value = mock_response(payload=ESPN_PAYLOAD)
        games = ESPNScoreProvider().fetch_scoreboard("NBA", "2026-02-04")

        assert len(games) == 2
        url = mock_get.call_args[0][0]
        assert url.endswith("/basketball/nba/scoreboard")
        assert mock_get.call_args[1]["params"] == {"dates": "20260204"}

    @patch("picks_engine.services.scores.requests.get")
    def test_college_basketball_path(self, mock_get):
        mock_get.return_value = mock_response(payload={"events": []})
        ESPNScoreProvider().fetch_scoreboard("NCAAB")
        assert "mens-college-basketball" in mock_get.call_args[0][0]

    @patch("picks_engine.services.scores.requests.get")
    def test_http_error_raises_transport_error(self, mock_get):
        mock_get.return_value = mock_response(status_code=503)
        with pytest.raises(TransportError) as exc_info:
            ESPNScoreProvider().fetch_scoreboard("NBA")
        assert exc_info.value.status_code == 503

    @patch("picks_engine.services.scores.requests.get")
    def test_network_error_raises_transport_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        with pytest.raises(TransportError):
            ESPNScoreProvider().fetch_scoreboard("NBA")

    def test_unknown_sport(self):
        assert ESPNScoreProvider().fetch_scoreboard("CRICKET") == []


class TestScoreboardService:
    """Tests for the cached boundary."""

    def test_second_call_hits_cache(self, cache):
        provider = FakeProvider({"NBA": [make_game()]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        service.get_games("NBA", TODAY)
        assert len(provider.calls) == 1

    def test_live_ttl(self, cache, clock):
        provider = FakeProvider({"NBA": [make_game(status=GameStatus.LIVE)]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(61)
        service.get_games("NBA", TODAY)
        assert len(provider.calls) == 2

    def test_standard_ttl(self, cache, clock):
        provider = FakeProvider({"NBA": [make_game()]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(300)
        service.get_games("NBA", TODAY)
        assert len(provider.calls) == 1
        clock.advance(301)
        service.get_games("NBA", TODAY)
        assert len(provider.calls) == 2

    def test_all_final_cached_long(self, cache, clock):
        provider = FakeProvider({"NBA": [make_game(status=GameStatus.FINAL)]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(CACHE_TTL_COMPLETED - 1)
        service.get_games("NBA", TODAY)
        assert len(provider.calls) == 1

    def test_failure_returns_stale(self, cache, clock):
        provider = FakeProvider({"NBA": [make_game()]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(10_000)
        provider.fail_sports.add("NBA")

        games = service.get_games("NBA", TODAY)
        assert len(games) == 1
        assert service.status.using_cached_data
        assert service.status.api_available
        assert service.fetch_failed("NBA")

    def test_failure_without_cache_returns_empty(self, cache):
        provider = FakeProvider()
        provider.fail_sports.add("NHL")
        service = ScoreboardService(cache, provider)
        assert service.get_games("NHL", TODAY) == []
        assert service.status.api_available is False
        assert service.status.badge_text() == "Using Cached Odds - No Live Updates"

    def test_one_sport_failure_isolated(self, cache):
        provider = FakeProvider({"NBA": [make_game()], "NFL": [make_game(game_id="9", sport="NFL")]})
        provider.fail_sports.add("NHL")
        service = ScoreboardService(cache, provider)
        games = service.get_games_for_sports(["NBA", "NHL", "NFL"], TODAY)
        assert [g.sport for g in games] == ["NBA", "NFL"]

    def test_fresh_fetch_clears_stale_flag(self, cache, clock):
        """Recovering from a failed fetch stops reporting stale data."""
        provider = FakeProvider({"NBA": [make_game()]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(10_000)
        provider.fail_sports.add("NBA")
        service.get_games("NBA", TODAY)
        assert service.status.using_cached_data

        clock.advance(10_000)
        provider.fail_sports.discard("NBA")
        service.get_games("NBA", TODAY)

        assert service.status.using_cached_data is False
        assert not service.fetch_failed("NBA")
        assert service.status.badge_text() == "Lines Powered By ESPN - Real-Time Odds"

    def test_stale_flag_tracks_each_sport(self, cache, clock):
        """A fresh fetch for one sport keeps another sport's stale flag."""
        provider = FakeProvider({"NBA": [make_game()], "NFL": [make_game(game_id="9", sport="NFL")]})
        service = ScoreboardService(cache, provider)
        service.get_games("NBA", TODAY)
        clock.advance(10_000)
        provider.fail_sports.add("NBA")
        service.get_games("NBA", TODAY)
        service.get_games("NFL", TODAY)
        assert service.status.using_cached_data
        assert service.status.stale_sports == {"NBA"}

    def test_misshapen_cache_entry_is_a_miss(self, cache):
        """A cached value that is not a list of games triggers a fetch."""
        cache.set(scoreboard_cache_key("NBA"), [1, 2], 600)
        provider = FakeProvider({"NBA": [make_game()]})
        service = ScoreboardService(cache, provider)

        games = service.get_games("NBA")

        assert [g.game_id for g in games] == ["401"]
        assert len(provider.calls) == 1

    def test_misshapen_stale_entry_is_ignored(self, cache, clock):
        """A wrong-shaped stale value reads as no stale data."""
        cache.set(scoreboard_cache_key("NBA", TODAY), {"games": "x"}, 60)
        clock.advance(120)
        provider = FakeProvider()
        provider.fail_sports.add("NBA")
        service = ScoreboardService(cache, provider)

        assert service.get_games("NBA", TODAY) == []
        assert service.status.api_available is False
        assert service.status.using_cached_data is False

    def test_badge_text(self):
        assert DataStatus().badge_text() == "Lines Powered By ESPN - Real-Time Odds"
        assert DataStatus(odds_enabled=True).badge_text() == "Lines Powered By TheOddsAPI - Real-Time Odds"
        assert DataStatus(using_cached_data=True).badge_text() == "Using Last Known Odds"


class TestOddsProvider:
    """Tests for TheOddsAPI client and merging."""

    def test_disabled_without_key(self):
        assert OddsProvider(None).enabled is False
        assert OddsProvider(None).fetch_odds("NBA") == []

    @patch("picks_engine.services.odds.requests.get")
    def test_fetch_and_parse(self, mock_get):
        mock_get.return_value = mock_response(payload=ODDS_PAYLOAD, headers={"x-requests-remaining": "480"})
        provider = OddsProvider("key")
        lines = provider.fetch_odds("NBA")

        assert lines[0].away_spread == -2.5
        assert lines[0].total == 224.0
        assert lines[0].away_moneyline == -140
        assert provider.requests_remaining == "480"
        assert "basketball_nba" in mock_get.call_args[0][0]
        assert mock_get.call_args[1]["params"]["markets"] == "spreads,totals,h2h"

    @patch("picks_engine.services.odds.requests.get")
    def test_rate_limit_disables_for_session(self, mock_get):
        mock_get.return_value = mock_response(status_code=429)
        provider = OddsProvider("key")
        with pytest.raises(TransportError):
            provider.fetch_odds("NBA")
        assert provider.enabled is False
        assert provider.fetch_odds("NBA") == []
        assert mock_get.call_count == 1

    @patch("picks_engine.services.odds.requests.get")
    def test_bad_key_disables(self, mock_get):
        mock_get.return_value = mock_response(status_code=401)
        provider = OddsProvider("bad")
        with pytest.raises(TransportError):
            provider.fetch_odds("NBA")
        assert provider.enabled is False

    @patch("picks_engine.services.odds.requests.get")
    def test_service_falls_back_to_stale_odds_on_429(self, mock_get, cache, clock):
        mock_get.return_value = mock_response(payload=ODDS_PAYLOAD)
        odds = OddsProvider("key")
        service = ScoreboardService(cache, FakeProvider({"NBA": [make_game()]}), odds_provider=odds)
        assert len(service.get_odds("NBA")) == 1

        clock.advance(10_000)
        mock_get.return_value = mock_response(status_code=429)
        # still enabled until the 429 arrives
        lines = service.get_odds("NBA")
        assert len(lines) == 1
        assert service.status.using_cached_data
        assert odds.enabled is False

    def test_merge_odds(self):
        game = make_game(spread=-3.5, over_under=221.5)
        line = parse_odds_event(ODDS_PAYLOAD[0], "NBA")
        merged = merge_odds([game], [line])[0]
        assert merged.spread == -2.5
        assert merged.over_under == 224.0
        assert merged.moneyline == {"home": 120, "away": -140}
        assert merged.odds_source == "theOddsAPI"
        assert game.spread == -3.5

    def test_merge_unmatched_kept(self):
        game = make_game(home="Miami Heat", away="Chicago Bulls", spread=1.0)
        line = OddsLine("x", "NBA", "Denver Nuggets", "Utah Jazz", away_spread=4.0)
        assert merge_odds([game], [line]) == [game]

    @patch("picks_engine.services.odds.requests.get")
    def test_today_games_merged_with_odds(self, mock_get, cache):
        mock_get.return_value = mock_response(payload=ODDS_PAYLOAD)
        service = ScoreboardService(
            cache, FakeProvider({"NBA": [make_game(spread=-3.5)]}), odds_provider=OddsProvider("key")
        )
        assert service.get_games("NBA")[0].spread == -2.5
        # explicit dates are not merged
        assert service.get_games("NBA", TODAY)[0].spread == -3.5


class TestBuildSlate:
    """Tests for slate generation."""

    NOW = datetime(2026, 2, 4, 23, 0, tzinfo=timezone.utc)

    def test_spread_and_total_per_game(self):
        games = [make_game(spread=-3.5, over_under=221.5)]
        slate = build_slate(games, TODAY, now=self.NOW)

        assert slate.slate_id == "slate_20260204"
        assert [p.market for p in slate.picks] == [Market.SPREAD, Market.TOTAL]
        spread, total = slate.picks
        assert spread.line == -3.5
        assert spread.market_detail == "Celtics -3.5"
        assert spread.option_a.label == "Celtics -3.5"
        assert spread.option_b.label == "Knicks +3.5"
        assert spread.option_a.value == "away"
        assert total.market_detail == "O/U 221.5"
        assert total.option_a.label == "Over 221.5"
        assert total.option_b.value == "under"
        assert [p.pick_id for p in slate.picks] == [1, 2]

    def test_moneylines_after_lines(self):
        games = [
            make_game(game_id="1", spread=-1.5, moneyline={"home": 100, "away": -120},
                      game_time="2026-02-05T01:00:00Z"),
            make_game(game_id="2", home="Miami Heat", away="Chicago Bulls", over_under=210.0,
                      game_time="2026-02-05T00:00:00Z"),
        ]
        slate = build_slate(games, TODAY, now=self.NOW)
        assert [(p.game_id, p.market) for p in slate.picks] == [
            ("2", Market.TOTAL), ("1", Market.SPREAD), ("1", Market.MONEYLINE),
        ]
        moneyline = slate.picks[2]
        assert moneyline.market_detail == "Moneyline"
        assert moneyline.option_a.label == "Celtics"

    def test_started_games_dropped(self):
        games = [
            make_game(game_id="old", spread=-1.0, game_time="2026-02-04T22:00:00Z"),
            make_game(game_id="recent", spread=-1.0, game_time="2026-02-04T22:45:00Z"),
        ]
        slate = build_slate(games, TODAY, now=self.NOW)
        assert [p.game_id for p in slate.picks] == ["recent"]

    def test_max_picks(self):
        games = [make_game(game_id=str(i), spread=-1.0, over_under=200.0,
                           game_time=f"2026-02-05T0{i}:00:00Z") for i in range(6)]
        slate = build_slate(games, TODAY, now=self.NOW, max_picks=7)
        assert len(slate) == 7

    def test_source(self):
        games = [make_game(spread=-1.0, odds_source="theOddsAPI")]
        assert build_slate(games, TODAY, now=self.NOW).source == "theOddsAPI+ESPN"
        assert build_slate([make_game(spread=-1.0)], TODAY, now=self.NOW).source == "ESPN"

    def test_generate_caches_slate(self, cache):
        provider = FakeProvider({"NBA": [make_game(spread=-3.5)]})
        service = ScoreboardService(cache, provider, settings=EngineSettings(sports=["NBA"]))
        first = generate_daily_slate(service, cache, TODAY, now=self.NOW)
        second = generate_daily_slate(service, cache, TODAY, now=self.NOW)
        assert first == second
        assert len(provider.calls) == 1

    def test_empty_build_uses_stale_slate(self, cache, clock):
        provider = FakeProvider({"NBA": [make_game(spread=-3.5)]})
        service = ScoreboardService(cache, provider, settings=EngineSettings(sports=["NBA"]))
        first = generate_daily_slate(service, cache, TODAY, now=self.NOW)

        clock.advance(2 * 24 * 60 * 60)
        provider.games_by_sport = {}
        again = generate_daily_slate(service, cache, TODAY, now=self.NOW)
        assert again == first
