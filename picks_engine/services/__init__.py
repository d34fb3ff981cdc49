"""Services module for scoreboards, odds, slate generation, grading and polling."""

from .scores import (
    GameStatus,
    GameRecord,
    TransportError,
    ScoreProvider,
    ESPNScoreProvider,
    DataStatus,
    ScoreboardService,
    SPORT_API_MAP,
)
from .odds import (
    OddsLine,
    OddsProvider,
    merge_odds,
)
from .slate import (
    build_slate,
    generate_daily_slate,
)
from .grading import (
    GradeOutcome,
    ResolutionReport,
    grade_pick_against_game,
    find_matching_game,
    resolve_card_results,
)
from .polling import (
    StatusDisplay,
    RefreshPoller,
    game_status_display,
)

__all__ = [
    'GameStatus',
    'GameRecord',
    'TransportError',
    'ScoreProvider',
    'ESPNScoreProvider',
    'DataStatus',
    'ScoreboardService',
    'SPORT_API_MAP',
    'OddsLine',
    'OddsProvider',
    'merge_odds',
    'build_slate',
    'generate_daily_slate',
    'GradeOutcome',
    'ResolutionReport',
    'grade_pick_against_game',
    'find_matching_game',
    'resolve_card_results',
    'StatusDisplay',
    'RefreshPoller',
    'game_status_display',
]
