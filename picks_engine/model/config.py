"""
Configuration constants for scoring, progression, caching and polling.

All tuning knobs for the daily picks engine live here so they are easy
to find and adjust. Runtime overrides come from PICKS_ENGINE_* environment
variables through EngineSettings.from_env().
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


# ============================================================================
# SCORING
# ============================================================================

POINTS_CORRECT_PICK = 10            # per correct pick, both modes
BONUS_PERFECT_CARD  = 15            # no incorrect graded picks
BONUS_NEAR_PERFECT  = 5             # exactly one incorrect graded pick
BONUS_LOCK_CORRECT  = 5             # lock of the day won
PENALTY_LOCK_INCORRECT = -5         # lock of the day lost (competitive only)

# Minimum graded picks before a card bonus can apply
MIN_GRADED_FOR_PERFECT = 1
MIN_GRADED_FOR_NEAR_PERFECT = 2

SCORING_MODE_CLASSIC = "classic"
SCORING_MODE_COMPETITIVE = "competitive"
DEFAULT_SCORING_MODE = SCORING_MODE_CLASSIC


# ============================================================================
# EXPERIENCE / LEVELS
# ============================================================================

XP_PERFECT_DAY = 50
XP_NEAR_PERFECT = 5
XP_LOCK_BONUS = 15
XP_LOCK_PENALTY = 5                 # competitive only, never below zero

MAX_LEVEL = 25

# XP required to reach each level (index 0 -> level 1)
LEVEL_THRESHOLDS = [
    0, 100, 250, 500, 850,
    1300, 1850, 2500, 3250, 4100,
    5100, 6200, 7500, 9000, 10700,
    12600, 14700, 17000, 19500, 22200,
    25100, 28200, 31500, 35000, 40000,
]


# ============================================================================
# COINS
# ============================================================================

COINS_CORRECT_PICK = 5
COINS_PERFECT_DAY = 100
COINS_LOCK_BONUS = 25

# Cumulative: a 7-streak earns all three tiers
STREAK_COIN_TIERS = [
    (3, 25),
    (5, 50),
    (7, 100),
]


# ============================================================================
# CACHE TTLS (seconds)
# ============================================================================

CACHE_TTL_LIVE = 60                 # any game live or at halftime
CACHE_TTL_STANDARD = 10 * 60        # scoreboard and odds otherwise
CACHE_TTL_COMPLETED = 24 * 60 * 60  # settled results
CACHE_TTL_SLATE = 24 * 60 * 60
CACHE_GRACE_PERIOD = 24 * 60 * 60   # expired entries kept this long for stale reads


# ============================================================================
# POLLING (seconds)
# ============================================================================

POLL_IDLE_INTERVAL = 5 * 60
SCORE_REFRESH_INTERVAL = 30
RESULTS_CHECK_INTERVAL = 60


# ============================================================================
# SLATE
# ============================================================================

SLATE_MAX_PICKS = 7
SLATE_START_GRACE_MINUTES = 30      # games started this long ago still make the slate
SUPPORTED_SPORTS = ["NBA", "NFL", "NHL", "MLB", "NCAAB"]

REQUEST_TIMEOUT = 15


# ============================================================================
# RUNTIME SETTINGS
# ============================================================================

def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class EngineSettings:
    """Runtime settings, defaulting to the module constants above."""
    cache_ttl_live: int = CACHE_TTL_LIVE
    cache_ttl_standard: int = CACHE_TTL_STANDARD
    poll_idle_interval: int = POLL_IDLE_INTERVAL
    score_refresh_interval: int = SCORE_REFRESH_INTERVAL
    results_check_interval: int = RESULTS_CHECK_INTERVAL
    scoring_mode: str = DEFAULT_SCORING_MODE     # for users with no saved state yet
    min_graded_for_perfect: int = MIN_GRADED_FOR_PERFECT
    min_graded_for_near_perfect: int = MIN_GRADED_FOR_NEAR_PERFECT
    slate_max_picks: int = SLATE_MAX_PICKS
    request_timeout: int = REQUEST_TIMEOUT
    odds_api_key: Optional[str] = None
    sports: List[str] = field(default_factory=lambda: list(SUPPORTED_SPORTS))

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Build settings from PICKS_ENGINE_* environment variables.

        Unset or unparseable values fall back to the defaults.
        """
        mode = os.environ.get("PICKS_ENGINE_SCORING_MODE", DEFAULT_SCORING_MODE).lower()
        if mode not in (SCORING_MODE_CLASSIC, SCORING_MODE_COMPETITIVE):
            mode = DEFAULT_SCORING_MODE

        sports_raw = os.environ.get("PICKS_ENGINE_SPORTS", "")
        sports = [s.strip().upper() for s in sports_raw.split(",") if s.strip()]
        sports = [s for s in sports if s in SUPPORTED_SPORTS] or list(SUPPORTED_SPORTS)

        return cls(
            cache_ttl_live=_env_int("PICKS_ENGINE_CACHE_TTL_LIVE", CACHE_TTL_LIVE),
            cache_ttl_standard=_env_int("PICKS_ENGINE_CACHE_TTL_STANDARD", CACHE_TTL_STANDARD),
            poll_idle_interval=_env_int("PICKS_ENGINE_POLL_IDLE", POLL_IDLE_INTERVAL),
            score_refresh_interval=_env_int("PICKS_ENGINE_SCORE_REFRESH", SCORE_REFRESH_INTERVAL),
            results_check_interval=_env_int("PICKS_ENGINE_RESULTS_CHECK", RESULTS_CHECK_INTERVAL),
            scoring_mode=mode,
            min_graded_for_perfect=_env_int("PICKS_ENGINE_MIN_PERFECT", MIN_GRADED_FOR_PERFECT),
            min_graded_for_near_perfect=_env_int(
                "PICKS_ENGINE_MIN_NEAR_PERFECT", MIN_GRADED_FOR_NEAR_PERFECT
            ),
            slate_max_picks=_env_int("PICKS_ENGINE_SLATE_SIZE", SLATE_MAX_PICKS),
            request_timeout=_env_int("PICKS_ENGINE_TIMEOUT", REQUEST_TIMEOUT),
            odds_api_key=os.environ.get("PICKS_ENGINE_ODDS_API_KEY") or None,
            sports=sports,
        )
