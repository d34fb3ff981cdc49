"""Model module: pure scoring, card lifecycle and progression (no I/O)."""

from .enums import (
    Choice,
    PickStatus,
    ScoringMode,
    Market,
    CardState,
)
from .scoring import (
    ScoringRules,
    ScoringPick,
    GameResult,
    ResultStatus,
    ResultType,
    PickEvaluation,
    ScoreResult,
    score,
    evaluate_pick,
    invalid_score_result,
    prepare_picks_for_scoring,
    quick_calculate_score,
    max_possible_score,
    format_score_breakdown,
    scoring_rules_description,
    lock_points,
)
from .slate import (
    Slate,
    SlatePick,
    SlateOption,
)
from .card import (
    UserPick,
    DailyCard,
    new_card,
    select_pick,
    toggle_lock,
    submit_card,
    apply_grade,
    grade_card,
    card_state,
    all_picks_terminal,
)
from .progression import (
    UserProgression,
    PickStats,
    RewardSummary,
    apply_card_rewards,
    level_for_xp,
    xp_for_level,
    level_progress,
    level_tier,
)

__all__ = [
    'Choice',
    'PickStatus',
    'ScoringMode',
    'Market',
    'CardState',
    'ScoringRules',
    'ScoringPick',
    'GameResult',
    'ResultStatus',
    'ResultType',
    'PickEvaluation',
    'ScoreResult',
    'score',
    'evaluate_pick',
    'invalid_score_result',
    'prepare_picks_for_scoring',
    'quick_calculate_score',
    'max_possible_score',
    'format_score_breakdown',
    'scoring_rules_description',
    'lock_points',
    'Slate',
    'SlatePick',
    'SlateOption',
    'UserPick',
    'DailyCard',
    'new_card',
    'select_pick',
    'toggle_lock',
    'submit_card',
    'apply_grade',
    'grade_card',
    'card_state',
    'all_picks_terminal',
    'UserProgression',
    'PickStats',
    'RewardSummary',
    'apply_card_rewards',
    'level_for_xp',
    'xp_for_level',
    'level_progress',
    'level_tier',
]
