"""Jobs module for the Daily Picks Engine."""

from .results import (
    check_pending_results,
)

from .simulate import (
    simulate_end_of_day,
)

from .excel_export import (
    history_frame,
    accuracy_frame,
    export_history_to_excel,
)

__all__ = [
    "check_pending_results",
    "simulate_end_of_day",
    "history_frame",
    "accuracy_frame",
    "export_history_to_excel",
]
