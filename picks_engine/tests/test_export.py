"""
Tests for the Excel history export.
"""

import pytest
from openpyxl import load_workbook

from picks_engine.jobs.excel_export import (
    HISTORY_COLUMNS,
    accuracy_frame,
    export_history_to_excel,
    history_frame,
)
from picks_engine.storage.state import HistoryEntry, default_user_state

from conftest import TODAY


def sample_state():
    state = default_user_state(TODAY)
    state.history = [
        HistoryEntry(
            date="2026-02-03",
            picks=[{"choice": "A", "status": "won"}, {"choice": "B", "status": "lost"}],
            score=1, total_points=15, xp_earned=15, coins_earned=5,
            scoring_mode="classic",
        ),
        HistoryEntry(
            date="2026-02-04",
            picks=[{"choice": "A", "status": "won"}, {"choice": "PASS", "status": "passed"}],
            score=1, total_points=30, is_perfect=True, lock_won=True,
            xp_earned=75, coins_earned=130, challenges_completed=["lock_win"],
            scoring_mode="competitive",
        ),
    ]
    stats = state.progression.stats
    stats.total_picks = 3
    stats.correct_picks = 2
    stats.by_sport = {"NBA": {"total": 3, "correct": 2}}
    stats.by_market = {"spread": {"total": 2, "correct": 1}, "total": {"total": 1, "correct": 1}}
    return state


class TestFrames:
    """DataFrames behind the workbook."""

    def test_history_newest_first(self):
        df = history_frame(sample_state().history)
        assert list(df["Date"]) == ["2026-02-04", "2026-02-03"]
        assert list(df.columns[:len(HISTORY_COLUMNS)]) == HISTORY_COLUMNS
        assert df.loc[0, "Challenges"] == "lock_win"
        assert df.loc[0, "Graded"] == 1

    def test_empty_history(self):
        assert history_frame([]).empty

    def test_accuracy(self):
        df = accuracy_frame(sample_state())
        assert list(df["Name"]) == ["NBA", "spread", "total"]
        nba = df[df["Name"] == "NBA"].iloc[0]
        assert nba["Accuracy"] == pytest.approx(2 / 3)


class TestExportWorkbook:
    """Writing the workbook to disk."""

    def test_writes_both_sheets(self, tmp_path):
        path = export_history_to_excel(sample_state(), tmp_path / "out" / "history.xlsx")

        assert path.exists()
        wb = load_workbook(path)
        assert wb.sheetnames == ["History", "Accuracy"]
        assert wb["History"]["A1"].value == "Daily Picks History"
        assert wb["Accuracy"]["A1"].value == "Group"
        assert wb["Accuracy"].max_row == 4

    def test_history_rows_written(self, tmp_path):
        path = export_history_to_excel(sample_state(), tmp_path / "history.xlsx", title="Season")
        ws = load_workbook(path)["History"]
        values = [cell.value for row in ws.iter_rows() for cell in row]
        assert "Season" in values
        assert "2026-02-04" in values
        assert "2026-02-03" in values

    def test_no_history_raises(self, tmp_path):
        with pytest.raises(ValueError):
            export_history_to_excel(default_user_state(TODAY), tmp_path / "x.xlsx")
