"""
Excel Export for the Daily Picks Engine.

Exports card history with a progression summary header to Excel format.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.dataframe import dataframe_to_rows

from picks_engine.model.progression import level_progress
from picks_engine.paths import get_export_dir
from picks_engine.storage.state import HistoryEntry, UserState


HISTORY_COLUMNS = [
    "Date", "Picks", "Correct", "Points", "Perfect", "Lock Won",
    "XP", "Coins", "Challenges", "Mode",
]


def _graded_pick_count(entry: HistoryEntry) -> int:
    return sum(1 for p in entry.picks if p.get("status") in ("won", "lost"))


def history_frame(history: List[HistoryEntry]) -> pd.DataFrame:
    """One row per archived card, newest first."""
    rows = []
    for entry in history:
        rows.append({
            "Date": entry.date,
            "Picks": len(entry.picks),
            "Correct": entry.score if entry.score is not None else 0,
            "Points": entry.total_points if entry.total_points is not None else 0,
            "Perfect": entry.is_perfect,
            "Lock Won": entry.lock_won,
            "XP": entry.xp_earned,
            "Coins": entry.coins_earned,
            "Challenges": ", ".join(entry.challenges_completed),
            "Mode": entry.scoring_mode or "",
            "Graded": _graded_pick_count(entry),
        })
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS + ["Graded"])
    if not df.empty:
        df = df.sort_values("Date", ascending=False).reset_index(drop=True)
    return df


def accuracy_frame(state: UserState) -> pd.DataFrame:
    """Accuracy by sport and by market from the user's lifetime stats."""
    rows = []
    stats = state.progression.stats
    for group, bucket in (("Sport", stats.by_sport), ("Market", stats.by_market)):
        for name in sorted(bucket):
            total = bucket[name].get("total", 0)
            correct = bucket[name].get("correct", 0)
            rows.append({
                "Group": group,
                "Name": name,
                "Correct": correct,
                "Total": total,
                "Accuracy": correct / total if total else 0.0,
            })
    return pd.DataFrame(rows, columns=["Group", "Name", "Correct", "Total", "Accuracy"])


def export_history_to_excel(
    state: UserState,
    output_path: Optional[Path] = None,
    title: str = "Daily Picks History",
) -> Path:
    """
    Export card history to Excel with a progression summary header.

    Args:
        state: User state to export
        output_path: Output file path (auto-generated if None)
        title: Title for the report

    Returns:
        Path to created Excel file

    Raises:
        ValueError: If there is no history to export
    """
    if not state.history:
        raise ValueError("No card history to export")

    if output_path is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = get_export_dir() / f"picks_history_{timestamp}.xlsx"
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    history = history_frame(state.history)
    accuracy = accuracy_frame(state)
    progression = state.progression
    stats = progression.stats
    progress = level_progress(progression.xp)

    wb = Workbook()
    ws = wb.active
    ws.title = "History"

    # Styles
    header_font = Font(bold=True, size=14)
    subheader_font = Font(bold=True, size=11)
    green_fill = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
    red_fill = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    white_font = Font(bold=True, color="FFFFFF")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    # ==================== HEADER SECTION ====================
    row = 1
    ws.cell(row=row, column=1, value=title).font = Font(bold=True, size=16)
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=6)
    row += 1
    ws.cell(row=row, column=1, value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    row += 2

    ws.cell(row=row, column=1, value="PROGRESSION").font = header_font
    row += 1
    summary_rows = [
        ("Level:", f"{progression.level} ({progress.progress_percent} to next)"),
        ("XP:", progression.xp),
        ("Coins:", progression.coins),
        ("Record:", f"{stats.correct_picks}/{stats.total_picks}"),
        ("Accuracy:", f"{stats.accuracy:.1%}" if stats.total_picks else "N/A"),
        ("Perfect Days:", stats.perfect_days),
        ("Best Pick Streak:", stats.best_pick_streak),
        ("Badges:", len(progression.badges)),
    ]
    for label, value in summary_rows:
        ws.cell(row=row, column=1, value=label).font = subheader_font
        ws.cell(row=row, column=2, value=value)
        row += 1
    row += 2

    # ==================== HISTORY TABLE ====================
    ws.cell(row=row, column=1, value="CARDS").font = header_font
    row += 1

    table = history[HISTORY_COLUMNS]
    for r_idx, values in enumerate(dataframe_to_rows(table, index=False, header=True)):
        for c_idx, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=c_idx, value=value)
            cell.border = thin_border
            if r_idx == 0:
                cell.font = white_font
                cell.fill = header_fill
                cell.alignment = Alignment(horizontal='center')
        if r_idx > 0:
            perfect_cell = ws.cell(row=row, column=HISTORY_COLUMNS.index("Perfect") + 1)
            perfect_cell.value = "✓" if values[HISTORY_COLUMNS.index("Perfect")] else ""
            if perfect_cell.value:
                perfect_cell.fill = green_fill
            lock_cell = ws.cell(row=row, column=HISTORY_COLUMNS.index("Lock Won") + 1)
            lock_cell.value = "✓" if values[HISTORY_COLUMNS.index("Lock Won")] else "✗"
            lock_cell.fill = green_fill if lock_cell.value == "✓" else red_fill
            lock_cell.alignment = Alignment(horizontal='center')
        row += 1

    column_widths = [12, 8, 10, 10, 10, 10, 8, 8, 28, 12]
    for i, width in enumerate(column_widths, 1):
        ws.column_dimensions[get_column_letter(i)].width = width

    # ==================== ACCURACY SHEET ====================
    ws_acc = wb.create_sheet("Accuracy")
    for r_idx, values in enumerate(dataframe_to_rows(accuracy, index=False, header=True), 1):
        for c_idx, value in enumerate(values, 1):
            cell = ws_acc.cell(row=r_idx, column=c_idx, value=value)
            cell.border = thin_border
            if r_idx == 1:
                cell.font = white_font
                cell.fill = header_fill
            elif c_idx == 5:
                cell.number_format = '0.0%'
    for i, width in enumerate([10, 14, 10, 10, 10], 1):
        ws_acc.column_dimensions[get_column_letter(i)].width = width

    wb.save(output_path)

    return output_path
