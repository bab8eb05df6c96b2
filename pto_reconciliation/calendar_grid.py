# pto_reconciliation/calendar_grid.py
"""
Walk the twelve month blocks of the calendar grid.

Layout (1-indexed rows/columns):
  - months run down a column group first: Jan-Apr in the first group,
    May-Aug in the second, Sep-Dec in the third
  - each block is 7 columns wide (Sunday..Saturday) and starts two rows
    below its header row

Day 1 is verified before a month is walked. Hand-edited sheets sometimes
have an inserted or deleted row; the walker looks a few rows up and down
for the "1" and continues from there.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterator, List, Optional, Tuple

from .config import DEFAULT_CONFIG, ImportConfig
from .issues import DayAlignmentRecovered, DayOneNotFound, ImportIssue
from .utils import days_in_month, weekday_sunday0
from .worksheet import Worksheet, cell_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthBlock:
    month: int
    start_col: int
    header_row: int


@dataclass(frozen=True)
class GridDay:
    """Position of one calendar day in the sheet."""

    day: date
    row: int
    column: int
    weekday: int  # Sunday=0 .. Saturday=6

    @property
    def is_weekend(self) -> bool:
        return self.weekday in (0, 6)


def month_block(month: int, cfg: ImportConfig = DEFAULT_CONFIG) -> MonthBlock:
    m0 = month - 1
    n_rows = len(cfg.row_group_starts)
    return MonthBlock(
        month=month,
        start_col=cfg.col_starts[m0 // n_rows],
        header_row=cfg.row_group_starts[m0 % n_rows],
    )


def locate_day_one(
    ws: Worksheet,
    year: int,
    month: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Tuple[Optional[int], List[ImportIssue]]:
    """
    Find the row holding day 1 of `month`.

    Returns (row, issues). Row is None when day 1 cannot be found within
    the scan window; the month must then be skipped.
    """
    block = month_block(month, cfg)
    expected_row = block.header_row + cfg.date_row_offset
    column = block.start_col + weekday_sunday0(year, month, 1)

    if cell_number(ws.cell(expected_row, column)) == 1:
        return expected_row, []

    for row in range(expected_row - cfg.day1_scan_range, expected_row + cfg.day1_scan_range + 1):
        if row < 1 or row == expected_row:
            continue
        if cell_number(ws.cell(row, column)) == 1:
            issue = DayAlignmentRecovered(
                sheet=ws.title,
                month=month,
                expected_row=expected_row,
                found_row=row,
                column=column,
            )
            logger.info(issue.render())
            return row, [issue]

    issue = DayOneNotFound(
        sheet=ws.title,
        month=month,
        expected_row=expected_row,
        column=column,
        scan_range=cfg.day1_scan_range,
    )
    logger.warning(issue.render())
    return None, [issue]


def walk_month(
    year: int,
    month: int,
    date_start_row: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Iterator[GridDay]:
    """Yield every day of the month in row-major order, wrapping after Saturday."""
    block = month_block(month, cfg)
    first_dow = weekday_sunday0(year, month, 1)
    row = date_start_row
    col = block.start_col + first_dow

    for day in range(1, days_in_month(year, month) + 1):
        dow = (first_dow + day - 1) % 7
        yield GridDay(day=date(year, month, day), row=row, column=col, weekday=dow)
        col += 1
        if dow == 6:
            row += 1
            col = block.start_col


def walk_calendar(
    ws: Worksheet,
    year: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Tuple[List[GridDay], List[ImportIssue]]:
    """All locatable days of the year plus the alignment issues found on the way."""
    days: List[GridDay] = []
    issues: List[ImportIssue] = []

    for month in range(1, 13):
        start_row, month_issues = locate_day_one(ws, year, month, cfg)
        issues.extend(month_issues)
        if start_row is None:
            continue
        days.extend(walk_month(year, month, start_row, cfg))

    return days, issues
