from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Sequence, Tuple

import pytest
from openpyxl.comments import Comment
from openpyxl.styles import PatternFill
from openpyxl.styles.colors import Color

from pto_reconciliation.calendar_grid import month_block, walk_month
from pto_reconciliation.config import DEFAULT_CONFIG
from pto_reconciliation.models import DeclaredMonthlyTotal, MatchMethod, PtoCategory, PtoEntry
from pto_reconciliation.worksheet import GridSheet, solid

PTO = "FF00B050"
PARTIAL = "FF92D050"
SICK = "FFFF0000"
BEREAVEMENT = "FF7030A0"
JURY = "FFFFC000"

LEGEND_ROWS: Tuple[Tuple[str, str], ...] = (
    ("Sick", SICK),
    ("Full PTO", PTO),
    ("Partial PTO", PARTIAL),
    ("Bereavement", BEREAVEMENT),
    ("Jury Duty", JURY),
)

LEGEND_HEADER_ROW = 3
CALC_ROW = 42


class CalendarBuilder:
    """Builds an employee worksheet laid out like the legacy template."""

    def __init__(
        self,
        year: Optional[int] = 2024,
        title: str = "Jane Doe",
        legend: Sequence[Tuple[str, str]] = LEGEND_ROWS,
        hire_date: Optional[str] = "Hire Date: 2020-03-15",
        calc_row: Optional[int] = CALC_ROW,
        with_legend_header: bool = True,
    ):
        self.sheet = GridSheet(title)
        self.year = year or 2024
        self.calc_row = calc_row
        self.positions: Dict[date, Tuple[int, int]] = {}

        if year:
            self.sheet.set(2, 2, year)
        if hire_date:
            self.sheet.set(2, 18, hire_date)

        if with_legend_header:
            self.sheet.set(LEGEND_HEADER_ROW, 26, "Legend")
            for offset, (label, argb) in enumerate(legend, start=1):
                self.sheet.set(LEGEND_HEADER_ROW + offset, 26, label, fill=solid(argb))

        for month in range(1, 13):
            start_row = month_block(month).header_row + DEFAULT_CONFIG.date_row_offset
            for gd in walk_month(self.year, month, start_row):
                self.sheet.set(gd.row, gd.column, gd.day.day)
                self.positions[gd.day] = (gd.row, gd.column)

        if calc_row is not None:
            self.sheet.set(calc_row, 2, "January")

    def pos(self, day: date) -> Tuple[int, int]:
        return self.positions[day]

    def color(self, day: date, argb: str, note: str = "") -> "CalendarBuilder":
        row, col = self.pos(day)
        self.sheet.set(row, col, fill=solid(argb), note=note)
        return self

    def note(self, day: date, note: str) -> "CalendarBuilder":
        row, col = self.pos(day)
        self.sheet.set(row, col, note=note)
        return self

    def declare(self, month: int, hours: float) -> "CalendarBuilder":
        assert self.calc_row is not None
        self.sheet.set(self.calc_row + month - 1, 19, hours)
        return self

    def ack(self, month: int, employee: bool = False, admin: bool = False) -> "CalendarBuilder":
        assert self.calc_row is not None
        row = self.calc_row + month - 1
        if employee:
            self.sheet.set(row, 24, "✓")
        if admin:
            self.sheet.set(row, 25, "✓")
        return self


def entry(
    day: date,
    hours: float = 8.0,
    category: PtoCategory = PtoCategory.PTO,
    partial: bool = False,
    pinned: bool = False,
    method: MatchMethod = MatchMethod.EXACT,
    note: str = "",
) -> PtoEntry:
    return PtoEntry(
        day=day,
        category=category,
        hours=hours,
        is_partial_color=partial,
        is_note_derived=pinned,
        match_method=method,
        cell_note=note,
    )


def declared(**months: float) -> list:
    """declared(jan=40, feb=8) -> [DeclaredMonthlyTotal, ...]"""
    names = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]
    return [DeclaredMonthlyTotal(month=names.index(k) + 1, declared_hours=v) for k, v in months.items()]


@pytest.fixture
def builder() -> CalendarBuilder:
    return CalendarBuilder()


def to_openpyxl(sheet: GridSheet, workbook):
    """Copy a GridSheet into a new openpyxl worksheet of `workbook`."""
    ws = workbook.create_sheet(sheet.title)
    for (row, col), cell in sheet.cells.items():
        target = ws.cell(row=row, column=col)
        target.value = cell.value
        if cell.fill is not None and cell.fill.fg is not None:
            fg = cell.fill.fg
            if fg.argb:
                target.fill = PatternFill(fill_type="solid", fgColor=fg.argb)
            elif fg.theme is not None:
                target.fill = PatternFill(fill_type="solid", fgColor=Color(theme=fg.theme, tint=fg.tint))
        if cell.note:
            target.comment = Comment(cell.note, "tester")
    return ws
