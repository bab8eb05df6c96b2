# pto_reconciliation/declared_totals.py
"""
Readers for the PTO calculation section below the calendar grid.

The section starts with a "January" label in column B; each of the twelve
month rows carries the declared hours (ground truth for reconciliation) and
the employee/admin acknowledgement checkmarks.
"""
from __future__ import annotations

from typing import List

from .config import DEFAULT_CONFIG, ImportConfig
from .errors import CalcSectionNotFoundError
from .models import Acknowledgement, Actor, DeclaredMonthlyTotal
from .utils import month_key, safe_float
from .worksheet import Worksheet, cell_number


def find_calc_start_row(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> int:
    """Row of the January line; raises CalcSectionNotFoundError if absent."""
    for candidate in cfg.calc_anchor_rows:
        if ws.cell(candidate, cfg.calc_anchor_col).text.lower() == "january":
            return candidate
    rows = " or ".join(str(r) for r in cfg.calc_anchor_rows)
    raise CalcSectionNotFoundError(
        f'PTO calculation section not found on sheet "{ws.title}": '
        f'no "January" in column {cfg.calc_anchor_col} at row {rows}'
    )


def read_declared_totals(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> List[DeclaredMonthlyTotal]:
    """Declared hours for months 1..12; blank or non-numeric cells read as 0."""
    start_row = find_calc_start_row(ws, cfg)
    totals: List[DeclaredMonthlyTotal] = []
    for i in range(12):
        value = safe_float(ws.cell(start_row + i, cfg.declared_hours_col).value, 0.0)
        totals.append(DeclaredMonthlyTotal(month=i + 1, declared_hours=value))
    return totals


def read_carryover_hours(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> float:
    start_row = find_calc_start_row(ws, cfg)
    value = cell_number(ws.cell(start_row, cfg.carryover_col))
    return value if value is not None else 0.0


def read_pto_rate(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> float:
    """Daily PTO accrual rate from the December row."""
    start_row = find_calc_start_row(ws, cfg)
    return safe_float(ws.cell(start_row + 11, cfg.pto_rate_col).value, 0.0)


def read_acknowledgement_marks(
    ws: Worksheet,
    year: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> List[Acknowledgement]:
    """Checkmarks typed into the employee/admin acknowledgement columns."""
    start_row = find_calc_start_row(ws, cfg)
    marks: List[Acknowledgement] = []
    for month in range(1, 13):
        row = start_row + month - 1
        if ws.cell(row, cfg.emp_ack_col).text == cfg.ack_mark:
            marks.append(Acknowledgement(month=month_key(year, month), actor=Actor.EMPLOYEE))
        if ws.cell(row, cfg.admin_ack_col).text == cfg.ack_mark:
            marks.append(Acknowledgement(month=month_key(year, month), actor=Actor.ADMIN))
    return marks
