# pto_reconciliation/classifier.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .calendar_grid import GridDay, walk_calendar
from .colors import DEFAULT_OFFICE_THEME, find_closest_legend_color, resolve_color
from .config import DEFAULT_CONFIG, ImportConfig
from .issues import ImportIssue, WeekendColorAsWork
from .models import (
    Legend,
    MatchMethod,
    PtoCategory,
    PtoEntry,
    UnmatchedColoredCell,
    UnmatchedNotedCell,
    WorkedCandidate,
    join_notes,
)
from .notes import WORKED_RE, is_strict_hours, parse_hours_from_note
from .utils import one_line
from .worksheet import CellData, Worksheet

logger = logging.getLogger(__name__)

# Fills that carry no meaning on the calendar.
NEUTRAL_COLORS = frozenset({"FFFFFFFF", "FF000000"})


@dataclass(frozen=True)
class ColorMatch:
    category: PtoCategory
    argb: str
    method: MatchMethod
    from_background: bool = False

    def describe(self) -> str:
        """Empty for exact foreground matches, otherwise how the color was matched."""
        if self.method == MatchMethod.EXACT and not self.from_background:
            return ""
        prefix = "bgColor " if self.from_background else ""
        if self.method == MatchMethod.EXACT:
            return f"Color matched via {prefix}exact."
        return f"Color matched via {prefix}approximate (resolved={self.argb})."


@dataclass
class CalendarParse:
    """Raw classification of every calendar day, before reconciliation."""

    entries: List[PtoEntry] = field(default_factory=list)
    unmatched_noted: List[UnmatchedNotedCell] = field(default_factory=list)
    unmatched_colored: List[UnmatchedColoredCell] = field(default_factory=list)
    worked: List[WorkedCandidate] = field(default_factory=list)
    issues: List[ImportIssue] = field(default_factory=list)


def match_color(
    argb: Optional[str],
    legend: Legend,
    cfg: ImportConfig = DEFAULT_CONFIG,
    from_background: bool = False,
) -> Optional[ColorMatch]:
    """Exact legend lookup first, then nearest legend color."""
    if not argb:
        return None
    category = legend.colors.get(argb)
    if category is not None:
        return ColorMatch(category, argb, MatchMethod.EXACT, from_background)
    category = find_closest_legend_color(argb, legend.colors, cfg)
    if category is not None:
        return ColorMatch(category, argb, MatchMethod.APPROXIMATE, from_background)
    return None


def match_cell(
    cell: CellData,
    legend: Legend,
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Optional[ColorMatch]:
    """Match the foreground fill, falling back to the background fill."""
    if cell.fill is None:
        return None
    match = match_color(resolve_color(cell.fill.fg, theme), legend, cfg)
    if match is None and cell.fill.bg is not None:
        match = match_color(resolve_color(cell.fill.bg, theme), legend, cfg, from_background=True)
    return match


def cell_color(cell: CellData, theme: Mapping[int, str] = DEFAULT_OFFICE_THEME) -> Optional[str]:
    """Meaningful fill color of a cell (not white, not black), if any."""
    if cell.fill is None:
        return None
    argb = resolve_color(cell.fill.fg, theme) or resolve_color(cell.fill.bg, theme)
    if argb is None or argb in NEUTRAL_COLORS:
        return None
    return argb


def build_entry(
    grid_day: GridDay,
    match: ColorMatch,
    note: str,
    legend: Legend,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PtoEntry:
    """
    Entry for a legend-colored day.

    A full day unless the note gives hours. An explicit "<n> hours" token
    pins the entry; a bare number only sets the starting value.
    """
    hours = cfg.full_day_hours
    pinned = False
    if note:
        note_hours = parse_hours_from_note(note, cfg)
        if note_hours is not None:
            hours = note_hours
            pinned = is_strict_hours(note, cfg)

    return PtoEntry(
        day=grid_day.day,
        category=match.category,
        hours=hours,
        notes=join_notes(match.describe(), f'Cell note: "{one_line(note)}"' if note else ""),
        is_partial_color=match.argb in legend.partial_colors,
        is_note_derived=pinned,
        match_method=match.method,
        cell_note=note,
    )


def classify_day(
    grid_day: GridDay,
    cell: CellData,
    legend: Legend,
    result: CalendarParse,
    sheet: str,
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> None:
    """Classify one day cell into `result`."""
    note = cell.note
    match = match_cell(cell, legend, theme, cfg)

    if match is not None:
        result.entries.append(build_entry(grid_day, match, note, legend, cfg))
        return

    color = cell_color(cell, theme)
    if note:
        if WORKED_RE.search(note):
            result.worked.append(WorkedCandidate(day=grid_day.day, note=note))
            return
        result.unmatched_noted.append(UnmatchedNotedCell(day=grid_day.day, note=note))
        if color is not None:
            result.unmatched_colored.append(
                UnmatchedColoredCell(day=grid_day.day, color=color, note=note)
            )
        return

    if color is None:
        return
    if grid_day.is_weekend:
        result.worked.append(
            WorkedCandidate(
                day=grid_day.day,
                note=f"(inferred weekend work from cell color {color})",
            )
        )
        result.issues.append(WeekendColorAsWork(sheet=sheet, day=grid_day.day, color=color))
    else:
        result.unmatched_colored.append(UnmatchedColoredCell(day=grid_day.day, color=color))


def classify_calendar(
    ws: Worksheet,
    year: int,
    legend: Legend,
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> CalendarParse:
    """Walk the grid and classify every day cell."""
    days, issues = walk_calendar(ws, year, cfg)
    result = CalendarParse(issues=list(issues))

    for grid_day in days:
        classify_day(grid_day, ws.cell(grid_day.row, grid_day.column), legend, result, ws.title, theme, cfg)

    logger.info(
        f'Sheet "{ws.title}": {len(result.entries)} colored entries, '
        f"{len(result.unmatched_noted)} unmatched noted, "
        f"{len(result.unmatched_colored)} unmatched colored, "
        f"{len(result.worked)} worked candidate(s)"
    )
    return result
