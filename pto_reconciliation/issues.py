# pto_reconciliation/issues.py
"""
Structured diagnostics produced while importing a worksheet.

Every automatic decision and every unresolved discrepancy becomes one
ImportIssue. Issues keep their data typed so tests and callers can inspect
them; `render()` turns them into the self-contained operator message
(sheet name, month or date, and the relevant figures).
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import ClassVar, Tuple

from .utils import fmt_hours, one_line


class Severity(str, Enum):
    RESOLVED = "resolved"  # auto-corrected, kept for audit
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ImportIssue:
    sheet: str

    severity: ClassVar[Severity] = Severity.WARNING

    @property
    def kind(self) -> str:
        return type(self).__name__

    def render(self) -> str:
        raise NotImplementedError


def _month_name(month: int) -> str:
    return calendar.month_name[month]


def _short(note: str, limit: int = 60) -> str:
    return one_line(note)[:limit]


# ------------------------------------------------------------------
# Sheet level
# ------------------------------------------------------------------
@dataclass(frozen=True)
class SheetSkipped(ImportIssue):
    reason: str

    severity: ClassVar[Severity] = Severity.ERROR

    def render(self) -> str:
        return f'Sheet "{self.sheet}" skipped: {self.reason}'


@dataclass(frozen=True)
class LegendEmpty(ImportIssue):
    def render(self) -> str:
        return f'No legend entries found on sheet "{self.sheet}"'


@dataclass(frozen=True)
class YearMissing(ImportIssue):
    def render(self) -> str:
        return f'Could not determine year from sheet "{self.sheet}"'


@dataclass(frozen=True)
class HireDateMissing(ImportIssue):
    def render(self) -> str:
        return f'Could not determine hire date from sheet "{self.sheet}"'


@dataclass(frozen=True)
class HireDateSuffixStripped(ImportIssue):
    raw: str
    parsed: date

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'Sheet "{self.sheet}": hire date "{self.raw}" contained a parenthetical '
            f"suffix; parsed as {self.parsed.isoformat()}"
        )


# ------------------------------------------------------------------
# Calendar grid
# ------------------------------------------------------------------
@dataclass(frozen=True)
class DayAlignmentRecovered(ImportIssue):
    month: int
    expected_row: int
    found_row: int
    column: int

    severity: ClassVar[Severity] = Severity.RESOLVED

    @property
    def offset(self) -> int:
        return self.found_row - self.expected_row

    def render(self) -> str:
        direction = "below" if self.offset > 0 else "above"
        return (
            f'Sheet "{self.sheet}" {_month_name(self.month)}: day 1 not at expected row '
            f"{self.expected_row}, col {self.column}; found {abs(self.offset)} row(s) "
            f"{direction} (row {self.found_row}). Recovered."
        )


@dataclass(frozen=True)
class DayOneNotFound(ImportIssue):
    month: int
    expected_row: int
    column: int
    scan_range: int

    severity: ClassVar[Severity] = Severity.ERROR

    def render(self) -> str:
        return (
            f'Sheet "{self.sheet}" {_month_name(self.month)}: could not locate day 1 within '
            f"±{self.scan_range} rows of row {self.expected_row}, col {self.column}. "
            f"Skipping month."
        )


@dataclass(frozen=True)
class WeekendColorAsWork(ImportIssue):
    day: date
    color: str

    def render(self) -> str:
        return (
            f'Sheet "{self.sheet}" {_month_name(self.day.month)}: non-legend colored weekend '
            f"cell on {self.day.isoformat()} (color={self.color}). Treating as potential weekend work."
        )


# ------------------------------------------------------------------
# Phase 1: note keyword override
# ------------------------------------------------------------------
@dataclass(frozen=True)
class NoteTypeOverride(ImportIssue):
    day: date
    old_category: str
    new_category: str
    note: str

    def render(self) -> str:
        return (
            f'"{self.sheet}" {self.day.isoformat()}: approximate-matched {self.old_category} '
            f'overridden to {self.new_category} (note: "{_short(self.note)}").'
        )


@dataclass(frozen=True)
class NoteWorkedOverride(ImportIssue):
    day: date
    old_category: str
    note: str

    def render(self) -> str:
        return (
            f'"{self.sheet}" {self.day.isoformat()}: approximate-matched {self.old_category} '
            f'overridden to worked day (note: "{_short(self.note)}").'
        )


# ------------------------------------------------------------------
# Phase 2 / 8 / 9: reclassification
# ------------------------------------------------------------------
@dataclass(frozen=True)
class SickReclassified(ImportIssue):
    day: date
    hours: float
    used_before: float
    allowance: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}" {self.day.isoformat()}: Sick entry reclassified as PTO '
            f"({fmt_hours(self.hours)}h). Employee had used {fmt_hours(self.used_before)}h "
            f"of {fmt_hours(self.allowance)}h sick allowance."
        )


@dataclass(frozen=True)
class ReclassifiedByGap(ImportIssue):
    day: date
    old_category: str
    hours: float
    declared: float
    prior_total: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}" {self.day.isoformat()}: {self.old_category} reclassified as PTO '
            f"({fmt_hours(self.hours)}h) based on declared-total gap. "
            f"Declared={fmt_hours(self.declared)}h, prior PTO={self.prior_total:.1f}h."
        )


# ------------------------------------------------------------------
# Phase 3: partial-day adjustment
# ------------------------------------------------------------------
@dataclass(frozen=True)
class PartialDaysAdjusted(ImportIssue):
    month: int
    count: int
    hours_each: float
    declared: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: {self.count} partial entr'
            f'{"y" if self.count == 1 else "ies"} set to {fmt_hours(self.hours_each)}h '
            f"each to match declared {fmt_hours(self.declared)}h."
        )


@dataclass(frozen=True)
class PartialAdjustmentOutOfRange(ImportIssue):
    month: int
    hours_each: float
    declared: float
    full_total: float
    pinned_total: float
    unpinned_count: int

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: partial distribution produced '
            f"{fmt_hours(self.hours_each)}h per entry (out of 0-8 range). "
            f"Declared={fmt_hours(self.declared)}h, fullTotal={fmt_hours(self.full_total)}h, "
            f"pinnedTotal={fmt_hours(self.pinned_total)}h, {self.unpinned_count} unpinned "
            f"partial entries. No adjustment applied."
        )


@dataclass(frozen=True)
class PinnedPartialsMismatch(ImportIssue):
    month: int
    pinned_count: int
    declared: float
    full_total: float
    pinned_total: float

    def render(self) -> str:
        total = self.full_total + self.pinned_total
        return (
            f'"{self.sheet}" month {self.month}: all {self.pinned_count} partial entries have '
            f"note-derived hours (pinned). Declared={fmt_hours(self.declared)}h, "
            f"fullTotal={fmt_hours(self.full_total)}h, pinnedTotal={fmt_hours(self.pinned_total)}h, "
            f"total={fmt_hours(total)}h. Not overriding pinned values."
        )


# ------------------------------------------------------------------
# Phase 4: note-guided reconciliation
# ------------------------------------------------------------------
@dataclass(frozen=True)
class NoteReconciliationIncomplete(ImportIssue):
    month: int
    declared: float
    detected: float
    assigned: float
    remaining: float

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: partially reconciled from notes. '
            f"Declared={fmt_hours(self.declared)}h, detected={fmt_hours(self.detected)}h, "
            f"assigned {fmt_hours(self.assigned)}h from notes, "
            f"{fmt_hours(self.remaining)}h still unaccounted for."
        )


@dataclass(frozen=True)
class NoNotesForGap(ImportIssue):
    month: int
    declared: float
    detected: float
    gap: float

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: PTO hours mismatch. '
            f"Declared={fmt_hours(self.declared)}h, detected={fmt_hours(self.detected)}h, "
            f"gap={fmt_hours(self.gap)}h. No cell notes found for reconciliation."
        )


# ------------------------------------------------------------------
# Phase 5: joint weekend-work / partial-day inference
# ------------------------------------------------------------------
@dataclass(frozen=True)
class JointInferenceApplied(ImportIssue):
    month: int
    partial_hours: float
    worked_hours: float
    method: str
    declared: float
    computed: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: weekend-work inference applied. '
            f"p={fmt_hours(self.partial_hours)}h, w={fmt_hours(self.worked_hours)}h ({self.method}). "
            f"Declared={fmt_hours(self.declared)}h, computed={fmt_hours(self.computed)}h."
        )


@dataclass(frozen=True)
class JointInferenceFailed(ImportIssue):
    month: int
    declared: float
    full_total: float
    unpinned_count: int
    worked_count: int

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: weekend-work inference failed. '
            f"Could not find valid p and w values. Declared={fmt_hours(self.declared)}h, "
            f"fullTotal={fmt_hours(self.full_total)}h, {self.unpinned_count} unpinned partial(s), "
            f"{self.worked_count} worked cell(s). No adjustment applied."
        )


# ------------------------------------------------------------------
# Phase 6: remaining worked days
# ------------------------------------------------------------------
@dataclass(frozen=True)
class WorkedCreditFromNote(ImportIssue):
    day: date
    note: str
    hours: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}": detected worked day on {self.day.isoformat()}. '
            f'Note: "{one_line(self.note)}". Assigned -{fmt_hours(self.hours)}h PTO credit from note.'
        )


@dataclass(frozen=True)
class WorkedCreditInferred(ImportIssue):
    day: date
    note: str
    hours: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}": detected worked day on {self.day.isoformat()}. '
            f'Note: "{one_line(self.note)}". Inferred -{fmt_hours(self.hours)}h PTO credit '
            f"from declared-total deficit."
        )


@dataclass(frozen=True)
class WorkedHoursAmbiguous(ImportIssue):
    day: date
    note: str
    candidates: int
    deficit: float

    def render(self) -> str:
        return (
            f'"{self.sheet}": detected worked day on {self.day.isoformat()}. '
            f'Note: "{one_line(self.note)}". Could not determine hours: {self.candidates} worked '
            f"cells in month {self.day.month} with {fmt_hours(self.deficit)}h total deficit. Skipping."
        )


@dataclass(frozen=True)
class WorkedHoursUnknown(ImportIssue):
    day: date
    note: str

    def render(self) -> str:
        return (
            f'"{self.sheet}": detected worked day on {self.day.isoformat()}. '
            f'Note: "{one_line(self.note)}". Could not determine hours (no declared-total '
            f"deficit in month {self.day.month}). Skipping."
        )


# ------------------------------------------------------------------
# Phase 7: unmatched colored cells
# ------------------------------------------------------------------
@dataclass(frozen=True)
class UnmatchedColorsPromoted(ImportIssue):
    month: int
    count: int
    declared: float
    calendar_total: float

    severity: ClassVar[Severity] = Severity.RESOLVED

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: reconciled {self.count} unmatched colored '
            f"cell(s) as PTO. Declared={fmt_hours(self.declared)}h, "
            f"original calendar={fmt_hours(self.calendar_total)}h."
        )


@dataclass(frozen=True)
class UnmatchedColorsIncomplete(ImportIssue):
    month: int
    declared: float
    calendar_total: float
    assigned: float
    remaining: float

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: partially reconciled via unmatched colored '
            f"cells. Declared={fmt_hours(self.declared)}h, calendar={fmt_hours(self.calendar_total)}h, "
            f"assigned {fmt_hours(self.assigned)}h from unmatched cells, "
            f"{fmt_hours(self.remaining)}h still unaccounted for."
        )


@dataclass(frozen=True)
class UnmatchedColorDistributionOutOfRange(ImportIssue):
    month: int
    count: int
    gap: float
    hours_each: float

    def render(self) -> str:
        return (
            f'"{self.sheet}" month {self.month}: {self.count} unmatched colored cells but '
            f"distributing {fmt_hours(self.gap)}h yields {fmt_hours(self.hours_each)}h each "
            f"(out of 0-8 range). No PTO entries created from unmatched cells."
        )


# ------------------------------------------------------------------
# Phase 10 and post-pipeline checks
# ------------------------------------------------------------------
@dataclass(frozen=True)
class OverColoring(ImportIssue):
    month: int
    calendar_total: float
    declared: float
    relevant_notes: Tuple[str, ...] = ()

    @property
    def delta(self) -> float:
        return self.calendar_total - self.declared

    def render(self) -> str:
        msg = (
            f"Over-coloring detected for {self.sheet} month {self.month}: "
            f"calendar={fmt_hours(self.calendar_total)}h, declared={fmt_hours(self.declared)}h "
            f"(Δ=+{fmt_hours(self.delta)}h)."
        )
        if self.relevant_notes:
            msg += f" Relevant notes: {'; '.join(self.relevant_notes)}."
        msg += (
            f" Declared total is authoritative; calendar over-reports by "
            f"{fmt_hours(self.delta)}h."
        )
        return msg


@dataclass(frozen=True)
class DuplicateEntry(ImportIssue):
    day: date
    category: str
    count: int

    def render(self) -> str:
        return (
            f'"{self.sheet}" {self.day.isoformat()}: {self.count} {self.category} entries '
            f"for the same date after reconciliation. Review before saving."
        )
