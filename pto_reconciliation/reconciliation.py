# pto_reconciliation/reconciliation.py
"""
Reconciliation of color-derived PTO entries against declared monthly totals.

The declared total of each month is ground truth. The phases below explain
the difference between it and the calendar, one kind of discrepancy at a
time, in a fixed order (see PIPELINE). Each phase is a pure function of its
inputs and returns new entry lists plus the issues it raised. Entries are
never changed in place, and pinned (note-derived) entries keep their hours
and category; only a "worked" note takes a pinned day out of the leave list.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG, ImportConfig
from .issues import (
    DuplicateEntry,
    ImportIssue,
    JointInferenceApplied,
    JointInferenceFailed,
    NoNotesForGap,
    NoteReconciliationIncomplete,
    NoteTypeOverride,
    NoteWorkedOverride,
    OverColoring,
    PartialAdjustmentOutOfRange,
    PartialDaysAdjusted,
    PinnedPartialsMismatch,
    ReclassifiedByGap,
    SickReclassified,
    UnmatchedColorDistributionOutOfRange,
    UnmatchedColorsIncomplete,
    UnmatchedColorsPromoted,
    WorkedCreditFromNote,
    WorkedCreditInferred,
    WorkedHoursAmbiguous,
    WorkedHoursUnknown,
)
from .models import (
    DeclaredMonthlyTotal,
    MatchMethod,
    PtoCategory,
    PtoEntry,
    UnmatchedColoredCell,
    UnmatchedNotedCell,
    WorkedCandidate,
)
from .notes import (
    OVERCOLOR_NOTE_RE,
    PTO_WORD_RE,
    SICK_WORD_RE,
    WORKED_WORD_RE,
    parse_hours_from_note,
    parse_worked_hours,
)
from .utils import fmt_hours, one_line, round2, safe_divide

logger = logging.getLogger(__name__)


# -----------------------------
# Results
# -----------------------------
@dataclass
class PhaseResult:
    entries: List[PtoEntry]
    issues: List[ImportIssue] = field(default_factory=list)


@dataclass
class NoteOverrideResult(PhaseResult):
    # Approximate-color entries whose note says the day was worked.
    worked: List[WorkedCandidate] = field(default_factory=list)


@dataclass
class JointInferenceResult(PhaseResult):
    handled_dates: FrozenSet[date] = frozenset()


# -----------------------------
# Helpers
# -----------------------------
def tracked_entries(
    entries: Iterable[PtoEntry],
    month: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> List[PtoEntry]:
    return [e for e in entries if e.month == month and e.category in cfg.tracked_categories]


def tracked_total(
    entries: Iterable[PtoEntry],
    month: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> float:
    """Signed sum of tracked-category hours in a month (credits included)."""
    return sum(e.hours for e in tracked_entries(entries, month, cfg))


def _credit_dates(entries: Iterable[PtoEntry]) -> FrozenSet[date]:
    return frozenset(e.day for e in entries if e.is_credit)


def _inferred(day: date, hours: float, notes: str) -> PtoEntry:
    return PtoEntry(
        day=day,
        category=PtoCategory.PTO,
        hours=round2(hours),
        notes=notes,
        match_method=MatchMethod.INFERRED,
    )


# ------------------------------------------------------------------
# Phase 1: note keyword overrides the approximate color
# ------------------------------------------------------------------
def override_type_from_note(entries: Sequence[PtoEntry], sheet: str = "") -> NoteOverrideResult:
    """
    Trust an explicit keyword in the note over an approximate color match.

    "worked" turns the entry into a worked-day candidate (the entry leaves
    the list and comes back as a credit in phase 5 or 6); "PTO" or "sick"
    switch the category. Exact matches are kept as is, and pinned entries
    keep their category.
    """
    result: List[PtoEntry] = []
    worked: List[WorkedCandidate] = []
    issues: List[ImportIssue] = []

    for entry in entries:
        note = entry.cell_note
        if entry.match_method != MatchMethod.APPROXIMATE or not note:
            result.append(entry)
            continue

        # Hours in a "worked" note describe the work, so the pin does not apply.
        if WORKED_WORD_RE.search(note):
            worked.append(WorkedCandidate(day=entry.day, note=note))
            issues.append(
                NoteWorkedOverride(sheet=sheet, day=entry.day, old_category=entry.category.value, note=note)
            )
            continue

        if entry.is_note_derived:
            result.append(entry)
            continue

        target: Optional[PtoCategory] = None
        if PTO_WORD_RE.search(note) and entry.category != PtoCategory.PTO:
            target = PtoCategory.PTO
        elif SICK_WORD_RE.search(note) and entry.category != PtoCategory.SICK:
            target = PtoCategory.SICK

        if target is None:
            result.append(entry)
            continue

        result.append(
            entry.adjusted(
                category=target,
                note=f"Type overridden from {entry.category.value} to {target.value} based on note keyword.",
            )
        )
        issues.append(
            NoteTypeOverride(
                sheet=sheet,
                day=entry.day,
                old_category=entry.category.value,
                new_category=target.value,
                note=note,
            )
        )

    return NoteOverrideResult(entries=result, issues=issues, worked=worked)


# ------------------------------------------------------------------
# Phase 2: sick allowance exhaustion
# ------------------------------------------------------------------
def reclassify_exhausted_sick(
    entries: Sequence[PtoEntry],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Once the annual sick allowance is used up, later Sick-colored days are PTO.

    Entries are walked chronologically; only entries that start after the
    cumulative sick hours already reached the allowance are reclassified.
    Pinned entries keep their category but still count toward the allowance.
    """
    result = list(entries)
    issues: List[ImportIssue] = []
    used = 0.0

    for idx in sorted(range(len(result)), key=lambda i: result[i].day):
        entry = result[idx]
        if entry.category != PtoCategory.SICK:
            continue
        hours = abs(entry.hours)
        if used >= cfg.annual_sick_allowance and not entry.is_note_derived:
            result[idx] = entry.adjusted(
                category=PtoCategory.PTO,
                note=(
                    f"Cell colored as Sick but reclassified as PTO: employee had exhausted "
                    f"{fmt_hours(cfg.annual_sick_allowance)}h sick allowance "
                    f"(used {fmt_hours(used)}h prior to this date)."
                ),
            )
            issues.append(
                SickReclassified(
                    sheet=sheet,
                    day=entry.day,
                    hours=hours,
                    used_before=used,
                    allowance=cfg.annual_sick_allowance,
                )
            )
        used += hours

    return PhaseResult(entries=result, issues=issues)


# ------------------------------------------------------------------
# Phase 3: partial-day adjustment
# ------------------------------------------------------------------
def adjust_partial_days(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Size "Partial PTO" days so the month matches its declared total.

    The shortfall or excess is split evenly over the unpinned partial
    entries. A result outside (0, full day] is not clamped: the month is
    left alone and a warning explains the numbers.
    """
    result = list(entries)
    issues: List[ImportIssue] = []

    for calc in declared:
        target = calc.declared_hours
        if target <= 0:
            continue

        tracked = [i for i, e in enumerate(result) if e.month == calc.month and e.category in cfg.tracked_categories]
        if not tracked:
            continue
        calendar_total = sum(result[i].hours for i in tracked)
        if abs(calendar_total - target) < 0.005:
            continue

        partial = [i for i in tracked if result[i].is_partial_color]
        if not partial:
            continue

        unpinned = [i for i in partial if not result[i].is_note_derived]
        pinned_total = sum(result[i].hours for i in partial if result[i].is_note_derived)
        full_total = sum(result[i].hours for i in tracked if not result[i].is_partial_color)

        if not unpinned:
            if abs(round2(full_total + pinned_total) - target) > cfg.ack_tolerance:
                issues.append(
                    PinnedPartialsMismatch(
                        sheet=sheet,
                        month=calc.month,
                        pinned_count=len(partial),
                        declared=target,
                        full_total=full_total,
                        pinned_total=pinned_total,
                    )
                )
            continue

        remaining = round2(target - full_total - pinned_total)
        hours_each = round2(remaining / len(unpinned))

        if not 0 < hours_each <= cfg.full_day_hours:
            issues.append(
                PartialAdjustmentOutOfRange(
                    sheet=sheet,
                    month=calc.month,
                    hours_each=hours_each,
                    declared=target,
                    full_total=full_total,
                    pinned_total=pinned_total,
                    unpinned_count=len(unpinned),
                )
            )
            continue

        changed = 0
        for i in unpinned:
            if result[i].hours != hours_each:
                original = result[i].hours
                result[i] = result[i].adjusted(
                    hours=hours_each,
                    note=(
                        f"Adjusted from {fmt_hours(original)}h to {fmt_hours(hours_each)}h based on "
                        f"declared total ({fmt_hours(target)}h for month {calc.month})."
                    ),
                )
                changed += 1
        if changed:
            issues.append(
                PartialDaysAdjusted(
                    sheet=sheet, month=calc.month, count=changed, hours_each=hours_each, declared=target
                )
            )

    return PhaseResult(entries=result, issues=issues)


# ------------------------------------------------------------------
# Phase 4: note-guided partial reconciliation
# ------------------------------------------------------------------
def reconcile_noted_cells(
    entries: Sequence[PtoEntry],
    unmatched_noted: Sequence[UnmatchedNotedCell],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Fill a month's shortfall with PTO on cells that have a note but no
    legend color (typically a partial day typed as a note only).

    Each cell gets its note's hour hint, or the remaining gap, capped at a
    full day.
    """
    result = list(entries)
    issues: List[ImportIssue] = []
    taken = {e.day for e in entries}

    for calc in declared:
        if calc.declared_hours <= 0:
            continue

        detected = tracked_total(result, calc.month, cfg)
        gap = round2(calc.declared_hours - detected)
        if gap <= 0:
            continue

        month_noted = [c for c in unmatched_noted if c.day.month == calc.month and c.day not in taken]
        if not month_noted:
            issues.append(
                NoNotesForGap(
                    sheet=sheet, month=calc.month, declared=calc.declared_hours, detected=detected, gap=gap
                )
            )
            continue

        remaining = gap
        for cell in month_noted:
            if remaining <= 0:
                break
            note_hours = parse_hours_from_note(cell.note, cfg)
            assigned = min(note_hours if note_hours is not None else remaining, remaining, cfg.full_day_hours)
            result.append(
                _inferred(
                    cell.day,
                    assigned,
                    (
                        f'Inferred partial PTO from cell note "{one_line(cell.note)}". '
                        f"Calendar color not matched as Partial PTO. Reconciled against declared total "
                        f"(declared={fmt_hours(calc.declared_hours)}h, detected={fmt_hours(detected)}h, "
                        f"gap={fmt_hours(gap)}h)."
                    ),
                )
            )
            taken.add(cell.day)
            remaining = round2(remaining - assigned)

        if remaining > 0:
            issues.append(
                NoteReconciliationIncomplete(
                    sheet=sheet,
                    month=calc.month,
                    declared=calc.declared_hours,
                    detected=detected,
                    assigned=round2(gap - remaining),
                    remaining=remaining,
                )
            )

    return PhaseResult(entries=result, issues=issues)


# ------------------------------------------------------------------
# Phase 5: joint weekend-work / partial-day inference
# ------------------------------------------------------------------
def solve_partial_and_worked(
    target: float,
    unpinned_count: int,
    worked_count: int,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Optional[Tuple[float, float, str]]:
    """
    Solve target = n*p - m*w for (p, w).

    One unknown is fixed at its canonical value and the other must land in
    (0, full day]. If neither canonical choice works, w is clamped to
    [min_worked_hours, full day] around the p=canonical solution and p is
    derived from it. Returns (p, w, method) or None.
    """
    n, m = unpinned_count, worked_count
    full_day = cfg.full_day_hours

    p = round2(safe_divide(target + m * cfg.canonical_worked_hours, n))
    if 0 < p <= full_day:
        return p, cfg.canonical_worked_hours, f"w assumed {fmt_hours(cfg.canonical_worked_hours)}h"

    w = round2(safe_divide(n * cfg.canonical_partial_hours - target, m))
    if 0 < w <= full_day:
        return cfg.canonical_partial_hours, w, f"p assumed {fmt_hours(cfg.canonical_partial_hours)}h"

    mid_w = safe_divide(n * cfg.canonical_partial_hours - target, m)
    w = round2(min(full_day, max(cfg.min_worked_hours, mid_w)))
    p = round2(safe_divide(target + m * w, n))
    if 0 < p <= full_day:
        return p, w, "constrained solve"

    return None


def infer_weekend_partial_hours(
    entries: Sequence[PtoEntry],
    worked: Sequence[WorkedCandidate],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> JointInferenceResult:
    """
    For months with both unpinned partial days and worked days, solve

        declared = full + pinned + credits + n*p - m*w

    for the partial-day hours p and the worked hours w. Success sets every
    unpinned partial to p and appends a -w credit per worked day, recording
    the method and equation on each entry.
    """
    result = list(entries)
    new_credits: List[PtoEntry] = []
    handled: set = set()
    issues: List[ImportIssue] = []

    credited = _credit_dates(entries)
    worked_by_month: Dict[int, List[WorkedCandidate]] = defaultdict(list)
    for wc in worked:
        if wc.day not in credited:
            worked_by_month[wc.month].append(wc)

    for calc in declared:
        target_total = calc.declared_hours
        tracked = [i for i, e in enumerate(result) if e.month == calc.month and e.category in cfg.tracked_categories]
        current = sum(result[i].hours for i in tracked)
        if abs(current - target_total) < 0.01:
            continue

        partial = [i for i in tracked if result[i].is_partial_color]
        month_worked = worked_by_month.get(calc.month, [])
        if not partial or not month_worked:
            continue

        unpinned = [i for i in partial if not result[i].is_note_derived]
        if not unpinned:
            continue

        pinned_total = sum(result[i].hours for i in partial if result[i].is_note_derived)
        full_total = sum(
            result[i].hours for i in tracked if not result[i].is_partial_color and result[i].hours > 0
        )
        existing_credits = sum(result[i].hours for i in tracked if result[i].hours < 0)
        n, m = len(unpinned), len(month_worked)

        solution = solve_partial_and_worked(
            target_total - full_total - pinned_total - existing_credits, n, m, cfg
        )
        if solution is None:
            issues.append(
                JointInferenceFailed(
                    sheet=sheet,
                    month=calc.month,
                    declared=target_total,
                    full_total=full_total,
                    unpinned_count=n,
                    worked_count=m,
                )
            )
            continue

        p, w, method = solution
        equation = (
            f"declared({fmt_hours(target_total)}) = full({fmt_hours(full_total)}) + "
            f"pinned({fmt_hours(pinned_total)}) + {n}×p − {m}×w"
        )
        for i in unpinned:
            result[i] = result[i].adjusted(
                hours=p, note=f"Inferred p={fmt_hours(p)}h ({method}). Equation: {equation}."
            )
        for wc in month_worked:
            new_credits.append(
                _inferred(
                    wc.day,
                    -w,
                    (
                        f"Inferred w={fmt_hours(w)}h ({method}). Equation: {equation}. "
                        f'Cell note: "{one_line(wc.note)}"'
                    ),
                )
            )
            handled.add(wc.day)

        computed = full_total + pinned_total + existing_credits + n * p - m * w
        issues.append(
            JointInferenceApplied(
                sheet=sheet,
                month=calc.month,
                partial_hours=p,
                worked_hours=w,
                method=method,
                declared=target_total,
                computed=round2(computed),
            )
        )

    return JointInferenceResult(entries=result + new_credits, issues=issues, handled_dates=frozenset(handled))


# ------------------------------------------------------------------
# Phase 6: remaining worked days
# ------------------------------------------------------------------
def process_worked_candidates(
    entries: Sequence[PtoEntry],
    worked: Sequence[WorkedCandidate],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Turn worked days into negative PTO credits.

    Hours come from the note when it states them. A single unparsable
    worked day in a month takes the whole deficit against the declared
    total; several unparsable days are skipped with a warning.
    """
    result = list(entries)
    issues: List[ImportIssue] = []
    declared_by_month = {d.month: d.declared_hours for d in declared}
    credited = _credit_dates(entries)

    by_month: Dict[int, List[WorkedCandidate]] = defaultdict(list)
    for wc in worked:
        if wc.day not in credited:
            by_month[wc.month].append(wc)

    for month in sorted(by_month):
        cells = by_month[month]
        target = declared_by_month.get(month, 0.0)
        existing_total = tracked_total(entries, month, cfg)

        parsed: List[Tuple[WorkedCandidate, float]] = []
        unparsed: List[WorkedCandidate] = []
        for wc in cells:
            hours = parse_worked_hours(wc.note, cfg)
            if hours is not None:
                parsed.append((wc, hours))
            else:
                unparsed.append(wc)

        for wc, hours in parsed:
            result.append(
                _inferred(
                    wc.day,
                    -hours,
                    f'Weekend/off-day work credit ({fmt_hours(hours)}h). Cell note: "{one_line(wc.note)}"',
                )
            )
            issues.append(WorkedCreditFromNote(sheet=sheet, day=wc.day, note=wc.note, hours=hours))

        if not unparsed:
            continue

        parsed_credit = sum(h for _, h in parsed)
        deficit = round2(existing_total - parsed_credit - target)

        if deficit > 0 and len(unparsed) == 1:
            wc = unparsed[0]
            result.append(
                _inferred(
                    wc.day,
                    -deficit,
                    (
                        f"Weekend/off-day work credit inferred from declared total. "
                        f"Declared={fmt_hours(target)}h, detected={fmt_hours(existing_total)}h, "
                        f"other credits={fmt_hours(parsed_credit)}h, inferred={fmt_hours(deficit)}h. "
                        f'Cell note: "{one_line(wc.note)}"'
                    ),
                )
            )
            issues.append(WorkedCreditInferred(sheet=sheet, day=wc.day, note=wc.note, hours=deficit))
        elif deficit > 0:
            for wc in unparsed:
                issues.append(
                    WorkedHoursAmbiguous(
                        sheet=sheet, day=wc.day, note=wc.note, candidates=len(unparsed), deficit=deficit
                    )
                )
        else:
            for wc in unparsed:
                issues.append(WorkedHoursUnknown(sheet=sheet, day=wc.day, note=wc.note))

    return PhaseResult(entries=result, issues=issues)


# ------------------------------------------------------------------
# Phase 7: unmatched colored cells
# ------------------------------------------------------------------
def promote_unmatched_colored_cells(
    entries: Sequence[PtoEntry],
    unmatched_colored: Sequence[UnmatchedColoredCell],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Treat off-legend colors as PTO when a month is short by about a day.

    Noted cells are sized from their note (or a full day); cells without a
    note share what is left of the gap evenly.
    """
    result = list(entries)
    issues: List[ImportIssue] = []
    if not unmatched_colored:
        return PhaseResult(entries=result, issues=issues)

    taken = {e.day for e in entries}

    for calc in declared:
        if calc.declared_hours <= 0:
            continue

        calendar_total = tracked_total(entries, calc.month, cfg)
        gap = round2(calc.declared_hours - calendar_total)
        if gap < cfg.promotion_gap_hours:
            continue

        available = [c for c in unmatched_colored if c.day.month == calc.month and c.day not in taken]
        if not available:
            continue

        with_notes = [c for c in available if c.note]
        without_notes = [c for c in available if not c.note]
        created = 0

        for cell in with_notes:
            if gap <= 0.1:
                break
            note_hours = parse_hours_from_note(cell.note, cfg)
            assigned = min(note_hours, gap) if note_hours is not None else min(cfg.full_day_hours, gap)
            result.append(
                _inferred(
                    cell.day,
                    assigned,
                    (
                        f"Non-standard color ({cell.color}) treated as PTO: cell color not in legend "
                        f"but declared-total discrepancy suggests PTO. "
                        f'Cell note: "{one_line(cell.note)}"'
                    ),
                )
            )
            taken.add(cell.day)
            created += 1
            gap = round2(gap - assigned)

        if gap > 0.1 and without_notes:
            hours_each = round2(gap / len(without_notes))
            if 0 < hours_each <= cfg.full_day_hours:
                for cell in without_notes:
                    if gap <= 0.1:
                        break
                    assigned = min(hours_each, gap)
                    result.append(
                        _inferred(
                            cell.day,
                            assigned,
                            (
                                f"Non-standard color ({cell.color}) treated as PTO: cell color not in "
                                f"legend but declared-total discrepancy suggests PTO."
                            ),
                        )
                    )
                    taken.add(cell.day)
                    created += 1
                    gap = round2(gap - assigned)
            else:
                issues.append(
                    UnmatchedColorDistributionOutOfRange(
                        sheet=sheet, month=calc.month, count=len(without_notes), gap=gap, hours_each=hours_each
                    )
                )

        if gap > 0.1:
            issues.append(
                UnmatchedColorsIncomplete(
                    sheet=sheet,
                    month=calc.month,
                    declared=calc.declared_hours,
                    calendar_total=calendar_total,
                    assigned=round2(calc.declared_hours - calendar_total - gap),
                    remaining=gap,
                )
            )
        elif created:
            issues.append(
                UnmatchedColorsPromoted(
                    sheet=sheet,
                    month=calc.month,
                    count=created,
                    declared=calc.declared_hours,
                    calendar_total=calendar_total,
                )
            )

    return PhaseResult(entries=result, issues=issues)


# ------------------------------------------------------------------
# Phases 8 and 9: declared-total guided reclassification
# ------------------------------------------------------------------
def _reclassify_by_gap(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    eligible: Callable[[PtoEntry], bool],
    order: Callable[[PtoEntry], object],
    tolerance: float,
    note_prefix: str,
    sheet: str,
    cfg: ImportConfig,
) -> PhaseResult:
    result = list(entries)
    issues: List[ImportIssue] = []

    for calc in declared:
        pto_total = tracked_total(result, calc.month, cfg)
        candidates = [
            i for i, e in enumerate(result)
            if e.month == calc.month and not e.is_note_derived and eligible(e)
        ]
        gap = calc.declared_hours - pto_total
        if gap < tolerance or not candidates:
            continue

        candidates.sort(key=lambda i: order(result[i]))
        for i in candidates:
            entry = result[i]
            hours = abs(entry.hours)
            if hours > gap + 0.1:
                continue
            result[i] = entry.adjusted(
                category=PtoCategory.PTO,
                note=(
                    f"{note_prefix} Declared={fmt_hours(calc.declared_hours)}h, "
                    f"PTO before reclassification={pto_total:.1f}h, gap={gap:.1f}h."
                ),
            )
            issues.append(
                ReclassifiedByGap(
                    sheet=sheet,
                    day=entry.day,
                    old_category=entry.category.value,
                    hours=hours,
                    declared=calc.declared_hours,
                    prior_total=pto_total,
                )
            )
            pto_total += hours
            gap -= hours
            if gap < tolerance:
                break

    return PhaseResult(entries=result, issues=issues)


def reclassify_sick_by_gap(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    exhaustion_detected: bool,
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """
    Second, declared-total guided Sick -> PTO pass.

    Only runs when the allowance-exhaustion pass fired on this sheet: the
    author evidently stopped tracking sick time, so remaining Sick days that
    fit a month's gap are taken as PTO, oldest first.
    """
    if not exhaustion_detected:
        return PhaseResult(entries=list(entries))
    return _reclassify_by_gap(
        entries,
        declared,
        eligible=lambda e: e.category == PtoCategory.SICK,
        order=lambda e: e.day,
        tolerance=cfg.sick_gap_tolerance,
        note_prefix="Sick entry reclassified as PTO based on declared-total gap (sick allowance appears exhausted).",
        sheet=sheet,
        cfg=cfg,
    )


def reclassify_bereavement_by_gap(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """Approximate-color Bereavement days that fit a month's gap become PTO, smallest first."""
    return _reclassify_by_gap(
        entries,
        declared,
        eligible=lambda e: (
            e.category == PtoCategory.BEREAVEMENT and e.match_method == MatchMethod.APPROXIMATE
        ),
        order=lambda e: e.hours,
        tolerance=cfg.bereavement_gap_tolerance,
        note_prefix="Bereavement reclassified as PTO based on declared-total gap.",
        sheet=sheet,
        cfg=cfg,
    )


# ------------------------------------------------------------------
# Phase 10: over-coloring
# ------------------------------------------------------------------
def detect_over_coloring(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> PhaseResult:
    """Warn where the calendar reports more than declared; nothing is corrected."""
    issues: List[ImportIssue] = []

    for calc in declared:
        month_entries = tracked_entries(entries, calc.month, cfg)
        calendar_total = sum(e.hours for e in month_entries)
        if round2(calendar_total - calc.declared_hours) <= cfg.over_coloring_tolerance:
            continue

        relevant = tuple(
            f"{e.day.isoformat()} note: '{one_line(e.notes)[:120]}'"
            for e in month_entries
            if e.notes and OVERCOLOR_NOTE_RE.search(e.notes)
        )
        issues.append(
            OverColoring(
                sheet=sheet,
                month=calc.month,
                calendar_total=round2(calendar_total),
                declared=calc.declared_hours,
                relevant_notes=relevant,
            )
        )

    return PhaseResult(entries=list(entries), issues=issues)


# ------------------------------------------------------------------
# Post-pipeline check
# ------------------------------------------------------------------
def check_duplicate_entries(entries: Sequence[PtoEntry], sheet: str = "") -> List[ImportIssue]:
    """Flag (date, category) pairs that more than one leave entry claims."""
    counts = Counter((e.day, e.category) for e in entries if e.hours > 0)
    return [
        DuplicateEntry(sheet=sheet, day=day, category=category.value, count=count)
        for (day, category), count in sorted(counts.items(), key=lambda kv: (kv[0][0], kv[0][1].value))
        if count > 1
    ]


# -----------------------------
# Pipeline
# -----------------------------
@dataclass
class ReconciliationState:
    """Everything the phases read and write for one worksheet."""

    sheet: str
    entries: List[PtoEntry]
    declared: List[DeclaredMonthlyTotal]
    unmatched_noted: List[UnmatchedNotedCell] = field(default_factory=list)
    unmatched_colored: List[UnmatchedColoredCell] = field(default_factory=list)
    worked: List[WorkedCandidate] = field(default_factory=list)
    issues: List[ImportIssue] = field(default_factory=list)
    # Worked days already credited by the joint inference.
    handled_worked: FrozenSet[date] = frozenset()
    sick_exhaustion_detected: bool = False

    def with_phase(self, phase: PhaseResult, **changes) -> "ReconciliationState":
        return replace(self, entries=phase.entries, issues=self.issues + phase.issues, **changes)


@dataclass(frozen=True)
class Stage:
    """
    One reconciliation phase in the pipeline.

    `requires` and `ensures` document what a phase assumes about the state
    produced by its predecessors and what it guarantees to its successors.
    """

    name: str
    run: Callable[[ReconciliationState, ImportConfig], ReconciliationState]
    requires: str
    ensures: str


def _note_override(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    phase = override_type_from_note(state.entries, state.sheet)
    return state.with_phase(phase, worked=state.worked + phase.worked)


def _sick_exhaustion(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    phase = reclassify_exhausted_sick(state.entries, state.sheet, cfg)
    fired = any(isinstance(i, SickReclassified) for i in phase.issues)
    return state.with_phase(phase, sick_exhaustion_detected=state.sick_exhaustion_detected or fired)


def _partial_days(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(adjust_partial_days(state.entries, state.declared, state.sheet, cfg))


def _noted_cells(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(
        reconcile_noted_cells(state.entries, state.unmatched_noted, state.declared, state.sheet, cfg)
    )


def _joint_inference(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    phase = infer_weekend_partial_hours(state.entries, state.worked, state.declared, state.sheet, cfg)
    return state.with_phase(phase, handled_worked=state.handled_worked | phase.handled_dates)


def _worked_days(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    remaining = [wc for wc in state.worked if wc.day not in state.handled_worked]
    return state.with_phase(
        process_worked_candidates(state.entries, remaining, state.declared, state.sheet, cfg)
    )


def _unmatched_colors(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(
        promote_unmatched_colored_cells(state.entries, state.unmatched_colored, state.declared, state.sheet, cfg)
    )


def _sick_by_gap(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(
        reclassify_sick_by_gap(state.entries, state.declared, state.sick_exhaustion_detected, state.sheet, cfg)
    )


def _bereavement_by_gap(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(reclassify_bereavement_by_gap(state.entries, state.declared, state.sheet, cfg))


def _over_coloring(state: ReconciliationState, cfg: ImportConfig) -> ReconciliationState:
    return state.with_phase(detect_over_coloring(state.entries, state.declared, state.sheet, cfg))


PIPELINE: Tuple[Stage, ...] = (
    Stage(
        "note-keyword override",
        _note_override,
        requires="entries straight from the classifier",
        ensures="approximate colors contradicted by a note keyword are corrected; categories final for phase 2",
    ),
    Stage(
        "sick exhaustion",
        _sick_exhaustion,
        requires="final color/note categories",
        ensures="Sick entries after the allowance is used up are PTO",
    ),
    Stage(
        "partial-day adjustment",
        _partial_days,
        requires="tracked categories settled",
        ensures="unpinned partial days sized to the declared total where possible",
    ),
    Stage(
        "note-guided reconciliation",
        _noted_cells,
        requires="partial days sized",
        ensures="noted cells without a legend color fill remaining shortfalls",
    ),
    Stage(
        "weekend/partial joint inference",
        _joint_inference,
        requires="partial days still unresolved are the only unknown besides worked days",
        ensures="solved months have sized partials and -w credits; their worked days are handled",
    ),
    Stage(
        "worked days",
        _worked_days,
        requires="handled worked days excluded",
        ensures="remaining worked days are credits or reported",
    ),
    Stage(
        "unmatched colored cells",
        _unmatched_colors,
        requires="all explainable hours accounted for",
        ensures="off-legend colors cover day-sized shortfalls",
    ),
    Stage(
        "sick by declared gap",
        _sick_by_gap,
        requires="sick exhaustion flag from phase 2",
        ensures="Sick days that fit a remaining gap are PTO",
    ),
    Stage(
        "bereavement by declared gap",
        _bereavement_by_gap,
        requires="sick reclassification done",
        ensures="approximate Bereavement days that fit a remaining gap are PTO",
    ),
    Stage(
        "over-coloring",
        _over_coloring,
        requires="entries final",
        ensures="months above their declared total are reported",
    ),
)


def run_pipeline(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    unmatched_noted: Sequence[UnmatchedNotedCell] = (),
    unmatched_colored: Sequence[UnmatchedColoredCell] = (),
    worked: Sequence[WorkedCandidate] = (),
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
    stages: Sequence[Stage] = PIPELINE,
) -> ReconciliationState:
    """Run every stage once, in order, then check for duplicate entries."""
    state = ReconciliationState(
        sheet=sheet,
        entries=list(entries),
        declared=list(declared),
        unmatched_noted=list(unmatched_noted),
        unmatched_colored=list(unmatched_colored),
        worked=list(worked),
    )
    for stage in stages:
        before = len(state.issues)
        state = stage.run(state, cfg)
        logger.debug(
            f'Sheet "{sheet}": stage "{stage.name}" -> {len(state.entries)} entries, '
            f"{len(state.issues) - before} new issue(s)"
        )

    state.issues.extend(check_duplicate_entries(state.entries, sheet))
    return state


def month_totals(
    entries: Iterable[PtoEntry],
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Mapping[int, float]:
    """Tracked-category total per month."""
    totals: Dict[int, float] = defaultdict(float)
    for e in entries:
        if e.category in cfg.tracked_categories:
            totals[e.month] += e.hours
    return dict(totals)
