from dataclasses import replace
from datetime import date

import pytest

from conftest import declared, entry
from pto_reconciliation.errors import PinnedEntryError
from pto_reconciliation.issues import (
    DuplicateEntry,
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
    Severity,
    SickReclassified,
    UnmatchedColorDistributionOutOfRange,
    UnmatchedColorsIncomplete,
    UnmatchedColorsPromoted,
    WorkedCreditFromNote,
    WorkedCreditInferred,
    WorkedHoursAmbiguous,
    WorkedHoursUnknown,
)
from pto_reconciliation.models import (
    MatchMethod,
    PtoCategory,
    UnmatchedColoredCell,
    UnmatchedNotedCell,
    WorkedCandidate,
)
from pto_reconciliation.reconciliation import (
    adjust_partial_days,
    check_duplicate_entries,
    detect_over_coloring,
    infer_weekend_partial_hours,
    override_type_from_note,
    process_worked_candidates,
    promote_unmatched_colored_cells,
    reclassify_bereavement_by_gap,
    reclassify_exhausted_sick,
    reclassify_sick_by_gap,
    reconcile_noted_cells,
    solve_partial_and_worked,
    tracked_total,
)

SICK = PtoCategory.SICK
BEREAVEMENT = PtoCategory.BEREAVEMENT
APPROX = MatchMethod.APPROXIMATE


def d(month: int, day: int) -> date:
    return date(2024, month, day)


def by_day(entries):
    return {e.day: e for e in entries}


def kinds(issues):
    return [type(i) for i in issues]


def test_pinned_entries_cannot_be_adjusted():
    with pytest.raises(PinnedEntryError):
        entry(d(1, 2), pinned=True).adjusted(hours=4)


# ------------------------------------------------------------------
# Phase 1
# ------------------------------------------------------------------
def test_note_keyword_overrides_approximate_color():
    entries = [
        entry(d(1, 2), method=APPROX, note="sick today"),
        entry(d(1, 3), category=SICK, method=APPROX, note="worked"),
        entry(d(1, 4), category=SICK, note="PTO"),
        entry(d(1, 5), hours=4, category=SICK, method=APPROX, pinned=True, note="PTO 4 hours"),
        entry(d(1, 8), category=BEREAVEMENT, method=APPROX, note="PTO"),
    ]

    result = override_type_from_note(entries, "Jane Doe")
    out = by_day(result.entries)

    assert out[d(1, 2)].category == SICK
    assert out[d(1, 4)].category == SICK  # exact match is trusted
    assert out[d(1, 5)] == entries[3]  # pinned
    assert out[d(1, 8)].category == PtoCategory.PTO
    assert "based on note keyword" in out[d(1, 8)].notes

    assert d(1, 3) not in out
    assert result.worked == [WorkedCandidate(day=d(1, 3), note="worked")]
    assert kinds(result.issues) == [NoteTypeOverride, NoteWorkedOverride, NoteTypeOverride]


def test_worked_note_with_hours_becomes_a_credit_even_when_pinned():
    saturday = entry(d(1, 6), hours=4, method=APPROX, pinned=True, note="worked 4 hours")
    entries = [entry(d(1, 2)), entry(d(1, 3)), saturday]

    result = override_type_from_note(entries)

    assert d(1, 6) not in by_day(result.entries)
    assert result.worked == [WorkedCandidate(day=d(1, 6), note="worked 4 hours")]
    assert kinds(result.issues) == [NoteWorkedOverride]

    credited = process_worked_candidates(result.entries, result.worked, declared(jan=12))
    assert by_day(credited.entries)[d(1, 6)].hours == -4.0
    assert tracked_total(credited.entries, 1) == 12.0


def test_note_without_keyword_keeps_the_color_category():
    entries = [entry(d(1, 2), category=SICK, method=APPROX, note="out")]
    result = override_type_from_note(entries)
    assert result.entries == entries and result.issues == [] and result.worked == []


# ------------------------------------------------------------------
# Phase 2
# ------------------------------------------------------------------
def test_sick_exhaustion_reclassifies_only_after_the_crossing_point():
    entries = [
        entry(d(2, 1), hours=4, category=SICK),
        entry(d(1, 4), category=SICK),
        entry(d(1, 2), category=SICK),
        entry(d(1, 5), category=SICK),
        entry(d(1, 3), category=SICK),
    ]

    result = reclassify_exhausted_sick(entries, "Jane Doe")
    out = by_day(result.entries)

    assert [out[d(1, n)].category for n in (2, 3, 4)] == [SICK, SICK, SICK]
    assert out[d(1, 5)].category == PtoCategory.PTO
    assert out[d(2, 1)].category == PtoCategory.PTO
    assert [i.day for i in result.issues] == [d(1, 5), d(2, 1)]
    assert all(isinstance(i, SickReclassified) for i in result.issues)
    assert result.issues[0].used_before == 24.0
    # input order is preserved
    assert [e.day for e in result.entries] == [e.day for e in entries]


def test_sick_exhaustion_counts_but_skips_pinned_entries():
    entries = [
        entry(d(1, 2), hours=24, category=SICK, pinned=True),
        entry(d(1, 3), hours=4, category=SICK, pinned=True),
        entry(d(1, 4), category=SICK),
    ]
    out = by_day(reclassify_exhausted_sick(entries).entries)
    assert out[d(1, 3)].category == SICK
    assert out[d(1, 4)].category == PtoCategory.PTO


def test_sick_below_allowance_is_untouched():
    entries = [entry(d(1, 2), category=SICK), entry(d(1, 3), category=SICK)]
    result = reclassify_exhausted_sick(entries)
    assert result.entries == entries and result.issues == []


# ------------------------------------------------------------------
# Phase 3
# ------------------------------------------------------------------
def _partial_month():
    return [
        entry(d(1, 2)),
        entry(d(1, 3)),
        entry(d(1, 4), partial=True),
        entry(d(1, 5), partial=True),
    ]


def test_partials_are_sized_to_the_declared_total():
    result = adjust_partial_days(_partial_month(), declared(jan=20), "Jane Doe")
    out = by_day(result.entries)

    assert out[d(1, 4)].hours == 2.0 and out[d(1, 5)].hours == 2.0
    assert out[d(1, 2)].hours == 8.0
    assert "Adjusted from 8h to 2h" in out[d(1, 4)].notes
    assert kinds(result.issues) == [PartialDaysAdjusted]
    assert tracked_total(result.entries, 1) == 20.0


def test_partials_needing_more_than_a_full_day_are_left_alone():
    entries = _partial_month()
    result = adjust_partial_days(entries, declared(jan=40), "Jane Doe")

    assert result.entries == entries
    assert kinds(result.issues) == [PartialAdjustmentOutOfRange]
    assert result.issues[0].hours_each == 12.0


def test_pinned_partials_are_subtracted_before_distribution():
    entries = [
        entry(d(1, 2)),
        entry(d(1, 4), hours=3, partial=True, pinned=True),
        entry(d(1, 5), partial=True),
    ]
    out = by_day(adjust_partial_days(entries, declared(jan=15)).entries)
    assert out[d(1, 4)].hours == 3.0
    assert out[d(1, 5)].hours == 4.0


def test_all_pinned_partials_with_a_mismatch_warn():
    entries = [entry(d(1, 2)), entry(d(1, 4), hours=3, partial=True, pinned=True)]
    result = adjust_partial_days(entries, declared(jan=20))
    assert result.entries == entries
    assert kinds(result.issues) == [PinnedPartialsMismatch]


def test_months_without_partials_or_mismatch_are_skipped():
    entries = [entry(d(1, 2)), entry(d(2, 1), partial=True)]
    result = adjust_partial_days(entries, declared(jan=40, feb=8))
    assert result.entries == entries and result.issues == []


# ------------------------------------------------------------------
# Phase 4
# ------------------------------------------------------------------
def test_noted_cell_fills_the_gap_from_its_hour_hint():
    result = reconcile_noted_cells(
        [entry(d(1, 2))],
        [UnmatchedNotedCell(d(1, 10), "left at 4")],
        declared(jan=12),
        "Jane Doe",
    )
    new = by_day(result.entries)[d(1, 10)]
    assert (new.hours, new.category, new.match_method) == (4.0, PtoCategory.PTO, MatchMethod.INFERRED)
    assert "left at 4" in new.notes
    assert result.issues == []


def test_noted_cell_without_hint_is_capped_at_a_full_day():
    result = reconcile_noted_cells(
        [entry(d(1, 2))],
        [UnmatchedNotedCell(d(1, 10), "doctor")],
        declared(jan=20),
    )
    assert by_day(result.entries)[d(1, 10)].hours == 8.0
    assert kinds(result.issues) == [NoteReconciliationIncomplete]
    assert result.issues[0].remaining == 4.0
    assert result.issues[0].severity == Severity.WARNING


def test_gap_without_usable_notes_warns():
    result = reconcile_noted_cells(
        [entry(d(1, 2))],
        [UnmatchedNotedCell(d(1, 2), "already colored")],
        declared(jan=12),
    )
    assert len(result.entries) == 1
    assert kinds(result.issues) == [NoNotesForGap]
    assert result.issues[0].gap == 4.0


def test_noted_cells_ignored_when_month_is_not_short():
    entries = [entry(d(1, 2))]
    result = reconcile_noted_cells(entries, [UnmatchedNotedCell(d(1, 10), "x")], declared(jan=8, feb=0))
    assert result.entries == entries and result.issues == []


# ------------------------------------------------------------------
# Phase 5
# ------------------------------------------------------------------
def test_solver_tries_canonical_values_then_constrained_solve():
    assert solve_partial_and_worked(-4, 1, 1) == (4.0, 8.0, "w assumed 8h")
    assert solve_partial_and_worked(12, 4, 2) == (7.0, 8.0, "w assumed 8h")
    assert solve_partial_and_worked(10, 2, 1) == (5.25, 0.5, "constrained solve")
    assert solve_partial_and_worked(12, 1, 1) is None


def test_joint_inference_sizes_partials_and_credits_worked_days():
    entries = [entry(d(1, 2)), entry(d(1, 3)), entry(d(1, 4), partial=True)]
    worked = [WorkedCandidate(d(1, 6), "worked Saturday")]

    result = infer_weekend_partial_hours(entries, worked, declared(jan=12), "Jane Doe")
    out = by_day(result.entries)

    assert out[d(1, 4)].hours == 4.0
    credit = out[d(1, 6)]
    assert credit.hours == -8.0 and credit.is_credit
    assert "Equation" in credit.notes and "worked Saturday" in credit.notes
    assert result.handled_dates == frozenset({d(1, 6)})
    assert kinds(result.issues) == [JointInferenceApplied]
    assert result.issues[0].computed == 12.0
    assert tracked_total(result.entries, 1) == 12.0


def test_joint_inference_reports_when_no_valid_solution_exists():
    entries = [entry(d(1, n)) for n in (2, 3, 4, 5)] + [entry(d(1, 8), partial=True)]
    worked = [WorkedCandidate(d(1, 6), "worked")]

    result = infer_weekend_partial_hours(entries, worked, declared(jan=44), "Jane Doe")

    assert result.entries == entries
    assert result.handled_dates == frozenset()
    assert kinds(result.issues) == [JointInferenceFailed]


def test_joint_inference_needs_both_partials_and_worked_days():
    entries = [entry(d(1, 2), partial=True)]
    result = infer_weekend_partial_hours(entries, [], declared(jan=4))
    assert result.entries == entries and result.issues == []


# ------------------------------------------------------------------
# Phase 6
# ------------------------------------------------------------------
def test_worked_hours_from_note_become_a_credit():
    result = process_worked_candidates([], [WorkedCandidate(d(1, 6), "worked 5 hrs")], declared(jan=0))
    credit = by_day(result.entries)[d(1, 6)]
    assert credit.hours == -5.0 and credit.match_method == MatchMethod.INFERRED
    assert kinds(result.issues) == [WorkedCreditFromNote]


def test_single_unparsable_worked_day_takes_the_deficit():
    entries = [entry(d(1, 2)), entry(d(1, 3))]
    result = process_worked_candidates(entries, [WorkedCandidate(d(1, 6), "worked Saturday")], declared(jan=8))
    assert by_day(result.entries)[d(1, 6)].hours == -8.0
    assert kinds(result.issues) == [WorkedCreditInferred]
    assert tracked_total(result.entries, 1) == 8.0


def test_several_unparsable_worked_days_are_skipped():
    entries = [entry(d(1, 2)), entry(d(1, 3))]
    worked = [WorkedCandidate(d(1, 6), "worked"), WorkedCandidate(d(1, 7), "worked")]
    result = process_worked_candidates(entries, worked, declared(jan=8))
    assert result.entries == entries
    assert kinds(result.issues) == [WorkedHoursAmbiguous, WorkedHoursAmbiguous]


def test_unparsable_worked_day_without_deficit_is_skipped():
    entries = [entry(d(1, 2))]
    result = process_worked_candidates(entries, [WorkedCandidate(d(1, 6), "worked")], declared(jan=8))
    assert result.entries == entries
    assert kinds(result.issues) == [WorkedHoursUnknown]


def test_already_credited_dates_are_not_credited_twice():
    entries = [entry(d(1, 6), hours=-4, method=MatchMethod.INFERRED)]
    result = process_worked_candidates(entries, [WorkedCandidate(d(1, 6), "worked 4 hours")], declared(jan=0))
    assert result.entries == entries and result.issues == []


# ------------------------------------------------------------------
# Phase 7
# ------------------------------------------------------------------
def test_unmatched_color_covers_a_full_day_gap():
    result = promote_unmatched_colored_cells(
        [entry(d(1, 2))],
        [UnmatchedColoredCell(d(1, 9), "FF0000FF")],
        declared(jan=16),
        "Jane Doe",
    )
    new = by_day(result.entries)[d(1, 9)]
    assert new.hours == 8.0 and new.match_method == MatchMethod.INFERRED
    assert "FF0000FF" in new.notes
    assert kinds(result.issues) == [UnmatchedColorsPromoted]


def test_small_gaps_do_not_promote_unmatched_colors():
    entries = [entry(d(1, 2))]
    result = promote_unmatched_colored_cells(
        entries, [UnmatchedColoredCell(d(1, 9), "FF0000FF")], declared(jan=12)
    )
    assert result.entries == entries and result.issues == []


def test_unmatched_color_on_a_taken_date_is_ignored():
    entries = [entry(d(1, 2))]
    result = promote_unmatched_colored_cells(
        entries, [UnmatchedColoredCell(d(1, 2), "FF0000FF")], declared(jan=16)
    )
    assert result.entries == entries and result.issues == []


def test_noted_unmatched_color_uses_its_hours():
    result = promote_unmatched_colored_cells(
        [entry(d(1, 2))],
        [UnmatchedColoredCell(d(1, 9), "FF0000FF", "4 hours")],
        declared(jan=16),
    )
    assert by_day(result.entries)[d(1, 9)].hours == 4.0
    assert kinds(result.issues) == [UnmatchedColorsIncomplete]
    assert (result.issues[0].assigned, result.issues[0].remaining) == (4.0, 4.0)
    assert result.issues[0].severity == Severity.WARNING


def test_unnoted_unmatched_colors_split_the_gap():
    cells = [UnmatchedColoredCell(d(1, 9), "FF0000FF"), UnmatchedColoredCell(d(1, 10), "FF0000FF")]
    result = promote_unmatched_colored_cells([entry(d(1, 2))], cells, declared(jan=24))
    out = by_day(result.entries)
    assert out[d(1, 9)].hours == 8.0 and out[d(1, 10)].hours == 8.0
    assert kinds(result.issues) == [UnmatchedColorsPromoted]
    assert result.issues[0].count == 2


def test_unmatched_color_split_above_a_full_day_is_refused():
    cells = [UnmatchedColoredCell(d(1, 9), "FF0000FF"), UnmatchedColoredCell(d(1, 10), "FF0000FF")]
    result = promote_unmatched_colored_cells([entry(d(1, 2))], cells, declared(jan=32))
    assert len(result.entries) == 1
    assert kinds(result.issues) == [UnmatchedColorDistributionOutOfRange, UnmatchedColorsIncomplete]


# ------------------------------------------------------------------
# Phases 8 and 9
# ------------------------------------------------------------------
def test_sick_by_gap_requires_prior_exhaustion():
    entries = [entry(d(1, 2)), entry(d(1, 3), category=SICK)]
    result = reclassify_sick_by_gap(entries, declared(jan=16), exhaustion_detected=False)
    assert result.entries == entries and result.issues == []


def test_sick_by_gap_fills_the_gap_oldest_first():
    entries = [
        entry(d(1, 2)),
        entry(d(1, 4), category=SICK),
        entry(d(1, 3), category=SICK),
        entry(d(1, 5), category=SICK, pinned=True, hours=2),
    ]
    result = reclassify_sick_by_gap(entries, declared(jan=16), exhaustion_detected=True, sheet="Jane Doe")
    out = by_day(result.entries)

    assert out[d(1, 3)].category == PtoCategory.PTO
    assert out[d(1, 4)].category == SICK
    assert out[d(1, 5)].category == SICK
    assert kinds(result.issues) == [ReclassifiedByGap]


def test_bereavement_by_gap_takes_smallest_approximate_entries_first():
    entries = [
        entry(d(1, 2)),
        entry(d(1, 3), category=BEREAVEMENT, method=APPROX),
        entry(d(1, 4), hours=4, category=BEREAVEMENT, method=APPROX),
        entry(d(1, 5), hours=4, category=BEREAVEMENT),
    ]
    result = reclassify_bereavement_by_gap(entries, declared(jan=12), "Jane Doe")
    out = by_day(result.entries)

    assert out[d(1, 4)].category == PtoCategory.PTO
    assert out[d(1, 3)].category == BEREAVEMENT
    assert out[d(1, 5)].category == BEREAVEMENT  # exact color is trusted
    assert tracked_total(result.entries, 1) == 12.0
    assert kinds(result.issues) == [ReclassifiedByGap]


def test_bereavement_too_large_for_the_gap_stays():
    entries = [entry(d(1, 2)), entry(d(1, 3), category=BEREAVEMENT, method=APPROX)]
    result = reclassify_bereavement_by_gap(entries, declared(jan=12))
    assert result.entries == entries


# ------------------------------------------------------------------
# Phase 10 and duplicates
# ------------------------------------------------------------------
def test_over_coloring_is_reported_with_relevant_notes():
    entries = [
        entry(d(1, 2)),
        replace(entry(d(1, 3)), notes='Cell note: "make up for Saturday"'),
        replace(entry(d(1, 4)), notes='Cell note: "vacation"'),
    ]
    result = detect_over_coloring(entries, declared(jan=16), "Jane Doe")

    assert result.entries == entries
    assert kinds(result.issues) == [OverColoring]
    issue = result.issues[0]
    assert issue.delta == 8.0
    assert len(issue.relevant_notes) == 1 and "make up for Saturday" in issue.relevant_notes[0]
    message = issue.render()
    assert "Jane Doe" in message and "month 1" in message
    assert "Declared total is authoritative" in message


def test_calendar_within_tolerance_is_not_over_colored():
    entries = [entry(d(1, 2)), entry(d(1, 3), hours=0.05)]
    assert detect_over_coloring(entries, declared(jan=8)).issues == []


def test_duplicate_leave_entries_are_flagged_not_removed():
    entries = [
        entry(d(1, 2)),
        entry(d(1, 2), hours=4, method=MatchMethod.INFERRED),
        entry(d(1, 2), category=SICK),
        entry(d(1, 6), hours=-8),
    ]
    issues = check_duplicate_entries(entries, "Jane Doe")
    assert kinds(issues) == [DuplicateEntry]
    assert (issues[0].day, issues[0].category, issues[0].count) == (d(1, 2), "PTO", 2)
