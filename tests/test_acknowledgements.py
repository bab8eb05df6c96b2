from datetime import date

from conftest import declared, entry
from pto_reconciliation.acknowledgements import merge_acknowledgements, synthesize_acknowledgements
from pto_reconciliation.models import AckStatus, Acknowledgement, Actor, PtoCategory


def d(month: int, day: int) -> date:
    return date(2024, month, day)


def test_matching_month_gets_a_clean_pair():
    acks = synthesize_acknowledgements([entry(d(1, 2)), entry(d(1, 3))], declared(jan=16), 2024, "Jane Doe")
    assert acks == [
        Acknowledgement(month="2024-01", actor=Actor.EMPLOYEE),
        Acknowledgement(month="2024-01", actor=Actor.ADMIN),
    ]


def test_small_differences_are_within_tolerance():
    acks = synthesize_acknowledgements([entry(d(1, 2))], declared(jan=8.05), 2024)
    assert all(a.status == AckStatus.CLEAN for a in acks) and len(acks) == 2


def test_only_tracked_categories_count():
    entries = [entry(d(1, 2)), entry(d(1, 3), category=PtoCategory.SICK)]
    acks = synthesize_acknowledgements(entries, declared(jan=8), 2024)
    assert len(acks) == 2


def test_mismatch_gets_a_single_employee_warning():
    acks = synthesize_acknowledgements([], declared(feb=8), 2024, "Jane Doe")

    assert len(acks) == 1
    ack = acks[0]
    assert (ack.month, ack.actor, ack.status) == ("2024-02", Actor.EMPLOYEE, AckStatus.WARNING)
    assert ack.note == (
        "Calendar shows 0h but the declared total is 8h (Δ=-8h) for Jane Doe month 2. "
        "Requires manual review."
    )


def test_over_reported_month_shows_positive_delta():
    entries = [entry(d(3, n)) for n in (4, 5, 6)]
    acks = synthesize_acknowledgements(entries, declared(mar=16), 2024, "Jane Doe")
    assert "(Δ=+8h)" in acks[0].note


def test_worksheet_marks_fill_in_without_overriding():
    generated = synthesize_acknowledgements([entry(d(1, 2))], declared(jan=8, feb=8), 2024, "Jane Doe")
    marks = [
        Acknowledgement(month="2024-01", actor=Actor.EMPLOYEE),
        Acknowledgement(month="2024-02", actor=Actor.ADMIN),
        Acknowledgement(month="2024-05", actor=Actor.EMPLOYEE),
        Acknowledgement(month="2024-05", actor=Actor.EMPLOYEE),
        Acknowledgement(month="2024-05", actor=Actor.ADMIN),
    ]

    merged = merge_acknowledgements(generated, marks)

    assert merged[: len(generated)] == generated
    assert [(a.month, a.actor) for a in merged[len(generated):]] == [
        ("2024-05", Actor.EMPLOYEE),
        ("2024-05", Actor.ADMIN),
    ]
    feb = [a for a in merged if a.month == "2024-02"]
    assert [(a.actor, a.status) for a in feb] == [(Actor.EMPLOYEE, AckStatus.WARNING)]
