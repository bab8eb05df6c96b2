# pto_reconciliation/acknowledgements.py
"""
Acknowledgement records for an imported year.

A month whose reconciled calendar matches its declared total is imported as
acknowledged by both employee and admin. A month that still disagrees gets a
single employee acknowledgement with WARNING status and a note, so someone
has to look at it before the admin signs off.
"""
from __future__ import annotations

from typing import Iterable, List, Sequence, Set, Tuple

from .config import DEFAULT_CONFIG, ImportConfig
from .models import AckStatus, Acknowledgement, Actor, DeclaredMonthlyTotal, PtoEntry
from .reconciliation import tracked_total
from .utils import fmt_hours, month_key, round2


def synthesize_acknowledgements(
    entries: Sequence[PtoEntry],
    declared: Sequence[DeclaredMonthlyTotal],
    year: int,
    sheet: str = "",
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> List[Acknowledgement]:
    acks: List[Acknowledgement] = []

    for calc in declared:
        month = month_key(year, calc.month)
        calendar_total = round2(tracked_total(entries, calc.month, cfg))
        delta = round2(calendar_total - calc.declared_hours)

        if abs(delta) <= cfg.ack_tolerance:
            acks.append(Acknowledgement(month=month, actor=Actor.EMPLOYEE))
            acks.append(Acknowledgement(month=month, actor=Actor.ADMIN))
            continue

        sign = "+" if delta > 0 else ""
        note = (
            f"Calendar shows {fmt_hours(calendar_total)}h but the declared total is "
            f"{fmt_hours(calc.declared_hours)}h (Δ={sign}{fmt_hours(delta)}h) for {sheet} "
            f"month {calc.month}. Requires manual review."
        )
        acks.append(
            Acknowledgement(month=month, actor=Actor.EMPLOYEE, status=AckStatus.WARNING, note=note)
        )

    return acks


def _key(ack: Acknowledgement) -> Tuple[str, Actor]:
    return ack.month, ack.actor


def merge_acknowledgements(
    generated: Sequence[Acknowledgement],
    marks: Iterable[Acknowledgement],
) -> List[Acknowledgement]:
    """
    Generated acknowledgements followed by worksheet checkmarks.

    A checkmark is dropped when its month/actor pair was already generated,
    and an admin checkmark is dropped for any month that carries a warning.
    """
    taken: Set[Tuple[str, Actor]] = {_key(a) for a in generated}
    warned = {
        a.month for a in generated
        if a.actor == Actor.EMPLOYEE and a.status == AckStatus.WARNING
    }

    merged = list(generated)
    for mark in marks:
        if _key(mark) in taken:
            continue
        if mark.actor == Actor.ADMIN and mark.month in warned:
            continue
        merged.append(mark)
        taken.add(_key(mark))
    return merged
