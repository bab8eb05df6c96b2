# pto_reconciliation/models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .errors import PinnedEntryError
from .issues import ImportIssue


# -----------------------------
# Categories and enums
# -----------------------------
class PtoCategory(str, Enum):
    """Closed set of leave categories recognised by the legend."""

    SICK = "Sick"
    PTO = "PTO"
    BEREAVEMENT = "Bereavement"
    JURY_DUTY = "Jury Duty"


class MatchMethod(str, Enum):
    """How an entry came to exist."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    INFERRED = "inferred"


class Actor(str, Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


class AckStatus(str, Enum):
    CLEAN = "clean"
    WARNING = "warning"


# -----------------------------
# Entities
# -----------------------------
@dataclass(frozen=True)
class Legend:
    """Color -> category map of one worksheet plus the "Partial PTO" colors."""

    colors: Dict[str, PtoCategory] = field(default_factory=dict)
    partial_colors: FrozenSet[str] = frozenset()

    def __len__(self) -> int:
        return len(self.colors)


@dataclass(frozen=True)
class DeclaredMonthlyTotal:
    """Hand-maintained monthly PTO figure; ground truth for reconciliation."""

    month: int
    declared_hours: float


@dataclass(frozen=True)
class PtoEntry:
    """
    One day of leave (or, with negative hours, one worked-credit day).

    Entries are immutable. Phases build changed copies through `adjusted`,
    which refuses to touch pinned (note-derived) entries.
    """

    day: date
    category: PtoCategory
    hours: float
    notes: str = ""
    is_partial_color: bool = False
    is_note_derived: bool = False
    match_method: MatchMethod = MatchMethod.EXACT
    # Raw text of the cell note the entry came from, if any.
    cell_note: str = ""

    @property
    def month(self) -> int:
        return self.day.month

    @property
    def is_credit(self) -> bool:
        return self.hours < 0

    def adjusted(
        self,
        hours: Optional[float] = None,
        category: Optional[PtoCategory] = None,
        note: str = "",
    ) -> "PtoEntry":
        """Return a copy with new hours/category and `note` appended."""
        if self.is_note_derived:
            raise PinnedEntryError(
                f"Entry on {self.day.isoformat()} has note-derived hours and cannot be changed"
            )
        return replace(
            self,
            hours=self.hours if hours is None else hours,
            category=self.category if category is None else category,
            notes=join_notes(self.notes, note),
        )


@dataclass(frozen=True)
class UnmatchedNotedCell:
    """Calendar cell with a note but no legend color."""

    day: date
    note: str


@dataclass(frozen=True)
class UnmatchedColoredCell:
    """Calendar cell with a fill that is not in the legend."""

    day: date
    color: str
    note: str = ""


@dataclass(frozen=True)
class WorkedCandidate:
    """Cell that probably records work on a non-work day."""

    day: date
    note: str

    @property
    def month(self) -> int:
        return self.day.month


@dataclass(frozen=True)
class Acknowledgement:
    month: str  # YYYY-MM
    actor: Actor
    status: AckStatus = AckStatus.CLEAN
    note: str = ""


@dataclass(frozen=True)
class EmployeeInfo:
    name: str
    year: int
    hire_date: Optional[date] = None
    carryover_hours: float = 0.0
    # Daily PTO accrual rate as typed into the sheet (December row).
    spreadsheet_pto_rate: float = 0.0


@dataclass
class SheetImportResult:
    """Everything extracted from one employee worksheet."""

    employee: EmployeeInfo
    entries: List[PtoEntry]
    acknowledgements: List[Acknowledgement]
    issues: List[ImportIssue] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        """Issues rendered as self-contained operator messages, in order."""
        return [issue.render() for issue in self.issues]


def join_notes(*parts: str) -> str:
    return " ".join(p for p in parts if p)
