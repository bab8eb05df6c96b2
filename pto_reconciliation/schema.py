# pto_reconciliation/schema.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class ResultSheetMap:
    """
    Maps internal DataFrame keys -> sheet names of the results workbook.

    Conceptual role:
    - Centralizes the mapping between import results and the review workbook.
    - Keeps the column contract in one place (see the *_COLUMNS lists).
    """

    employees: str = "employees"
    entries: str = "pto_entries"
    acknowledgements: str = "acknowledgements"
    issues: str = "import_issues"

    def as_dict(self) -> Dict[str, str]:
        return {
            "employees": self.employees,
            "entries": self.entries,
            "acknowledgements": self.acknowledgements,
            "issues": self.issues,
        }


# ------------------------------------------------------------------
# Column order per table
# ------------------------------------------------------------------
EMPLOYEE_COLUMNS = [
    "employee",
    "identifier",
    "year",
    "hire_date",
    "carryover_hours",
    "spreadsheet_pto_rate",
]

ENTRY_COLUMNS = [
    "employee",
    "date",
    "category",
    "hours",
    "is_partial_color",
    "is_note_derived",
    "match_method",
    "notes",
]

ACKNOWLEDGEMENT_COLUMNS = [
    "employee",
    "month",
    "actor",
    "status",
    "note",
]

ISSUE_COLUMNS = [
    "sheet",
    "severity",
    "kind",
    "message",
]
