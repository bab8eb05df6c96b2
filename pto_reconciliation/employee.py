# pto_reconciliation/employee.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Optional, Tuple

from .config import DEFAULT_CONFIG, ImportConfig
from .declared_totals import read_carryover_hours, read_pto_rate
from .issues import HireDateMissing, HireDateSuffixStripped, ImportIssue, YearMissing
from .models import EmployeeInfo
from .utils import safe_float
from .worksheet import Worksheet

_HIRE_DATE_RE = re.compile(r"hire\s*date:\s*(.+)", re.IGNORECASE)
_PAREN_SUFFIX_RE = re.compile(r"\s*\(.*\)\s*$")
_SHORT_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")
_LONG_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def is_employee_sheet(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> bool:
    """Employee sheets carry a "Hire Date" label in row 2."""
    first, last = cfg.hire_date_scan_cols
    return any(
        "hire date" in ws.cell(2, col).text.lower()
        for col in range(first, last + 1)
    )


def smart_parse_date(text: str) -> Optional[date]:
    """
    Parse YYYY-MM-DD, M/D/YY or M/D/YYYY.

    Two-digit years: 00-49 -> 2000s, 50-99 -> 1900s.
    """
    text = text.strip()
    try:
        if re.match(r"^\d{4}-\d{2}-\d{2}$", text):
            return datetime.strptime(text, "%Y-%m-%d").date()

        match = _SHORT_DATE_RE.match(text)
        if match:
            month, day, year = (int(g) for g in match.groups())
            year = 2000 + year if year < 50 else 1900 + year
            return date(year, month, day)

        match = _LONG_DATE_RE.match(text)
        if match:
            month, day, year = (int(g) for g in match.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def parse_hire_date(raw: str, sheet: str) -> Tuple[Optional[date], List[ImportIssue]]:
    """Hire date from the "Hire Date: ..." label; strips suffixes like "(FT)"."""
    match = _HIRE_DATE_RE.search(raw or "")
    if not match:
        return None, []

    date_part = match.group(1).strip()
    parsed = smart_parse_date(date_part)
    if parsed is not None:
        return parsed, []

    stripped = _PAREN_SUFFIX_RE.sub("", date_part).strip()
    if stripped != date_part:
        parsed = smart_parse_date(stripped)
        if parsed is not None:
            return parsed, [HireDateSuffixStripped(sheet=sheet, raw=date_part, parsed=parsed)]
    return None, []


def _hire_date_text(value: object) -> str:
    if isinstance(value, datetime):
        return f"Hire Date: {value.date().isoformat()}"
    if isinstance(value, date):
        return f"Hire Date: {value.isoformat()}"
    return "" if value is None else str(value)


def read_employee_info(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> Tuple[EmployeeInfo, List[ImportIssue]]:
    """
    Employee header fields plus carryover and rate from the calc section.

    Raises CalcSectionNotFoundError when the calc section is missing.
    """
    name = ws.title.strip()
    issues: List[ImportIssue] = []

    year_value = safe_float(ws.cell(*cfg.year_cell).value)
    year = int(year_value) if year_value else 0
    if not year:
        issues.append(YearMissing(sheet=name))

    hire_date, hire_issues = parse_hire_date(_hire_date_text(ws.cell(*cfg.hire_date_cell).value), name)
    issues.extend(hire_issues)
    if hire_date is None:
        issues.append(HireDateMissing(sheet=name))

    info = EmployeeInfo(
        name=name,
        year=year,
        hire_date=hire_date,
        carryover_hours=read_carryover_hours(ws, cfg),
        spreadsheet_pto_rate=read_pto_rate(ws, cfg),
    )
    return info, issues


def generate_identifier(name: str) -> str:
    """Placeholder login for an imported employee: "first-last@example.com"."""
    parts = name.split()
    if not parts:
        return "unknown@example.com"
    first = parts[0].lower()
    if len(parts) == 1:
        return f"{first}@example.com"
    return f"{first}-{parts[-1].lower()}@example.com"
