# pto_reconciliation/importer.py
"""
Per-sheet orchestration: worksheet in, SheetImportResult out.

Conceptual role:
- Runs the readers (legend, employee header, calendar, declared totals),
  the reconciliation pipeline and the acknowledgement synthesizer in order.
- Each worksheet is processed independently; nothing is shared between
  sheets except the workbook theme.

Robustness:
- Sheets that do not follow the template raise SheetStructureError;
  `import_workbook` logs them, records a SheetSkipped issue and moves on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from .acknowledgements import merge_acknowledgements, synthesize_acknowledgements
from .classifier import CalendarParse, classify_calendar
from .colors import DEFAULT_OFFICE_THEME, ThemeColorTable, parse_theme_colors
from .config import DEFAULT_CONFIG, ImportConfig
from .declared_totals import read_acknowledgement_marks, read_declared_totals
from .employee import is_employee_sheet, read_employee_info
from .errors import SheetStructureError
from .issues import ImportIssue, LegendEmpty, SheetSkipped
from .legend import parse_legend
from .models import SheetImportResult
from .reconciliation import run_pipeline
from .worksheet import OpenpyxlSheet, Worksheet

logger = logging.getLogger(__name__)


@dataclass
class WorkbookImportResult:
    sheets: List[SheetImportResult] = field(default_factory=list)
    # Sheet-level failures; the sheets themselves are not in `sheets`.
    skipped: List[SheetSkipped] = field(default_factory=list)

    @property
    def issues(self) -> List[ImportIssue]:
        out: List[ImportIssue] = list(self.skipped)
        for sheet in self.sheets:
            out.extend(sheet.issues)
        return out


def parse_employee_sheet(
    ws: Worksheet,
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> SheetImportResult:
    """
    Import one employee worksheet.

    Raises LegendNotFoundError / CalcSectionNotFoundError (both
    SheetStructureError) when a structural anchor is missing.
    """
    issues: List[ImportIssue] = []

    legend = parse_legend(ws, theme, cfg)
    if not legend:
        issues.append(LegendEmpty(sheet=ws.title))

    employee, employee_issues = read_employee_info(ws, cfg)
    issues.extend(employee_issues)

    # Without a year the grid cannot be aligned to dates.
    if employee.year:
        calendar = classify_calendar(ws, employee.year, legend, theme, cfg)
    else:
        calendar = CalendarParse()
    issues.extend(calendar.issues)

    declared = read_declared_totals(ws, cfg)
    state = run_pipeline(
        calendar.entries,
        declared,
        unmatched_noted=calendar.unmatched_noted,
        unmatched_colored=calendar.unmatched_colored,
        worked=calendar.worked,
        sheet=ws.title,
        cfg=cfg,
    )
    issues.extend(state.issues)

    acknowledgements = []
    if employee.year:
        generated = synthesize_acknowledgements(state.entries, declared, employee.year, ws.title, cfg)
        marks = read_acknowledgement_marks(ws, employee.year, cfg)
        acknowledgements = merge_acknowledgements(generated, marks)

    result = SheetImportResult(
        employee=employee,
        entries=state.entries,
        acknowledgements=acknowledgements,
        issues=issues,
    )
    logger.info(
        f'Sheet "{ws.title}": {len(result.entries)} entries, '
        f"{len(result.acknowledgements)} acknowledgements, {len(result.issues)} issue(s)"
    )
    return result


def extract_theme_colors(workbook: Any) -> ThemeColorTable:
    """Theme table of an openpyxl workbook; default palette if it has none."""
    return parse_theme_colors(getattr(workbook, "loaded_theme", None))


def import_workbook(
    workbook: Any,
    cfg: ImportConfig = DEFAULT_CONFIG,
    sheet_names: Optional[Sequence[str]] = None,
) -> WorkbookImportResult:
    """
    Import every employee sheet of an openpyxl workbook.

    Sheets without a "Hire Date" label are not employee sheets and are
    ignored silently. `sheet_names` restricts the import to those sheets.
    """
    theme = extract_theme_colors(workbook)
    result = WorkbookImportResult()

    for ws in workbook.worksheets:
        if sheet_names is not None and ws.title not in sheet_names:
            continue
        sheet = OpenpyxlSheet(ws)
        if not is_employee_sheet(sheet, cfg):
            logger.debug(f'Sheet "{ws.title}" is not an employee sheet, skipping')
            continue
        try:
            result.sheets.append(parse_employee_sheet(sheet, theme, cfg))
        except SheetStructureError as e:
            skipped = SheetSkipped(sheet=ws.title, reason=str(e))
            logger.error(skipped.render())
            result.skipped.append(skipped)

    return result
