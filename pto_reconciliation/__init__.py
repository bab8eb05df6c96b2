"""
PTO Calendar Reconciliation Package

This package imports legacy employee PTO calendars (color-coded
spreadsheet grids, one worksheet per employee) and reconciles the
color-derived entries against the hand-maintained declared monthly
totals, which are treated as ground truth.

Core entry points:
- parse_employee_sheet(): import one worksheet
- import_workbook(): import every employee sheet of a workbook
- run_pipeline(): the reconciliation phases on their own
- ImportConfig: template layout and thresholds
"""

from .config import DEFAULT_CONFIG, ImportConfig
from .importer import WorkbookImportResult, import_workbook, parse_employee_sheet
from .models import PtoCategory, PtoEntry, SheetImportResult
from .reconciliation import PIPELINE, run_pipeline

__all__ = [
    "DEFAULT_CONFIG",
    "ImportConfig",
    "PIPELINE",
    "PtoCategory",
    "PtoEntry",
    "SheetImportResult",
    "WorkbookImportResult",
    "import_workbook",
    "parse_employee_sheet",
    "run_pipeline",
]
