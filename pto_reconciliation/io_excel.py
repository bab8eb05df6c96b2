# pto_reconciliation/io_excel.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from .employee import generate_identifier
from .importer import WorkbookImportResult
from .schema import (
    ACKNOWLEDGEMENT_COLUMNS,
    EMPLOYEE_COLUMNS,
    ENTRY_COLUMNS,
    ISSUE_COLUMNS,
    ResultSheetMap,
)


def load_calendar_workbook(path: str | Path) -> Workbook:
    """
    Open a legacy calendar workbook.

    NOTE:
    - Not read-only: read-only worksheets do not expose fills or comments.
    - Formulas are read as their cached values.
    """
    return load_workbook(path, data_only=True)


def _clean_colname(x: object) -> str:
    """Normalize Excel header cell to a clean column name."""
    if x is None:
        return ""
    s = str(x).strip()
    if s.lower() in {"none", "nan", "null"}:
        return ""
    return s


def template_columns(ws: Worksheet) -> List[str]:
    """Column names from a template sheet's header row; blank headers dropped."""
    header = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
    return [c for c in (_clean_colname(x) for x in header) if c]


def ensure_columns(df: pd.DataFrame, cols: List[str]) -> pd.DataFrame:
    """
    Ensure df has all columns in `cols`:
    - Add missing columns as NA
    - Drop extra columns not in `cols`
    - Return in the exact `cols` order
    """
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]

    for c in cols:
        if c not in df.columns:
            df[c] = pd.NA

    return df[cols]


# ------------------------------------------------------------------
# Results -> DataFrames
# ------------------------------------------------------------------
def results_to_frames(result: WorkbookImportResult) -> Dict[str, pd.DataFrame]:
    """Flatten an import into one DataFrame per results-workbook table."""
    employees, entries, acks = [], [], []

    for sheet in result.sheets:
        emp = sheet.employee
        employees.append({
            "employee": emp.name,
            "identifier": generate_identifier(emp.name),
            "year": emp.year or None,
            "hire_date": emp.hire_date.isoformat() if emp.hire_date else None,
            "carryover_hours": emp.carryover_hours,
            "spreadsheet_pto_rate": emp.spreadsheet_pto_rate,
        })
        for e in sorted(sheet.entries, key=lambda x: (x.day, x.category.value)):
            entries.append({
                "employee": emp.name,
                "date": e.day.isoformat(),
                "category": e.category.value,
                "hours": e.hours,
                "is_partial_color": e.is_partial_color,
                "is_note_derived": e.is_note_derived,
                "match_method": e.match_method.value,
                "notes": e.notes,
            })
        for a in sheet.acknowledgements:
            acks.append({
                "employee": emp.name,
                "month": a.month,
                "actor": a.actor.value,
                "status": a.status.value,
                "note": a.note or None,
            })

    issues = [
        {"sheet": i.sheet, "severity": i.severity.value, "kind": i.kind, "message": i.render()}
        for i in result.issues
    ]

    return {
        "employees": ensure_columns(pd.DataFrame(employees), EMPLOYEE_COLUMNS),
        "entries": ensure_columns(pd.DataFrame(entries), ENTRY_COLUMNS),
        "acknowledgements": ensure_columns(pd.DataFrame(acks), ACKNOWLEDGEMENT_COLUMNS),
        "issues": ensure_columns(pd.DataFrame(issues), ISSUE_COLUMNS),
    }


def write_df_to_sheet(ws: Worksheet, df: pd.DataFrame) -> None:
    """
    Overwrite worksheet with DataFrame content.

    Robustness:
    - Clears entire sheet (all rows)
    - Writes header + rows starting at A1
    - Coerces numpy scalars to Python types for openpyxl compatibility
    """
    if ws.max_row and ws.max_row > 0:
        ws.delete_rows(1, ws.max_row)

    # Explicit coordinates: append() keeps counting from the rows deleted above.
    for j, c in enumerate(df.columns, start=1):
        ws.cell(row=1, column=j, value=str(c))

    for i, row in enumerate(df.itertuples(index=False, name=None), start=2):
        for j, v in enumerate(row, start=1):
            ws.cell(row=i, column=j, value=_to_cell_value(v))


def _to_cell_value(v: object) -> object:
    if pd.isna(v):
        return None
    if hasattr(v, "item"):
        # pandas/numpy scalar -> python scalar
        return v.item()
    return v


def write_results_workbook(
    output_xlsx: str | Path,
    dfs: Mapping[str, pd.DataFrame],
    sheet_map: Optional[ResultSheetMap] = None,
    template_xlsx: Optional[str | Path] = None,
) -> None:
    """
    Write result tables into an .xlsx workbook.

    Behavior:
    - With `template_xlsx`, its sheets are reused and their header rows
      define column order (missing columns are added as empty)
    - Otherwise a fresh workbook is created
    """
    sheet_map = sheet_map or ResultSheetMap()

    if template_xlsx is not None:
        wb = load_workbook(template_xlsx)
    else:
        wb = Workbook()
        wb.remove(wb.active)

    for df_key, sheet_name in sheet_map.as_dict().items():
        if df_key not in dfs:
            raise KeyError(f"DataFrame key '{df_key}' missing from dfs. Available: {list(dfs.keys())}")

        df = dfs[df_key].copy()
        df.columns = [str(c).strip() for c in df.columns]

        if sheet_name in wb.sheetnames:
            ws = wb[sheet_name]
            cols = template_columns(ws)
            if cols:
                df = ensure_columns(df, cols)
        else:
            ws = wb.create_sheet(sheet_name)
        write_df_to_sheet(ws, df)

    wb.save(output_xlsx)
