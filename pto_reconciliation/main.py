# pto_reconciliation/main.py
from __future__ import annotations

import argparse
import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional

from .config import ImportConfig
from .importer import WorkbookImportResult, import_workbook
from .io_excel import load_calendar_workbook, results_to_frames, write_results_workbook
from .issues import Severity
from .logging_config import setup_logging
from .schema import ResultSheetMap

logger = logging.getLogger(__name__)


def _print_summary(result: WorkbookImportResult) -> None:
    for sheet in result.sheets:
        severities = Counter(i.severity for i in sheet.issues)
        warned = sum(1 for a in sheet.acknowledgements if a.note)
        print(
            f"{sheet.employee.name}: {len(sheet.entries)} entries, "
            f"{len(sheet.acknowledgements)} acknowledgements ({warned} need review), "
            f"{severities[Severity.RESOLVED]} resolved / {severities[Severity.WARNING]} warnings / "
            f"{severities[Severity.ERROR]} errors"
        )
    for skipped in result.skipped:
        print(f"⚠️  {skipped.render()}")


def run(
    input_xlsx: Optional[str] = None,
    output_xlsx: Optional[str] = None,
    sheet_names: Optional[List[str]] = None,
    template_xlsx: Optional[str] = None,
) -> WorkbookImportResult:
    cfg = ImportConfig()
    input_xlsx = input_xlsx or cfg.input_xlsx
    output_xlsx = output_xlsx or cfg.output_xlsx

    workbook = load_calendar_workbook(input_xlsx)
    result = import_workbook(workbook, cfg, sheet_names=sheet_names)

    write_results_workbook(
        output_xlsx=output_xlsx,
        dfs=results_to_frames(result),
        sheet_map=ResultSheetMap(),
        template_xlsx=template_xlsx,
    )
    print(f"✅ Wrote reconciled PTO data for {len(result.sheets)} employee(s): {output_xlsx}")

    _print_summary(result)
    return result


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Reconcile legacy PTO calendar workbooks against declared monthly totals.")
    p.add_argument("input", type=Path, help="Calendar workbook (.xlsx)")
    p.add_argument("--out", type=Path, default=None, help="Results workbook (.xlsx)")
    p.add_argument("--sheet", action="append", default=None, help="Only import this sheet (repeatable)")
    p.add_argument("--template", type=Path, default=None, help="Results workbook whose sheet headers fix column order")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = p.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    out = args.out or args.input.with_name(f"{args.input.stem}_RECONCILED.xlsx")
    template = str(args.template) if args.template else None
    result = run(str(args.input), str(out), args.sheet, template)
    return 1 if result.skipped and not result.sheets else 0


if __name__ == "__main__":
    raise SystemExit(main())
