# pto_reconciliation/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

from .models import PtoCategory


def _project_root() -> Path:
    """Return the project root (directory containing this file)."""
    return Path(__file__).resolve().parent


@dataclass(frozen=True)
class ImportConfig:
    """
    Configuration for importing legacy PTO calendar workbooks.

    Conceptual role:
    - Encodes the fixed layout of the legacy spreadsheet template.
    - Holds the thresholds used by color matching and reconciliation.
    - Values are properties of the template, not tuning knobs.

    NOTE:
    - Rows and columns are 1-indexed, as in Excel.
    - Thresholds were taken from real workbooks; change them only together
      with the tests that pin them.
    """

    # ------------------------------------------------------------------
    # Calendar grid layout (4 row groups x 3 column groups)
    # ------------------------------------------------------------------
    col_starts: Tuple[int, ...] = (2, 10, 18)
    row_group_starts: Tuple[int, ...] = (4, 13, 22, 31)
    # Day numbers start two rows below the month header row.
    date_row_offset: int = 2
    day1_scan_range: int = 3

    # ------------------------------------------------------------------
    # Legend block
    # ------------------------------------------------------------------
    legend_col: int = 26  # Z
    legend_scan_max_row: int = 30
    legend_max_entries: int = 10
    legend_labels: Dict[str, PtoCategory] = field(default_factory=lambda: {
        "Sick": PtoCategory.SICK,
        "Full PTO": PtoCategory.PTO,
        "Partial PTO": PtoCategory.PTO,
        "Planned PTO": PtoCategory.PTO,
        "Bereavement": PtoCategory.BEREAVEMENT,
        "Jury Duty": PtoCategory.JURY_DUTY,
    })
    partial_label: str = "Partial PTO"

    # ------------------------------------------------------------------
    # PTO calculation section
    # ------------------------------------------------------------------
    calc_anchor_rows: Tuple[int, ...] = (42, 43)
    calc_anchor_col: int = 2  # B
    declared_hours_col: int = 19  # S
    carryover_col: int = 12  # L (January row)
    pto_rate_col: int = 6  # F (December row)
    emp_ack_col: int = 24  # X
    admin_ack_col: int = 25  # Y
    ack_mark: str = "✓"

    # ------------------------------------------------------------------
    # Employee header cells
    # ------------------------------------------------------------------
    year_cell: Tuple[int, int] = (2, 2)  # B2
    hire_date_cell: Tuple[int, int] = (2, 18)  # R2
    hire_date_scan_cols: Tuple[int, int] = (18, 24)

    # ------------------------------------------------------------------
    # Color matching
    # ------------------------------------------------------------------
    max_color_distance: float = 100.0
    min_chroma_for_approx: int = 40

    # ------------------------------------------------------------------
    # Hours and allowances
    # ------------------------------------------------------------------
    full_day_hours: float = 8.0
    max_single_entry_hours: float = 24.0
    max_worked_hours: float = 12.0
    annual_sick_allowance: float = 24.0
    tracked_categories: Tuple[PtoCategory, ...] = (PtoCategory.PTO,)

    # ------------------------------------------------------------------
    # Reconciliation thresholds
    # ------------------------------------------------------------------
    # Joint inference: canonical values tried before the constrained solve.
    canonical_worked_hours: float = 8.0
    canonical_partial_hours: float = 4.0
    min_worked_hours: float = 0.5
    # A month must be short by about a full day before unmatched colored
    # cells are promoted to PTO.
    promotion_gap_hours: float = 7.9
    sick_gap_tolerance: float = 0.1
    bereavement_gap_tolerance: float = 0.5
    ack_tolerance: float = 0.1
    over_coloring_tolerance: float = 0.1

    # ------------------------------------------------------------------
    # Input / output paths
    # ------------------------------------------------------------------
    input_xlsx: str = field(
        default_factory=lambda: str(_project_root() / "data" / "PTO_Calendars.xlsx")
    )
    output_xlsx: str = field(
        default_factory=lambda: str(_project_root() / "data" / "PTO_Calendars_RECONCILED.xlsx")
    )


DEFAULT_CONFIG = ImportConfig()
