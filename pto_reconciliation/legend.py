# pto_reconciliation/legend.py
from __future__ import annotations

import logging
from typing import Dict, Mapping, Set

from .colors import DEFAULT_OFFICE_THEME, resolve_color
from .config import DEFAULT_CONFIG, ImportConfig
from .errors import LegendNotFoundError
from .models import Legend, PtoCategory
from .worksheet import Worksheet

logger = logging.getLogger(__name__)


def find_legend_header_row(ws: Worksheet, cfg: ImportConfig = DEFAULT_CONFIG) -> int:
    """Row of the "Legend" header in the legend column; raises if absent."""
    for row in range(1, cfg.legend_scan_max_row + 1):
        if ws.cell(row, cfg.legend_col).text.lower() == "legend":
            return row
    raise LegendNotFoundError(
        f'Legend header not found in column {cfg.legend_col} (rows 1-{cfg.legend_scan_max_row}) '
        f'on sheet "{ws.title}"'
    )


def parse_legend(
    ws: Worksheet,
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Legend:
    """
    Read the legend block below the header.

    Rows are read until the first blank label. Unknown labels are skipped,
    several labels may map to one category ("Full PTO", "Partial PTO",
    "Planned PTO" are all PTO), and "Partial PTO" colors are kept apart so
    partial-day entries can be adjusted later.
    """
    header_row = find_legend_header_row(ws, cfg)
    colors: Dict[str, PtoCategory] = {}
    partial: Set[str] = set()

    for row in range(header_row + 1, header_row + 1 + cfg.legend_max_entries):
        cell = ws.cell(row, cfg.legend_col)
        label = cell.text
        if not label:
            break

        category = cfg.legend_labels.get(label)
        if category is None:
            logger.debug(f'Sheet "{ws.title}": ignoring legend label "{label}"')
            continue
        if cell.fill is None:
            continue

        argb = resolve_color(cell.fill.fg, theme)
        if not argb:
            continue
        colors[argb] = category
        if label == cfg.partial_label:
            partial.add(argb)

    logger.debug(f'Sheet "{ws.title}": legend has {len(colors)} color(s), {len(partial)} partial')
    return Legend(colors=colors, partial_colors=frozenset(partial))
