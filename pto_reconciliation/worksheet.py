# pto_reconciliation/worksheet.py
"""
Worksheet access used by the importer.

The importer reads cells through the small `Worksheet` protocol (value, fill,
note per (row, column)) so it does not depend on how cells were loaded.

- GridSheet: in-memory cells, for callers that already hold the data.
- OpenpyxlSheet: adapter over an openpyxl worksheet.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple

from openpyxl.styles.colors import COLOR_INDEX
from openpyxl.worksheet.worksheet import Worksheet as OpenpyxlWorksheet

from .utils import safe_float


@dataclass(frozen=True)
class ColorRef:
    """
    A cell color as stored in the file.

    Exactly one addressing mode is used: an explicit ARGB literal, a theme
    slot plus tint, or a legacy indexed palette entry.
    """

    argb: Optional[str] = None
    theme: Optional[int] = None
    tint: float = 0.0
    indexed: Optional[int] = None


@dataclass(frozen=True)
class CellFill:
    fg: Optional[ColorRef] = None
    bg: Optional[ColorRef] = None


@dataclass(frozen=True)
class CellData:
    value: Any = None
    fill: Optional[CellFill] = None
    note: str = ""

    @property
    def text(self) -> str:
        return "" if self.value is None else str(self.value).strip()


EMPTY_CELL = CellData()


class Worksheet(Protocol):
    title: str

    def cell(self, row: int, column: int) -> CellData:
        ...


def cell_number(cell: CellData) -> Optional[float]:
    """Numeric value of a cell (numbers or numeric strings), else None."""
    return safe_float(cell.value)


# ------------------------------------------------------------------
# In-memory worksheet
# ------------------------------------------------------------------
@dataclass
class GridSheet:
    """Worksheet backed by a dict of (row, column) -> CellData."""

    title: str
    cells: Dict[Tuple[int, int], CellData] = field(default_factory=dict)

    def cell(self, row: int, column: int) -> CellData:
        return self.cells.get((row, column), EMPTY_CELL)

    def set(
        self,
        row: int,
        column: int,
        value: Any = None,
        fill: Optional[CellFill] = None,
        note: str = "",
    ) -> None:
        existing = self.cells.get((row, column), EMPTY_CELL)
        self.cells[(row, column)] = CellData(
            value=value if value is not None else existing.value,
            fill=fill if fill is not None else existing.fill,
            note=note or existing.note,
        )


def solid(argb: Optional[str] = None, theme: Optional[int] = None, tint: float = 0.0) -> CellFill:
    """Shorthand for a solid pattern fill with the given foreground color."""
    return CellFill(fg=ColorRef(argb=argb, theme=theme, tint=tint))


# ------------------------------------------------------------------
# openpyxl adapter
# ------------------------------------------------------------------
def _color_ref(color: Any) -> Optional[ColorRef]:
    """Convert an openpyxl Color into a ColorRef."""
    if color is None:
        return None
    kind = getattr(color, "type", None)
    tint = float(getattr(color, "tint", 0.0) or 0.0)
    if kind == "rgb":
        rgb = color.rgb
        if isinstance(rgb, str) and len(rgb) in (6, 8):
            rgb = rgb.upper()
            return ColorRef(argb=rgb if len(rgb) == 8 else f"FF{rgb}")
        return None
    if kind == "theme":
        return ColorRef(theme=int(color.theme), tint=tint)
    if kind == "indexed":
        return ColorRef(indexed=int(color.indexed))
    return None


def _cell_fill(fill: Any) -> Optional[CellFill]:
    if fill is None or getattr(fill, "fill_type", None) is None:
        return None
    return CellFill(fg=_color_ref(fill.fgColor), bg=_color_ref(fill.bgColor))


def _cell_note(comment: Any) -> str:
    if comment is None:
        return ""
    return str(comment.text or "")


class OpenpyxlSheet:
    """Read-only view of an openpyxl worksheet through the Worksheet protocol."""

    def __init__(self, ws: OpenpyxlWorksheet):
        self._ws = ws
        self.title = ws.title
        self._cache: Dict[Tuple[int, int], CellData] = {}

    def cell(self, row: int, column: int) -> CellData:
        key = (row, column)
        if key not in self._cache:
            c = self._ws.cell(row=row, column=column)
            self._cache[key] = CellData(
                value=c.value,
                fill=_cell_fill(c.fill),
                note=_cell_note(c.comment),
            )
        return self._cache[key]


def indexed_argb(index: int) -> Optional[str]:
    """ARGB for a legacy indexed color; 64 and up are system colors."""
    if 0 <= index < min(64, len(COLOR_INDEX)):
        return "FF" + COLOR_INDEX[index][2:].upper()
    return None
