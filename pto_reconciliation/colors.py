# pto_reconciliation/colors.py
"""
Theme color resolution and legend color matching.

Workbooks usually store fills as theme slot + tint rather than literal RGB,
so every color is resolved to an absolute "FFRRGGBB" string before it is
compared against the legend.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, ImportConfig
from .models import PtoCategory
from .utils import clip, round_half_up
from .worksheet import ColorRef, indexed_argb

logger = logging.getLogger(__name__)

ThemeColorTable = Dict[int, str]

# Standard Office 2010 palette, used when the workbook has no theme part.
DEFAULT_OFFICE_THEME: Mapping[int, str] = {
    0: "FFFFFFFF",
    1: "FF000000",
    2: "FFEEECE1",
    3: "FF1F497D",
    4: "FF4F81BD",
    5: "FFC0504D",
    6: "FF9BBB59",
    7: "FF8064A2",
    8: "FF4BACC6",
    9: "FFF79646",
    10: "FF0000FF",
    11: "FF800080",
}

_DRAWINGML_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"

# Theme XML lists dk1, lt1, dk2, lt2, ... but cells index lt1 as 0, dk1 as 1.
_SCHEME_SLOTS: Tuple[Tuple[str, int], ...] = (
    ("dk1", 1),
    ("lt1", 0),
    ("dk2", 3),
    ("lt2", 2),
    ("accent1", 4),
    ("accent2", 5),
    ("accent3", 6),
    ("accent4", 7),
    ("accent5", 8),
    ("accent6", 9),
    ("hlink", 10),
    ("folHlink", 11),
)


# ------------------------------------------------------------------
# Theme parsing
# ------------------------------------------------------------------

def parse_theme_colors(theme_xml: Optional[str | bytes]) -> ThemeColorTable:
    """
    Build the theme index -> ARGB table from a workbook's theme1.xml.

    Robustness:
    - Missing or malformed XML falls back to the default Office palette
    - Slots the theme does not define are taken from the default palette
    """
    table: ThemeColorTable = dict(DEFAULT_OFFICE_THEME)
    if not theme_xml:
        return table

    try:
        root = ET.fromstring(theme_xml)
    except ET.ParseError as e:
        logger.warning(f"Could not parse theme XML, using default palette: {e}")
        return table

    scheme = root.find(f".//{{{_DRAWINGML_NS}}}clrScheme")
    if scheme is None:
        return table

    for tag, index in _SCHEME_SLOTS:
        slot = scheme.find(f"{{{_DRAWINGML_NS}}}{tag}")
        if slot is None:
            continue
        hex_value = None
        sys_clr = slot.find(f"{{{_DRAWINGML_NS}}}sysClr")
        if sys_clr is not None:
            hex_value = sys_clr.get("lastClr")
        if not hex_value:
            srgb = slot.find(f"{{{_DRAWINGML_NS}}}srgbClr")
            if srgb is not None:
                hex_value = srgb.get("val")
        if hex_value and len(hex_value) == 6:
            table[index] = f"FF{hex_value.upper()}"

    return table


# ------------------------------------------------------------------
# Color arithmetic
# ------------------------------------------------------------------

def argb_to_rgb(argb: str) -> Tuple[int, int, int]:
    hex_value = argb[2:] if len(argb) == 8 else argb
    return int(hex_value[0:2], 16), int(hex_value[2:4], 16), int(hex_value[4:6], 16)


def rgb_to_argb(r: int, g: int, b: int) -> str:
    return "FF" + "".join(f"{int(clip(v, 0, 255)):02X}" for v in (r, g, b))


def apply_tint(argb: str, tint: float) -> str:
    """Lighten (tint > 0) toward white or darken (tint < 0) toward black."""
    r, g, b = argb_to_rgb(argb)
    if tint > 0:
        channels = [round_half_up(v + (255 - v) * tint) for v in (r, g, b)]
    elif tint < 0:
        channels = [round_half_up(v * (1 + tint)) for v in (r, g, b)]
    else:
        channels = [r, g, b]
    return rgb_to_argb(*channels)


def resolve_color(
    ref: Optional[ColorRef],
    theme: Mapping[int, str] = DEFAULT_OFFICE_THEME,
) -> Optional[str]:
    """Resolve a stored color reference to an absolute ARGB string."""
    if ref is None:
        return None
    if ref.argb:
        return ref.argb.upper()
    if ref.theme is not None:
        base = theme.get(ref.theme)
        if base is None:
            return None
        return apply_tint(base, ref.tint) if ref.tint else base
    if ref.indexed is not None:
        return indexed_argb(ref.indexed)
    return None


def color_distance(argb1: str, argb2: str) -> float:
    """Euclidean distance in RGB space (alpha ignored)."""
    a = np.array(argb_to_rgb(argb1), dtype=float)
    b = np.array(argb_to_rgb(argb2), dtype=float)
    return float(np.linalg.norm(a - b))


def chroma(argb: str) -> int:
    r, g, b = argb_to_rgb(argb)
    return max(r, g, b) - min(r, g, b)


def find_closest_legend_color(
    argb: str,
    legend_colors: Mapping[str, PtoCategory],
    cfg: ImportConfig = DEFAULT_CONFIG,
) -> Optional[PtoCategory]:
    """
    Rank every legend color by distance to `argb` and return the nearest
    category, or None.

    Near-gray colors (chroma below the minimum) never match approximately;
    they are too easily confused with white, gray, or shaded borders.
    A match must be strictly closer than `max_color_distance`. On equal
    distance the first legend color wins.
    """
    if not legend_colors or chroma(argb) < cfg.min_chroma_for_approx:
        return None

    keys = list(legend_colors.keys())
    palette = np.array([argb_to_rgb(k) for k in keys], dtype=float)
    target = np.array(argb_to_rgb(argb), dtype=float)
    distances = np.linalg.norm(palette - target, axis=1)

    # argmin returns the first index among equal minima.
    best = int(np.argmin(distances))
    if distances[best] >= cfg.max_color_distance:
        return None
    return legend_colors[keys[best]]
