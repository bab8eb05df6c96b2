# pto_reconciliation/notes.py
"""Parsing of hour hints out of free-text cell notes."""
from __future__ import annotations

import re
from typing import Optional

from .config import DEFAULT_CONFIG, ImportConfig
from .utils import round2

_STRICT_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?|\.\d+)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE)
_BARE_NUMBER_RE = re.compile(r"(?<![A-Za-z])(\d+(?:\.\d+)?|\.\d+)(?![A-Za-z\d])")

_WORKED_PAREN_RE = re.compile(r"\(\+?\s*(\d+(?:\.\d+)?)\s*hours?\s*(?:PTO)?\s*\)", re.IGNORECASE)
_WORKED_MAKEUP_RE = re.compile(r"make\s*up\s+(\d+(?:\.\d+)?)", re.IGNORECASE)
_WORKED_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b", re.IGNORECASE)
_WORKED_RANGE_RE = re.compile(
    r"worked\s+(?:from\s+)?(\d{1,2})(?::(\d{2}))?\s*(?:am|pm)?\s*[-–]+\s*"
    r"(\d{1,2})(?::(\d{2}))?\s*(?:am|pm)?",
    re.IGNORECASE,
)

WORKED_RE = re.compile(r"worked", re.IGNORECASE)
WORKED_WORD_RE = re.compile(r"\bworked\b", re.IGNORECASE)
PTO_WORD_RE = re.compile(r"\bPTO\b", re.IGNORECASE)
SICK_WORD_RE = re.compile(r"\bsick\b", re.IGNORECASE)
# Note text that usually explains calendar hours above the declared total.
OVERCOLOR_NOTE_RE = re.compile(r"worked|make\s*up|makeup|offset", re.IGNORECASE)


def _in_range(value: float, cfg: ImportConfig) -> bool:
    return 0 < value <= cfg.max_single_entry_hours


def strict_hours(note: str, cfg: ImportConfig = DEFAULT_CONFIG) -> Optional[float]:
    """Hours from an explicit "<number> hours|hrs|h" token, else None."""
    match = _STRICT_HOURS_RE.search(note)
    if match:
        value = float(match.group(1))
        if _in_range(value, cfg):
            return value
    return None


def is_strict_hours(note: str, cfg: ImportConfig = DEFAULT_CONFIG) -> bool:
    """True when the note states hours unambiguously; such entries are pinned."""
    return strict_hours(note, cfg) is not None


def parse_hours_from_note(note: str, cfg: ImportConfig = DEFAULT_CONFIG) -> Optional[float]:
    """
    Best-effort hour hint: an explicit hours token first, then a bare number
    that is not part of a word (e.g. "left at 4" -> 4).
    """
    value = strict_hours(note, cfg)
    if value is not None:
        return value

    match = _BARE_NUMBER_RE.search(note)
    if match:
        value = float(match.group(1))
        if _in_range(value, cfg):
            return value
    return None


def parse_worked_hours(note: str, cfg: ImportConfig = DEFAULT_CONFIG) -> Optional[float]:
    """
    Hours worked according to a "worked" note.

    Recognised forms, in order:
      "(+4 hours PTO)", "make up 6", "5 hrs", "worked 8-12" / "worked from 8:30-12".
    """
    match = _WORKED_PAREN_RE.search(note)
    if match:
        return float(match.group(1))

    match = _WORKED_MAKEUP_RE.search(note)
    if match:
        return float(match.group(1))

    match = _WORKED_HOURS_RE.search(note)
    if match:
        value = float(match.group(1))
        if 0 < value <= cfg.max_worked_hours:
            return value

    match = _WORKED_RANGE_RE.search(note)
    if match:
        start = int(match.group(1)) + int(match.group(2) or 0) / 60
        end = int(match.group(3)) + int(match.group(4) or 0) / 60
        diff = round2(end - start)
        if 0 < diff <= cfg.max_worked_hours:
            return diff

    return None
