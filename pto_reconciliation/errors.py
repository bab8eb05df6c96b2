# pto_reconciliation/errors.py


class SheetStructureError(Exception):
    """Worksheet does not follow the calendar template; the sheet cannot be imported"""

    pass


class LegendNotFoundError(SheetStructureError):
    """The "Legend" header is missing"""

    pass


class CalcSectionNotFoundError(SheetStructureError):
    """The "January" anchor of the PTO calculation section is missing"""

    pass


class PinnedEntryError(Exception):
    """Raised when code tries to change hours or category of a pinned entry"""

    pass
