"""
time_utils.py — Date/period normalization for the Brazilian statistical feeds.

Each upstream encodes its reference period differently:
- BCB SGS:    "dd/mm/yyyy"                       (daily / monthly series)
- IBGE SIDRA: "YYYYQQ" (quarter) or "YYYYMM"     (period codes)
- Ipeadata:   "2024-01-01T00:00:00-03:00"        (ISO timestamp)
- BCB PTAX:   "2024-01-10 13:04:25.123"          (quote timestamp)

Every normaliser returns an ISO "yyyy-mm-dd" string, with day "01" for
monthly/quarterly periods, or None when the input cannot be read. None of
them raise.

Usage:
    from brmacro_shared.time_utils import PeriodFormat, period_code_to_iso

    period_code_to_iso("202302", PeriodFormat.QUARTER)   # "2023-06-01"
    period_code_to_iso("202311", PeriodFormat.MONTH)     # "2023-11-01"
    br_date_to_iso("5/1/2024")                           # "2024-01-05"
    timestamp_to_iso("2024-01-10 15:00")                 # "2024-01-10"
"""

from __future__ import annotations

import re
from datetime import date
from enum import Enum

from dateutil.relativedelta import relativedelta

from brmacro_shared.constants import LookbackWindow


class PeriodFormat(str, Enum):
    """Encoding of a six-digit IBGE period code; chosen by the adapter."""

    MONTH = "month"
    QUARTER = "quarter"


_LOOKBACK_MONTHS: dict[str, int] = {"6M": 6, "12M": 12, "24M": 24}


def _iso(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def br_date_to_iso(raw: str | None) -> str | None:
    """Convert "dd/mm/yyyy" (day and month may be unpadded) to ISO."""
    if not isinstance(raw, str):
        return None
    m = re.fullmatch(r"\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*", raw)
    if not m:
        return None
    day, month, year = (int(g) for g in m.groups())
    return _iso(year, month, day)


def period_code_to_iso(raw: str | None, fmt: PeriodFormat) -> str | None:
    """
    Convert a "YYYYQQ" / "YYYYMM" period code to the first of its month.

    Quarter codes map to the last month of the quarter (Q2 → June). Monthly
    codes keep their month, except that 01-04 are read as quarters: the
    monthly IBGE feeds we consume report rolling quarters with those codes.
    """
    if not isinstance(raw, str):
        return None
    m = re.fullmatch(r"\s*(\d{4})(\d{2})\s*", raw)
    if not m:
        return None
    year, sub = int(m.group(1)), int(m.group(2))

    if fmt is PeriodFormat.QUARTER:
        if not 1 <= sub <= 4:
            return None
        return _iso(year, sub * 3, 1)

    if 1 <= sub <= 4:
        return _iso(year, sub * 3, 1)
    return _iso(year, sub, 1)


def timestamp_to_iso(raw: str | None) -> str | None:
    """Truncate "yyyy-mm-dd HH:MM[:SS…]" or "yyyy-mm-ddTHH:MM…" to its date."""
    if not isinstance(raw, str):
        return None
    m = re.match(r"\s*(\d{4})-(\d{2})-(\d{2})(?:[ T]|$)", raw)
    if not m:
        return None
    year, month, day = (int(g) for g in m.groups())
    return _iso(year, month, day)


def format_br_date(d: date) -> str:
    """Format a date as "dd/mm/yyyy" for BCB SGS query parameters."""
    return d.strftime("%d/%m/%Y")


def lookback_start(window: LookbackWindow | str, today: date | None = None) -> date:
    """
    Return the first date covered by a lookback window ("6M", "12M", "24M").

    Unknown windows fall back to 24 months.
    """
    today = today or date.today()
    months = _LOOKBACK_MONTHS.get(str(window).upper(), 24)
    return today - relativedelta(months=months)
