"""Canonical calendar-date strings.

Every record is joined on a ``YYYY-MM-DD`` string, so uploads that carry
spreadsheet serial numbers, dotted or slashed dates, or loose text all pass
through :func:`normalize_date` first.

Usage:
    from libs.common.date_normalizer import normalize_date, resolve_row_date

    normalize_date(45839)          # "2025-07-01"
    normalize_date("2025.7.1")     # "2025-07-01"
    normalize_date("not a date")   # ""
"""

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil import parser as dateparser

from libs.common.datetime_utils import local_today
from libs.common.errors import ValidationError

# Serial 1 is 1900-01-01. Spreadsheets also count a non-existent 1900-02-29
# (serial 60), so serials from 60 on are shifted back by one day.
SERIAL_EPOCH = date(1899, 12, 31)
SERIAL_LEAP_BUG = 60

CANONICAL_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
YEAR_FIRST_PATTERN = re.compile(r"^(\d{4})[.\-/\s]+(\d{1,2})[.\-/\s]+(\d{1,2})")

# dateutil fills missing parts from this; a partial "2025-07" becomes the 1st
PARSER_DEFAULT = datetime(1900, 1, 1)


def _iso(year: int, month: int, day: int) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ""


def _from_serial(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return ""
    days = math.floor(value)
    if days < 1:
        return ""
    if days >= SERIAL_LEAP_BUG:
        days -= 1
    try:
        return (SERIAL_EPOCH + timedelta(days=days)).isoformat()
    except OverflowError:
        return ""


def normalize_date(value: Any) -> str:
    """Return ``value`` as ``YYYY-MM-DD``, or ``""`` when it is not a date.

    Never raises; callers decide what a missing date means.
    """
    if value is None or isinstance(value, bool):
        return ""

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    if not isinstance(value, str):
        return ""

    text = value.strip()
    if not text:
        return ""

    if CANONICAL_PATTERN.match(text):
        return _iso(int(text[:4]), int(text[5:7]), int(text[8:10]))

    match = YEAR_FIRST_PATTERN.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _iso(year, month, day)

    try:
        parsed = dateparser.parse(text, default=PARSER_DEFAULT)
    except (ValueError, OverflowError):
        return ""
    if parsed.year <= PARSER_DEFAULT.year:
        return ""
    return parsed.date().isoformat()


def resolve_row_date(value: Any, tz_name: Optional[str] = None) -> str:
    """Normalize an uploaded row's date, defaulting to today when absent.

    A date that is present but cannot be read is a validation failure, not
    "today".
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return local_today(tz_name).isoformat()

    normalized = normalize_date(value)
    if not normalized:
        raise ValidationError(f"Unparseable date: {value!r}")
    return normalized
