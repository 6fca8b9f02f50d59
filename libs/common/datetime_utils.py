"""Datetime utilities.

Usage:
    from libs.common.datetime_utils import utc_now, local_today

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def local_today(tz_name: Optional[str] = None) -> date:
    """Return today's date in the program's local calendar.

    Record dates are calendar days as the staff see them, so "today" must
    come from the configured timezone rather than UTC.
    """
    tz = ZoneInfo(tz_name or get_settings().TIMEZONE)
    return datetime.now(tz).date()
