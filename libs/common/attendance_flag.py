"""Attendance flags arrive as booleans, strings or numbers depending on the
source (form checkbox, spreadsheet cell, legacy rows). Everything downstream
sees a plain bool."""

from typing import Any

PRESENT_VALUES = {"true", "1", "y", "yes", "o", "present", "attended", "출석", "참여"}


def is_present(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in PRESENT_VALUES
    return False
