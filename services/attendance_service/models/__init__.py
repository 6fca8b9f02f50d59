"""Attendance Service models package."""

from services.attendance_service.models.core import AttendanceRecord
from services.attendance_service.models.enums import DuplicateTier

__all__ = [
    "AttendanceRecord",
    "DuplicateTier",
]
