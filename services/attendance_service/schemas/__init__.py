"""Attendance Service schemas package."""

from services.attendance_service.schemas.main import (
    AttendanceIngestResponse,
    AttendanceIngestResult,
    AttendanceResponse,
    AttendanceRowIn,
    AttendanceSheetRow,
    IngestSummary,
)

__all__ = [
    "AttendanceIngestResponse",
    "AttendanceIngestResult",
    "AttendanceResponse",
    "AttendanceRowIn",
    "AttendanceSheetRow",
    "IngestSummary",
]
