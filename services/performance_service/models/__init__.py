"""Performance Service models package."""

from services.performance_service.models.core import PerformanceRecord
from services.performance_service.models.enums import RecordKind

__all__ = [
    "PerformanceRecord",
    "RecordKind",
]
