"""Performance Service schemas package."""

from services.performance_service.schemas.main import (
    BatchDeleteFailure,
    BatchDeleteRequest,
    BatchDeleteResult,
    BulkIngestResult,
    BulkPerformanceRowIn,
    DeleteResponse,
    GenderSplit,
    MirrorKey,
    MirrorReport,
    PerformanceResponse,
    PerformanceStatsRow,
    PerformanceUpdate,
    StatsFilters,
)

__all__ = [
    "BatchDeleteFailure",
    "BatchDeleteRequest",
    "BatchDeleteResult",
    "BulkIngestResult",
    "BulkPerformanceRowIn",
    "DeleteResponse",
    "GenderSplit",
    "MirrorKey",
    "MirrorReport",
    "PerformanceResponse",
    "PerformanceStatsRow",
    "PerformanceUpdate",
    "StatsFilters",
]
