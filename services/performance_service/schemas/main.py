import uuid
from datetime import datetime
from typing import Any, Literal, Optional, Union

from libs.common.attendance_flag import is_present
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from services.members_service.models.enums import FeeCategory
from services.performance_service.models.enums import RecordKind

DateInput = Union[str, int, float, None]

COUNT_FIELDS = ("registered_count", "actual_count", "visit_count", "case_count")


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


# ---------------------------------------------------------------------------
# Bulk (aggregate) ingestion
# ---------------------------------------------------------------------------


class BulkPerformanceRowIn(BaseModel):
    """Headcount row; only the sub-program is required."""

    date: DateInput = None
    sub_program_name: str
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    registered_count: Optional[int] = Field(default=None, ge=0)
    actual_count: Optional[int] = Field(default=None, ge=0)
    visit_count: Optional[int] = Field(default=None, ge=0)
    case_count: Optional[int] = Field(default=None, ge=0)
    remark: Optional[str] = None

    @field_validator(
        "sub_program_name",
        "function",
        "team",
        "unit",
        "remark",
        *COUNT_FIELDS,
        mode="before",
    )
    @classmethod
    def strip_blank(cls, v):
        return _blank_to_none(v)


class BulkIngestResult(BaseModel):
    success: bool
    row: dict[str, Any]
    record_id: Optional[uuid.UUID] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class PerformanceUpdate(BaseModel):
    """Partial update. Only fields that are explicitly set are applied."""

    date: DateInput = None
    sub_program_name: Optional[str] = None
    member_name: Optional[str] = None
    gender: Optional[str] = None
    member_id: Optional[str] = None
    attended: Optional[bool] = None
    note: Optional[str] = None
    fee_category: Optional[FeeCategory] = None
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    session_count: Optional[int] = Field(default=None, ge=0)
    case_count: Optional[int] = Field(default=None, ge=0)

    # Bulk records only
    registered_count: Optional[int] = Field(default=None, ge=0)
    actual_count: Optional[int] = Field(default=None, ge=0)
    visit_count: Optional[int] = Field(default=None, ge=0)
    remark: Optional[str] = None

    @field_validator("attended", mode="before")
    @classmethod
    def coerce_attended(cls, v):
        if v is None:
            return None
        return is_present(v)


class BatchDeleteRequest(BaseModel):
    ids: list[uuid.UUID]


class BatchDeleteFailure(BaseModel):
    id: uuid.UUID
    error: str


class BatchDeleteResult(BaseModel):
    deleted: list[uuid.UUID] = Field(default_factory=list)
    failed: list[BatchDeleteFailure] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    id: uuid.UUID
    attendance_removed: int


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class PerformanceResponse(BaseModel):
    id: uuid.UUID
    record_kind: RecordKind
    record_date: str
    sub_program_name: str
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    gender: Optional[str] = None
    attended: Optional[bool] = None
    note: Optional[str] = None
    fee_category: Optional[FeeCategory] = None
    session_count: int = 0
    registered_count: int = 0
    actual_count: int = 0
    visit_count: int = 0
    case_count: int = 0
    remark: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("attended", mode="before")
    @classmethod
    def coerce_attended(cls, v):
        if v is None:
            return None
        return is_present(v)


class MirrorKey(BaseModel):
    record_date: str
    sub_program_name: str
    member_id: str


class MirrorReport(BaseModel):
    """Keys that break the attendance/performance mirror."""

    missing_performance: list[MirrorKey] = Field(default_factory=list)
    missing_attendance: list[MirrorKey] = Field(default_factory=list)

    @computed_field
    @property
    def consistent(self) -> bool:
        return not self.missing_performance and not self.missing_attendance


class StatsFilters(BaseModel):
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    sub_program_name: Optional[str] = None
    months: list[str] = Field(default_factory=list)  # "01".."12"
    quarters: list[str] = Field(default_factory=list)  # "1".."4"
    kind: Literal["all", "individual", "bulk"] = "all"

    @field_validator("months", mode="before")
    @classmethod
    def pad_months(cls, v):
        if v is None:
            return []
        return [str(m).zfill(2) for m in v]

    @field_validator("quarters", mode="before")
    @classmethod
    def quarters_as_text(cls, v):
        if v is None:
            return []
        return [str(q) for q in v]


class GenderSplit(BaseModel):
    male: int = 0
    female: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.male + self.female


class PerformanceStatsRow(BaseModel):
    """Monthly totals for one sub-program within its classification."""

    function: str
    team: str
    unit: str
    sub_program_name: str
    year: str
    month: str
    quarter: str
    record_kind: RecordKind
    registered: int = 0
    actual: int = 0
    visits: int = 0
    cases: int = 0
    sessions: int = 0
    actual_by_gender: GenderSplit = Field(default_factory=GenderSplit)
    visits_by_gender: GenderSplit = Field(default_factory=GenderSplit)
    paid_by_gender: GenderSplit = Field(default_factory=GenderSplit)
    free_by_gender: GenderSplit = Field(default_factory=GenderSplit)
