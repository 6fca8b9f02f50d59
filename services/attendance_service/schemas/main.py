import uuid
from datetime import datetime
from typing import Any, Optional, Union

from libs.common.attendance_flag import is_present
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.attendance_service.models.enums import DuplicateTier
from services.members_service.models.enums import FeeCategory

DateInput = Union[str, int, float, None]


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class AttendanceRowIn(BaseModel):
    """One logical attendance row from a form or an upload."""

    date: DateInput = None
    sub_program_name: str
    member_name: Optional[str] = None
    gender: Optional[str] = None
    note: Optional[str] = None
    member_id: Optional[str] = None
    attended: bool = True

    # Optional roster attributes, used by the broad duplicate rule
    birth_date: Optional[str] = None
    phone: Optional[str] = None

    # Ledger contribution
    session_count: Optional[int] = Field(default=None, ge=0)
    case_count: Optional[int] = Field(default=None, ge=0)
    actual_count: Optional[int] = Field(default=None, ge=0)
    visit_count: Optional[int] = Field(default=None, ge=0)

    @field_validator(
        "sub_program_name",
        "member_name",
        "gender",
        "note",
        "member_id",
        "birth_date",
        "phone",
        mode="before",
    )
    @classmethod
    def strip_strings(cls, v):
        return _blank_to_none(v)

    @field_validator(
        "session_count", "case_count", "actual_count", "visit_count", mode="before"
    )
    @classmethod
    def blank_count_to_none(cls, v):
        return _blank_to_none(v)

    @field_validator("attended", mode="before")
    @classmethod
    def coerce_attended(cls, v):
        if v is None:
            return True
        return is_present(v)

    @model_validator(mode="after")
    def require_identity(self):
        if not self.sub_program_name:
            raise ValueError("sub_program_name is required")
        if not self.member_name and not self.member_id:
            raise ValueError("member_name or member_id is required")
        return self


class AttendanceIngestResult(BaseModel):
    """Outcome for one input row, or one candidate member of a fanned-out row."""

    success: bool
    row: dict[str, Any]
    member_id: Optional[str] = None
    record_id: Optional[uuid.UUID] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    duplicate_tier: Optional[DuplicateTier] = None


class IngestSummary(BaseModel):
    total: int
    succeeded: int
    duplicates: int
    failed: int


class AttendanceIngestResponse(BaseModel):
    results: list[AttendanceIngestResult]
    summary: IngestSummary


class AttendanceResponse(BaseModel):
    id: uuid.UUID
    record_date: str
    sub_program_name: str
    member_id: str
    member_name: str
    gender: Optional[str] = None
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    attended: bool
    note: Optional[str] = None
    fee_category: Optional[FeeCategory] = None
    session_count: int = 0
    case_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("attended", mode="before")
    @classmethod
    def coerce_attended(cls, v):
        return is_present(v)


class AttendanceSheetRow(BaseModel):
    """A roster member on the daily check sheet, with today's flag."""

    member_id: str
    member_name: str
    gender: Optional[str] = None
    sub_program_name: str
    record_date: str
    attended: bool
    record_id: Optional[uuid.UUID] = None
