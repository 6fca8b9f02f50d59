from typing import Optional

from pydantic import BaseModel, field_validator

from libs.common.date_normalizer import normalize_date


class RecordFilters(BaseModel):
    """Read-side filters shared by attendance and performance queries.

    Every field is optional; unset fields do not constrain the query.
    """

    record_date: Optional[str] = None
    sub_program_name: Optional[str] = None
    function: Optional[str] = None
    team: Optional[str] = None
    unit: Optional[str] = None
    member_id: Optional[str] = None

    @field_validator("record_date", mode="before")
    @classmethod
    def normalize_record_date(cls, v):
        if v is None or v == "":
            return None
        return normalize_date(v) or v

    @field_validator("sub_program_name", "function", "team", "unit", "member_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
