import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.members_service.models.enums import FeeCategory, enum_values
from services.performance_service.models.enums import RecordKind
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column


class PerformanceRecord(Base):
    """Performance ledger entry.

    ``individual`` rows mirror attendance 1:1 on (record_date,
    sub_program_name, member_id) and accumulate session/case counts.
    ``bulk`` rows carry headcounts only; two bulk rows are the same row only
    when every field matches.
    """

    __tablename__ = "performance_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_kind: Mapped[RecordKind] = mapped_column(
        SAEnum(
            RecordKind,
            name="record_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
        index=True,
    )

    record_date: Mapped[str] = mapped_column(
        String(10), nullable=False, index=True
    )  # YYYY-MM-DD
    sub_program_name: Mapped[str] = mapped_column(String, nullable=False, index=True)

    # Organizational classification
    function: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    team: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Individual records only
    member_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    member_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    attended: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fee_category: Mapped[Optional[FeeCategory]] = mapped_column(
        SAEnum(
            FeeCategory,
            name="fee_category_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    session_count: Mapped[int] = mapped_column(Integer, default=0)

    # Counts (bulk records; case_count is shared with individual records)
    registered_count: Mapped[int] = mapped_column(Integer, default=0)
    actual_count: Mapped[int] = mapped_column(Integer, default=0)
    visit_count: Mapped[int] = mapped_column(Integer, default=0)
    case_count: Mapped[int] = mapped_column(Integer, default=0)
    remark: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        # member_id is NULL on bulk rows, so only individual rows collide here
        UniqueConstraint(
            "record_date",
            "sub_program_name",
            "member_id",
            name="uq_performance_individual_key",
        ),
        Index(
            "uq_performance_bulk_row",
            "record_date",
            "sub_program_name",
            "unit",
            "registered_count",
            "actual_count",
            "visit_count",
            "case_count",
            "remark",
            unique=True,
            postgresql_where=text("record_kind = 'bulk'"),
            sqlite_where=text("record_kind = 'bulk'"),
        ),
    )

    def __repr__(self):
        return (
            f"<PerformanceRecord {self.record_kind.value} {self.record_date} "
            f"{self.sub_program_name} Member={self.member_id}>"
        )
