import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.members_service.models.enums import FeeCategory, enum_values
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class AttendanceRecord(Base):
    """One member's presence or absence on one date in one sub-program.

    Classification and fee category are copied from the roster at write
    time. Every row is mirrored by an individual performance record with the
    same (record_date, sub_program_name, member_id) key.
    """

    __tablename__ = "attendance_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    record_date: Mapped[str] = mapped_column(
        String(10), nullable=False, index=True
    )  # YYYY-MM-DD
    sub_program_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    member_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Organizational classification
    function: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    team: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Member attributes at write time
    member_name: Mapped[str] = mapped_column(String, nullable=False)
    gender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    birth_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    fee_category: Mapped[Optional[FeeCategory]] = mapped_column(
        SAEnum(
            FeeCategory,
            name="fee_category_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )

    attended: Mapped[bool] = mapped_column(Boolean, default=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    session_count: Mapped[int] = mapped_column(Integer, default=1)
    case_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "record_date",
            "sub_program_name",
            "member_id",
            name="uq_attendance_date_sub_program_member",
        ),
    )

    def __repr__(self):
        return (
            f"<AttendanceRecord {self.record_date} {self.sub_program_name} "
            f"Member={self.member_id}>"
        )
