"""Roster reference tables.

The roster is maintained elsewhere; the attendance and performance services
only read these tables:
- Member: durable identity plus the attributes copied onto records
- SubProgramEnrollment: which members belong to which sub-program
- ProgramStructure: team / function / unit classification of a sub-program
"""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.members_service.models.enums import (
    FeeCategory,
    ParticipationStatus,
    enum_values,
)
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column


def generate_member_id() -> str:
    """Durable member identifier, e.g. ``MEM-3f9e6ac51b4e``."""
    return f"MEM-{uuid.uuid4().hex[:12]}"


class Member(Base):
    """Core member identity. Assigned once; ``id`` never changes."""

    __tablename__ = "members"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=generate_member_id
    )
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    gender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    birth_date: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True
    )  # YYYY-MM-DD
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
    status: Mapped[ParticipationStatus] = mapped_column(
        SAEnum(
            ParticipationStatus,
            name="participation_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ParticipationStatus.ACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Member {self.id} {self.name}>"


class SubProgramEnrollment(Base):
    __tablename__ = "sub_program_enrollments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sub_program_name: Mapped[str] = mapped_column(String, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint(
            "member_id", "sub_program_name", name="uq_enrollment_member_sub_program"
        ),
    )

    def __repr__(self):
        return f"<SubProgramEnrollment {self.sub_program_name} Member={self.member_id}>"


class ProgramStructure(Base):
    """Organizational classification of one sub-program."""

    __tablename__ = "program_structures"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sub_program_name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    team: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    function: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    def __repr__(self):
        return f"<ProgramStructure {self.sub_program_name}>"
