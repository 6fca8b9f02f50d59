from typing import Optional

from libs.common.filters import RecordFilters
from services.attendance_service.models import AttendanceRecord
from services.attendance_service.schemas import AttendanceSheetRow
from services.members_service.models import (
    Member,
    ParticipationStatus,
    SubProgramEnrollment,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def list_attendance(
    db: AsyncSession, filters: Optional[RecordFilters] = None
) -> list[AttendanceRecord]:
    """Attendance records matching ``filters``, by sub-program then name."""
    filters = filters or RecordFilters()
    query = select(AttendanceRecord)

    if filters.record_date:
        query = query.where(AttendanceRecord.record_date == filters.record_date)
    if filters.sub_program_name:
        query = query.where(
            AttendanceRecord.sub_program_name == filters.sub_program_name
        )
    if filters.function:
        query = query.where(AttendanceRecord.function == filters.function)
    if filters.team:
        query = query.where(AttendanceRecord.team == filters.team)
    if filters.unit:
        query = query.where(AttendanceRecord.unit == filters.unit)
    if filters.member_id:
        query = query.where(AttendanceRecord.member_id == filters.member_id)

    query = query.order_by(
        AttendanceRecord.sub_program_name,
        AttendanceRecord.member_name,
        AttendanceRecord.record_date,
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def build_attendance_sheet(
    db: AsyncSession, record_date: str, sub_program_name: str
) -> list[AttendanceSheetRow]:
    """Daily check sheet: every active enrolled member with today's flag.

    Members without a record for the date are listed as absent.
    """
    members_result = await db.execute(
        select(Member)
        .join(SubProgramEnrollment, SubProgramEnrollment.member_id == Member.id)
        .where(
            SubProgramEnrollment.sub_program_name == sub_program_name,
            Member.status != ParticipationStatus.TERMINATED,
        )
        .order_by(Member.name, Member.id)
    )
    members = members_result.scalars().all()

    records_result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.record_date == record_date,
            AttendanceRecord.sub_program_name == sub_program_name,
        )
    )
    records = {record.member_id: record for record in records_result.scalars().all()}

    sheet = []
    for member in members:
        record = records.get(member.id)
        sheet.append(
            AttendanceSheetRow(
                member_id=member.id,
                member_name=member.name,
                gender=member.gender,
                sub_program_name=sub_program_name,
                record_date=record_date,
                attended=bool(record and record.attended),
                record_id=record.id if record else None,
            )
        )
    return sheet
