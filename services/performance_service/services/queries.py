from typing import Optional

from libs.common.filters import RecordFilters
from services.performance_service.models import PerformanceRecord, RecordKind
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


def _filtered(kind: RecordKind, filters: RecordFilters):
    query = select(PerformanceRecord).where(PerformanceRecord.record_kind == kind)

    if filters.record_date:
        query = query.where(PerformanceRecord.record_date == filters.record_date)
    if filters.sub_program_name:
        query = query.where(
            PerformanceRecord.sub_program_name == filters.sub_program_name
        )
    if filters.function:
        query = query.where(PerformanceRecord.function == filters.function)
    if filters.team:
        query = query.where(PerformanceRecord.team == filters.team)
    if filters.unit:
        query = query.where(PerformanceRecord.unit == filters.unit)
    return query


async def list_individual_performance(
    db: AsyncSession, filters: Optional[RecordFilters] = None
) -> list[PerformanceRecord]:
    filters = filters or RecordFilters()
    query = _filtered(RecordKind.INDIVIDUAL, filters)
    if filters.member_id:
        query = query.where(PerformanceRecord.member_id == filters.member_id)

    query = query.order_by(
        PerformanceRecord.sub_program_name,
        PerformanceRecord.member_name,
        PerformanceRecord.record_date,
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_aggregate_performance(
    db: AsyncSession, filters: Optional[RecordFilters] = None
) -> list[PerformanceRecord]:
    """Bulk records; a member filter does not apply to headcounts."""
    filters = filters or RecordFilters()
    query = _filtered(RecordKind.BULK, filters).order_by(
        PerformanceRecord.sub_program_name,
        PerformanceRecord.record_date,
        PerformanceRecord.created_at,
    )
    result = await db.execute(query)
    return list(result.scalars().all())
