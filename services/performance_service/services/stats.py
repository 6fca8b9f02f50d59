"""Monthly performance statistics.

Records are grouped by function / team / unit / sub-program / year / month /
quarter and kind. For individual records only attended rows count:

- registered / actual: distinct members in the group
- visits: one per attended record
- paid / free: visits split by fee category
- cases: only from records that carry no people counts

Bulk records contribute their stored numbers. Sessions count each
(sub-program, date) once per group regardless of how many attended.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from libs.common.attendance_flag import is_present
from libs.common.logging import get_logger
from services.members_service.models import FeeCategory
from services.performance_service.models import PerformanceRecord, RecordKind
from services.performance_service.schemas import (
    GenderSplit,
    PerformanceStatsRow,
    StatsFilters,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

MALE_VALUES = {"남", "m", "male", "남성"}
FEMALE_VALUES = {"여", "f", "female", "여성"}


def _gender_bucket(gender: Optional[str]) -> Optional[str]:
    if not gender:
        return None
    value = gender.strip().lower()
    if value in MALE_VALUES:
        return "male"
    if value in FEMALE_VALUES:
        return "female"
    return None


def _bump(split: GenderSplit, gender: Optional[str], amount: int = 1) -> None:
    bucket = _gender_bucket(gender)
    if bucket:
        setattr(split, bucket, getattr(split, bucket) + amount)


@dataclass
class _Group:
    row: PerformanceStatsRow
    members: set = field(default_factory=set)
    sessions: set = field(default_factory=set)


def _period(record_date: str) -> tuple[str, str, str]:
    year, month = record_date[:4], record_date[5:7]
    quarter = str((int(month) - 1) // 3 + 1) if month.isdigit() else ""
    return year, month, quarter


def _add_individual(group: _Group, record: PerformanceRecord) -> None:
    if not is_present(record.attended):
        return

    row = group.row
    member_key = record.member_id or record.member_name
    if member_key and member_key not in group.members:
        group.members.add(member_key)
        row.registered += 1
        row.actual += 1
        _bump(row.actual_by_gender, record.gender)

    row.visits += 1
    _bump(row.visits_by_gender, record.gender)

    if record.fee_category == FeeCategory.PAID:
        _bump(row.paid_by_gender, record.gender)
    elif record.fee_category == FeeCategory.FREE:
        _bump(row.free_by_gender, record.gender)

    if not record.actual_count and not record.visit_count and record.case_count:
        row.cases += record.case_count


def _add_bulk(group: _Group, record: PerformanceRecord) -> None:
    row = group.row
    row.registered += record.registered_count or 0
    row.actual += record.actual_count or 0
    row.visits += record.visit_count or 0
    row.cases += record.case_count or 0


async def build_performance_stats(
    db: AsyncSession, filters: Optional[StatsFilters] = None
) -> list[PerformanceStatsRow]:
    filters = filters or StatsFilters()

    query = select(PerformanceRecord)
    if filters.kind == "individual":
        query = query.where(PerformanceRecord.record_kind == RecordKind.INDIVIDUAL)
    elif filters.kind == "bulk":
        query = query.where(PerformanceRecord.record_kind == RecordKind.BULK)
    if filters.function:
        query = query.where(PerformanceRecord.function == filters.function)
    if filters.team:
        query = query.where(PerformanceRecord.team == filters.team)
    if filters.unit:
        query = query.where(PerformanceRecord.unit == filters.unit)
    if filters.sub_program_name:
        query = query.where(
            PerformanceRecord.sub_program_name == filters.sub_program_name
        )
    if filters.months:
        query = query.where(
            func.substr(PerformanceRecord.record_date, 6, 2).in_(filters.months)
        )
    query = query.order_by(PerformanceRecord.record_date, PerformanceRecord.created_at)

    result = await db.execute(query)
    records = result.scalars().all()

    groups: dict[tuple, _Group] = {}
    for record in records:
        year, month, quarter = _period(record.record_date)
        if filters.quarters and quarter not in filters.quarters:
            continue

        key = (
            record.function or "",
            record.team or "",
            record.unit or "",
            record.sub_program_name,
            year,
            month,
            quarter,
            record.record_kind,
        )
        group = groups.get(key)
        if group is None:
            group = groups[key] = _Group(
                row=PerformanceStatsRow(
                    function=key[0],
                    team=key[1],
                    unit=key[2],
                    sub_program_name=key[3],
                    year=year,
                    month=month,
                    quarter=quarter,
                    record_kind=record.record_kind,
                )
            )

        session_key = (record.sub_program_name, record.record_date)
        if session_key not in group.sessions:
            group.sessions.add(session_key)
            group.row.sessions += 1

        if record.record_kind == RecordKind.BULK:
            _add_bulk(group, record)
        else:
            _add_individual(group, record)

    rows = [group.row for group in groups.values()]
    rows.sort(
        key=lambda r: (
            r.function,
            r.team,
            r.unit,
            r.sub_program_name,
            r.year,
            r.month,
            r.record_kind.value,
        )
    )

    by_kind = defaultdict(int)
    for row in rows:
        by_kind[row.record_kind.value] += 1
    logger.info(
        "Performance stats: %d records -> %d rows %s",
        len(records),
        len(rows),
        dict(by_kind),
    )
    return rows
