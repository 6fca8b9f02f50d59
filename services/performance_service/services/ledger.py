"""Attendance ↔ individual performance mirror.

Every attendance record has exactly one individual performance record with
the same (record_date, sub_program_name, member_id) key and vice versa.
This module is the only place that writes both sides:

- attendance created  -> upsert the mirror, adding to its counters
- performance updated -> push the updated fields onto the mirrored attendance
- performance deleted -> delete the mirrored attendance

Deletes are driven from the performance side only. Each operation runs in a
single transaction; counter merges happen on a row locked with
``SELECT ... FOR UPDATE``.
"""

import uuid
from typing import Iterable, Optional

from libs.common.date_normalizer import normalize_date
from libs.common.errors import (
    AmbiguousIdentityError,
    DomainError,
    DownstreamWriteError,
    DuplicateRecordError,
    RecordNotFoundError,
    UnresolvableIdentityError,
    ValidationError,
)
from libs.common.logging import get_logger
from services.attendance_service.models import AttendanceRecord, DuplicateTier
from services.members_service.identity import (
    get_member_snapshots,
    get_program_structure,
    normalize_phone,
    resolve_member_ids,
)
from services.performance_service.models import PerformanceRecord, RecordKind
from services.performance_service.schemas import (
    BatchDeleteFailure,
    BatchDeleteResult,
    MirrorKey,
    MirrorReport,
    PerformanceUpdate,
)
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Fields carried identically on both sides of the mirror
MIRROR_FIELDS = (
    "record_date",
    "sub_program_name",
    "member_id",
    "member_name",
    "gender",
    "function",
    "team",
    "unit",
    "attended",
    "note",
    "fee_category",
)

BULK_FIELDS = (
    "record_date",
    "sub_program_name",
    "function",
    "team",
    "unit",
    "registered_count",
    "actual_count",
    "visit_count",
    "case_count",
    "remark",
)


# ---------------------------------------------------------------------------
# Attendance created
# ---------------------------------------------------------------------------


def merge_counters(
    record: PerformanceRecord,
    *,
    session_count: int,
    case_count: int,
    actual_count: int = 0,
    visit_count: int = 0,
) -> None:
    """Add a new contribution to an existing mirror; counters never reset."""
    record.session_count = (record.session_count or 0) + session_count
    record.case_count = (record.case_count or 0) + case_count
    record.actual_count = (record.actual_count or 0) + actual_count
    record.visit_count = (record.visit_count or 0) + visit_count


async def sync_attendance_created(
    db: AsyncSession,
    attendance: AttendanceRecord,
    *,
    session_count: Optional[int] = None,
    case_count: Optional[int] = None,
    actual_count: Optional[int] = None,
    visit_count: Optional[int] = None,
) -> PerformanceRecord:
    """Create or accumulate the individual performance mirror of ``attendance``.

    Does not commit: the caller commits the attendance insert and this
    upsert together.
    """
    session_contribution = 1 if session_count is None else session_count
    # Case counts only stand in for people counts when none were supplied
    if actual_count is None and visit_count is None:
        case_contribution = case_count or 0
    else:
        case_contribution = 0

    result = await db.execute(
        select(PerformanceRecord)
        .where(
            PerformanceRecord.record_kind == RecordKind.INDIVIDUAL,
            PerformanceRecord.record_date == attendance.record_date,
            PerformanceRecord.sub_program_name == attendance.sub_program_name,
            PerformanceRecord.member_id == attendance.member_id,
        )
        .with_for_update()
    )
    mirror = result.scalar_one_or_none()

    if mirror:
        for field in MIRROR_FIELDS:
            setattr(mirror, field, getattr(attendance, field))
        merge_counters(
            mirror,
            session_count=session_contribution,
            case_count=case_contribution,
            actual_count=actual_count or 0,
            visit_count=visit_count or 0,
        )
        logger.info(
            "Accumulated performance %s for %s/%s/%s (sessions=%d)",
            mirror.id,
            attendance.record_date,
            attendance.sub_program_name,
            attendance.member_id,
            mirror.session_count,
        )
    else:
        mirror = PerformanceRecord(
            record_kind=RecordKind.INDIVIDUAL,
            session_count=session_contribution,
            case_count=case_contribution,
            actual_count=actual_count or 0,
            visit_count=visit_count or 0,
            registered_count=0,
            **{field: getattr(attendance, field) for field in MIRROR_FIELDS},
        )
        db.add(mirror)

    await db.flush()
    return mirror


# ---------------------------------------------------------------------------
# Performance updated
# ---------------------------------------------------------------------------


async def _get_record(
    db: AsyncSession, record_id: uuid.UUID, *, lock: bool = False
) -> PerformanceRecord:
    query = select(PerformanceRecord).where(PerformanceRecord.id == record_id)
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    record = result.scalar_one_or_none()
    if not record:
        raise RecordNotFoundError(f"Performance record {record_id} not found")
    return record


def _pending_changes(changes: PerformanceUpdate) -> dict:
    updates = changes.model_dump(exclude_unset=True)
    if "date" in updates:
        raw = updates.pop("date")
        record_date = normalize_date(raw)
        if not record_date:
            raise ValidationError(f"Unparseable date: {raw!r}")
        updates["record_date"] = record_date
    for field in ("sub_program_name", "member_name"):
        if field in updates:
            value = (updates[field] or "").strip()
            if not value:
                raise ValidationError(f"{field} cannot be blank")
            updates[field] = value
    return updates


async def _commit(db: AsyncSession, description: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateRecordError(
            f"{description} collides with an existing record",
            tier=DuplicateTier.EXACT_KEY,
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Write failed: %s", description)
        raise DownstreamWriteError(f"{description} failed: {exc}") from exc


async def _reresolve_member(
    db: AsyncSession, record: PerformanceRecord, updates: dict
) -> None:
    name = updates.get("member_name", record.member_name)
    gender = updates.get("gender", record.gender)
    sub_program_name = updates.get("sub_program_name", record.sub_program_name)

    candidates = await resolve_member_ids(db, name, gender, sub_program_name)
    if not candidates:
        raise UnresolvableIdentityError(
            f"No member named {name!r} is enrolled in {sub_program_name!r}"
        )
    if record.member_id in candidates:
        return
    if len(candidates) > 1:
        raise AmbiguousIdentityError(
            f"{len(candidates)} members named {name!r} in {sub_program_name!r}; "
            "pass member_id explicitly"
        )
    updates["member_id"] = candidates[0]


async def _reclassify(db: AsyncSession, sub_program_name: str, updates: dict) -> dict:
    """Classification of the new sub-program for fields the caller left unset."""
    structure = await get_program_structure(db, sub_program_name)
    if not structure:
        logger.warning(
            "Sub-program %s has no structure mapping; classification cleared",
            sub_program_name,
        )
    return {
        field: getattr(structure, field) if structure else None
        for field in ("function", "team", "unit")
        if field not in updates
    }


async def _roster_fields(db: AsyncSession, member_id: str, updates: dict) -> dict:
    """Roster attributes of a newly assigned member, keyed by record field."""
    snapshots = await get_member_snapshots(db, [member_id])
    member = snapshots.get(member_id)
    if not member:
        return {}
    fields = {
        "birth_date": normalize_date(member.birth_date) or None,
        "phone": normalize_phone(member.phone) or None,
        "fee_category": member.fee_category,
        "gender": member.gender,
    }
    return {field: value for field, value in fields.items() if field not in updates}


async def update_individual_performance(
    db: AsyncSession, record_id: uuid.UUID, changes: PerformanceUpdate
) -> PerformanceRecord:
    """Apply a partial update and propagate it to the mirrored attendance.

    Bulk records are updated in place; they have no mirror.
    """
    record = await _get_record(db, record_id, lock=True)
    updates = _pending_changes(changes)

    if record.record_kind == RecordKind.BULK:
        for field, value in updates.items():
            if field not in BULK_FIELDS:
                continue
            if field in ("unit", "remark"):
                value = value or ""
            elif field in ("registered_count", "actual_count", "visit_count", "case_count"):
                value = value or 0
            setattr(record, field, value)
        await _commit(db, f"Update of bulk performance {record_id}")
        return record

    name_changed = (
        "member_name" in updates and updates["member_name"] != record.member_name
    )
    sub_program_changed = (
        "sub_program_name" in updates
        and updates["sub_program_name"] != record.sub_program_name
    )
    if (name_changed or sub_program_changed) and not updates.get("member_id"):
        await _reresolve_member(db, record, updates)

    old_key = (record.record_date, record.sub_program_name, record.member_id)
    new_key = (
        updates.get("record_date", record.record_date),
        updates.get("sub_program_name", record.sub_program_name),
        updates.get("member_id") or record.member_id,
    )

    if new_key != old_key:
        clash = await db.execute(
            select(PerformanceRecord.id).where(
                PerformanceRecord.record_kind == RecordKind.INDIVIDUAL,
                PerformanceRecord.record_date == new_key[0],
                PerformanceRecord.sub_program_name == new_key[1],
                PerformanceRecord.member_id == new_key[2],
                PerformanceRecord.id != record.id,
            )
        )
        if clash.first():
            raise DuplicateRecordError(
                "Another performance record already exists for "
                f"{new_key[0]} / {new_key[1]} / {new_key[2]}",
                tier=DuplicateTier.EXACT_KEY,
            )

    classification = (
        await _reclassify(db, new_key[1], updates) if sub_program_changed else {}
    )
    roster = (
        await _roster_fields(db, new_key[2], updates)
        if new_key[2] != old_key[2]
        else {}
    )

    for field in MIRROR_FIELDS + ("session_count", "case_count"):
        if field in updates and updates[field] is not None:
            setattr(record, field, updates[field])
    if "note" in updates:
        record.note = updates["note"]
    for field, value in classification.items():
        setattr(record, field, value)
    for field in ("fee_category", "gender"):
        if field in roster:
            setattr(record, field, roster[field])

    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.record_date == old_key[0],
            AttendanceRecord.sub_program_name == old_key[1],
            AttendanceRecord.member_id == old_key[2],
        )
    )
    mirrored = result.scalars().all()
    for attendance in mirrored:
        for field in MIRROR_FIELDS:
            setattr(attendance, field, getattr(record, field))
        for field in ("birth_date", "phone"):
            if field in roster:
                setattr(attendance, field, roster[field])
        attendance.session_count = record.session_count
        attendance.case_count = record.case_count

    await _commit(db, f"Update of performance {record_id}")
    logger.info(
        "Updated performance %s and %d mirrored attendance record(s)",
        record_id,
        len(mirrored),
    )
    return record


# ---------------------------------------------------------------------------
# Performance deleted
# ---------------------------------------------------------------------------


async def delete_performance(db: AsyncSession, record_id: uuid.UUID) -> int:
    """Delete a performance record and, for individual records, its mirror.

    Returns the number of attendance records removed.
    """
    record = await _get_record(db, record_id)

    removed = 0
    if record.record_kind == RecordKind.INDIVIDUAL:
        result = await db.execute(
            delete(AttendanceRecord).where(
                AttendanceRecord.record_date == record.record_date,
                AttendanceRecord.sub_program_name == record.sub_program_name,
                AttendanceRecord.member_id == record.member_id,
            )
        )
        removed = result.rowcount or 0

    await db.delete(record)
    await _commit(db, f"Delete of performance {record_id}")

    logger.info(
        "Deleted performance %s (%s) with %d attendance record(s)",
        record_id,
        record.record_kind.value,
        removed,
    )
    return removed


async def delete_performances(
    db: AsyncSession, record_ids: Iterable[uuid.UUID]
) -> BatchDeleteResult:
    """Delete several records; one failure does not stop the rest."""
    outcome = BatchDeleteResult()
    for record_id in record_ids:
        try:
            await delete_performance(db, record_id)
        except DomainError as exc:
            outcome.failed.append(BatchDeleteFailure(id=record_id, error=str(exc)))
        else:
            outcome.deleted.append(record_id)
    return outcome


# ---------------------------------------------------------------------------
# Consistency check
# ---------------------------------------------------------------------------


async def check_mirror(
    db: AsyncSession,
    *,
    record_date: Optional[str] = None,
    sub_program_name: Optional[str] = None,
) -> MirrorReport:
    """List keys present on one side of the mirror but not the other."""
    attendance_query = select(
        AttendanceRecord.record_date,
        AttendanceRecord.sub_program_name,
        AttendanceRecord.member_id,
    )
    performance_query = select(
        PerformanceRecord.record_date,
        PerformanceRecord.sub_program_name,
        PerformanceRecord.member_id,
    ).where(PerformanceRecord.record_kind == RecordKind.INDIVIDUAL)

    if record_date:
        attendance_query = attendance_query.where(
            AttendanceRecord.record_date == record_date
        )
        performance_query = performance_query.where(
            PerformanceRecord.record_date == record_date
        )
    if sub_program_name:
        attendance_query = attendance_query.where(
            AttendanceRecord.sub_program_name == sub_program_name
        )
        performance_query = performance_query.where(
            PerformanceRecord.sub_program_name == sub_program_name
        )

    attendance_keys = {tuple(row) for row in (await db.execute(attendance_query)).all()}
    performance_keys = {
        tuple(row) for row in (await db.execute(performance_query)).all()
    }

    def _keys(keys):
        return [
            MirrorKey(record_date=d, sub_program_name=s, member_id=m)
            for d, s, m in sorted(keys)
        ]

    report = MirrorReport(
        missing_performance=_keys(attendance_keys - performance_keys),
        missing_attendance=_keys(performance_keys - attendance_keys),
    )
    if not report.consistent:
        logger.warning(
            "Mirror gaps: %d attendance without performance, %d performance without attendance",
            len(report.missing_performance),
            len(report.missing_attendance),
        )
    return report
