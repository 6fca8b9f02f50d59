"""Attendance ingestion.

Each input row is validated, dated, resolved to one or more members and
checked for duplicates. Every surviving candidate gets an attendance record
and its performance mirror, committed together. Results are reported per
row, or per candidate when a name fans out to several members.
"""

from typing import Any, Optional

from libs.common.date_normalizer import normalize_date, resolve_row_date
from libs.common.errors import (
    DomainError,
    DownstreamWriteError,
    DuplicateRecordError,
    UnresolvableIdentityError,
    ValidationError,
)
from libs.common.logging import get_logger
from pydantic import ValidationError as SchemaValidationError
from services.attendance_service.models import AttendanceRecord, DuplicateTier
from services.attendance_service.schemas import (
    AttendanceIngestResult,
    AttendanceRowIn,
    IngestSummary,
)
from services.attendance_service.services.duplicates import (
    AttendanceCandidate,
    classify_duplicate,
    load_attendance_snapshot,
)
from services.members_service.identity import (
    MemberSnapshot,
    get_member_snapshots,
    get_program_structure,
    match_member,
    normalize_phone,
    resolve_member_ids,
)
from services.performance_service.services.ledger import sync_attendance_created
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _failure(row: dict, error: DomainError, member_id: Optional[str] = None):
    return AttendanceIngestResult(
        success=False,
        row=row,
        member_id=member_id,
        error=str(error),
        error_code=error.code,
        duplicate_tier=getattr(error, "tier", None),
    )


def _schema_error_message(exc: SchemaValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
        for err in exc.errors()
    )


def _build_candidate(
    row: AttendanceRowIn,
    record_date: str,
    member_id: str,
    member: Optional[MemberSnapshot],
) -> AttendanceCandidate:
    birth_date = row.birth_date or (member.birth_date if member else None)
    phone = row.phone or (member.phone if member else None)
    return AttendanceCandidate(
        record_date=record_date,
        sub_program_name=row.sub_program_name,
        member_id=member_id,
        member_name=row.member_name or (member.name if member else member_id),
        gender=row.gender or (member.gender if member else None),
        birth_date=normalize_date(birth_date) or None,
        phone=normalize_phone(phone) or None,
    )


async def _write_candidate(
    db: AsyncSession,
    row: AttendanceRowIn,
    candidate: AttendanceCandidate,
    member: Optional[MemberSnapshot],
    structure,
) -> AttendanceRecord:
    """Insert one attendance record and its mirror in a single transaction."""
    attendance = AttendanceRecord(
        record_date=candidate.record_date,
        sub_program_name=candidate.sub_program_name,
        member_id=candidate.member_id,
        member_name=candidate.member_name,
        gender=candidate.gender,
        birth_date=candidate.birth_date,
        phone=candidate.phone,
        fee_category=member.fee_category if member else None,
        function=structure.function if structure else None,
        team=structure.team if structure else None,
        unit=structure.unit if structure else None,
        attended=row.attended,
        note=row.note,
        session_count=1 if row.session_count is None else row.session_count,
        case_count=(
            row.case_count or 0
            if row.actual_count is None and row.visit_count is None
            else 0
        ),
    )
    db.add(attendance)
    try:
        await sync_attendance_created(
            db,
            attendance,
            session_count=row.session_count,
            case_count=row.case_count,
            actual_count=row.actual_count,
            visit_count=row.visit_count,
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateRecordError(
            f"Attendance already recorded for {candidate.member_id} on "
            f"{candidate.record_date} in {candidate.sub_program_name}",
            tier=DuplicateTier.EXACT_KEY,
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(
            "Failed to write attendance for %s on %s",
            candidate.member_id,
            candidate.record_date,
        )
        raise DownstreamWriteError(f"Attendance write failed: {exc}") from exc
    return attendance


async def _resolve_ids(db: AsyncSession, row: AttendanceRowIn) -> list[str]:
    if row.member_id:
        return [row.member_id]

    member_ids = await resolve_member_ids(
        db, row.member_name, row.gender, row.sub_program_name
    )
    if len(member_ids) > 1 and row.birth_date and row.phone:
        # Birth date and phone pin one of several same-name members
        matched = await match_member(db, row.member_name, row.birth_date, row.phone)
        if matched in member_ids:
            return [matched]
    if len(member_ids) > 1:
        logger.info(
            "%s in %s matched %d members; recording each",
            row.member_name,
            row.sub_program_name,
            len(member_ids),
        )
    return member_ids


async def _ingest_row(db: AsyncSession, raw: Any) -> list[AttendanceIngestResult]:
    row_echo = dict(raw) if isinstance(raw, dict) else {"value": raw}

    try:
        row = AttendanceRowIn.model_validate(raw)
    except SchemaValidationError as exc:
        return [_failure(row_echo, ValidationError(_schema_error_message(exc)))]

    try:
        record_date = resolve_row_date(row.date)
    except ValidationError as exc:
        return [_failure(row_echo, exc)]

    try:
        member_ids = await _resolve_ids(db, row)
        # Taken once per row so fanned-out candidates never match each other
        existing = await load_attendance_snapshot(
            db, record_date, row.sub_program_name
        )
        members = await get_member_snapshots(db, member_ids)
        structure = await get_program_structure(db, row.sub_program_name)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(
            "Lookup failed for attendance row %s on %s",
            row.sub_program_name,
            record_date,
        )
        return [
            _failure(row_echo, DownstreamWriteError(f"Attendance lookup failed: {exc}"))
        ]

    if not member_ids:
        error = UnresolvableIdentityError(
            f"No member named {row.member_name!r} is enrolled in "
            f"{row.sub_program_name!r}"
        )
        logger.warning("Unresolvable attendance row: %s", error)
        return [_failure(row_echo, error)]

    planned = []
    for member_id in member_ids:
        member = members.get(member_id)
        candidate = _build_candidate(row, record_date, member_id, member)
        planned.append((candidate, member, classify_duplicate(candidate, existing)))

    results = []
    for candidate, member, tier in planned:
        if tier:
            logger.info(
                "Duplicate attendance (%s) for %s on %s in %s",
                tier.value,
                candidate.member_id,
                record_date,
                row.sub_program_name,
            )
            results.append(
                _failure(
                    row_echo,
                    DuplicateRecordError(
                        f"Attendance already recorded ({tier.value})", tier=tier
                    ),
                    member_id=candidate.member_id,
                )
            )
            continue

        try:
            attendance = await _write_candidate(db, row, candidate, member, structure)
        except DomainError as exc:
            results.append(_failure(row_echo, exc, member_id=candidate.member_id))
            continue

        logger.info(
            "Recorded attendance %s for %s on %s in %s",
            attendance.id,
            candidate.member_id,
            record_date,
            row.sub_program_name,
        )
        results.append(
            AttendanceIngestResult(
                success=True,
                row=row_echo,
                member_id=candidate.member_id,
                record_id=attendance.id,
            )
        )
    return results


async def ingest_attendance_rows(
    db: AsyncSession, rows: list[dict[str, Any]]
) -> list[AttendanceIngestResult]:
    """Ingest attendance rows; one failure never stops the batch.

    Raises ValidationError only when ``rows`` is not a list.
    """
    if not isinstance(rows, list):
        raise ValidationError("Attendance rows must be a list")

    results: list[AttendanceIngestResult] = []
    for raw in rows:
        results.extend(await _ingest_row(db, raw))

    summary = summarize_results(results)
    logger.info(
        "Attendance ingest: %d rows -> %d created, %d duplicate, %d failed",
        len(rows),
        summary.succeeded,
        summary.duplicates,
        summary.failed,
    )
    return results


def summarize_results(results: list[AttendanceIngestResult]) -> IngestSummary:
    duplicates = sum(1 for r in results if r.error_code == DuplicateRecordError.code)
    succeeded = sum(1 for r in results if r.success)
    return IngestSummary(
        total=len(results),
        succeeded=succeeded,
        duplicates=duplicates,
        failed=len(results) - succeeded - duplicates,
    )
