"""Aggregate (bulk) performance ingestion.

Bulk rows carry headcounts for a sub-program on a date rather than
individual attendance. A row is only a duplicate when every stored field
matches an existing bulk record, so two rows differing only in remark are
both kept.
"""

from typing import Any

from libs.common.date_normalizer import resolve_row_date
from libs.common.errors import (
    DomainError,
    DownstreamWriteError,
    DuplicateRecordError,
    ValidationError,
)
from libs.common.logging import get_logger
from pydantic import ValidationError as SchemaValidationError
from services.members_service.identity import get_program_structure
from services.performance_service.models import PerformanceRecord, RecordKind
from services.performance_service.schemas import BulkIngestResult, BulkPerformanceRowIn
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _bulk_values(row: BulkPerformanceRowIn, record_date: str) -> dict:
    registered = row.registered_count
    actual = row.actual_count
    # Either headcount stands in for the other when only one is given
    if registered is None and actual is not None:
        registered = actual
    elif actual is None and registered is not None:
        actual = registered

    return {
        "record_date": record_date,
        "sub_program_name": row.sub_program_name,
        "function": row.function,
        "team": row.team,
        "unit": row.unit or "",
        "registered_count": registered or 0,
        "actual_count": actual or 0,
        "visit_count": row.visit_count or 0,
        "case_count": row.case_count or 0,
        "remark": row.remark or "",
    }


async def _fill_structure(db: AsyncSession, values: dict) -> None:
    if values["function"] and values["team"] and values["unit"]:
        return

    structure = await get_program_structure(db, values["sub_program_name"])
    if not structure:
        logger.warning(
            "Sub-program %s has no structure mapping; classification left blank",
            values["sub_program_name"],
        )
        return

    values["function"] = values["function"] or structure.function
    values["team"] = values["team"] or structure.team
    values["unit"] = values["unit"] or structure.unit or ""


async def _find_same_bulk_row(db: AsyncSession, values: dict):
    result = await db.execute(
        select(PerformanceRecord.id).where(
            PerformanceRecord.record_kind == RecordKind.BULK,
            PerformanceRecord.record_date == values["record_date"],
            PerformanceRecord.sub_program_name == values["sub_program_name"],
            PerformanceRecord.unit == values["unit"],
            PerformanceRecord.registered_count == values["registered_count"],
            PerformanceRecord.actual_count == values["actual_count"],
            PerformanceRecord.visit_count == values["visit_count"],
            PerformanceRecord.case_count == values["case_count"],
            PerformanceRecord.remark == values["remark"],
        )
    )
    return result.scalars().first()


async def _ingest_bulk_row(db: AsyncSession, raw: Any) -> BulkIngestResult:
    row_echo = dict(raw) if isinstance(raw, dict) else {"value": raw}

    try:
        row = BulkPerformanceRowIn.model_validate(raw)
    except SchemaValidationError as exc:
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationError(message) from exc

    values = _bulk_values(row, resolve_row_date(row.date))
    try:
        await _fill_structure(db, values)
        existing_id = await _find_same_bulk_row(db, values)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Lookup failed for bulk performance row")
        raise DownstreamWriteError(f"Bulk performance lookup failed: {exc}") from exc

    if existing_id:
        raise DuplicateRecordError(
            f"Identical bulk record already exists for {values['sub_program_name']} "
            f"on {values['record_date']}"
        )

    record = PerformanceRecord(record_kind=RecordKind.BULK, **values)
    db.add(record)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateRecordError(
            f"Identical bulk record already exists for {values['sub_program_name']} "
            f"on {values['record_date']}"
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to write bulk performance row")
        raise DownstreamWriteError(f"Bulk performance write failed: {exc}") from exc

    return BulkIngestResult(success=True, row=row_echo, record_id=record.id)


async def ingest_bulk_performance_rows(
    db: AsyncSession, rows: list[dict[str, Any]]
) -> list[BulkIngestResult]:
    """Ingest aggregate rows; each row succeeds or fails on its own.

    Raises ValidationError only when ``rows`` is not a list.
    """
    if not isinstance(rows, list):
        raise ValidationError("Bulk performance rows must be a list")

    results = []
    for raw in rows:
        try:
            result = await _ingest_bulk_row(db, raw)
        except DomainError as exc:
            row_echo = dict(raw) if isinstance(raw, dict) else {"value": raw}
            logger.info("Bulk row rejected (%s): %s", exc.code, exc)
            result = BulkIngestResult(
                success=False, row=row_echo, error=str(exc), error_code=exc.code
            )
        results.append(result)

    created = sum(1 for r in results if r.success)
    logger.info("Bulk ingest: %d rows -> %d created", len(rows), created)
    return results
