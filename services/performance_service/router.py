import uuid
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query
from libs.common.errors import DomainError
from libs.common.filters import RecordFilters
from libs.common.http_errors import to_http_exception
from libs.db.session import get_async_db
from services.performance_service.schemas import (
    BatchDeleteRequest,
    BatchDeleteResult,
    BulkIngestResult,
    DeleteResponse,
    MirrorReport,
    PerformanceResponse,
    PerformanceStatsRow,
    PerformanceUpdate,
    StatsFilters,
)
from services.performance_service.services.bulk import ingest_bulk_performance_rows
from services.performance_service.services.ledger import (
    check_mirror,
    delete_performance,
    delete_performances,
    update_individual_performance,
)
from services.performance_service.services.queries import (
    list_aggregate_performance,
    list_individual_performance,
)
from services.performance_service.services.stats import build_performance_stats
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["performance"])


@router.post("/bulk", response_model=List[BulkIngestResult])
async def ingest_bulk(
    rows: Any = Body(...),
    db: AsyncSession = Depends(get_async_db),
):
    """Record aggregate headcount rows. Identical rows are reported as duplicates."""
    try:
        return await ingest_bulk_performance_rows(db, rows)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


@router.get("/individual", response_model=List[PerformanceResponse])
async def get_individual_performance(
    date: Optional[str] = None,
    sub_program_name: Optional[str] = None,
    function: Optional[str] = None,
    team: Optional[str] = None,
    unit: Optional[str] = None,
    member_id: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    filters = RecordFilters(
        record_date=date,
        sub_program_name=sub_program_name,
        function=function,
        team=team,
        unit=unit,
        member_id=member_id,
    )
    return await list_individual_performance(db, filters)


@router.get("/aggregate", response_model=List[PerformanceResponse])
async def get_aggregate_performance(
    date: Optional[str] = None,
    sub_program_name: Optional[str] = None,
    function: Optional[str] = None,
    team: Optional[str] = None,
    unit: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    filters = RecordFilters(
        record_date=date,
        sub_program_name=sub_program_name,
        function=function,
        team=team,
        unit=unit,
    )
    return await list_aggregate_performance(db, filters)


@router.get("/stats", response_model=List[PerformanceStatsRow])
async def get_performance_stats(
    function: Optional[str] = None,
    team: Optional[str] = None,
    unit: Optional[str] = None,
    sub_program_name: Optional[str] = None,
    months: List[str] = Query(default=[]),
    quarters: List[str] = Query(default=[]),
    kind: Literal["all", "individual", "bulk"] = "all",
    db: AsyncSession = Depends(get_async_db),
):
    filters = StatsFilters(
        function=function,
        team=team,
        unit=unit,
        sub_program_name=sub_program_name,
        months=months,
        quarters=quarters,
        kind=kind,
    )
    return await build_performance_stats(db, filters)


@router.get("/mirror-check", response_model=MirrorReport)
async def get_mirror_check(
    date: Optional[str] = None,
    sub_program_name: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """List attendance/performance keys that are missing their counterpart."""
    record_date = RecordFilters(record_date=date).record_date
    return await check_mirror(
        db, record_date=record_date, sub_program_name=sub_program_name
    )


@router.post("/delete-batch", response_model=BatchDeleteResult)
async def delete_performance_batch(
    payload: BatchDeleteRequest,
    db: AsyncSession = Depends(get_async_db),
):
    return await delete_performances(db, payload.ids)


@router.patch("/{record_id}", response_model=PerformanceResponse)
async def update_performance(
    record_id: uuid.UUID,
    changes: PerformanceUpdate,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Update a performance record.

    Changes to an individual record are copied onto its attendance record.
    """
    try:
        return await update_individual_performance(db, record_id, changes)
    except DomainError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{record_id}", response_model=DeleteResponse)
async def remove_performance(
    record_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a performance record together with its attendance record."""
    try:
        removed = await delete_performance(db, record_id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return DeleteResponse(id=record_id, attendance_removed=removed)
