from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from libs.common.date_normalizer import resolve_row_date
from libs.common.errors import DomainError
from libs.common.filters import RecordFilters
from libs.common.http_errors import to_http_exception
from libs.db.session import get_async_db
from services.attendance_service.schemas import (
    AttendanceIngestResponse,
    AttendanceResponse,
    AttendanceSheetRow,
)
from services.attendance_service.services.queries import (
    build_attendance_sheet,
    list_attendance,
)
from services.attendance_service.services.writer import (
    ingest_attendance_rows,
    summarize_results,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["attendance"])


@router.post("/ingest", response_model=AttendanceIngestResponse)
async def ingest_attendance(
    rows: Any = Body(...),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Record attendance for a list of rows.

    Rows fail independently; the response lists one result per row, or per
    member when a name matched several enrolled members.
    """
    try:
        results = await ingest_attendance_rows(db, rows)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return AttendanceIngestResponse(results=results, summary=summarize_results(results))


@router.get("/records", response_model=List[AttendanceResponse])
async def get_attendance_records(
    date: Optional[str] = Query(None, description="Record date"),
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
    return await list_attendance(db, filters)


@router.get("/sheet", response_model=List[AttendanceSheetRow])
async def get_attendance_sheet(
    sub_program_name: str,
    date: Optional[str] = Query(None, description="Defaults to today"),
    db: AsyncSession = Depends(get_async_db),
):
    """Daily check sheet for one sub-program."""
    try:
        record_date = resolve_row_date(date)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return await build_attendance_sheet(db, record_date, sub_program_name)
