"""Integration tests for the attendance/performance mirror.

Covers mirror creation and accumulation, update propagation, delete
cascades and the mirror consistency check.
"""

import uuid

import pytest
from libs.common.errors import (
    AmbiguousIdentityError,
    DuplicateRecordError,
    RecordNotFoundError,
    UnresolvableIdentityError,
    ValidationError,
)
from services.attendance_service.models import AttendanceRecord
from services.attendance_service.services.writer import ingest_attendance_rows
from services.members_service.models import FeeCategory
from services.performance_service.models import PerformanceRecord, RecordKind
from services.performance_service.schemas import PerformanceUpdate
from services.performance_service.services.ledger import (
    check_mirror,
    delete_performance,
    delete_performances,
    sync_attendance_created,
    update_individual_performance,
)
from sqlalchemy import select
from tests.factories import (
    AttendanceRecordFactory,
    EnrollmentFactory,
    MemberFactory,
    PerformanceRecordFactory,
    ProgramStructureFactory,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _enroll(db, sub_program_name="Zumba", **member_fields):
    member = MemberFactory.create(**member_fields)
    db.add(member)
    db.add(EnrollmentFactory.create(member.id, sub_program_name=sub_program_name))
    await db.commit()
    return member


async def _ingest_one(db, **row):
    defaults = {"date": "2025-07-01", "sub_program_name": "Zumba"}
    defaults.update(row)
    results = await ingest_attendance_rows(db, [defaults])
    assert results[0].success, results[0].error
    return results[0]


async def _mirror_of(db, attendance_id):
    attendance = await db.get(AttendanceRecord, attendance_id)
    result = await db.execute(
        select(PerformanceRecord).where(
            PerformanceRecord.record_date == attendance.record_date,
            PerformanceRecord.sub_program_name == attendance.sub_program_name,
            PerformanceRecord.member_id == attendance.member_id,
        )
    )
    return result.scalar_one()


async def _all(db, model):
    return (await db.execute(select(model))).scalars().all()


# ---------------------------------------------------------------------------
# Attendance created
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mirror_created_with_case_count(db_session):
    kim = await _enroll(db_session, name="Kim", gender="F")

    result = await _ingest_one(
        db_session, member_name="Kim", gender="F", case_count=3, session_count=2
    )

    mirror = await _mirror_of(db_session, result.record_id)
    assert mirror.member_id == kim.id
    assert mirror.session_count == 2
    assert mirror.case_count == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_case_count_ignored_when_people_counts_supplied(db_session):
    await _enroll(db_session, name="Kim", gender="F")

    result = await _ingest_one(
        db_session, member_name="Kim", gender="F", case_count=3, visit_count=2
    )

    mirror = await _mirror_of(db_session, result.record_id)
    assert mirror.case_count == 0
    assert mirror.visit_count == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_existing_mirror_accumulates_counters(db_session):
    kim = await _enroll(db_session, name="Kim", gender="F")
    db_session.add(
        PerformanceRecordFactory.create(
            record_date="2025-07-01",
            sub_program_name="Zumba",
            member_id=kim.id,
            member_name="Kim",
            gender="F",
            session_count=2,
            case_count=1,
        )
    )
    await db_session.commit()

    await _ingest_one(db_session, member_name="Kim", gender="F", case_count=4)

    performance = await _all(db_session, PerformanceRecord)
    assert len(performance) == 1
    assert performance[0].session_count == 3
    assert performance[0].case_count == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sync_does_not_commit(db_session):
    attendance = AttendanceRecordFactory.create(member_name="Kim")
    db_session.add(attendance)

    await sync_attendance_created(db_session, attendance)
    await db_session.rollback()

    assert await _all(db_session, AttendanceRecord) == []
    assert await _all(db_session, PerformanceRecord) == []


# ---------------------------------------------------------------------------
# Performance updated
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_propagates_to_attendance(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)

    updated = await update_individual_performance(
        db_session,
        mirror.id,
        PerformanceUpdate(date="2025.07.02", note="late", attended="결석"),
    )

    assert updated.record_date == "2025-07-02"
    attendance = await db_session.get(AttendanceRecord, result.record_id)
    await db_session.refresh(attendance)
    assert attendance.record_date == "2025-07-02"
    assert attendance.note == "late"
    assert attendance.attended is False

    report = await check_mirror(db_session)
    assert report.consistent


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_reresolves_member(db_session):
    await _enroll(
        db_session,
        name="Kim",
        gender="F",
        birth_date="1950-01-01",
        phone="010-1111-1111",
        fee_category=FeeCategory.PAID,
    )
    park = await _enroll(
        db_session,
        name="Park",
        gender="F",
        birth_date="1960-02-02",
        phone="010-2222-2222",
        fee_category=FeeCategory.FREE,
    )
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)

    updated = await update_individual_performance(
        db_session, mirror.id, PerformanceUpdate(member_name="Park")
    )

    assert updated.member_id == park.id
    assert updated.fee_category == FeeCategory.FREE
    attendance = await db_session.get(AttendanceRecord, result.record_id)
    await db_session.refresh(attendance)
    assert attendance.member_id == park.id
    assert attendance.member_name == "Park"
    assert attendance.birth_date == "1960-02-02"
    assert attendance.phone == "010-2222-2222"
    assert attendance.fee_category == FeeCategory.FREE


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sub_program_change_reclassifies_both_records(db_session):
    db_session.add_all(
        [
            ProgramStructureFactory.create(
                sub_program_name="Zumba", function="F1", team="T1", unit="U1"
            ),
            ProgramStructureFactory.create(
                sub_program_name="Yoga", function="F2", team="T2", unit="U2"
            ),
        ]
    )
    kim = await _enroll(db_session, name="Kim", gender="F")
    db_session.add(EnrollmentFactory.create(kim.id, sub_program_name="Yoga"))
    await db_session.commit()
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)
    assert (mirror.function, mirror.team, mirror.unit) == ("F1", "T1", "U1")

    updated = await update_individual_performance(
        db_session, mirror.id, PerformanceUpdate(sub_program_name="Yoga")
    )

    assert updated.member_id == kim.id
    assert (updated.function, updated.team, updated.unit) == ("F2", "T2", "U2")
    attendance = await db_session.get(AttendanceRecord, result.record_id)
    await db_session.refresh(attendance)
    assert attendance.sub_program_name == "Yoga"
    assert (attendance.function, attendance.team, attendance.unit) == ("F2", "T2", "U2")
    assert (await check_mirror(db_session)).consistent


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_to_unknown_member_is_refused(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)

    with pytest.raises(UnresolvableIdentityError):
        await update_individual_performance(
            db_session, mirror.id, PerformanceUpdate(member_name="Nobody")
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rename_to_ambiguous_name_is_refused(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    await _enroll(db_session, name="Lee", gender="F", phone="010-1111-1111")
    await _enroll(db_session, name="Lee", gender="F", phone="010-2222-2222")
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)

    with pytest.raises(AmbiguousIdentityError):
        await update_individual_performance(
            db_session, mirror.id, PerformanceUpdate(member_name="Lee")
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_onto_existing_key_is_refused(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    await _ingest_one(db_session, member_name="Kim", gender="F", date="2025-07-01")
    second = await _ingest_one(db_session, member_name="Kim", gender="F", date="2025-07-02")
    mirror = await _mirror_of(db_session, second.record_id)

    with pytest.raises(DuplicateRecordError) as exc_info:
        await update_individual_performance(
            db_session, mirror.id, PerformanceUpdate(date="2025-07-01")
        )
    assert exc_info.value.tier == "exact_key"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_with_unreadable_date_is_refused(db_session):
    record = PerformanceRecordFactory.create()
    db_session.add(record)
    await db_session.commit()

    with pytest.raises(ValidationError):
        await update_individual_performance(
            db_session, record.id, PerformanceUpdate(date="whenever")
        )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_bulk_record_updated_in_place(db_session):
    record = PerformanceRecordFactory.create(
        record_kind=RecordKind.BULK, actual_count=10, registered_count=10
    )
    db_session.add(record)
    await db_session.commit()

    updated = await update_individual_performance(
        db_session, record.id, PerformanceUpdate(actual_count=12, remark="evening")
    )

    assert updated.actual_count == 12
    assert updated.remark == "evening"
    assert await _all(db_session, AttendanceRecord) == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_missing_record(db_session):
    with pytest.raises(RecordNotFoundError):
        await update_individual_performance(
            db_session, uuid.uuid4(), PerformanceUpdate(note="x")
        )


# ---------------------------------------------------------------------------
# Performance deleted
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_cascades_to_attendance(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    result = await _ingest_one(db_session, member_name="Kim", gender="F")
    mirror = await _mirror_of(db_session, result.record_id)

    removed = await delete_performance(db_session, mirror.id)

    assert removed == 1
    assert await _all(db_session, AttendanceRecord) == []
    assert await _all(db_session, PerformanceRecord) == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_bulk_leaves_attendance_alone(db_session):
    attendance = AttendanceRecordFactory.create()
    bulk = PerformanceRecordFactory.create(record_kind=RecordKind.BULK, actual_count=5)
    db_session.add_all([attendance, bulk])
    await db_session.commit()

    removed = await delete_performance(db_session, bulk.id)

    assert removed == 0
    assert len(await _all(db_session, AttendanceRecord)) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_batch_delete_reports_each_id(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    first = await _ingest_one(db_session, member_name="Kim", gender="F", date="2025-07-01")
    second = await _ingest_one(db_session, member_name="Kim", gender="F", date="2025-07-02")
    first_mirror = await _mirror_of(db_session, first.record_id)
    second_mirror = await _mirror_of(db_session, second.record_id)
    missing = uuid.uuid4()

    outcome = await delete_performances(
        db_session, [first_mirror.id, missing, second_mirror.id]
    )

    assert outcome.deleted == [first_mirror.id, second_mirror.id]
    assert [f.id for f in outcome.failed] == [missing]
    assert await _all(db_session, AttendanceRecord) == []


# ---------------------------------------------------------------------------
# Consistency check
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mirror_check_reports_orphans(db_session):
    orphan_attendance = AttendanceRecordFactory.create(member_id="MEM-aaaaaaaaaaaa")
    orphan_performance = PerformanceRecordFactory.create(member_id="MEM-bbbbbbbbbbbb")
    bulk = PerformanceRecordFactory.create(record_kind=RecordKind.BULK)
    db_session.add_all([orphan_attendance, orphan_performance, bulk])
    await db_session.commit()

    report = await check_mirror(db_session, record_date="2025-07-01")

    assert not report.consistent
    assert [k.member_id for k in report.missing_performance] == ["MEM-aaaaaaaaaaaa"]
    assert [k.member_id for k in report.missing_attendance] == ["MEM-bbbbbbbbbbbb"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_mirror_check_after_ingest_is_consistent(db_session):
    await _enroll(db_session, name="Kim", gender="F")
    await _ingest_one(db_session, member_name="Kim", gender="F")

    report = await check_mirror(db_session, sub_program_name="Zumba")

    assert report.consistent
