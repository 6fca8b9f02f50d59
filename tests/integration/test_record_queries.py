"""Integration tests for the read side: filtered lists and the daily sheet."""

import pytest
from libs.common.filters import RecordFilters
from services.attendance_service.services.queries import (
    build_attendance_sheet,
    list_attendance,
)
from services.members_service.models import ParticipationStatus
from services.performance_service.models import RecordKind
from services.performance_service.services.queries import (
    list_aggregate_performance,
    list_individual_performance,
)
from tests.factories import (
    AttendanceRecordFactory,
    EnrollmentFactory,
    MemberFactory,
    PerformanceRecordFactory,
)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_attendance_sorted_by_sub_program_then_name(db_session):
    db_session.add_all(
        [
            AttendanceRecordFactory.create(sub_program_name="Yoga", member_name="Ahn"),
            AttendanceRecordFactory.create(sub_program_name="Zumba", member_name="Choi"),
            AttendanceRecordFactory.create(sub_program_name="Zumba", member_name="Baek"),
        ]
    )
    await db_session.commit()

    records = await list_attendance(db_session)

    assert [(r.sub_program_name, r.member_name) for r in records] == [
        ("Yoga", "Ahn"),
        ("Zumba", "Baek"),
        ("Zumba", "Choi"),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_attendance_filters(db_session):
    target = AttendanceRecordFactory.create(
        record_date="2025-07-01", sub_program_name="Zumba", team="Health", unit="Fitness"
    )
    db_session.add_all(
        [
            target,
            AttendanceRecordFactory.create(record_date="2025-07-02", sub_program_name="Zumba"),
            AttendanceRecordFactory.create(record_date="2025-07-01", sub_program_name="Yoga"),
        ]
    )
    await db_session.commit()

    records = await list_attendance(
        db_session,
        RecordFilters(record_date="2025.7.1", sub_program_name="Zumba", team="Health"),
    )
    assert [r.id for r in records] == [target.id]

    by_member = await list_attendance(db_session, RecordFilters(member_id=target.member_id))
    assert [r.id for r in by_member] == [target.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_individual_and_aggregate_lists_are_separate(db_session):
    individual = PerformanceRecordFactory.create(sub_program_name="Zumba")
    bulk = PerformanceRecordFactory.create(
        record_kind=RecordKind.BULK, sub_program_name="Zumba", actual_count=10
    )
    db_session.add_all([individual, bulk])
    await db_session.commit()

    individuals = await list_individual_performance(db_session)
    aggregates = await list_aggregate_performance(
        db_session, RecordFilters(member_id=individual.member_id)
    )

    assert [r.id for r in individuals] == [individual.id]
    # a member filter does not exclude headcount rows
    assert [r.id for r in aggregates] == [bulk.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_individual_list_filters_by_member(db_session):
    mine = PerformanceRecordFactory.create(member_id="MEM-aaaaaaaaaaaa")
    db_session.add_all([mine, PerformanceRecordFactory.create(member_id="MEM-bbbbbbbbbbbb")])
    await db_session.commit()

    records = await list_individual_performance(
        db_session, RecordFilters(member_id="MEM-aaaaaaaaaaaa")
    )

    assert [r.id for r in records] == [mine.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sheet_lists_active_members_with_flags(db_session):
    present = MemberFactory.create(name="Ahn")
    absent = MemberFactory.create(name="Baek")
    gone = MemberFactory.create(name="Choi", status=ParticipationStatus.TERMINATED)
    elsewhere = MemberFactory.create(name="Dong")
    db_session.add_all([present, absent, gone, elsewhere])
    db_session.add_all(
        [
            EnrollmentFactory.create(present.id, sub_program_name="Zumba"),
            EnrollmentFactory.create(absent.id, sub_program_name="Zumba"),
            EnrollmentFactory.create(gone.id, sub_program_name="Zumba"),
            EnrollmentFactory.create(elsewhere.id, sub_program_name="Yoga"),
        ]
    )
    record = AttendanceRecordFactory.create(
        present.id, record_date="2025-07-01", sub_program_name="Zumba", member_name="Ahn"
    )
    db_session.add(record)
    await db_session.commit()

    sheet = await build_attendance_sheet(db_session, "2025-07-01", "Zumba")

    assert [(row.member_name, row.attended) for row in sheet] == [
        ("Ahn", True),
        ("Baek", False),
    ]
    assert sheet[0].record_id == record.id
    assert sheet[1].record_id is None
