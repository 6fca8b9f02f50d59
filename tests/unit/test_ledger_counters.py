"""Unit tests for mirror counter accumulation."""

import pytest
from services.performance_service.services.ledger import merge_counters
from tests.factories import PerformanceRecordFactory

pytestmark = pytest.mark.unit


def test_merge_adds_to_existing_counters():
    record = PerformanceRecordFactory.create(session_count=2, case_count=1)

    merge_counters(record, session_count=1, case_count=3)

    assert record.session_count == 3
    assert record.case_count == 4


def test_merge_accumulates_people_counts():
    record = PerformanceRecordFactory.create(actual_count=1, visit_count=5)

    merge_counters(record, session_count=1, case_count=0, actual_count=2, visit_count=2)

    assert record.actual_count == 3
    assert record.visit_count == 7
    assert record.session_count == 2


def test_merge_treats_missing_counters_as_zero():
    record = PerformanceRecordFactory.create(session_count=None, case_count=None)

    merge_counters(record, session_count=1, case_count=0)

    assert record.session_count == 1
    assert record.case_count == 0
