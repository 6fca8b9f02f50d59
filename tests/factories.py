"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    member = MemberFactory.create(name="김철수", gender="남")
    db_session.add(member)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _member_id() -> str:
    return f"MEM-{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


class MemberFactory:
    @staticmethod
    def create(**overrides):
        from services.members_service.models import (
            FeeCategory,
            Member,
            ParticipationStatus,
        )

        defaults = {
            "id": _member_id(),
            "name": "김철수",
            "gender": "남",
            "birth_date": "1950-03-15",
            "phone": "010-1234-5678",
            "fee_category": FeeCategory.PAID,
            "status": ParticipationStatus.ACTIVE,
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Member(**defaults)


class EnrollmentFactory:
    @staticmethod
    def create(member_id, sub_program_name="건강체조", **overrides):
        from services.members_service.models import SubProgramEnrollment

        defaults = {
            "id": _uuid(),
            "member_id": member_id,
            "sub_program_name": sub_program_name,
        }
        defaults.update(overrides)
        return SubProgramEnrollment(**defaults)


class ProgramStructureFactory:
    @staticmethod
    def create(**overrides):
        from services.members_service.models import ProgramStructure

        defaults = {
            "id": _uuid(),
            "sub_program_name": "건강체조",
            "function": "서비스제공",
            "team": "건강증진팀",
            "unit": "건강생활지원",
        }
        defaults.update(overrides)
        return ProgramStructure(**defaults)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class AttendanceRecordFactory:
    @staticmethod
    def create(member_id=None, **overrides):
        from services.attendance_service.models import AttendanceRecord

        defaults = {
            "id": _uuid(),
            "record_date": "2025-07-01",
            "sub_program_name": "건강체조",
            "member_id": member_id or _member_id(),
            "member_name": "김철수",
            "gender": "남",
            "attended": True,
            "session_count": 1,
            "case_count": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return AttendanceRecord(**defaults)


class PerformanceRecordFactory:
    @staticmethod
    def create(**overrides):
        """Individual record by default; pass record_kind=RecordKind.BULK for headcounts."""
        from services.performance_service.models import PerformanceRecord, RecordKind

        defaults = {
            "id": _uuid(),
            "record_kind": RecordKind.INDIVIDUAL,
            "record_date": "2025-07-01",
            "sub_program_name": "건강체조",
            "member_id": _member_id(),
            "member_name": "김철수",
            "gender": "남",
            "attended": True,
            "session_count": 1,
            "registered_count": 0,
            "actual_count": 0,
            "visit_count": 0,
            "case_count": 0,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        if defaults["record_kind"] == RecordKind.BULK:
            defaults.setdefault("unit", "")
            defaults.setdefault("remark", "")
            for field in ("member_id", "member_name", "gender", "attended"):
                if field not in overrides:
                    defaults[field] = None
        return PerformanceRecord(**defaults)
