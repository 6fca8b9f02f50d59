"""Duplicate classification for incoming attendance.

Rules are applied in order and the first match wins:

1. exact key        - same date, sub-program and member id
2. broad attributes - same date, sub-program, name and gender, plus birth
                      date and phone when the candidate carries them
3. minimal attributes - same date, sub-program, name and gender

Rule 3 ignores the member id, so a second member with the same name and
gender is rejected once anyone with that name/gender has a record for the
day. Candidates are compared against a snapshot taken before their input
row is written, so members fanned out from one row do not reject each other.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from services.attendance_service.models import AttendanceRecord, DuplicateTier
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class AttendanceCandidate:
    record_date: str
    sub_program_name: str
    member_id: str
    member_name: str
    gender: Optional[str] = None
    birth_date: Optional[str] = None
    phone: Optional[str] = None


async def load_attendance_snapshot(
    db: AsyncSession, record_date: str, sub_program_name: str
) -> list[AttendanceCandidate]:
    """Existing attendance for one date and sub-program, as plain values."""
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.record_date == record_date,
            AttendanceRecord.sub_program_name == sub_program_name,
        )
    )
    return [
        AttendanceCandidate(
            record_date=record.record_date,
            sub_program_name=record.sub_program_name,
            member_id=record.member_id,
            member_name=record.member_name,
            gender=record.gender,
            birth_date=record.birth_date,
            phone=record.phone,
        )
        for record in result.scalars().all()
    ]


def _same_slot(candidate: AttendanceCandidate, existing: AttendanceCandidate) -> bool:
    return (
        candidate.record_date == existing.record_date
        and candidate.sub_program_name == existing.sub_program_name
    )


def _same_person(candidate: AttendanceCandidate, existing: AttendanceCandidate) -> bool:
    return (
        candidate.member_name == existing.member_name
        and candidate.gender == existing.gender
    )


def _matches_exact_key(candidate, existing) -> bool:
    return _same_slot(candidate, existing) and candidate.member_id == existing.member_id


def _matches_broad_attributes(candidate, existing) -> bool:
    if not (_same_slot(candidate, existing) and _same_person(candidate, existing)):
        return False
    if candidate.birth_date and candidate.birth_date != existing.birth_date:
        return False
    if candidate.phone and candidate.phone != existing.phone:
        return False
    return True


def _matches_minimal_attributes(candidate, existing) -> bool:
    return _same_slot(candidate, existing) and _same_person(candidate, existing)


TIER_RULES: Sequence = (
    (DuplicateTier.EXACT_KEY, _matches_exact_key),
    (DuplicateTier.BROAD_ATTRIBUTES, _matches_broad_attributes),
    (DuplicateTier.MINIMAL_ATTRIBUTES, _matches_minimal_attributes),
)


def classify_duplicate(
    candidate: AttendanceCandidate, existing: Iterable[AttendanceCandidate]
) -> Optional[DuplicateTier]:
    """Return the first tier that matches an existing record, or None."""
    existing = list(existing)
    for tier, rule in TIER_RULES:
        if any(rule(candidate, record) for record in existing):
            return tier
    return None
