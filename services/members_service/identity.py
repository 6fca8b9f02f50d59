"""Identity resolution against the roster.

Attendance is entered by display name, so a name (plus an optional gender)
inside a sub-program has to be turned into durable member identifiers.
Same-name members are common; the resolver therefore returns every match
and the caller decides how to fan out.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from libs.common.date_normalizer import normalize_date
from libs.common.logging import get_logger
from services.members_service.models import (
    FeeCategory,
    Member,
    ProgramStructure,
    SubProgramEnrollment,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class MemberSnapshot:
    """Roster attributes copied onto attendance and performance records."""

    member_id: str
    name: str
    gender: Optional[str]
    birth_date: Optional[str]
    phone: Optional[str]
    fee_category: Optional[FeeCategory]


@dataclass(frozen=True)
class StructureSnapshot:
    team: Optional[str]
    function: Optional[str]
    unit: Optional[str]


def normalize_phone(phone: Optional[str]) -> str:
    """Format 11-digit mobile numbers as ``010-1234-5678``; leave others as-is."""
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    return phone.strip()


async def resolve_member_ids(
    db: AsyncSession,
    name: str,
    gender: Optional[str],
    sub_program_name: str,
) -> list[str]:
    """Return identifiers of enrolled members matching ``name`` (and ``gender``).

    Name and gender are matched together first; when that yields nothing the
    match is relaxed to the name alone. Zero, one or several identifiers may
    come back.
    """
    name = (name or "").strip()
    if not name:
        return []

    query = (
        select(Member.id, Member.gender)
        .join(SubProgramEnrollment, SubProgramEnrollment.member_id == Member.id)
        .where(
            SubProgramEnrollment.sub_program_name == sub_program_name,
            Member.name == name,
        )
        .order_by(Member.id)
    )
    result = await db.execute(query)
    rows = result.all()

    by_gender = [member_id for member_id, member_gender in rows if member_gender == gender]
    if by_gender:
        return by_gender

    name_only = [member_id for member_id, _ in rows]
    if name_only and gender:
        logger.info(
            "No %s/%s match in %s; falling back to name-only (%d candidates)",
            name,
            gender,
            sub_program_name,
            len(name_only),
        )
    return name_only


async def get_member_snapshots(
    db: AsyncSession, member_ids: Iterable[str]
) -> dict[str, MemberSnapshot]:
    ids = list(dict.fromkeys(member_ids))
    if not ids:
        return {}

    result = await db.execute(select(Member).where(Member.id.in_(ids)))
    return {
        member.id: MemberSnapshot(
            member_id=member.id,
            name=member.name,
            gender=member.gender,
            birth_date=member.birth_date,
            phone=member.phone,
            fee_category=member.fee_category,
        )
        for member in result.scalars().all()
    }


async def get_program_structure(
    db: AsyncSession, sub_program_name: str
) -> Optional[StructureSnapshot]:
    """Classification lookup for a sub-program; ``None`` when unmapped."""
    if not sub_program_name:
        return None

    result = await db.execute(
        select(ProgramStructure).where(
            ProgramStructure.sub_program_name == sub_program_name
        )
    )
    structure = result.scalars().first()
    if not structure:
        return None
    return StructureSnapshot(
        team=structure.team, function=structure.function, unit=structure.unit
    )


async def match_member(
    db: AsyncSession,
    name: str,
    birth_date: Optional[str],
    phone: Optional[str],
) -> Optional[str]:
    """Find a member by name, phone and birth date, regardless of enrollment.

    All three must agree after normalization. Returns the member id or None.
    """
    name = (name or "").strip()
    normalized_phone = normalize_phone(phone)
    normalized_birth = normalize_date(birth_date)
    if not name or not normalized_phone or not normalized_birth:
        return None

    result = await db.execute(
        select(Member).where(Member.name == name).order_by(Member.id)
    )
    for member in result.scalars().all():
        if (
            normalize_phone(member.phone) == normalized_phone
            and normalize_date(member.birth_date) == normalized_birth
        ):
            return member.id
    return None
