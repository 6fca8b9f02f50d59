"""Members Service models package."""

from services.members_service.models.core import (
    Member,
    ProgramStructure,
    SubProgramEnrollment,
    generate_member_id,
)
from services.members_service.models.enums import FeeCategory, ParticipationStatus

__all__ = [
    "FeeCategory",
    "Member",
    "ParticipationStatus",
    "ProgramStructure",
    "SubProgramEnrollment",
    "generate_member_id",
]
