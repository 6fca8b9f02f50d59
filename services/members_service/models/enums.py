"""Enum definitions for members service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class FeeCategory(str, enum.Enum):
    PAID = "paid"
    FREE = "free"


class ParticipationStatus(str, enum.Enum):
    ACTIVE = "active"
    TERMINATED = "terminated"
