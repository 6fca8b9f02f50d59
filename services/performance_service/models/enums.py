"""Enum definitions for performance service models."""

import enum


class RecordKind(str, enum.Enum):
    INDIVIDUAL = "individual"  # mirrors one attendance record
    BULK = "bulk"  # headcount submission, no member identity
