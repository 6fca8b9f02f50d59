"""Enum definitions for attendance service models."""

import enum


class DuplicateTier(str, enum.Enum):
    """Duplicate-matching rules, in the order they are applied."""

    EXACT_KEY = "exact_key"
    BROAD_ATTRIBUTES = "broad_attributes"
    MINIMAL_ATTRIBUTES = "minimal_attributes"
