"""Domain errors shared by the attendance and performance services.

Batch entry points catch these per row and report them in their result
lists; single-record entry points let them propagate so the routers can map
them onto HTTP status codes.
"""

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Missing required field, unparseable date or malformed call input."""

    code = "validation"


class UnresolvableIdentityError(DomainError):
    """Name/gender/sub-program matched no enrolled member."""

    code = "unresolvable_identity"


class AmbiguousIdentityError(DomainError):
    """A single-record mutation resolved to more than one member."""

    code = "ambiguous_identity"


class DuplicateRecordError(DomainError):
    """The record already exists; ``tier`` names the rule that matched."""

    code = "duplicate"

    def __init__(self, message: str, tier: Optional[str] = None):
        super().__init__(message)
        self.tier = tier


class DownstreamWriteError(DomainError):
    """The store rejected or failed a write."""

    code = "downstream_write"


class RecordNotFoundError(DomainError):
    """No record with the given identifier."""

    code = "not_found"
