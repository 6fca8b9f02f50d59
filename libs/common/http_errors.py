from fastapi import HTTPException

from libs.common.errors import DomainError

STATUS_BY_CODE = {
    "not_found": 404,
    "duplicate": 409,
    "validation": 422,
    "unresolvable_identity": 422,
    "ambiguous_identity": 422,
    "downstream_write": 503,
}


def to_http_exception(exc: DomainError) -> HTTPException:
    """Translate a domain error into the HTTPException a router raises."""
    detail = {"error": str(exc), "error_code": exc.code}
    tier = getattr(exc, "tier", None)
    if tier:
        detail["duplicate_tier"] = getattr(tier, "value", tier)
    return HTTPException(
        status_code=STATUS_BY_CODE.get(exc.code, 400),
        detail=detail,
    )
