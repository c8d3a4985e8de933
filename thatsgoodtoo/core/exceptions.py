"""Service errors.

Every error the services raise is an ``HTTPException`` carrying the status
code the caller should see, so routers let them propagate untouched. The
handlers registered in ``thatsgoodtoo.main`` render them as
``{"error": message}``.
"""
from typing import Optional
from fastapi import HTTPException, status


class ServiceError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request could not be processed"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)

    def to_response(self) -> dict:
        return {"error": self.detail}


class InvalidField(ServiceError):
    """A single field of a proposed payload broke a rule."""

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field

    def to_response(self) -> dict:
        return {"error": self.detail, "field": self.field}


class InvalidCap(InvalidField):
    def __init__(self, used_count: int):
        super().__init__("max_uses", f"Max uses cannot be lower than current usage ({used_count})")


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class DuplicateCode(ServiceError):
    default_detail = "Coupon code already exists"


class DuplicateShare(ServiceError):
    default_detail = "Coupon already shared with this shopper recently"


class DuplicateApplication(ServiceError):
    default_detail = "You already have a pending vendor application"


class ListingConflict(ServiceError):
    default_detail = "This listing already has an active coupon"


class Exhausted(ServiceError):
    default_detail = "Coupon usage limit reached"


class Expired(ServiceError):
    default_detail = "Coupon has expired"


class QuotaExceeded(ServiceError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many requests"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
