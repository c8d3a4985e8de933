# Import all models to register them with SQLModel
from thatsgoodtoo.models.user import User, UserRole
from thatsgoodtoo.models.listing import Listing
from thatsgoodtoo.models.coupon import Coupon, CouponUsage, CouponShare, DiscountType, RecurrencePattern
from thatsgoodtoo.models.vendor import VendorApplication, ApplicationStatus
from thatsgoodtoo.models.rate_limit import RateLimitCounter

__all__ = [
    "User",
    "UserRole",
    "Listing",
    "Coupon",
    "CouponUsage",
    "CouponShare",
    "DiscountType",
    "RecurrencePattern",
    "VendorApplication",
    "ApplicationStatus",
    "RateLimitCounter",
]
