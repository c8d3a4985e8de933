from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from enum import Enum
from thatsgoodtoo.core.clock import utcnow

class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"

class RecurrencePattern(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

class Coupon(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("vendor_id", "code", name="uq_coupon_vendor_code"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    vendor_id: int = Field(foreign_key="user.id", index=True)

    # Coupon Details
    code: str = Field(index=True)  # e.g., "SAVE20", unique per vendor

    # Discount
    discount_type: DiscountType = Field(default=DiscountType.PERCENTAGE)
    discount_value: float  # Percentage (1-100) or fixed amount

    # Usage Limits
    max_uses: Optional[int] = None  # null = unlimited
    used_count: int = Field(default=0)

    # Validity
    start_date: datetime
    end_date: datetime
    is_active: bool = Field(default=True)

    # Optional link to a single listing
    listing_id: Optional[int] = Field(default=None, foreign_key="listing.id", index=True)

    # Recurrence
    is_recurring: bool = Field(default=False)
    recurrence_pattern: Optional[RecurrencePattern] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CouponUsage(SQLModel, table=True):
    """One row per successful claim. Never updated."""
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    listing_id: Optional[int] = Field(default=None, foreign_key="listing.id")

    # Claim context
    device_fingerprint: Optional[str] = None
    ip_address: Optional[str] = None

    used_at: datetime = Field(default_factory=utcnow)


class CouponShare(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    vendor_id: int = Field(foreign_key="user.id", index=True)
    shopper_id: int = Field(foreign_key="user.id", index=True)

    shared_at: datetime = Field(default_factory=utcnow, index=True)

    # One-way: False -> True
    viewed: bool = Field(default=False)
    viewed_at: Optional[datetime] = None
