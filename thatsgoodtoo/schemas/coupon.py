from typing import Annotated, List, Literal, Optional, Union
from datetime import datetime, timezone
from pydantic import BaseModel, Field, RootModel, field_validator

from thatsgoodtoo.models.coupon import DiscountType, RecurrencePattern


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CouponCreate(BaseModel):
    """Proposed coupon. Business rules are checked by the validation layer, not here."""
    code: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = None
    max_uses: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    listing_id: Optional[int] = None

    normalize_dates = field_validator("start_date", "end_date")(to_naive_utc)


class CouponUpdate(BaseModel):
    """Only these fields may change after creation."""
    id: int
    discount_value: Optional[float] = None
    max_uses: Optional[int] = None
    end_date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurrence_pattern: Optional[RecurrencePattern] = None

    normalize_dates = field_validator("end_date")(to_naive_utc)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class CouponRef(BaseModel):
    id: int


# Tagged request variants for POST /coupons/manage

class CreateCouponRequest(BaseModel):
    action: Literal["create"]
    coupon: CouponCreate
    vendor_id: Optional[int] = None

class UpdateCouponRequest(BaseModel):
    action: Literal["update"]
    coupon: CouponUpdate
    vendor_id: Optional[int] = None

class DeleteCouponRequest(BaseModel):
    action: Literal["delete"]
    coupon: CouponRef
    vendor_id: Optional[int] = None

class GetCouponRequest(BaseModel):
    action: Literal["get"]
    coupon: CouponRef
    vendor_id: Optional[int] = None

class ListCouponsRequest(BaseModel):
    action: Literal["list"]
    vendor_id: Optional[int] = None

CouponRequest = Annotated[
    Union[CreateCouponRequest, UpdateCouponRequest, DeleteCouponRequest, GetCouponRequest, ListCouponsRequest],
    Field(discriminator="action"),
]


class CouponRequestBody(RootModel[CouponRequest]):
    pass


class CouponRead(BaseModel):
    id: int
    vendor_id: int
    code: str
    discount_type: DiscountType
    discount_value: float
    max_uses: Optional[int]
    used_count: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    listing_id: Optional[int]
    is_recurring: bool
    recurrence_pattern: Optional[RecurrencePattern]
    created_at: datetime
    updated_at: datetime

    # Derived
    usage_percentage: Optional[float] = None
    total_claims: Optional[int] = None


class CouponAnalytics(BaseModel):
    coupon_id: int
    code: str
    is_active: bool
    used_count: int
    max_uses: Optional[int]
    usage_percentage: Optional[float]
    total_claims: int
    unique_users: int
    end_date: datetime


class ClaimRequest(BaseModel):
    code: str
    vendor_id: int
    device_fingerprint: Optional[str] = None
    listing_id: Optional[int] = None


class ClaimResult(BaseModel):
    coupon_id: int
    code: str
    used_count: int
    max_uses: Optional[int]
    remaining: Optional[int]


class ShareRequest(BaseModel):
    coupon_id: int
    shopper_id: int


class ShareLimits(BaseModel):
    shares_used: int
    shares_remaining: int
    max_shares: int


class SharedOffer(BaseModel):
    id: int
    coupon_id: int
    vendor_id: int
    vendor_name: str
    shared_at: datetime
    viewed: bool
    code: str
    discount: str
    discount_type: DiscountType
    discount_value: float
    end_date: datetime
    listing_id: Optional[int]
    listing_title: str


class ExpirationReport(BaseModel):
    expired_count: int
    expiring_soon: int
    failed: List[int] = []


class RenewalReport(BaseModel):
    renewed_count: int
    renewed_coupons: List[int]
    failed: List[int] = []
