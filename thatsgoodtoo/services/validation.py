"""Field rules for proposed coupons.

Every check returns ``None`` when the value is acceptable, otherwise a
``FieldViolation`` naming the field and a message fit for the end user.
Nothing here touches the database.
"""
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from thatsgoodtoo.models.coupon import Coupon, DiscountType, RecurrencePattern
from thatsgoodtoo.schemas.coupon import CouponCreate

CODE_PATTERN = re.compile(r"^[A-Z0-9-]+$")
CODE_MIN_LENGTH = 3
CODE_MAX_LENGTH = 20


@dataclass(frozen=True)
class FieldViolation:
    field: str
    reason: str


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def check_code(code: Optional[str]) -> Optional[FieldViolation]:
    normalized = normalize_code(code)
    if not normalized:
        return FieldViolation("code", "Coupon code is required")
    if not CODE_MIN_LENGTH <= len(normalized) <= CODE_MAX_LENGTH:
        return FieldViolation("code", f"Code must be {CODE_MIN_LENGTH}-{CODE_MAX_LENGTH} characters")
    if not CODE_PATTERN.match(normalized):
        return FieldViolation("code", "Code must contain only letters, numbers, and hyphens")
    return None


def check_discount(discount_type: Optional[DiscountType], discount_value: Optional[float]) -> Optional[FieldViolation]:
    if discount_type is None:
        return FieldViolation("discount_type", "Invalid discount type")
    if discount_value is None or not math.isfinite(discount_value) or discount_value <= 0:
        return FieldViolation("discount_value", "Discount value must be positive")
    if discount_type == DiscountType.PERCENTAGE and not 1 <= discount_value <= 100:
        return FieldViolation("discount_value", "Percentage discount must be between 1 and 100")
    return None


def check_window(start_date: Optional[datetime], end_date: Optional[datetime]) -> Optional[FieldViolation]:
    if start_date is None:
        return FieldViolation("start_date", "Start date is required")
    if end_date is None:
        return FieldViolation("end_date", "End date is required")
    if end_date <= start_date:
        return FieldViolation("end_date", "End date must be after start date")
    return None


def check_max_uses(max_uses: Optional[int]) -> Optional[FieldViolation]:
    if max_uses is not None and max_uses <= 0:
        return FieldViolation("max_uses", "Max uses must be a positive number")
    return None


def check_recurrence(is_recurring: Optional[bool], recurrence_pattern: Optional[RecurrencePattern]) -> Optional[FieldViolation]:
    if is_recurring and recurrence_pattern is None:
        return FieldViolation("recurrence_pattern", "Recurring coupons need a recurrence pattern")
    return None


def validate_new_coupon(payload: CouponCreate) -> Optional[FieldViolation]:
    return (
        check_code(payload.code)
        or check_discount(payload.discount_type, payload.discount_value)
        or check_window(payload.start_date, payload.end_date)
        or check_max_uses(payload.max_uses)
        or check_recurrence(payload.is_recurring, payload.recurrence_pattern)
    )


def validate_coupon_changes(coupon: Coupon, changes: dict) -> Optional[FieldViolation]:
    """Check ``changes`` as they would look merged onto ``coupon``."""
    if "discount_value" in changes:
        violation = check_discount(coupon.discount_type, changes["discount_value"])
        if violation:
            return violation
    if "end_date" in changes:
        violation = check_window(coupon.start_date, changes["end_date"])
        if violation:
            return violation
    if "max_uses" in changes:
        violation = check_max_uses(changes["max_uses"])
        if violation:
            return violation
    return check_recurrence(
        changes.get("is_recurring", coupon.is_recurring),
        changes.get("recurrence_pattern", coupon.recurrence_pattern),
    )
