import math
from datetime import datetime, timedelta, timezone

import pytest

from thatsgoodtoo.models import Coupon, DiscountType, RecurrencePattern
from thatsgoodtoo.schemas.coupon import CouponCreate
from thatsgoodtoo.services.validation import (
    check_code,
    check_discount,
    check_max_uses,
    check_recurrence,
    check_window,
    normalize_code,
    validate_coupon_changes,
    validate_new_coupon,
)

START = datetime(2026, 3, 1)
END = datetime(2026, 4, 1)


def valid_payload(**overrides) -> CouponCreate:
    values = dict(
        code="SAVE20",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=20,
        max_uses=5,
        start_date=START,
        end_date=END,
    )
    values.update(overrides)
    return CouponCreate(**values)


class TestCode:
    def test_normalizes_case_and_whitespace(self):
        assert normalize_code("  save20 ") == "SAVE20"

    def test_accepts_letters_digits_and_hyphens(self):
        assert check_code("SPRING-2026") is None
        assert check_code("abc") is None

    def test_length_bounds(self):
        assert check_code("AB").field == "code"
        assert check_code("A" * 20) is None
        assert check_code("A" * 21).field == "code"

    def test_rejects_other_characters(self):
        violation = check_code("SAVE_20!")
        assert violation.field == "code"
        assert "letters, numbers, and hyphens" in violation.reason

    def test_missing_code(self):
        assert check_code(None).reason == "Coupon code is required"


class TestDiscount:
    def test_percentage_bounds(self):
        assert check_discount(DiscountType.PERCENTAGE, 1) is None
        assert check_discount(DiscountType.PERCENTAGE, 100) is None
        assert check_discount(DiscountType.PERCENTAGE, 150).field == "discount_value"

    def test_value_must_be_positive(self):
        assert check_discount(DiscountType.FIXED_AMOUNT, 0).field == "discount_value"
        assert check_discount(DiscountType.FIXED_AMOUNT, -5).field == "discount_value"

    def test_fixed_amount_has_no_upper_bound(self):
        assert check_discount(DiscountType.FIXED_AMOUNT, 250) is None

    def test_type_required(self):
        assert check_discount(None, 10).field == "discount_type"

    @pytest.mark.parametrize("discount_type", list(DiscountType))
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_values_are_rejected(self, discount_type, value):
        violation = check_discount(discount_type, value)
        assert violation.field == "discount_value"
        assert violation.reason == "Discount value must be positive"


class TestWindowAndCaps:
    def test_end_must_follow_start(self):
        assert check_window(START, END) is None
        assert check_window(START, START).field == "end_date"
        assert check_window(END, START).field == "end_date"

    def test_missing_dates(self):
        assert check_window(None, END).field == "start_date"
        assert check_window(START, None).field == "end_date"

    def test_max_uses(self):
        assert check_max_uses(None) is None
        assert check_max_uses(1) is None
        assert check_max_uses(0).field == "max_uses"

    def test_recurring_needs_pattern(self):
        assert check_recurrence(True, None).field == "recurrence_pattern"
        assert check_recurrence(True, RecurrencePattern.WEEKLY) is None
        assert check_recurrence(False, None) is None


class TestPayloads:
    def test_valid_payload_passes(self):
        assert validate_new_coupon(valid_payload()) is None

    def test_first_violation_is_reported(self):
        violation = validate_new_coupon(valid_payload(code="x", discount_value=150))
        assert violation.field == "code"

    def test_aware_dates_become_naive_utc(self):
        payload = valid_payload(start_date=datetime(2026, 3, 1, 5, tzinfo=timezone(timedelta(hours=5))))
        assert payload.start_date == datetime(2026, 3, 1, 0, 0)
        assert payload.start_date.tzinfo is None

    def test_changes_are_checked_against_stored_coupon(self):
        coupon = Coupon(
            vendor_id=1,
            code="SAVE20",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=20,
            start_date=START,
            end_date=END,
        )
        assert validate_coupon_changes(coupon, {"discount_value": 150}).field == "discount_value"
        assert validate_coupon_changes(coupon, {"end_date": START - timedelta(days=1)}).field == "end_date"
        assert validate_coupon_changes(coupon, {"is_recurring": True}).field == "recurrence_pattern"
        assert validate_coupon_changes(coupon, {"max_uses": 10}) is None
