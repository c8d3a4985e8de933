import logging
from typing import List, Optional
from datetime import datetime
from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, delete

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.exceptions import DuplicateCode, InternalError, InvalidCap, InvalidField, ListingConflict, NotFound
from thatsgoodtoo.db.session import commit_or_fail
from thatsgoodtoo.models.coupon import Coupon, CouponShare, CouponUsage
from thatsgoodtoo.models.listing import Listing
from thatsgoodtoo.schemas.coupon import CouponAnalytics, CouponCreate, CouponRead
from thatsgoodtoo.services.validation import FieldViolation, normalize_code, validate_coupon_changes, validate_new_coupon

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = {"discount_value", "max_uses", "end_date", "is_recurring", "recurrence_pattern"}
# Fields a vendor may explicitly clear
NULLABLE_FIELDS = {"max_uses", "recurrence_pattern"}


def usage_percentage(coupon: Coupon) -> Optional[float]:
    if not coupon.max_uses:
        return None
    return round(coupon.used_count / coupon.max_uses * 100, 2)


def to_read(coupon: Coupon, total_claims: Optional[int] = None) -> CouponRead:
    return CouponRead(
        **coupon.model_dump(),
        usage_percentage=usage_percentage(coupon),
        total_claims=total_claims,
    )


def _reject(violation: Optional[FieldViolation]):
    if violation:
        raise InvalidField(violation.field, violation.reason)


class CouponService:
    def __init__(self, session: Session):
        self.session = session

    def _find_by_code(self, vendor_id: int, code: str) -> Optional[Coupon]:
        return self.session.exec(
            select(Coupon).where(Coupon.vendor_id == vendor_id, Coupon.code == code)
        ).first()

    def _check_listing_available(self, vendor_id: int, listing_id: int, coupon_id: Optional[int] = None):
        """The listing must belong to the vendor and host no other active coupon."""
        listing = self.session.get(Listing, listing_id)
        if not listing or listing.vendor_id != vendor_id:
            raise NotFound("Listing not found")

        current = self.active_coupon_for_listing(listing_id)
        if current and current.id != coupon_id:
            raise ListingConflict()

    def get_coupon(self, vendor_id: int, coupon_id: int) -> Coupon:
        coupon = self.session.get(Coupon, coupon_id)
        if not coupon or coupon.vendor_id != vendor_id:
            raise NotFound("Coupon not found")
        return coupon

    def create_coupon(self, vendor_id: int, payload: CouponCreate) -> Coupon:
        _reject(validate_new_coupon(payload))

        code = normalize_code(payload.code)
        if self._find_by_code(vendor_id, code):
            raise DuplicateCode()

        if payload.listing_id is not None:
            self._check_listing_available(vendor_id, payload.listing_id)

        coupon = Coupon(
            vendor_id=vendor_id,
            code=code,
            discount_type=payload.discount_type,
            discount_value=payload.discount_value,
            max_uses=payload.max_uses,
            used_count=0,
            start_date=payload.start_date,
            end_date=payload.end_date,
            is_active=True,
            listing_id=payload.listing_id,
            is_recurring=payload.is_recurring,
            recurrence_pattern=payload.recurrence_pattern,
        )
        self.session.add(coupon)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            if self._find_by_code(vendor_id, code):
                # Lost a race against a concurrent create with the same code
                raise DuplicateCode()
            logger.exception(f"create_coupon failed (actor={vendor_id}, code={code})")
            raise InternalError()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"create_coupon failed (actor={vendor_id}, code={code})")
            raise InternalError()
        self.session.refresh(coupon)

        logger.info(f"Vendor {vendor_id} created coupon {coupon.id} ({coupon.code})")
        return coupon

    def update_coupon(self, vendor_id: int, coupon_id: int, changes: dict) -> Coupon:
        coupon = self.get_coupon(vendor_id, coupon_id)

        changes = {
            field: value for field, value in changes.items()
            if field in MUTABLE_FIELDS and (value is not None or field in NULLABLE_FIELDS)
        }
        _reject(validate_coupon_changes(coupon, changes))

        new_cap = changes.get("max_uses", coupon.max_uses)
        if new_cap is not None and new_cap < coupon.used_count:
            raise InvalidCap(coupon.used_count)

        for field, value in changes.items():
            setattr(coupon, field, value)
        coupon.updated_at = utcnow()

        self.session.add(coupon)
        commit_or_fail(self.session, "update_coupon", vendor_id, coupon_id)
        self.session.refresh(coupon)
        return coupon

    def delete_coupon(self, vendor_id: int, coupon_id: int):
        coupon = self.get_coupon(vendor_id, coupon_id)

        self.session.exec(delete(CouponUsage).where(CouponUsage.coupon_id == coupon.id))
        self.session.exec(delete(CouponShare).where(CouponShare.coupon_id == coupon.id))
        self.session.delete(coupon)
        commit_or_fail(self.session, "delete_coupon", vendor_id, coupon_id)

        logger.info(f"Vendor {vendor_id} deleted coupon {coupon_id}")

    def list_coupons(self, vendor_id: int) -> List[CouponRead]:
        coupons = self.session.exec(
            select(Coupon).where(Coupon.vendor_id == vendor_id).order_by(desc(Coupon.created_at), desc(Coupon.id))
        ).all()

        claims = dict(self.session.exec(
            select(CouponUsage.coupon_id, func.count(CouponUsage.id))
            .join(Coupon, Coupon.id == CouponUsage.coupon_id)
            .where(Coupon.vendor_id == vendor_id)
            .group_by(CouponUsage.coupon_id)
        ).all())

        return [to_read(coupon, claims.get(coupon.id, 0)) for coupon in coupons]

    def active_coupon_for_listing(self, listing_id: int, now: Optional[datetime] = None) -> Optional[Coupon]:
        now = now or utcnow()
        return self.session.exec(
            select(Coupon).where(
                Coupon.listing_id == listing_id,
                Coupon.is_active == True,
                Coupon.end_date > now,
            ).order_by(desc(Coupon.created_at))
        ).first()

    def attach_to_listing(self, vendor_id: int, coupon_id: int, listing_id: int) -> Coupon:
        coupon = self.get_coupon(vendor_id, coupon_id)
        if coupon.listing_id and coupon.listing_id != listing_id:
            raise ListingConflict("This coupon is already attached to another listing")

        self._check_listing_available(vendor_id, listing_id, coupon_id=coupon.id)

        coupon.listing_id = listing_id
        coupon.updated_at = utcnow()
        self.session.add(coupon)
        commit_or_fail(self.session, "attach_coupon", vendor_id, coupon_id)
        self.session.refresh(coupon)
        return coupon

    def detach_from_listing(self, vendor_id: int, coupon_id: int) -> Coupon:
        coupon = self.get_coupon(vendor_id, coupon_id)
        coupon.listing_id = None
        coupon.updated_at = utcnow()
        self.session.add(coupon)
        commit_or_fail(self.session, "detach_coupon", vendor_id, coupon_id)
        self.session.refresh(coupon)
        return coupon

    def analytics(self, vendor_id: int) -> List[CouponAnalytics]:
        """Claim statistics per coupon, most used first."""
        rows = self.session.exec(
            select(
                Coupon,
                func.count(CouponUsage.id),
                func.count(func.distinct(CouponUsage.user_id)),
            )
            .join(CouponUsage, CouponUsage.coupon_id == Coupon.id, isouter=True)
            .where(Coupon.vendor_id == vendor_id)
            .group_by(Coupon.id)
        ).all()

        result = [
            CouponAnalytics(
                coupon_id=coupon.id,
                code=coupon.code,
                is_active=coupon.is_active,
                used_count=coupon.used_count,
                max_uses=coupon.max_uses,
                usage_percentage=usage_percentage(coupon),
                total_claims=total_claims,
                unique_users=unique_users,
                end_date=coupon.end_date,
            )
            for coupon, total_claims, unique_users in rows
        ]
        return sorted(result, key=lambda item: item.total_claims, reverse=True)
