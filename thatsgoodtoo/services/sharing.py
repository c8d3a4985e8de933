import logging
from typing import List, Optional
from datetime import datetime, timedelta
from sqlalchemy import desc, func
from sqlmodel import Session, select

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.config import settings
from thatsgoodtoo.core.exceptions import DuplicateShare, Expired, Forbidden, NotFound, QuotaExceeded
from thatsgoodtoo.db.session import commit_or_fail
from thatsgoodtoo.models.coupon import Coupon, CouponShare, DiscountType
from thatsgoodtoo.models.listing import Listing
from thatsgoodtoo.models.user import User
from thatsgoodtoo.schemas.coupon import SharedOffer, ShareLimits
from thatsgoodtoo.services.email import send_coupon_shared_email

logger = logging.getLogger(__name__)


def start_of_month(now: datetime) -> datetime:
    """Quota windows follow the calendar month, not a rolling 30 days."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def format_discount(discount_type: DiscountType, discount_value: float) -> str:
    if discount_type == DiscountType.PERCENTAGE:
        return f"{discount_value:g}% OFF"
    if discount_type == DiscountType.FREE_SHIPPING:
        return "FREE SHIPPING"
    return f"${discount_value:.2f} OFF"


class ShareService:
    def __init__(self, session: Session):
        self.session = session

    def shares_this_month(self, vendor_id: int, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return self.session.exec(
            select(func.count(CouponShare.id)).where(
                CouponShare.vendor_id == vendor_id,
                CouponShare.shared_at >= start_of_month(now),
            )
        ).one()

    def limits(self, vendor_id: int, now: Optional[datetime] = None) -> ShareLimits:
        used = self.shares_this_month(vendor_id, now)
        max_shares = settings.MONTHLY_SHARE_LIMIT
        return ShareLimits(
            shares_used=used,
            shares_remaining=max(0, max_shares - used),
            max_shares=max_shares,
        )

    def share(self, vendor_id: int, coupon_id: int, shopper_id: int, now: Optional[datetime] = None) -> dict:
        now = now or utcnow()

        coupon = self.session.get(Coupon, coupon_id)
        if not coupon:
            raise NotFound("Coupon not found")
        if coupon.vendor_id != vendor_id:
            raise Forbidden("You can only share your own coupons")
        if not coupon.is_active:
            raise Expired("Cannot share inactive coupon")
        if coupon.end_date <= now:
            raise Expired("Cannot share expired coupon")

        shopper = self.session.get(User, shopper_id)
        if not shopper or not shopper.is_active:
            raise NotFound("Shopper not found")

        cooldown_start = now - timedelta(hours=settings.SHARE_COOLDOWN_HOURS)
        recent = self.session.exec(
            select(CouponShare).where(
                CouponShare.coupon_id == coupon_id,
                CouponShare.shopper_id == shopper_id,
                CouponShare.shared_at >= cooldown_start,
            )
        ).first()
        if recent:
            raise DuplicateShare()

        if self.shares_this_month(vendor_id, now) >= settings.MONTHLY_SHARE_LIMIT:
            raise QuotaExceeded(f"Monthly share limit reached ({settings.MONTHLY_SHARE_LIMIT} shares per month)")

        share = CouponShare(
            coupon_id=coupon_id,
            vendor_id=vendor_id,
            shopper_id=shopper_id,
            shared_at=now,
        )
        self.session.add(share)
        commit_or_fail(self.session, "share_coupon", vendor_id, coupon_id)
        self.session.refresh(share)

        logger.info(f"Coupon {coupon.code} shared with shopper {shopper_id} by vendor {vendor_id}")

        vendor = self.session.get(User, vendor_id)
        send_coupon_shared_email(
            to_email=shopper.email,
            shopper_name=shopper.name or "there",
            vendor_name=(vendor.name if vendor and vendor.name else "A local vendor"),
            coupon_code=coupon.code,
            discount=format_discount(coupon.discount_type, coupon.discount_value),
        )

        return {"share_id": share.id, "coupon_code": coupon.code}

    def mark_viewed(self, shopper_id: int, share_id: int, now: Optional[datetime] = None) -> CouponShare:
        """One-way and idempotent: a second call leaves viewed_at untouched."""
        share = self.session.get(CouponShare, share_id)
        if not share or share.shopper_id != shopper_id:
            raise NotFound("Share not found")

        if not share.viewed:
            share.viewed = True
            share.viewed_at = now or utcnow()
            self.session.add(share)
            commit_or_fail(self.session, "mark_share_viewed", shopper_id, share_id)
            self.session.refresh(share)
        return share

    def received_offers(self, shopper_id: int, now: Optional[datetime] = None) -> List[SharedOffer]:
        """Shares addressed to the shopper whose coupon is currently claimable."""
        now = now or utcnow()
        rows = self.session.exec(
            select(CouponShare, Coupon, User)
            .join(Coupon, Coupon.id == CouponShare.coupon_id)
            .join(User, User.id == CouponShare.vendor_id)
            .where(
                CouponShare.shopper_id == shopper_id,
                Coupon.is_active == True,
                Coupon.start_date <= now,
                Coupon.end_date > now,
            )
            .order_by(desc(CouponShare.shared_at), desc(CouponShare.id))
        ).all()

        offers = []
        for share, coupon, vendor in rows:
            listing = self.session.get(Listing, coupon.listing_id) if coupon.listing_id else None
            offers.append(SharedOffer(
                id=share.id,
                coupon_id=coupon.id,
                vendor_id=vendor.id,
                vendor_name=vendor.name or "Local Vendor",
                shared_at=share.shared_at,
                viewed=share.viewed,
                code=coupon.code,
                discount=format_discount(coupon.discount_type, coupon.discount_value),
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
                end_date=coupon.end_date,
                listing_id=coupon.listing_id,
                listing_title=listing.title if listing else "Vendor Offer",
            ))
        return offers
