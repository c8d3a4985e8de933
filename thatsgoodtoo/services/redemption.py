import logging
from typing import Optional
from datetime import datetime
from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.exceptions import Exhausted, Expired, InternalError, NotFound
from thatsgoodtoo.models.coupon import Coupon, CouponUsage
from thatsgoodtoo.models.listing import Listing
from thatsgoodtoo.schemas.coupon import ClaimResult
from thatsgoodtoo.services.validation import normalize_code

logger = logging.getLogger(__name__)


class RedemptionService:
    def __init__(self, session: Session):
        self.session = session

    def _check_claimable(self, coupon: Optional[Coupon], now: datetime):
        if not coupon:
            raise NotFound("Coupon not found")
        if not coupon.is_active or coupon.end_date <= now:
            raise Expired()
        if coupon.start_date > now:
            raise Expired("Coupon is not valid yet")
        if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
            raise Exhausted()

    def claim(
        self,
        code: str,
        vendor_id: int,
        user_id: Optional[int] = None,
        device_fingerprint: Optional[str] = None,
        listing_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ClaimResult:
        """Redeem one use of a vendor's coupon.

        The increment is a single conditional UPDATE, so concurrent claims can
        never push ``used_count`` past ``max_uses``. The usage row is written in
        the same transaction as the increment.
        """
        now = now or utcnow()
        code = normalize_code(code)

        coupon = self.session.exec(
            select(Coupon).where(Coupon.vendor_id == vendor_id, Coupon.code == code)
        ).first()
        self._check_claimable(coupon, now)
        coupon_id = coupon.id

        if listing_id is not None:
            listing = self.session.get(Listing, listing_id)
            if not listing or listing.vendor_id != vendor_id:
                raise NotFound("Listing not found")

        try:
            result = self.session.exec(
                update(Coupon)
                .where(
                    Coupon.id == coupon_id,
                    Coupon.is_active == True,
                    Coupon.start_date <= now,
                    Coupon.end_date > now,
                    or_(Coupon.max_uses == None, Coupon.used_count < Coupon.max_uses),
                )
                .values(used_count=Coupon.used_count + 1, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                # Someone else took the last use (or the coupon just lapsed)
                self._check_claimable(self.session.get(Coupon, coupon_id), now)
                raise Exhausted()

            self.session.add(CouponUsage(
                coupon_id=coupon_id,
                user_id=user_id,
                listing_id=listing_id,
                device_fingerprint=device_fingerprint,
                ip_address=ip_address,
                used_at=now,
            ))
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"claim failed (actor={user_id}, vendor={vendor_id}, target={coupon_id})")
            raise InternalError()

        self.session.refresh(coupon)
        logger.info(f"Coupon {coupon.code} claimed ({coupon.used_count}/{coupon.max_uses or 'unlimited'})")

        remaining = coupon.max_uses - coupon.used_count if coupon.max_uses is not None else None
        return ClaimResult(
            coupon_id=coupon.id,
            code=coupon.code,
            used_count=coupon.used_count,
            max_uses=coupon.max_uses,
            remaining=remaining,
        )
