"""Scheduled coupon jobs.

Both jobs are safe to run repeatedly and commit coupon by coupon, so one
bad row is reported in ``failed`` instead of aborting the batch.
"""
import calendar
import logging
from typing import Optional
from datetime import datetime, timedelta
from sqlalchemy import or_, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.config import settings
from thatsgoodtoo.models.coupon import Coupon, RecurrencePattern
from thatsgoodtoo.models.user import User
from thatsgoodtoo.schemas.coupon import ExpirationReport, RenewalReport
from thatsgoodtoo.services.email import send_coupon_renewed_email

logger = logging.getLogger(__name__)

MONTHS_PER_PERIOD = {
    RecurrencePattern.MONTHLY: 1,
    RecurrencePattern.QUARTERLY: 3,
    RecurrencePattern.YEARLY: 12,
}


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic; Jan 31 + 1 month is Feb 28/29."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def advance_period(value: datetime, pattern: RecurrencePattern) -> datetime:
    if pattern == RecurrencePattern.WEEKLY:
        return value + timedelta(days=7)
    return add_months(value, MONTHS_PER_PERIOD[pattern])


class LifecycleService:
    def __init__(self, session: Session):
        self.session = session

    def expire_lapsed_coupons(self, now: Optional[datetime] = None) -> ExpirationReport:
        now = now or utcnow()
        logger.info("Running coupon expiration check...")

        lapsed_ids = self.session.exec(
            select(Coupon.id).where(Coupon.is_active == True, Coupon.end_date <= now).order_by(Coupon.id)
        ).all()

        expired_count = 0
        failed = []
        for coupon_id in lapsed_ids:
            try:
                # Re-check in the UPDATE so overlapping runs never double count
                result = self.session.exec(
                    update(Coupon)
                    .where(Coupon.id == coupon_id, Coupon.is_active == True, Coupon.end_date <= now)
                    .values(is_active=False, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                self.session.commit()
                expired_count += result.rowcount
            except SQLAlchemyError:
                self.session.rollback()
                logger.exception(f"expire_coupon failed (target={coupon_id})")
                failed.append(coupon_id)

        soon = now + timedelta(days=settings.EXPIRING_SOON_DAYS)
        expiring_soon = self.session.exec(
            select(func.count(Coupon.id)).where(
                Coupon.is_active == True,
                Coupon.end_date > now,
                Coupon.end_date <= soon,
            )
        ).one()

        logger.info(f"Expiration results: expired={expired_count}, expiring_soon={expiring_soon}, failed={len(failed)}")
        return ExpirationReport(expired_count=expired_count, expiring_soon=expiring_soon, failed=failed)

    def renew_recurring_coupons(self, now: Optional[datetime] = None) -> RenewalReport:
        """Roll every lapsed recurring coupon forward by exactly one period.

        The new window starts at the previous end_date, not at ``now``. A coupon
        several periods behind catches up over several runs.
        """
        now = now or utcnow()
        logger.info("Running recurring coupon renewal...")

        candidates = self.session.exec(
            select(Coupon.id, Coupon.end_date, Coupon.recurrence_pattern, Coupon.used_count).where(
                Coupon.is_recurring == True,
                Coupon.recurrence_pattern != None,
                or_(Coupon.is_active == False, Coupon.end_date <= now),
            ).order_by(Coupon.id)
        ).all()

        renewed = []
        failed = []
        for coupon_id, end_date, pattern, used_count in candidates:
            try:
                if not self.renew_coupon(coupon_id, end_date, pattern, now):
                    continue
            except SQLAlchemyError:
                self.session.rollback()
                logger.exception(f"renew_coupon failed (target={coupon_id})")
                failed.append(coupon_id)
                continue

            renewed.append(coupon_id)
            self._notify_vendor(coupon_id, used_count)

        logger.info(f"Renewal results: renewed={len(renewed)}, failed={len(failed)}")
        return RenewalReport(renewed_count=len(renewed), renewed_coupons=renewed, failed=failed)

    def renew_coupon(self, coupon_id: int, end_date: datetime, pattern: RecurrencePattern, now: datetime) -> bool:
        """Advance one coupon from the window ending at ``end_date``.

        Returns False when the coupon no longer ends at ``end_date``, i.e. an
        overlapping run already renewed it.
        """
        result = self.session.exec(
            update(Coupon)
            .where(Coupon.id == coupon_id, Coupon.is_recurring == True, Coupon.end_date == end_date)
            .values(
                start_date=end_date,
                end_date=advance_period(end_date, pattern),
                used_count=0,
                is_active=True,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def _notify_vendor(self, coupon_id: int, previous_used_count: int):
        try:
            coupon = self.session.get(Coupon, coupon_id)
            vendor = self.session.get(User, coupon.vendor_id) if coupon else None
            if vendor:
                send_coupon_renewed_email(
                    to_email=vendor.email,
                    user_name=vendor.name or "there",
                    coupon_code=coupon.code,
                    previous_used_count=previous_used_count,
                    max_uses=coupon.max_uses,
                    new_end_date=coupon.end_date,
                )
        except Exception as e:
            # Don't fail the renewal if the notification fails
            logger.warning(f"Failed to notify vendor about renewed coupon {coupon_id}: {e}")
