import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, delete

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.db.session import commit_or_fail
from thatsgoodtoo.models.rate_limit import RateLimitCounter

logger = logging.getLogger(__name__)

class RateLimiter:
    """Fixed-window counters kept in the database, shared by every worker."""

    def __init__(self, session: Session):
        self.session = session

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop every counter whose window has closed."""
        now = now or utcnow()
        result = self.session.exec(
            delete(RateLimitCounter).where(RateLimitCounter.expires_at <= now)
        )
        commit_or_fail(self.session, "rate_limit_purge")
        return result.rowcount

    def hit(self, key: str, limit: int, window: timedelta, now: Optional[datetime] = None) -> bool:
        """Record one call for ``key``; False once ``limit`` calls were seen in the window."""
        now = now or utcnow()

        # Closed windows, this key's included, are removed before counting
        self.purge_expired(now)

        counter = self.session.exec(select(RateLimitCounter).where(RateLimitCounter.key == key)).first()

        if counter is None:
            self.session.add(RateLimitCounter(key=key, count=1, window_started_at=now, expires_at=now + window))
            try:
                self.session.commit()
            except IntegrityError:
                # Another worker opened the window first
                self.session.rollback()
                return self.hit(key, limit, window, now)
            return True

        result = self.session.exec(
            update(RateLimitCounter)
            .where(RateLimitCounter.id == counter.id, RateLimitCounter.count < limit)
            .values(count=RateLimitCounter.count + 1)
            .execution_options(synchronize_session=False)
        )
        commit_or_fail(self.session, "rate_limit_hit", target_id=counter.id)

        if result.rowcount != 1:
            logger.info(f"Rate limit exceeded for {key}")
            return False
        return True
