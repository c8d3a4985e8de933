"""Row builders shared by the test modules."""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlmodel import Session

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.security import create_access_token
from thatsgoodtoo.models import Coupon, DiscountType, Listing, User, UserRole


def make_user(session: Session, email: str, roles: Optional[List[str]] = None, name: Optional[str] = None) -> User:
    user = User(
        email=email,
        name=name or email.split("@")[0].title(),
        roles=roles or [UserRole.SHOPPER.value],
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_vendor(session: Session, email: str = "vendor@example.com") -> User:
    return make_user(session, email, roles=[UserRole.SHOPPER.value, UserRole.VENDOR.value])


def make_listing(session: Session, vendor: User, title: str = "Sourdough Loaf") -> Listing:
    listing = Listing(vendor_id=vendor.id, title=title, price=8.5)
    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


def make_coupon(session: Session, vendor: User, now: Optional[datetime] = None, **overrides) -> Coupon:
    now = now or utcnow()
    values = dict(
        vendor_id=vendor.id,
        code="SAVE20",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=20,
        max_uses=None,
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
    )
    values.update(overrides)
    coupon = Coupon(**values)
    session.add(coupon)
    session.commit()
    session.refresh(coupon)
    return coupon


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
