from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy import desc
from sqlmodel import Session, select
from pydantic import BaseModel

from thatsgoodtoo.core.exceptions import NotFound
from thatsgoodtoo.db.session import commit_or_fail, get_session
from thatsgoodtoo.models.listing import Listing
from thatsgoodtoo.models.user import User
from thatsgoodtoo.routers.auth import get_current_vendor
from thatsgoodtoo.services.coupon import CouponService, to_read

router = APIRouter()

class ListingCreate(BaseModel):
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    image_url: Optional[str] = None

@router.post("/", response_model=Listing, status_code=status.HTTP_201_CREATED)
def create_listing(
    listing_in: ListingCreate,
    vendor: User = Depends(get_current_vendor),
    session: Session = Depends(get_session)
):
    listing = Listing(vendor_id=vendor.id, **listing_in.model_dump())
    session.add(listing)
    commit_or_fail(session, "create_listing", vendor.id)
    session.refresh(listing)
    return listing

@router.get("/mine", response_model=List[Listing])
def my_listings(
    vendor: User = Depends(get_current_vendor),
    session: Session = Depends(get_session)
):
    return session.exec(
        select(Listing).where(Listing.vendor_id == vendor.id).order_by(desc(Listing.created_at))
    ).all()

@router.get("/{listing_id}")
def read_listing(listing_id: int, session: Session = Depends(get_session)):
    """Public listing view with its active coupon, if any."""
    listing = session.get(Listing, listing_id)
    if not listing or not listing.is_active:
        raise NotFound("Listing not found")

    coupon = CouponService(session).active_coupon_for_listing(listing.id)
    return {"listing": listing, "coupon": to_read(coupon) if coupon else None}
