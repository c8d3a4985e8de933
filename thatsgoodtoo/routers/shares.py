from typing import List
from fastapi import APIRouter, Depends

from thatsgoodtoo.models.user import User
from thatsgoodtoo.routers.auth import get_current_user, get_current_vendor
from thatsgoodtoo.routers.coupons import get_share_service
from thatsgoodtoo.schemas.coupon import SharedOffer, ShareLimits
from thatsgoodtoo.services.sharing import ShareService

router = APIRouter()

@router.get("/limits", response_model=ShareLimits)
def share_limits(
    vendor: User = Depends(get_current_vendor),
    service: ShareService = Depends(get_share_service)
):
    """Shares used and left in the current calendar month."""
    return service.limits(vendor.id)

@router.get("/received", response_model=List[SharedOffer])
def received_offers(
    current_user: User = Depends(get_current_user),
    service: ShareService = Depends(get_share_service)
):
    return service.received_offers(current_user.id)

@router.post("/{share_id}/viewed")
def mark_share_viewed(
    share_id: int,
    current_user: User = Depends(get_current_user),
    service: ShareService = Depends(get_share_service)
):
    share = service.mark_viewed(current_user.id, share_id)
    return {"success": True, "share_id": share.id, "viewed": share.viewed, "viewed_at": share.viewed_at}
