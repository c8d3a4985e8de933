from typing import List
from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session
from pydantic import BaseModel

from thatsgoodtoo.core.exceptions import Forbidden
from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.models.user import User
from thatsgoodtoo.routers.auth import get_current_user_optional, get_current_vendor
from thatsgoodtoo.schemas.coupon import (
    ClaimRequest,
    CouponAnalytics,
    CouponRequestBody,
    CreateCouponRequest,
    DeleteCouponRequest,
    GetCouponRequest,
    ListCouponsRequest,
    ShareRequest,
    UpdateCouponRequest,
)
from thatsgoodtoo.services.coupon import CouponService, to_read
from thatsgoodtoo.services.redemption import RedemptionService
from thatsgoodtoo.services.sharing import ShareService

router = APIRouter()

class AttachRequest(BaseModel):
    listing_id: int

def get_coupon_service(session: Session = Depends(get_session)) -> CouponService:
    return CouponService(session)

def get_redemption_service(session: Session = Depends(get_session)) -> RedemptionService:
    return RedemptionService(session)

def get_share_service(session: Session = Depends(get_session)) -> ShareService:
    return ShareService(session)

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/manage")
def manage_coupons(
    body: CouponRequestBody,
    response: Response,
    vendor: User = Depends(get_current_vendor),
    service: CouponService = Depends(get_coupon_service)
):
    """Create, update, delete, get or list the caller's coupons, selected by `action`."""
    request = body.root
    if request.vendor_id is not None and request.vendor_id != vendor.id:
        raise Forbidden("Cannot manage coupons for other vendors")

    if isinstance(request, CreateCouponRequest):
        coupon = service.create_coupon(vendor.id, request.coupon)
        response.status_code = status.HTTP_201_CREATED
        return {"success": True, "coupon": to_read(coupon, 0)}

    if isinstance(request, UpdateCouponRequest):
        coupon = service.update_coupon(vendor.id, request.coupon.id, request.coupon.changes())
        return {"success": True, "coupon": to_read(coupon)}

    if isinstance(request, DeleteCouponRequest):
        service.delete_coupon(vendor.id, request.coupon.id)
        return {"success": True}

    if isinstance(request, GetCouponRequest):
        return {"success": True, "coupon": to_read(service.get_coupon(vendor.id, request.coupon.id))}

    if isinstance(request, ListCouponsRequest):
        return {"success": True, "coupons": service.list_coupons(vendor.id)}

@router.post("/claim")
def claim_coupon(
    claim: ClaimRequest,
    request: Request,
    current_user: User = Depends(get_current_user_optional),
    service: RedemptionService = Depends(get_redemption_service)
):
    """Redeem a coupon. Signed-in shoppers are recorded against their account."""
    result = service.claim(
        code=claim.code,
        vendor_id=claim.vendor_id,
        user_id=current_user.id if current_user else None,
        device_fingerprint=claim.device_fingerprint,
        listing_id=claim.listing_id,
        ip_address=client_ip(request),
    )
    return {"success": True, **result.model_dump()}

@router.post("/share")
def share_coupon(
    share_in: ShareRequest,
    vendor: User = Depends(get_current_vendor),
    service: ShareService = Depends(get_share_service)
):
    result = service.share(vendor.id, share_in.coupon_id, share_in.shopper_id)
    return {"success": True, **result}

@router.get("/analytics", response_model=List[CouponAnalytics])
def coupon_analytics(
    vendor: User = Depends(get_current_vendor),
    service: CouponService = Depends(get_coupon_service)
):
    return service.analytics(vendor.id)

@router.post("/{coupon_id}/attach")
def attach_coupon(
    coupon_id: int,
    attach_in: AttachRequest,
    vendor: User = Depends(get_current_vendor),
    service: CouponService = Depends(get_coupon_service)
):
    coupon = service.attach_to_listing(vendor.id, coupon_id, attach_in.listing_id)
    return {"success": True, "coupon": to_read(coupon)}

@router.post("/{coupon_id}/detach")
def detach_coupon(
    coupon_id: int,
    vendor: User = Depends(get_current_vendor),
    service: CouponService = Depends(get_coupon_service)
):
    coupon = service.detach_from_listing(vendor.id, coupon_id)
    return {"success": True, "coupon": to_read(coupon)}
