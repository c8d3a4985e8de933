from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlmodel import Session
from pydantic import BaseModel

from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.models.user import User
from thatsgoodtoo.models.vendor import VendorApplication
from thatsgoodtoo.routers.auth import get_current_user
from thatsgoodtoo.services.vendor import VendorService

router = APIRouter()

class VendorApplicationCreate(BaseModel):
    business_name: str
    business_description: Optional[str] = None
    website: Optional[str] = None
    city: Optional[str] = None

def get_vendor_service(session: Session = Depends(get_session)) -> VendorService:
    return VendorService(session)

@router.post("/apply", response_model=VendorApplication, status_code=status.HTTP_201_CREATED)
def apply_as_vendor(
    application_in: VendorApplicationCreate,
    current_user: User = Depends(get_current_user),
    service: VendorService = Depends(get_vendor_service)
):
    """Submit a vendor application for admin review."""
    return service.apply(current_user.id, **application_in.model_dump())
