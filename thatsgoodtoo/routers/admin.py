from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from thatsgoodtoo.models.user import User
from thatsgoodtoo.models.vendor import ApplicationStatus, VendorApplication
from thatsgoodtoo.routers.auth import get_current_admin
from thatsgoodtoo.routers.vendors import get_vendor_service
from thatsgoodtoo.services.vendor import VendorService

router = APIRouter()

class StatusUpdate(BaseModel):
    new_status: ApplicationStatus
    admin_notes: Optional[str] = None

@router.get("/vendor-applications", response_model=List[VendorApplication])
def list_vendor_applications(
    status: Optional[ApplicationStatus] = None,
    admin: User = Depends(get_current_admin),
    service: VendorService = Depends(get_vendor_service)
):
    return service.list_applications(status)

@router.post("/vendor-applications/{application_id}/status")
def update_vendor_application_status(
    application_id: int,
    update_in: StatusUpdate,
    admin: User = Depends(get_current_admin),
    service: VendorService = Depends(get_vendor_service)
):
    """Approve, reject or reset an application. Approval grants the vendor role."""
    application = service.update_status(admin.id, application_id, update_in.new_status, update_in.admin_notes)
    return {"success": True, "application_id": application.id, "status": application.status}
