import hmac
from typing import Optional
from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from thatsgoodtoo.core.config import settings
from thatsgoodtoo.core.exceptions import Unauthorized
from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.services.lifecycle import LifecycleService

router = APIRouter()

def verify_cron_secret(x_cron_secret: Optional[str] = Header(default=None)):
    """Scheduled triggers authenticate with a shared secret, not a user token."""
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, settings.CRON_SECRET):
        raise Unauthorized()

def get_lifecycle_service(session: Session = Depends(get_session)) -> LifecycleService:
    return LifecycleService(session)

@router.post("/expire-coupons", dependencies=[Depends(verify_cron_secret)])
def expire_coupons(service: LifecycleService = Depends(get_lifecycle_service)):
    report = service.expire_lapsed_coupons()
    return {"success": True, **report.model_dump()}

@router.post("/renew-coupons", dependencies=[Depends(verify_cron_secret)])
def renew_coupons(service: LifecycleService = Depends(get_lifecycle_service)):
    report = service.renew_recurring_coupons()
    return {"success": True, **report.model_dump()}
