import logging
from typing import List, Optional
from sqlalchemy import desc
from sqlmodel import Session, select

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.exceptions import DuplicateApplication, NotFound
from thatsgoodtoo.db.session import commit_or_fail
from thatsgoodtoo.models.user import User, UserRole
from thatsgoodtoo.models.vendor import ApplicationStatus, VendorApplication
from thatsgoodtoo.services.email import (
    send_new_vendor_application_admin_email,
    send_vendor_application_received_email,
    send_vendor_approved_email,
    send_vendor_rejected_email,
)

logger = logging.getLogger(__name__)

class VendorService:
    def __init__(self, session: Session):
        self.session = session

    def apply(
        self,
        user_id: int,
        business_name: str,
        business_description: Optional[str] = None,
        website: Optional[str] = None,
        city: Optional[str] = None
    ) -> VendorApplication:
        pending = self.session.exec(
            select(VendorApplication).where(
                VendorApplication.user_id == user_id,
                VendorApplication.status == ApplicationStatus.PENDING,
            )
        ).first()
        if pending:
            raise DuplicateApplication()

        application = VendorApplication(
            user_id=user_id,
            business_name=business_name,
            business_description=business_description,
            website=website,
            city=city,
        )
        self.session.add(application)
        commit_or_fail(self.session, "vendor_apply", user_id)
        self.session.refresh(application)

        logger.info(f"User {user_id} submitted vendor application {application.id}")

        applicant = self.session.get(User, user_id)
        if applicant:
            applicant_name = applicant.name or "there"
            send_vendor_application_received_email(applicant.email, applicant_name, business_name)
            send_new_vendor_application_admin_email(applicant.name or applicant.email, applicant.email, business_name, city, website)
        return application

    def list_applications(self, status: Optional[ApplicationStatus] = None) -> List[VendorApplication]:
        query = select(VendorApplication)
        if status:
            query = query.where(VendorApplication.status == status)
        return self.session.exec(query.order_by(desc(VendorApplication.created_at))).all()

    def update_status(
        self,
        admin_id: int,
        application_id: int,
        new_status: ApplicationStatus,
        admin_notes: Optional[str] = None
    ) -> VendorApplication:
        application = self.session.get(VendorApplication, application_id)
        if not application:
            raise NotFound("Application not found")

        user = self.session.get(User, application.user_id)
        if not user:
            raise NotFound("Applicant not found")

        logger.info(f"Processing status update: {application_id} -> {new_status.value}")

        application.status = new_status
        application.admin_notes = admin_notes
        application.updated_at = utcnow()
        if new_status == ApplicationStatus.PENDING:
            application.reviewed_by = None
            application.reviewed_at = None
        else:
            application.reviewed_by = admin_id
            application.reviewed_at = utcnow()

        roles = set(user.roles or [])
        if new_status == ApplicationStatus.APPROVED:
            roles.update({UserRole.VENDOR.value, UserRole.SHOPPER.value})
        else:
            roles.discard(UserRole.VENDOR.value)
        # Reassign so the JSON column is flagged dirty
        user.roles = sorted(roles)
        user.updated_at = utcnow()

        self.session.add(application)
        self.session.add(user)
        commit_or_fail(self.session, "update_vendor_status", admin_id, application_id)
        self.session.refresh(application)

        # Notifications never fail the status change
        user_name = user.name or "there"
        if new_status == ApplicationStatus.APPROVED:
            send_vendor_approved_email(user.email, user_name, application.business_name)
        elif new_status == ApplicationStatus.REJECTED:
            send_vendor_rejected_email(user.email, user_name, admin_notes)

        return application
