import re
from datetime import timedelta
from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from pydantic import BaseModel

from thatsgoodtoo.core.config import settings
from thatsgoodtoo.core.exceptions import InvalidField, QuotaExceeded
from thatsgoodtoo.db.session import get_session
from thatsgoodtoo.routers.coupons import client_ip
from thatsgoodtoo.services.email import send_contact_email
from thatsgoodtoo.services.rate_limit import RateLimiter

router = APIRouter()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

class ContactForm(BaseModel):
    name: str
    email: str
    subject: str
    message: str

def sanitize(value: str) -> str:
    return value.strip().replace("<", "").replace(">", "")

@router.post("")
def submit_contact_form(
    form: ContactForm,
    request: Request,
    session: Session = Depends(get_session)
):
    allowed = RateLimiter(session).hit(
        f"contact:{client_ip(request)}",
        limit=settings.CONTACT_RATE_LIMIT,
        window=timedelta(minutes=settings.CONTACT_RATE_WINDOW_MINUTES),
    )
    if not allowed:
        raise QuotaExceeded("Too many requests. Please wait before trying again.")

    name = sanitize(form.name)
    email = form.email.strip()
    subject = sanitize(form.subject)
    message = sanitize(form.message)

    if not 2 <= len(name) <= 100:
        raise InvalidField("name", "Name must be between 2 and 100 characters")
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        raise InvalidField("email", "Invalid email address")
    if not 5 <= len(subject) <= 200:
        raise InvalidField("subject", "Subject must be between 5 and 200 characters")
    if not 10 <= len(message) <= 2000:
        raise InvalidField("message", "Message must be between 10 and 2000 characters")

    send_contact_email(name, email, subject, message)
    return {"success": True, "message": "Thanks for reaching out! We'll get back to you soon."}
