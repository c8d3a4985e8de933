import logging
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional
from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.config import settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10

def send_email(to_email: str, subject: str, body: str) -> bool:
    """Send an HTML email. Never raises; returns whether the message went out."""
    if not settings.MAIL_ENABLED:
        logger.info(f"Mail disabled, skipping '{subject}' to {to_email}")
        return False

    try:
        msg = MIMEMultipart('alternative')
        msg['From'] = settings.MAIL_FROM
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'html'))

        if settings.MAIL_SSL:
            server = smtplib.SMTP_SSL(settings.MAIL_SERVER, settings.MAIL_PORT, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT, timeout=SMTP_TIMEOUT_SECONDS)

        with server:
            if not settings.MAIL_SSL:
                server.starttls()
            server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
            server.sendmail(settings.MAIL_FROM, to_email, msg.as_string())
        logger.info(f"Email '{subject}' sent to {to_email}")
        return True
    except Exception as e:
        logger.warning(f"Failed to send email '{subject}' to {to_email}: {e}")
        return False

def wrap_in_branded_template(content: str) -> str:
    year = utcnow().year
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px; border: 2px dashed #FFD700; background: #FFF8DC; border-radius: 10px;">
        <h1 style="color: #FF4500; text-align: center; margin-bottom: 20px;">That's Good Too</h1>
        <div style="padding: 20px; background: white; border-radius: 8px; margin-bottom: 20px;">
            {content}
        </div>
        <p style="text-align: center; color: #999; font-size: 12px;">
            &copy; {year} That's Good Too. <a href="{settings.SITE_URL}" style="color: #FF4500;">View Deals</a>
        </p>
    </div>
    """

def send_vendor_application_received_email(to_email: str, user_name: str, business_name: str):
    body = wrap_in_branded_template(f"""
        <h2>Thanks for applying, {escape(user_name)}!</h2>
        <p>We received your vendor application for <strong>{escape(business_name)}</strong>.</p>
        <p>Our team reviews every application by hand. We'll e-mail you as soon as a decision is made.</p>
    """)
    return send_email(to_email, "We received your vendor application", body)

def send_new_vendor_application_admin_email(
    applicant_name: str,
    applicant_email: str,
    business_name: str,
    city: Optional[str] = None,
    website: Optional[str] = None
):
    body = wrap_in_branded_template(f"""
        <h2>New vendor application</h2>
        <ul>
            <li><strong>Applicant:</strong> {escape(applicant_name)} &lt;{escape(applicant_email)}&gt;</li>
            <li><strong>Business:</strong> {escape(business_name)}</li>
            <li><strong>City:</strong> {escape(city or "Not specified")}</li>
            <li><strong>Website:</strong> {escape(website or "Not specified")}</li>
        </ul>
        <p>Review it from the admin dashboard.</p>
    """)
    return send_email(settings.ADMIN_EMAIL, f"New Vendor Signup: {business_name}", body)

def send_vendor_approved_email(to_email: str, user_name: str, business_name: str):
    body = wrap_in_branded_template(f"""
        <h2>Welcome aboard, {escape(user_name)}!</h2>
        <p>Your vendor application for <strong>{escape(business_name)}</strong> has been approved.</p>
        <p>You can now create listings and exclusive coupons from your dashboard.</p>
        <p style="text-align: center; margin: 30px 0;">
            <a href="{settings.DASHBOARD_URL}" style="background-color: #32CD32; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px;">Go to Dashboard</a>
        </p>
    """)
    return send_email(to_email, "Your vendor application was approved", body)

def send_vendor_rejected_email(to_email: str, user_name: str, admin_notes: Optional[str] = None):
    reason = f"<p><strong>Reviewer notes:</strong> {escape(admin_notes)}</p>" if admin_notes else ""
    body = wrap_in_branded_template(f"""
        <h2>Hi {escape(user_name)},</h2>
        <p>Thank you for applying to sell on That's Good Too. Unfortunately we can't approve your application right now.</p>
        {reason}
        <p>You're welcome to apply again once the points above are addressed.</p>
    """)
    return send_email(to_email, "Update on your vendor application", body)

def send_coupon_renewed_email(
    to_email: str,
    user_name: str,
    coupon_code: str,
    previous_used_count: int,
    max_uses: Optional[int],
    new_end_date: datetime
):
    cap = max_uses if max_uses is not None else "unlimited"
    body = wrap_in_branded_template(f"""
        <h2>Coupon renewed</h2>
        <p>Hi {escape(user_name)},</p>
        <p>Your recurring coupon <strong>{escape(coupon_code)}</strong> has started a new period.</p>
        <ul>
            <li><strong>Previous usage:</strong> {previous_used_count} / {cap}</li>
            <li><strong>New usage:</strong> 0 / {cap}</li>
            <li><strong>Valid until:</strong> {new_end_date.strftime("%B %d, %Y")}</li>
        </ul>
    """)
    return send_email(to_email, f"Coupon {coupon_code} has been renewed", body)

def send_coupon_shared_email(to_email: str, shopper_name: str, vendor_name: str, coupon_code: str, discount: str):
    body = wrap_in_branded_template(f"""
        <h2>Hi {escape(shopper_name)}, you've got an offer!</h2>
        <p><strong>{escape(vendor_name)}</strong> shared an exclusive coupon with you: <strong>{escape(discount)}</strong></p>
        <div style="background: #FFF8DC; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
            <p style="color: #666; margin: 0 0 10px 0; font-size: 14px;">Your Coupon Code:</p>
            <p style="color: #FF4500; font-size: 28px; font-weight: bold; margin: 0; letter-spacing: 2px;">{escape(coupon_code)}</p>
        </div>
    """)
    return send_email(to_email, f"{vendor_name} shared a coupon with you", body)

def send_contact_email(name: str, email: str, subject: str, message: str):
    body = f"""
    <h2>New contact form submission</h2>
    <p><strong>From:</strong> {escape(name)} &lt;{escape(email)}&gt;</p>
    <p><strong>Subject:</strong> {escape(subject)}</p>
    <p>{escape(message)}</p>
    """
    return send_email(settings.SUPPORT_EMAIL, f"[Contact] {subject}", body)
