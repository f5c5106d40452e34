"""
Email Service
Plain-text notifications over SMTP (aiosmtplib).
Delivery is skipped, and logged, while EMAIL_HOST is not configured.
"""

import asyncio
import logging
from email.message import EmailMessage
from typing import Iterable, List, Optional

import aiosmtplib

from ateleslie.config import settings

logger = logging.getLogger(__name__)


def build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = f"{settings.email_from_name} <{settings.email_from_address}>"
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


async def send_email(to: str, subject: str, body: str) -> bool:
    """
    Send a single email.

    Returns:
        True if the SMTP server accepted the message, False if delivery is
        disabled or failed. Failures are logged, not raised.
    """
    if not settings.email_enabled:
        logger.info(f"Email delivery disabled; skipped '{subject}' to {to}")
        return False

    try:
        await aiosmtplib.send(
            build_message(to, subject, body),
            hostname=settings.email_host,
            port=settings.email_port,
            username=settings.email_user or None,
            password=settings.email_password or None,
            start_tls=settings.email_use_tls,
        )
        return True
    except aiosmtplib.SMTPException as e:
        logger.error(f"Failed to send '{subject}' to {to}: {e}")
        return False
    except OSError as e:
        logger.error(f"SMTP connection error while sending to {to}: {e}")
        return False


async def send_password_reset(email: str, raw_token: str) -> bool:
    reset_url = f"{settings.app_url}/reset-password/{raw_token}"
    body = (
        "You requested a password reset.\n\n"
        f"Use the following link within {settings.reset_token_expire_minutes} minutes:\n"
        f"{reset_url}\n\n"
        "If you did not request this, you can ignore this email."
    )
    return await send_email(email, "Password reset", body)


async def send_contact_notifications(
    admin_emails: Iterable[str], sender_email: str, sender_name: str, contact_type: str, message: str
) -> None:
    """Notify administrators of a new contact message and confirm receipt to the sender."""
    admin_body = (
        f"New {contact_type} message from {sender_name} <{sender_email}>:\n\n{message}"
    )
    for admin_email in admin_emails:
        await send_email(admin_email, f"New contact message ({contact_type})", admin_body)

    confirmation = (
        f"Hello {sender_name},\n\n"
        "We received your message and will get back to you shortly.\n\n"
        f"{settings.email_from_name}"
    )
    await send_email(sender_email, "We received your message", confirmation)


async def send_newsletter(
    subject: str, content: str, recipients: List[str], category: Optional[str] = None
) -> int:
    """
    Send a newsletter to every recipient, holding at most
    ``email_max_connections`` SMTP sessions open at once.

    Returns:
        Number of recipients the SMTP server accepted.
    """
    connections = asyncio.Semaphore(settings.email_max_connections)

    async def _send(address: str) -> bool:
        body = (
            f"{content}\n\n"
            f"-- \nNewsletter - {category or 'General'}\n"
            f"Unsubscribe: {settings.app_url}/unsubscribe?email={address}"
        )
        async with connections:
            return await send_email(address, subject, body)

    results = await asyncio.gather(*(_send(address) for address in recipients))
    delivered = sum(1 for ok in results if ok)
    logger.info(f"Newsletter '{subject}' delivered to {delivered}/{len(recipients)} recipients")
    return delivered
