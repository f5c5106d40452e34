"""
Newsletter Service
Subscriber management and newsletter delivery, shared by the API and the Celery worker.

Delivery claims a record by moving it to ``sent`` with a conditional update before
any email goes out, so a record is delivered at most once even when the API, a
scheduled task and the periodic sweep race. A failed delivery releases the claim.
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from kombu.exceptions import OperationalError
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.exceptions import BadRequestError, NotFoundError
from ateleslie.models.newsletter import (
    DEFAULT_PREFERENCES, Newsletter, NewsletterStatus, NewsletterType,
)
from ateleslie.models.user import User
from ateleslie.services import email_service

logger = logging.getLogger(__name__)


async def find_subscriber(db: AsyncSession, email: str) -> Optional[Newsletter]:
    result = await db.execute(
        select(Newsletter).where(
            Newsletter.type == NewsletterType.SUBSCRIBER.value,
            Newsletter.email == email,
        )
    )
    return result.scalar_one_or_none()


async def get_newsletter(db: AsyncSession, newsletter_id: int) -> Newsletter:
    result = await db.execute(
        select(Newsletter).where(
            Newsletter.id == newsletter_id,
            Newsletter.type == NewsletterType.NEWSLETTER.value,
        )
    )
    newsletter = result.scalar_one_or_none()
    if not newsletter:
        raise NotFoundError("Newsletter not found")
    return newsletter


async def subscribe(
    db: AsyncSession,
    email: str,
    first_name: Optional[str] = None,
    interests: Iterable[str] = (),
    preferences: Optional[Dict[str, bool]] = None,
    source: str = "website",
) -> Newsletter:
    """Create or reactivate a subscriber record and flag the matching account."""
    subscriber = await find_subscriber(db, email)
    if subscriber is None:
        subscriber = Newsletter(type=NewsletterType.SUBSCRIBER.value, email=email)
        db.add(subscriber)

    subscriber.first_name = first_name or subscriber.first_name
    subscriber.interests = list(dict.fromkeys([*(subscriber.interests or []), *interests]))
    subscriber.preferences = dict(preferences or subscriber.preferences or DEFAULT_PREFERENCES)
    subscriber.source = source
    subscriber.is_active = True
    subscriber.subscribed_at = datetime.utcnow()
    subscriber.unsubscribed_at = None

    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is not None:
        user.newsletter_subscribed = True

    await db.flush()
    logger.info(f"Newsletter subscription active for {email}")
    return subscriber


async def unsubscribe(db: AsyncSession, email: str) -> None:
    """Deactivate the subscriber record and clear the matching account flag."""
    subscriber = await find_subscriber(db, email)
    user = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()

    if subscriber is None and (user is None or not user.newsletter_subscribed):
        raise NotFoundError("Subscription not found")

    if subscriber is not None and subscriber.is_active:
        subscriber.is_active = False
        subscriber.unsubscribed_at = datetime.utcnow()
    if user is not None:
        user.newsletter_subscribed = False

    await db.flush()
    logger.info(f"Newsletter subscription ended for {email}")


async def sync_user_subscription(db: AsyncSession, user: User) -> None:
    """Bring the subscriber record in line with ``user.newsletter_subscribed``."""
    if user.newsletter_subscribed:
        await subscribe(db, user.email, first_name=user.username, interests=user.interests or [])
        return

    subscriber = await find_subscriber(db, user.email)
    if subscriber is not None and subscriber.is_active:
        subscriber.is_active = False
        subscriber.unsubscribed_at = datetime.utcnow()
        await db.flush()


async def move_subscription(db: AsyncSession, old_email: str, new_email: str) -> None:
    """Carry the subscriber record of ``old_email`` over to ``new_email``."""
    subscriber = await find_subscriber(db, old_email)
    if subscriber is None:
        return

    if await find_subscriber(db, new_email) is None:
        subscriber.email = new_email
    elif subscriber.is_active:
        subscriber.is_active = False
        subscriber.unsubscribed_at = datetime.utcnow()
    await db.flush()
    logger.info(f"Newsletter subscription moved from {old_email} to {new_email}")


async def collect_recipients(db: AsyncSession, category: Optional[str] = None) -> List[str]:
    """
    Email addresses of active subscribers and subscribed accounts, deduplicated.
    With a category, only recipients interested in it are kept.
    """
    subscribers = await db.execute(
        select(Newsletter.email, Newsletter.interests).where(
            Newsletter.type == NewsletterType.SUBSCRIBER.value,
            Newsletter.is_active == True,
        )
    )
    users = await db.execute(
        select(User.email, User.interests).where(
            User.newsletter_subscribed == True,
            User.is_active == True,
        )
    )

    recipients: Dict[str, None] = {}
    for email, interests in [*subscribers.all(), *users.all()]:
        if not email:
            continue
        if category and category not in (interests or []):
            continue
        recipients.setdefault(email, None)
    return list(recipients)


async def _claim(db: AsyncSession, newsletter: Newsletter, from_status: str, recipient_count: int) -> bool:
    result = await db.execute(
        update(Newsletter)
        .where(Newsletter.id == newsletter.id, Newsletter.status == from_status)
        .values(status=NewsletterStatus.SENT.value, sent_at=datetime.utcnow(), recipient_count=recipient_count)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def _release(db: AsyncSession, newsletter: Newsletter, to_status: str) -> None:
    await db.execute(
        update(Newsletter)
        .where(Newsletter.id == newsletter.id)
        .values(status=to_status, sent_at=None, recipient_count=0)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def _deliver(db: AsyncSession, newsletter: Newsletter, recipients: List[str]) -> int:
    previous_status = newsletter.status
    if not await _claim(db, newsletter, previous_status, len(recipients)):
        raise BadRequestError("Newsletter is already being sent")

    try:
        delivered = await email_service.send_newsletter(
            newsletter.title, newsletter.content, recipients, newsletter.category
        )
    except Exception:
        logger.exception(f"Delivery of newsletter {newsletter.id} failed; releasing claim")
        await _release(db, newsletter, previous_status)
        raise

    await db.refresh(newsletter)
    return delivered


async def send(db: AsyncSession, newsletter_id: int) -> Tuple[Newsletter, int, int]:
    """
    Send a newsletter now.

    Returns:
        (newsletter, recipient count, delivered count)
    """
    newsletter = await get_newsletter(db, newsletter_id)
    if newsletter.status == NewsletterStatus.SENT:
        raise BadRequestError("Newsletter has already been sent")

    recipients = await collect_recipients(db, newsletter.category)
    if not recipients:
        raise BadRequestError("No active subscribers match the criteria")

    delivered = await _deliver(db, newsletter, recipients)
    return newsletter, len(recipients), delivered


async def broadcast(
    db: AsyncSession, subject: str, content: str, category: Optional[str] = None
) -> Tuple[Newsletter, int, int]:
    """Send an ad-hoc newsletter and keep it as a sent record."""
    recipients = await collect_recipients(db, category)
    if not recipients:
        raise BadRequestError("No active subscribers match the criteria")

    newsletter = Newsletter(
        type=NewsletterType.NEWSLETTER.value,
        title=subject,
        content=content,
        category=category,
        status=NewsletterStatus.DRAFT.value,
    )
    db.add(newsletter)
    await db.flush()

    delivered = await _deliver(db, newsletter, recipients)
    return newsletter, len(recipients), delivered


async def send_if_due(db: AsyncSession, newsletter_id: int) -> bool:
    """
    Deliver a scheduled newsletter whose time has come.
    Safe to call repeatedly: anything not scheduled and due is left alone.
    """
    result = await db.execute(select(Newsletter).where(Newsletter.id == newsletter_id))
    newsletter = result.scalar_one_or_none()
    if newsletter is None or newsletter.status != NewsletterStatus.SCHEDULED:
        return False
    if newsletter.scheduled_date and newsletter.scheduled_date > datetime.utcnow():
        return False

    recipients = await collect_recipients(db, newsletter.category)
    if not recipients:
        logger.warning(f"Scheduled newsletter {newsletter.id} has no recipients; returned to draft")
        newsletter.status = NewsletterStatus.DRAFT.value
        await db.commit()
        return False

    try:
        await _deliver(db, newsletter, recipients)
    except BadRequestError:
        # Claimed concurrently by another sender
        return False
    return True


async def dispatch_due(db: AsyncSession) -> int:
    """Deliver every scheduled newsletter that is due. Returns how many were sent."""
    result = await db.execute(
        select(Newsletter.id).where(
            Newsletter.type == NewsletterType.NEWSLETTER.value,
            Newsletter.status == NewsletterStatus.SCHEDULED.value,
            Newsletter.scheduled_date <= datetime.utcnow(),
        )
    )
    sent = 0
    for newsletter_id in result.scalars().all():
        if await send_if_due(db, newsletter_id):
            sent += 1
    return sent


class NewsletterScheduler:
    """Queues delivery of a scheduled newsletter on the Celery worker."""

    def schedule(self, newsletter_id: int, eta: datetime) -> None:
        from ateleslie.tasks.newsletters import send_scheduled_newsletter

        try:
            send_scheduled_newsletter.apply_async(args=[newsletter_id], eta=eta)
        except OperationalError as e:
            # The record is persisted as scheduled; the periodic sweep delivers it
            logger.warning(f"Could not queue newsletter {newsletter_id} ({e}); relying on periodic dispatch")


@lru_cache()
def get_newsletter_scheduler() -> NewsletterScheduler:
    return NewsletterScheduler()
