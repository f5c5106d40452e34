import asyncio
import logging

from ateleslie.worker import celery_app
from ateleslie.database import AsyncSessionLocal, engine
from ateleslie.services import newsletter_service

logger = logging.getLogger(__name__)


@celery_app.task(name="ateleslie.tasks.newsletters.send_scheduled_newsletter")
def send_scheduled_newsletter(newsletter_id: int):
    """
    Deliver one scheduled newsletter at its ETA.
    A no-op when the record was already sent, rescheduled later or unscheduled.
    """
    return asyncio.run(_send_scheduled(newsletter_id))


@celery_app.task(name="ateleslie.tasks.newsletters.dispatch_due_newsletters")
def dispatch_due_newsletters():
    """Periodic sweep delivering every scheduled newsletter that is due."""
    return asyncio.run(_dispatch_due())


async def _send_scheduled(newsletter_id: int) -> dict:
    try:
        async with AsyncSessionLocal() as session:
            sent = await newsletter_service.send_if_due(session, newsletter_id)
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()

    if sent:
        logger.info(f"Scheduled newsletter {newsletter_id} delivered")
    return {"newsletter_id": newsletter_id, "sent": sent}


async def _dispatch_due() -> dict:
    try:
        async with AsyncSessionLocal() as session:
            sent = await newsletter_service.dispatch_due(session)
    finally:
        await engine.dispose()

    if sent:
        logger.info(f"Dispatched {sent} due newsletter(s)")
    return {"sent": sent}
