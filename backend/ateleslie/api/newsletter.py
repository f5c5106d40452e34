"""
Newsletter Router
Public subscription endpoints and admin authoring, scheduling and delivery.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.api.dependencies import get_current_user, require_permission
from ateleslie.database import get_db
from ateleslie.exceptions import BadRequestError
from ateleslie.models.newsletter import Newsletter, NewsletterStatus, NewsletterType
from ateleslie.models.user import User
from ateleslie.permissions import Action, Resource
from ateleslie.schemas.common import ApiResponse, PaginatedData
from ateleslie.schemas.newsletter import (
    BroadcastRequest, DeliveryResult, NewsletterCreate, NewsletterResponse, ScheduleRequest,
    SubscribeRequest, SubscriberResponse, SubscriptionState, UnsubscribeRequest,
)
from ateleslie.services import newsletter_service
from ateleslie.services.newsletter_service import NewsletterScheduler, get_newsletter_scheduler
from ateleslie.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()

require_manage = require_permission(Resource.NEWSLETTER, Action.MANAGE)
require_send = require_permission(Resource.NEWSLETTER, Action.SEND)


@router.post("/subscribe", response_model=ApiResponse[SubscriberResponse])
async def subscribe(payload: SubscribeRequest, db: AsyncSession = Depends(get_db)):
    subscriber = await newsletter_service.subscribe(
        db,
        payload.email,
        first_name=payload.first_name,
        interests=payload.interests,
        preferences=payload.preferences.model_dump(),
        source=payload.source,
    )
    await db.commit()
    await db.refresh(subscriber)
    return ApiResponse(
        message="Successfully subscribed to newsletter",
        data=SubscriberResponse.model_validate(subscriber),
    )


@router.post("/unsubscribe", response_model=ApiResponse[None])
async def unsubscribe(payload: UnsubscribeRequest, db: AsyncSession = Depends(get_db)):
    await newsletter_service.unsubscribe(db, payload.email)
    await db.commit()
    if payload.reason:
        logger.info(f"Unsubscribe reason from {payload.email}: {payload.reason}")
    return ApiResponse(message="Successfully unsubscribed from newsletter")


@router.put("/subscription", response_model=ApiResponse[SubscriptionState])
async def toggle_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Flip the signed-in user's newsletter flag."""
    user.newsletter_subscribed = not user.newsletter_subscribed
    await newsletter_service.sync_user_subscription(db, user)
    await db.commit()

    state = "subscribed to" if user.newsletter_subscribed else "unsubscribed from"
    return ApiResponse(
        message=f"Successfully {state} newsletter",
        data=SubscriptionState(email=user.email, newsletter_subscribed=user.newsletter_subscribed),
    )


@router.post("", response_model=ApiResponse[NewsletterResponse], status_code=status.HTTP_201_CREATED)
async def create_newsletter(
    payload: NewsletterCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_manage),
):
    newsletter = Newsletter(
        type=NewsletterType.NEWSLETTER.value,
        title=payload.title,
        content=payload.content,
        category=payload.category,
        tags=list(dict.fromkeys(payload.tags)),
        status=NewsletterStatus.DRAFT.value,
    )
    db.add(newsletter)
    await db.commit()
    await db.refresh(newsletter)
    return ApiResponse(message="Newsletter created", data=NewsletterResponse.model_validate(newsletter))


@router.get("", response_model=ApiResponse[PaginatedData[NewsletterResponse]])
async def list_newsletters(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    status_filter: Optional[NewsletterStatus] = Query(None, alias="status"),
    tag: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_manage),
):
    stmt = (
        select(Newsletter)
        .where(Newsletter.type == NewsletterType.NEWSLETTER.value)
        .order_by(Newsletter.created_at.desc(), Newsletter.id.desc())
    )
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(
            func.lower(Newsletter.title).like(pattern),
            func.lower(Newsletter.content).like(pattern),
        ))
    if category:
        stmt = stmt.where(Newsletter.category == category)
    if status_filter:
        stmt = stmt.where(Newsletter.status == status_filter.value)
    if tag:
        # Tags are a JSON list of strings; match the quoted element in its text form
        stmt = stmt.where(cast(Newsletter.tags, String).like(f'%"{tag}"%'))

    newsletters, pagination = await paginate(db, stmt, page, limit)
    return ApiResponse(
        message="Newsletters retrieved",
        data=PaginatedData(
            items=[NewsletterResponse.model_validate(n) for n in newsletters], pagination=pagination
        ),
    )


@router.get("/subscribers", response_model=ApiResponse[PaginatedData[SubscriberResponse]])
async def list_subscribers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    active: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_manage),
):
    stmt = (
        select(Newsletter)
        .where(Newsletter.type == NewsletterType.SUBSCRIBER.value)
        .order_by(Newsletter.subscribed_at.desc(), Newsletter.id.desc())
    )
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(
            Newsletter.email.like(pattern),
            func.lower(Newsletter.first_name).like(pattern),
        ))
    if active is not None:
        stmt = stmt.where(Newsletter.is_active == active)

    subscribers, pagination = await paginate(db, stmt, page, limit)
    return ApiResponse(
        message="Subscribers retrieved",
        data=PaginatedData(
            items=[SubscriberResponse.model_validate(s) for s in subscribers], pagination=pagination
        ),
    )


@router.post("/send", response_model=ApiResponse[DeliveryResult])
async def broadcast_newsletter(
    payload: BroadcastRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_send),
):
    """Send an ad-hoc newsletter to every matching recipient now."""
    _, recipients, delivered = await newsletter_service.broadcast(
        db, payload.subject, payload.content, payload.category
    )
    return ApiResponse(
        message=f"Newsletter sent to {recipients} recipient(s)",
        data=DeliveryResult(recipients=recipients, delivered=delivered),
    )


@router.post("/{newsletter_id}/schedule", response_model=ApiResponse[NewsletterResponse])
async def schedule_newsletter(
    newsletter_id: int,
    payload: ScheduleRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_manage),
    scheduler: NewsletterScheduler = Depends(get_newsletter_scheduler),
):
    """
    Mark a newsletter as scheduled for a future date and queue its delivery.
    The periodic dispatch job also delivers it if the queued task is lost.
    """
    if payload.scheduled_date <= datetime.utcnow():
        raise BadRequestError("Scheduled date must be in the future")

    newsletter = await newsletter_service.get_newsletter(db, newsletter_id)
    if newsletter.status == NewsletterStatus.SENT:
        raise BadRequestError("Newsletter has already been sent")

    newsletter.status = NewsletterStatus.SCHEDULED.value
    newsletter.scheduled_date = payload.scheduled_date
    await db.commit()
    await db.refresh(newsletter)

    scheduler.schedule(newsletter.id, newsletter.scheduled_date)
    logger.info(f"Newsletter {newsletter.id} scheduled for {newsletter.scheduled_date.isoformat()}")
    return ApiResponse(message="Newsletter scheduled", data=NewsletterResponse.model_validate(newsletter))


@router.post("/{newsletter_id}/send", response_model=ApiResponse[DeliveryResult])
async def send_newsletter(
    newsletter_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_send),
):
    _, recipients, delivered = await newsletter_service.send(db, newsletter_id)
    return ApiResponse(
        message=f"Newsletter sent to {recipients} recipient(s)",
        data=DeliveryResult(recipients=recipients, delivered=delivered),
    )
