"""
Events Router
Public event listing and admin management of events and their images.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Form, Query, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.api.dependencies import require_permission
from ateleslie.api.uploads import receive_images
from ateleslie.database import get_db
from ateleslie.exceptions import BadRequestError, NotFoundError, validation_errors
from ateleslie.models.event import Event
from ateleslie.models.user import User
from ateleslie.permissions import Action, Resource
from ateleslie.schemas.common import ApiResponse, PaginatedData, to_naive_utc
from ateleslie.schemas.event import EventCreate, EventResponse, EventUpdate
from ateleslie.services.images import ImageService, StagedUpload, get_image_service
from ateleslie.utils import validators
from ateleslie.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter()

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _parse_form(schema: Type[SchemaT], fields: Dict[str, Any]) -> SchemaT:
    """Validate multipart form fields with a request schema."""
    try:
        return schema.model_validate({k: v for k, v in fields.items() if v is not None})
    except ValidationError as e:
        errors = validation_errors(e.errors())
        raise BadRequestError(errors[0]["message"] if errors else "Validation failed", errors=errors)


async def _process_uploads(service: ImageService, staged: List[StagedUpload]) -> List[dict]:
    """
    Run every staged upload through the image pipeline.
    If one fails, images already processed for this request are deleted.
    """
    processed: List[dict] = []
    try:
        for file in staged:
            processed.append(await run_in_threadpool(service.process_image, file))
    except Exception:
        service.delete_images(processed)
        raise
    return processed


async def _get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


@router.get("", response_model=ApiResponse[PaginatedData[EventResponse]])
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    """
    List active events ordered by start date.

    startDate keeps events starting on or after it; endDate keeps events
    ending on or before it.
    """
    stmt = select(Event).where(Event.is_active == True)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(Event.title).like(pattern), func.lower(Event.description).like(pattern)))
    if category:
        stmt = stmt.where(Event.category == category)
    if start_date:
        stmt = stmt.where(Event.start_date >= to_naive_utc(start_date))
    if end_date:
        stmt = stmt.where(Event.end_date <= to_naive_utc(end_date))
    stmt = stmt.order_by(Event.start_date, Event.id)

    events, pagination = await paginate(db, stmt, page, limit)
    return ApiResponse(
        message="Events retrieved",
        data=PaginatedData(items=[EventResponse.model_validate(e) for e in events], pagination=pagination),
    )


@router.get("/{event_id}", response_model=ApiResponse[EventResponse])
async def get_event(event_id: int, db: AsyncSession = Depends(get_db)):
    event = await _get_event(db, event_id)
    return ApiResponse(message="Event retrieved", data=EventResponse.model_validate(event))


@router.post("", response_model=ApiResponse[EventResponse], status_code=status.HTTP_201_CREATED)
async def create_event(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    start_date: Optional[str] = Form(None, alias="startDate"),
    end_date: Optional[str] = Form(None, alias="endDate"),
    user: User = Depends(require_permission(Resource.EVENT, Action.CREATE)),
    staged: List[StagedUpload] = Depends(receive_images),
    service: ImageService = Depends(get_image_service),
    db: AsyncSession = Depends(get_db),
):
    """Create an event with up to five images."""
    data = _parse_form(EventCreate, {
        "title": title,
        "description": description,
        "location": location,
        "category": category,
        "startDate": start_date,
        "endDate": end_date,
    })

    images = await _process_uploads(service, staged)

    event = Event(**data.model_dump(), images=images, created_by_id=user.id)
    db.add(event)
    try:
        await db.commit()
    except Exception:
        service.delete_images(images)
        raise
    await db.refresh(event)

    logger.info(f"Event {event.id} created by user {user.id} with {len(images)} image(s)")
    return ApiResponse(message="Event created successfully", data=EventResponse.model_validate(event))


@router.put("/{event_id}", response_model=ApiResponse[EventResponse])
async def update_event(
    event_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    start_date: Optional[str] = Form(None, alias="startDate"),
    end_date: Optional[str] = Form(None, alias="endDate"),
    is_active: Optional[bool] = Form(None, alias="isActive"),
    user: User = Depends(require_permission(Resource.EVENT, Action.UPDATE)),
    staged: List[StagedUpload] = Depends(receive_images),
    service: ImageService = Depends(get_image_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Partially update an event.
    New images replace the previous ones, whose files are deleted once the update is stored.
    """
    event = await _get_event(db, event_id)
    data = _parse_form(EventUpdate, {
        "title": title,
        "description": description,
        "location": location,
        "category": category,
        "startDate": start_date,
        "endDate": end_date,
        "isActive": is_active,
    })
    changes = data.model_dump(exclude_unset=True)

    validators.ensure_valid(validators.validate_event_dates(
        changes.get("start_date", event.start_date),
        changes.get("end_date", event.end_date),
    ))

    new_images = await _process_uploads(service, staged)

    for field, value in changes.items():
        setattr(event, field, value)

    previous_images = list(event.images or [])
    if new_images:
        event.images = new_images

    try:
        await db.commit()
    except Exception:
        service.delete_images(new_images)
        raise
    await db.refresh(event)

    if new_images:
        service.delete_images(previous_images)

    return ApiResponse(message="Event updated successfully", data=EventResponse.model_validate(event))


@router.delete("/{event_id}", response_model=ApiResponse[None])
async def delete_event(
    event_id: int,
    service: ImageService = Depends(get_image_service),
    user: User = Depends(require_permission(Resource.EVENT, Action.DELETE)),
    db: AsyncSession = Depends(get_db),
):
    event = await _get_event(db, event_id)

    service.delete_images(event.images or [])
    await db.delete(event)
    await db.commit()

    logger.info(f"Event {event_id} deleted by user {user.id}")
    return ApiResponse(message="Event deleted successfully")
