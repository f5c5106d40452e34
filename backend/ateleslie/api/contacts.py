"""
Contact Router
Public contact form plus admin triage of submitted messages.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ateleslie.api.dependencies import get_current_user_optional, require_permission
from ateleslie.database import get_db
from ateleslie.exceptions import BadRequestError, NotFoundError
from ateleslie.models.contact import Contact, ContactStatus, ContactType
from ateleslie.models.user import User, UserRole
from ateleslie.permissions import Action, Resource
from ateleslie.schemas.common import ApiResponse, PaginatedData
from ateleslie.schemas.contact import ContactCreate, ContactResponse, ContactStatusUpdate
from ateleslie.services import email_service
from ateleslie.utils import validators
from ateleslie.utils.pagination import paginate

router = APIRouter()


async def _get_contact(db: AsyncSession, contact_id: int) -> Contact:
    result = await db.execute(select(Contact).where(Contact.id == contact_id))
    contact = result.scalar_one_or_none()
    if not contact:
        raise NotFoundError("Contact not found")
    return contact


@router.post("", response_model=ApiResponse[ContactResponse], status_code=status.HTTP_201_CREATED)
async def create_contact(
    payload: ContactCreate,
    background_tasks: BackgroundTasks,
    user: Optional[User] = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    """
    Store a contact message.
    Active administrators are notified and the sender gets a confirmation in the background.
    """
    contact = Contact(
        type=payload.type.value,
        name=payload.name,
        email=payload.email,
        phone_number=payload.phone_number,
        message=payload.message,
        rating=payload.rating,
        status=ContactStatus.PENDING.value,
        user_id=user.id if user else None,
    )
    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    admins = await db.execute(
        select(User.email).where(User.role == UserRole.ADMIN.value, User.is_active == True)
    )
    background_tasks.add_task(
        email_service.send_contact_notifications,
        list(admins.scalars().all()),
        contact.email,
        contact.name,
        contact.type,
        contact.message,
    )

    return ApiResponse(message="Message sent successfully", data=ContactResponse.model_validate(contact))


@router.get("", response_model=ApiResponse[PaginatedData[ContactResponse]])
async def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status_filter: Optional[ContactStatus] = Query(None, alias="status"),
    type_filter: Optional[ContactType] = Query(None, alias="type"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission(Resource.CONTACT, Action.READ)),
):
    stmt = select(Contact).order_by(Contact.created_at.desc(), Contact.id.desc())
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(
            func.lower(Contact.name).like(pattern),
            func.lower(Contact.email).like(pattern),
            func.lower(Contact.message).like(pattern),
        ))
    if status_filter:
        stmt = stmt.where(Contact.status == status_filter.value)
    if type_filter:
        stmt = stmt.where(Contact.type == type_filter.value)

    contacts, pagination = await paginate(db, stmt, page, limit)
    return ApiResponse(
        message="Contacts retrieved",
        data=PaginatedData(items=[ContactResponse.model_validate(c) for c in contacts], pagination=pagination),
    )


@router.get("/{contact_id}", response_model=ApiResponse[ContactResponse])
async def get_contact(
    contact_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission(Resource.CONTACT, Action.READ)),
):
    contact = await _get_contact(db, contact_id)
    return ApiResponse(message="Contact retrieved", data=ContactResponse.model_validate(contact))


@router.put("/{contact_id}/status", response_model=ApiResponse[ContactResponse])
async def update_contact_status(
    contact_id: int,
    payload: ContactStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_permission(Resource.CONTACT, Action.MANAGE)),
):
    """
    Move a contact through pending, in-progress, resolved and closed.
    Setting the current status again is a no-op.
    """
    contact = await _get_contact(db, contact_id)
    validators.ensure_valid(validators.validate_status_transition(contact.status, payload.status.value))

    if payload.assigned_to is not None:
        result = await db.execute(select(User).where(User.id == payload.assigned_to))
        assignee = result.scalar_one_or_none()
        if not assignee or not assignee.is_admin:
            raise BadRequestError("Contacts can only be assigned to an administrator")
        contact.assigned_to_id = assignee.id

    contact.status = payload.status.value
    await db.commit()
    await db.refresh(contact)
    return ApiResponse(message="Contact status updated", data=ContactResponse.model_validate(contact))
