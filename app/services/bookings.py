"""Site-visit booking lifecycle.

pending -> approved | rejected | completed (admin, from any state)
any     -> pending                         (user changes date or slot)
time-change negotiation: admin proposes slots, the booking's user accepts one
(slot updated, status forced to approved) or declines (nothing changes).
"""
import uuid
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.policy import Action, authorize
from app.models import Booking, BookingStatus, Property, PropertyStatus, Role, User
from app.models.base import utcnow
from app.schemas.auth import Actor
from app.schemas.booking import BookingCreate

logger = get_logger(__name__)

ADMIN_SETTABLE_STATUSES = (BookingStatus.approved, BookingStatus.rejected, BookingStatus.completed)
DUPLICATE_PENDING_MESSAGE = "You already have a pending site visit request for this property"
MAX_TOP_PROPERTIES = 50

CLEARED_TIME_CHANGE = {
    "time_change_requested": False,
    "time_change_reason": None,
    "time_change_suggested_slots": [],
    "time_change_requested_at": None,
}


async def get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def _ensure_booking_owner(actor: Actor, booking: Booking) -> None:
    if booking.user_id != actor.id:
        raise AuthorizationError("Not authorized to update this booking")


async def _save(db: AsyncSession, booking: Booking, values: dict) -> Booking:
    """Write ``values`` only if nobody else touched the booking since it was read."""
    seen_version = booking.version
    values = {**values, "version": seen_version + 1, "updated_at": utcnow()}
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.version == seen_version)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Booking was modified by another request, please retry")
    await db.commit()
    await db.refresh(booking)
    return booking


async def create_booking(db: AsyncSession, actor: Actor, payload: BookingCreate) -> Booking:
    authorize(actor, Action.create_booking)
    # row lock on the property serialises concurrent creates for it
    prop = await db.scalar(
        select(Property)
        .where(Property.id == payload.property_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if prop is None or prop.status != PropertyStatus.published:
        raise NotFoundError("Property not found or not available for booking")

    existing = await db.scalar(
        select(Booking.id).where(
            Booking.user_id == actor.id,
            Booking.property_id == prop.id,
            Booking.status == BookingStatus.pending,
        )
    )
    if existing is not None:
        raise ConflictError(DUPLICATE_PENDING_MESSAGE, details={"booking_id": str(existing)})

    booking = Booking(
        user_id=actor.id,
        property_id=prop.id,
        visit_date=payload.visit_date,
        time_slot=payload.time_slot,
        message=payload.message or "",
        status=BookingStatus.pending,
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    logger.info("Booking created", booking_id=str(booking.id), user_id=str(actor.id), property_id=str(prop.id))
    return booking


async def update_booking_status(db: AsyncSession, actor: Actor, booking_id: uuid.UUID, status: BookingStatus) -> Booking:
    authorize(actor, Action.change_booking_status)
    if status not in ADMIN_SETTABLE_STATUSES:
        raise ValidationError("Invalid booking status")
    booking = await get_booking(db, booking_id)
    previous = booking.status
    booking = await _save(db, booking, {"status": status})
    logger.info("Booking status changed", booking_id=str(booking.id), previous_status=previous.value, status=status.value)
    return booking


async def update_booking_time(
    db: AsyncSession,
    actor: Actor,
    booking_id: uuid.UUID,
    visit_date: Optional[date] = None,
    time_slot: Optional[str] = None,
) -> Booking:
    """Reschedule by the booking's user; any earlier admin decision is dropped."""
    authorize(actor, Action.update_own_booking)
    if visit_date is None and not time_slot:
        raise ValidationError("Provide a new visit date or time slot")
    booking = await get_booking(db, booking_id)
    _ensure_booking_owner(actor, booking)
    values = {
        "visit_date": visit_date or booking.visit_date,
        "time_slot": time_slot or booking.time_slot,
        "status": BookingStatus.pending,
    }
    booking = await _save(db, booking, values)
    logger.info("Booking rescheduled", booking_id=str(booking.id), visit_date=str(booking.visit_date), time_slot=booking.time_slot)
    return booking


async def request_time_change(
    db: AsyncSession,
    actor: Actor,
    booking_id: uuid.UUID,
    suggested_slots: List[str],
    reason: Optional[str] = None,
) -> Booking:
    authorize(actor, Action.request_time_change)
    slots = [s.strip() for s in suggested_slots if s and s.strip()]
    if not slots:
        raise ValidationError("At least one suggested time slot is required")
    booking = await get_booking(db, booking_id)
    # a new proposal replaces any earlier one
    values = {
        "time_change_requested": True,
        "time_change_reason": reason,
        "time_change_suggested_slots": list(dict.fromkeys(slots)),
        "time_change_requested_at": utcnow(),
    }
    booking = await _save(db, booking, values)
    logger.info("Time change requested", booking_id=str(booking.id), suggested_slots=booking.time_change_suggested_slots)
    return booking


async def respond_time_change(
    db: AsyncSession,
    actor: Actor,
    booking_id: uuid.UUID,
    action: str,
    new_time_slot: Optional[str] = None,
) -> Booking:
    authorize(actor, Action.respond_time_change)
    booking = await get_booking(db, booking_id)
    _ensure_booking_owner(actor, booking)
    if not booking.time_change_requested:
        raise ConflictError("There is no pending time change request for this booking")

    values = dict(CLEARED_TIME_CHANGE)
    if action == "accept":
        valid_slots = list(booking.time_change_suggested_slots or [])
        if new_time_slot not in valid_slots:
            raise ConflictError(
                "Invalid time slot. Please choose one of the suggested slots",
                details={"valid_slots": valid_slots},
            )
        values.update(time_slot=new_time_slot, status=BookingStatus.approved)
    elif action != "decline":
        raise ValidationError("Action must be either accept or decline")

    booking = await _save(db, booking, values)
    logger.info("Time change answered", booking_id=str(booking.id), action=action, time_slot=booking.time_slot)
    return booking


# ---------- read-only projections ----------

async def status_breakdown(db: AsyncSession, user_id: Optional[uuid.UUID] = None) -> Dict[str, int]:
    stmt = select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    if user_id is not None:
        stmt = stmt.where(Booking.user_id == user_id)
    counts = {status.value: 0 for status in BookingStatus}
    for status, count in (await db.execute(stmt)).all():
        counts[status.value] = count
    return counts


async def list_bookings(db: AsyncSession, actor: Actor) -> Tuple[List[Tuple[Booking, Property]], Dict[str, int]]:
    """Users see their own bookings, admins see everything."""
    authorize(actor, Action.list_bookings)
    user_id = actor.id if actor.role == Role.user else None
    stmt = (
        select(Booking, Property)
        .join(Property, Booking.property_id == Property.id)
        .order_by(Booking.created_at.desc(), Booking.id)
    )
    if user_id is not None:
        stmt = stmt.where(Booking.user_id == user_id)
    rows = [(booking, prop) for booking, prop in (await db.execute(stmt)).all()]
    return rows, await status_breakdown(db, user_id)


async def booking_analytics(db: AsyncSession, actor: Actor, top_limit: int = 5) -> dict:
    authorize(actor, Action.view_booking_analytics)
    if top_limit < 1 or top_limit > MAX_TOP_PROPERTIES:
        raise ValidationError(f"Limit must be between 1 and {MAX_TOP_PROPERTIES}")

    total = await db.scalar(select(func.count(Booking.id))) or 0
    by_status = await status_breakdown(db)

    role_rows = (
        await db.execute(
            select(User.role, func.count(Booking.id)).join(User, Booking.user_id == User.id).group_by(User.role)
        )
    ).all()
    by_role = {role.value: count for role, count in role_rows}

    bookings_count = func.count(Booking.id).label("bookings_count")
    top_rows = (
        await db.execute(
            select(Booking.property_id, Property.title, bookings_count)
            .join(Property, Booking.property_id == Property.id)
            .group_by(Booking.property_id, Property.title)
            .order_by(desc("bookings_count"), Property.title)
            .limit(top_limit)
        )
    ).all()
    top_properties = [
        {"property_id": property_id, "title": title, "bookings_count": count}
        for property_id, title, count in top_rows
    ]
    return {
        "total_bookings": total,
        "bookings_by_status": by_status,
        "bookings_by_user_role": by_role,
        "top_properties": top_properties,
    }
