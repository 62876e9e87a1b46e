import uuid

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.database import get_session
from app.dependencies.auth import get_current_user
from app.dependencies.rate_limit import limit_booking_creation
from app.schemas.auth import Actor
from app.schemas.booking import (
    BookingCreate,
    BookingOut,
    BookingStatusUpdate,
    BookingTimeUpdate,
    TimeChangeRequestCreate,
    TimeChangeResponse,
)
from app.schemas.common import envelope
from app.services import bookings as booking_service
from app.services import notifications

logger = get_logger(__name__)
router = APIRouter(prefix="/api/booking", tags=["booking"])


@router.post("", status_code=201, dependencies=[Depends(limit_booking_creation)])
async def create_booking(
    request: BookingCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    booking = await booking_service.create_booking(db, actor, request)
    background_tasks.add_task(
        notifications.notify,
        notifications.BOOKING_CREATED,
        actor.id,
        {"booking_id": str(booking.id), "property_id": str(booking.property_id),
         "visit_date": booking.visit_date.isoformat(), "time_slot": booking.time_slot},
    )
    return envelope({"message": "Site visit booked successfully", "booking": BookingOut.from_model(booking)}, status_code=201)


@router.get("")
async def list_bookings(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    rows, breakdown = await booking_service.list_bookings(db, actor)
    return envelope({
        "total_bookings": len(rows),
        "total_by_status": breakdown,
        "bookings": [BookingOut.from_model(booking, prop) for booking, prop in rows],
    })


@router.get("/analytics")
async def booking_analytics(limit: int = 5, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    return envelope(await booking_service.booking_analytics(db, actor, top_limit=limit))


@router.put("/{booking_id}/status")
async def update_booking_status(
    booking_id: uuid.UUID,
    request: BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    booking = await booking_service.update_booking_status(db, actor, booking_id, request.status)
    background_tasks.add_task(
        notifications.notify,
        notifications.BOOKING_STATUS_CHANGED,
        booking.user_id,
        {"booking_id": str(booking.id), "status": booking.status.value},
    )
    return envelope({"message": f"Booking {booking.status.value} successfully", "booking": BookingOut.from_model(booking)})


@router.put("/{booking_id}/update-time")
async def update_booking_time(
    booking_id: uuid.UUID,
    request: BookingTimeUpdate,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    booking = await booking_service.update_booking_time(db, actor, booking_id, request.visit_date, request.time_slot)
    return envelope({"message": "Booking time updated, awaiting approval", "booking": BookingOut.from_model(booking)})


@router.post("/{booking_id}/time-change-request")
async def request_time_change(
    booking_id: uuid.UUID,
    request: TimeChangeRequestCreate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    booking = await booking_service.request_time_change(db, actor, booking_id, request.suggested_slots, request.reason)
    background_tasks.add_task(
        notifications.notify,
        notifications.BOOKING_TIME_CHANGE_REQUESTED,
        booking.user_id,
        {"booking_id": str(booking.id), "reason": booking.time_change_reason,
         "suggested_slots": booking.time_change_suggested_slots},
    )
    return envelope({"message": "Time change requested", "booking": BookingOut.from_model(booking)})


@router.post("/{booking_id}/time-change-response")
async def respond_time_change(
    booking_id: uuid.UUID,
    request: TimeChangeResponse,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    booking = await booking_service.respond_time_change(db, actor, booking_id, request.action, request.new_time_slot)
    message = "Time change accepted" if request.action == "accept" else "Time change declined"
    return envelope({"message": message, "booking": BookingOut.from_model(booking)})
