import uuid
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import BookingStatus
from app.schemas.property import PropertySummary


class BookingCreate(BaseModel):
    property_id: uuid.UUID
    visit_date: date
    time_slot: str = Field(..., min_length=1, max_length=50)
    message: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "property_id": "7b0c7c4e-2a55-4d7e-9a7f-0c3c2f3a9f10",
                "visit_date": "2026-11-02",
                "time_slot": "10:00-11:00",
                "message": "Can I bring my partner along?",
            }
        }
    )


class BookingTimeUpdate(BaseModel):
    visit_date: Optional[date] = None
    time_slot: Optional[str] = Field(None, min_length=1, max_length=50)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class TimeChangeRequestCreate(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)
    suggested_slots: List[str]


class TimeChangeResponse(BaseModel):
    action: Literal["accept", "decline"]
    new_time_slot: Optional[str] = None


class TimeChangeRequestOut(BaseModel):
    requested: bool = False
    reason: Optional[str] = None
    suggested_slots: List[str] = []
    requested_at: Optional[datetime] = None


class BookingOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    property_id: uuid.UUID
    visit_date: date
    time_slot: str
    status: BookingStatus
    message: Optional[str] = None
    time_change_request: TimeChangeRequestOut
    property: Optional[PropertySummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking, prop=None) -> "BookingOut":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            property_id=booking.property_id,
            visit_date=booking.visit_date,
            time_slot=booking.time_slot,
            status=booking.status,
            message=booking.message,
            time_change_request=TimeChangeRequestOut(
                requested=bool(booking.time_change_requested),
                reason=booking.time_change_reason,
                suggested_slots=booking.time_change_suggested_slots or [],
                requested_at=booking.time_change_requested_at,
            ),
            property=PropertySummary.from_model(prop) if prop is not None else None,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
