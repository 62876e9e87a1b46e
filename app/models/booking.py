import uuid
from sqlalchemy import Column, String, Boolean, Date, DateTime, ForeignKey, Text, Integer, Enum, Index, Uuid
from .base import Base, JSONType, utcnow
from .enums import BookingStatus


class Booking(Base):
    """Site-visit request for a property.

    The time-change columns hold the admin's pending proposal; ``version`` is
    bumped on every write and checked by conditional updates.
    """
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    visit_date = Column(Date, nullable=False)
    time_slot = Column(String(50), nullable=False)
    status = Column(Enum(BookingStatus, name="bookingstatus"), default=BookingStatus.pending, nullable=False)
    message = Column(Text)
    time_change_requested = Column(Boolean, default=False, nullable=False)
    time_change_reason = Column(Text)
    time_change_suggested_slots = Column(JSONType, default=list)
    time_change_requested_at = Column(DateTime(timezone=True))
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_bookings_user_property", "user_id", "property_id"),
        Index("ix_bookings_status", "status"),
    )
