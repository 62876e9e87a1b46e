import uuid
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from .base import Base, utcnow


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    property_id = Column(Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_wishlist_user_property"),)
