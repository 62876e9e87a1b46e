import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Table, Uuid
from .base import Base, utcnow

# Authoritative, ordered membership list of an owner's properties.
# Property.owner_id is only a back-pointer and is written in the same transaction.
owner_properties = Table(
    "owner_properties",
    Base.metadata,
    Column("owner_id", Uuid(as_uuid=True), ForeignKey("owners.id", ondelete="CASCADE"), primary_key=True),
    Column("property_id", Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, nullable=False),
)


class Owner(Base):
    __tablename__ = "owners"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    id_proof_number = Column(String(100), nullable=False)
    id_proof_type = Column(String(50), nullable=False)  # e.g. Aadhar, Passport
    id_proof_image_url = Column(String(500), nullable=False)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
