import uuid
from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Text, Float, Integer, Enum, Uuid
from .base import Base, JSONType, utcnow
from .enums import PropertyStatus, PropertyType


class Property(Base):
    __tablename__ = "properties"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("owners.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    # location
    address = Column(String(255))
    city = Column(String(100), index=True)
    state = Column(String(100))
    country = Column(String(100))
    lat = Column(Float)
    lng = Column(Float)
    rent = Column(Numeric(12, 2, asdecimal=False), nullable=False, index=True)
    deposit = Column(Numeric(12, 2, asdecimal=False))
    property_type = Column(Enum(PropertyType, name="propertytype"), index=True)
    bedrooms = Column(Integer)
    bathrooms = Column(Integer)
    area = Column(Float)
    amenities = Column(JSONType, default=list)
    images = Column(JSONType, default=list)
    status = Column(Enum(PropertyStatus, name="propertystatus"), default=PropertyStatus.pending, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
