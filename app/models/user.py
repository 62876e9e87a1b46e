import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Enum, Uuid
from .base import Base, utcnow
from .enums import Role


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255))  # hash only, issued by the auth service
    first_name = Column(String(100))
    last_name = Column(String(100))
    phone = Column(String(30))
    verified = Column(Boolean, default=False, nullable=False)
    role = Column(Enum(Role, name="userrole"), default=Role.user, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
