import uuid
from typing import Optional

from pydantic import BaseModel

from app.models.enums import Role


class Actor(BaseModel):
    """Authenticated caller as reported by the user management service."""
    id: uuid.UUID
    role: Role
    email: Optional[str] = None
