import uuid
from pydantic import BaseModel


class WishlistItemRequest(BaseModel):
    property_id: uuid.UUID
