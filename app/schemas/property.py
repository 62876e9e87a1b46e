import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PropertyStatus, PropertyType

LOCATION_FIELDS = ("address", "city", "state", "country")


class Coordinates(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class Location(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    def to_columns(self) -> dict:
        columns = {name: getattr(self, name) for name in LOCATION_FIELDS}
        coords = self.coordinates or Coordinates()
        columns["lat"] = coords.lat
        columns["lng"] = coords.lng
        return columns


class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location: Location = Field(default_factory=Location)
    rent: float = Field(..., ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "2BHK near metro",
                "description": "Sunny flat with balcony",
                "location": {"address": "12 MG Road", "city": "Pune", "state": "MH", "country": "India"},
                "rent": 25000,
                "deposit": 50000,
                "property_type": "apartment",
                "bedrooms": 2,
                "bathrooms": 2,
                "area": 950,
                "amenities": ["parking", "wifi"],
                "images": ["https://cdn.example.com/p/1.jpg"],
            }
        }
    )

    def to_columns(self) -> dict:
        columns = self.model_dump(exclude={"location"})
        columns.update(self.location.to_columns())
        return columns


class PropertyUpdate(BaseModel):
    """Owner edit; any field outside this whitelist is rejected."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[Location] = None
    rent: Optional[float] = Field(None, ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None

    model_config = ConfigDict(extra="forbid")

    def to_columns(self) -> dict:
        columns = self.model_dump(exclude_unset=True, exclude={"location"})
        if "location" in self.model_fields_set and self.location is not None:
            columns.update(self.location.to_columns())
        for name in ("amenities", "images"):
            if name in columns and columns[name] is None:
                columns[name] = []
        # required columns cannot be cleared
        for name in ("title", "rent"):
            if name in columns and columns[name] is None:
                del columns[name]
        return columns


class OwnerSummary(BaseModel):
    id: uuid.UUID
    name: str = ""
    phone: Optional[str] = None


class PropertyOut(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    owner: Optional[OwnerSummary] = None
    title: str
    description: Optional[str] = None
    location: Location
    rent: float
    deposit: Optional[float] = None
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    area: Optional[float] = None
    amenities: List[str] = []
    images: List[str] = []
    status: PropertyStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, prop, owner: Optional[dict] = None) -> "PropertyOut":
        return cls(
            id=prop.id,
            owner_id=prop.owner_id,
            owner=OwnerSummary(**owner) if owner else None,
            title=prop.title,
            description=prop.description,
            location=Location(
                address=prop.address,
                city=prop.city,
                state=prop.state,
                country=prop.country,
                coordinates=Coordinates(lat=prop.lat, lng=prop.lng),
            ),
            rent=prop.rent,
            deposit=prop.deposit,
            property_type=prop.property_type,
            bedrooms=prop.bedrooms,
            bathrooms=prop.bathrooms,
            area=prop.area,
            amenities=prop.amenities or [],
            images=prop.images or [],
            status=prop.status,
            created_at=prop.created_at,
            updated_at=prop.updated_at,
        )


class PropertySummary(BaseModel):
    id: uuid.UUID
    title: str
    city: Optional[str] = None
    rent: float
    images: List[str] = []

    @classmethod
    def from_model(cls, prop) -> "PropertySummary":
        return cls(id=prop.id, title=prop.title, city=prop.city, rent=prop.rent, images=prop.images or [])


class PropertySearchParams(BaseModel):
    search: Optional[str] = None
    min_rent: Optional[float] = None
    max_rent: Optional[float] = None
    min_deposit: Optional[float] = None
    max_deposit: Optional[float] = None
    min_area: Optional[float] = None
    max_area: Optional[float] = None
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    amenities: Optional[List[str]] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    sort_by: str = "newest"
    page: int = 1
    limit: int = 10


class PropertyStatusUpdate(BaseModel):
    status: PropertyStatus
