import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.database import get_session
from app.dependencies.auth import get_current_user
from app.models.enums import PropertyType
from app.schemas.auth import Actor
from app.schemas.common import envelope
from app.schemas.property import PropertyOut, PropertySearchParams, PropertySummary
from app.schemas.wishlist import WishlistItemRequest
from app.services import properties as property_service
from app.services import wishlist as wishlist_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/user", tags=["properties"])


def _split_amenities(values: Optional[List[str]]) -> Optional[List[str]]:
    if not values:
        return None
    amenities = [a.strip() for value in values for a in value.split(",") if a.strip()]
    return amenities or None


@router.get("/properties")
async def search_properties(
    search: Optional[str] = None,
    min_rent: Optional[float] = None,
    max_rent: Optional[float] = None,
    min_deposit: Optional[float] = None,
    max_deposit: Optional[float] = None,
    min_area: Optional[float] = None,
    max_area: Optional[float] = None,
    property_type: Optional[PropertyType] = None,
    bedrooms: Optional[int] = None,
    bathrooms: Optional[int] = None,
    amenities: Optional[List[str]] = Query(None),
    address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    sort_by: str = "newest",
    page: int = 1,
    limit: int = 10,
    db: AsyncSession = Depends(get_session),
):
    params = PropertySearchParams(
        search=search,
        min_rent=min_rent,
        max_rent=max_rent,
        min_deposit=min_deposit,
        max_deposit=max_deposit,
        min_area=min_area,
        max_area=max_area,
        property_type=property_type,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        amenities=_split_amenities(amenities),
        address=address,
        city=city,
        state=state,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    result = await property_service.search_properties(db, params)
    return envelope({
        "message": "Properties retrieved successfully",
        "properties": [PropertyOut.from_model(p, result["owners"].get(p.owner_id)) for p in result["properties"]],
        "pagination": result["pagination"],
        "applied_filters": result["applied_filters"],
    })


@router.get("/properties/{property_id}")
async def get_property(property_id: uuid.UUID, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    details = await property_service.get_property_details(db, actor, property_id)
    owners = details["owners"]
    return envelope({
        "message": "Property retrieved successfully",
        "property": PropertyOut.from_model(details["property"], owners.get(details["property"].owner_id)),
        "booking_info": details["booking_info"],
        "similar_properties": [PropertyOut.from_model(p, owners.get(p.owner_id)) for p in details["similar_properties"]],
    })


def _wishlist_payload(properties) -> dict:
    return {
        "properties": [PropertySummary.from_model(p) for p in properties],
        "total_items": len(properties),
    }


@router.get("/wishlist")
async def get_wishlist(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    properties = await wishlist_service.get_wishlist(db, actor)
    return envelope({"message": "Wishlist retrieved successfully", "wishlist": _wishlist_payload(properties)})


@router.post("/wishlist")
async def add_to_wishlist(request: WishlistItemRequest, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    properties, is_new = await wishlist_service.add_to_wishlist(db, actor, request.property_id)
    message = "Property added to wishlist successfully" if is_new else "Property already in wishlist"
    return envelope({"message": message, "wishlist": _wishlist_payload(properties), "is_new_property": is_new})


@router.delete("/wishlist")
async def remove_from_wishlist(request: WishlistItemRequest, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    properties = await wishlist_service.remove_from_wishlist(db, actor, request.property_id)
    return envelope({"message": "Property removed from wishlist successfully", "wishlist": _wishlist_payload(properties)})
