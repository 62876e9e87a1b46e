import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.dependencies.auth import get_current_user
from app.schemas.auth import Actor
from app.schemas.common import envelope
from app.schemas.property import PropertyCreate, PropertyOut, PropertyUpdate
from app.services import properties as property_service

router = APIRouter(prefix="/api/owner", tags=["owner"])


@router.post("/properties", status_code=201)
async def upload_property(request: PropertyCreate, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    prop = await property_service.upload_property(db, actor, request)
    return envelope({"message": "Property uploaded successfully", "property": PropertyOut.from_model(prop)}, status_code=201)


@router.get("/properties")
async def list_properties(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    properties = await property_service.list_owner_properties(db, actor)
    return envelope({
        "message": "Properties retrieved successfully",
        "properties": [PropertyOut.from_model(p) for p in properties],
        "total_properties": len(properties),
    })


@router.get("/properties/{property_id}")
async def get_property(property_id: uuid.UUID, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    prop = await property_service.get_owner_property(db, actor, property_id)
    return envelope({"message": "Property retrieved successfully", "property": PropertyOut.from_model(prop)})


@router.patch("/properties/{property_id}")
async def update_property(
    property_id: uuid.UUID,
    request: PropertyUpdate,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    prop = await property_service.update_property(db, actor, property_id, request)
    return envelope({"message": "Property updated successfully", "property": PropertyOut.from_model(prop)})


@router.delete("/properties/{property_id}")
async def delete_property(property_id: uuid.UUID, actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    await property_service.delete_property(db, actor, property_id)
    return envelope({"message": "Property deleted successfully"})
