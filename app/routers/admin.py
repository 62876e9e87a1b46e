import uuid

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.dependencies.auth import get_current_user
from app.schemas.auth import Actor
from app.schemas.common import envelope
from app.schemas.property import PropertyOut, PropertyStatusUpdate
from app.services import notifications
from app.services import properties as property_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _status_response(prop, changed: bool, background_tasks: BackgroundTasks) -> dict:
    if changed:
        background_tasks.add_task(
            notifications.notify,
            notifications.PROPERTY_STATUS_CHANGED,
            prop.owner_id,
            {"property_id": str(prop.id), "status": prop.status.value},
        )
        message = f"Property {prop.status.value} successfully"
    else:
        message = f"Property is already {prop.status.value}"
    return envelope({"message": message, "changed": changed, "property": PropertyOut.from_model(prop)})


@router.patch("/properties/{property_id}/review")
async def review_property(
    property_id: uuid.UUID,
    request: PropertyStatusUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    prop, changed = await property_service.review_property(db, actor, property_id, request.status)
    return _status_response(prop, changed, background_tasks)


@router.patch("/properties/{property_id}/publish")
async def publish_property(
    property_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    prop, changed = await property_service.publish_property(db, actor, property_id)
    return _status_response(prop, changed, background_tasks)


@router.patch("/properties/{property_id}/status")
async def update_property_status(
    property_id: uuid.UUID,
    request: PropertyStatusUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    prop, changed = await property_service.update_property_status(db, actor, property_id, request.status)
    return _status_response(prop, changed, background_tasks)


@router.get("/properties")
async def list_properties(actor: Actor = Depends(get_current_user), db: AsyncSession = Depends(get_session)):
    result = await property_service.list_all_properties(db, actor)
    return envelope({
        "message": "Properties retrieved successfully",
        "properties": [PropertyOut.from_model(p, result["owners"].get(p.owner_id)) for p in result["properties"]],
        "total_properties": result["total_properties"],
        "status_breakdown": result["status_breakdown"],
    })
