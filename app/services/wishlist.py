import uuid
from typing import List, Tuple

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.core.errors import NotFoundError
from app.core.policy import Action, authorize
from app.models import Property, PropertyStatus, WishlistItem
from app.schemas.auth import Actor

logger = get_logger(__name__)


async def get_wishlist(db: AsyncSession, actor: Actor) -> List[Property]:
    authorize(actor, Action.manage_wishlist)
    stmt = (
        select(Property)
        .join(WishlistItem, WishlistItem.property_id == Property.id)
        .where(WishlistItem.user_id == actor.id)
        .order_by(WishlistItem.created_at, WishlistItem.id)
    )
    return list((await db.execute(stmt)).scalars().all())


async def add_to_wishlist(db: AsyncSession, actor: Actor, property_id: uuid.UUID) -> Tuple[List[Property], bool]:
    """Returns the wishlist and whether the property was newly added."""
    authorize(actor, Action.manage_wishlist)
    prop = await db.get(Property, property_id)
    if prop is None or prop.status != PropertyStatus.published:
        raise NotFoundError("Property not found or not available")

    existing = await db.scalar(
        select(WishlistItem.id).where(WishlistItem.user_id == actor.id, WishlistItem.property_id == property_id)
    )
    is_new = existing is None
    if is_new:
        db.add(WishlistItem(user_id=actor.id, property_id=property_id))
        await db.commit()
        logger.info("Wishlist item added", user_id=str(actor.id), property_id=str(property_id))
    return await get_wishlist(db, actor), is_new


async def remove_from_wishlist(db: AsyncSession, actor: Actor, property_id: uuid.UUID) -> List[Property]:
    authorize(actor, Action.manage_wishlist)
    result = await db.execute(
        delete(WishlistItem).where(WishlistItem.user_id == actor.id, WishlistItem.property_id == property_id)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Property not found in wishlist")
    await db.commit()
    logger.info("Wishlist item removed", user_id=str(actor.id), property_id=str(property_id))
    return await get_wishlist(db, actor)
