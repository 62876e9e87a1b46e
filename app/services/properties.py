import math
import uuid
from typing import Dict, List, Optional, Tuple

from sqlalchemy import cast, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from app.config import settings
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.policy import Action, allowed_sources, authorize, check_property_transition
from app.models import Booking, Owner, Property, PropertyStatus, User, WishlistItem, owner_properties
from app.models.base import utcnow
from app.schemas.auth import Actor
from app.schemas.property import PropertyCreate, PropertySearchParams, PropertyUpdate

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100
SIMILAR_RENT_BAND = 0.2

SORT_OPTIONS = {
    "newest": (Property.created_at.desc(), Property.id),
    "oldest": (Property.created_at.asc(), Property.id),
    "rent_asc": (Property.rent.asc(), Property.id),
    "rent_desc": (Property.rent.desc(), Property.id),
    "area_asc": (Property.area.asc(), Property.id),
    "area_desc": (Property.area.desc(), Property.id),
}
DEFAULT_SORT = "newest"


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _icontains(column, value: str):
    return column.ilike(_like_pattern(value), escape="\\")


def _has_amenity(amenity: str, dialect_name: str):
    if dialect_name == "postgresql":
        return cast(Property.amenities, JSONB).contains([amenity])
    # JSON text column elsewhere: compare decoded array elements
    elements = func.json_each(Property.amenities).table_valued("value")
    return select(elements.c.value).where(elements.c.value == amenity).exists()


def build_search_filters(params: PropertySearchParams, dialect_name: str = "postgresql") -> list:
    clauses = [Property.status == PropertyStatus.published]
    if params.min_rent is not None:
        clauses.append(Property.rent >= params.min_rent)
    if params.max_rent is not None:
        clauses.append(Property.rent <= params.max_rent)
    if params.min_deposit is not None:
        clauses.append(Property.deposit >= params.min_deposit)
    if params.max_deposit is not None:
        clauses.append(Property.deposit <= params.max_deposit)
    if params.min_area is not None:
        clauses.append(Property.area >= params.min_area)
    if params.max_area is not None:
        clauses.append(Property.area <= params.max_area)
    if params.property_type is not None:
        clauses.append(Property.property_type == params.property_type)
    if params.bedrooms is not None:
        clauses.append(Property.bedrooms == params.bedrooms)
    if params.bathrooms is not None:
        clauses.append(Property.bathrooms == params.bathrooms)
    if params.amenities:
        clauses.append(or_(*[_has_amenity(a, dialect_name) for a in params.amenities]))
    if params.address:
        clauses.append(_icontains(Property.address, params.address))
    if params.city:
        clauses.append(_icontains(Property.city, params.city))
    if params.state:
        clauses.append(_icontains(Property.state, params.state))
    if params.search:
        clauses.append(or_(_icontains(Property.title, params.search), _icontains(Property.description, params.search)))
    return clauses


def _applied_filters(params: PropertySearchParams, sort_by: str) -> dict:
    filters = params.model_dump(exclude={"page", "limit", "sort_by"}, mode="json")
    filters["sort_by"] = sort_by
    return filters


async def owner_summaries(db: AsyncSession, properties: List[Property]) -> Dict[uuid.UUID, dict]:
    """Public contact card of each listing's owner, keyed by owner id."""
    owner_ids = {p.owner_id for p in properties}
    if not owner_ids:
        return {}
    rows = (
        await db.execute(
            select(Owner.id, User.first_name, User.last_name, User.phone)
            .join(User, Owner.user_id == User.id)
            .where(Owner.id.in_(owner_ids))
        )
    ).all()
    return {
        owner_id: {"id": owner_id, "name": " ".join(n for n in (first, last) if n), "phone": phone}
        for owner_id, first, last, phone in rows
    }


async def search_properties(db: AsyncSession, params: PropertySearchParams) -> dict:
    """Paginated search over published listings; every filter is AND-ed."""
    if params.page < 1:
        raise ValidationError("Page number must be greater than 0")
    if params.limit < 1 or params.limit > MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    sort_by = params.sort_by if params.sort_by in SORT_OPTIONS else DEFAULT_SORT
    clauses = build_search_filters(params, db.get_bind().dialect.name)

    total = await db.scalar(select(func.count()).select_from(Property).where(*clauses)) or 0
    total_pages = math.ceil(total / params.limit)
    has_next = params.page < total_pages
    has_prev = params.page > 1

    stmt = (
        select(Property)
        .where(*clauses)
        .order_by(*SORT_OPTIONS[sort_by])
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )
    properties = (await db.execute(stmt)).scalars().all()
    logger.debug("Property search executed", total=total, page=params.page, sort_by=sort_by)
    return {
        "properties": list(properties),
        "owners": await owner_summaries(db, properties),
        "pagination": {
            "current_page": params.page,
            "total_pages": total_pages,
            "total_properties": total,
            "properties_per_page": params.limit,
            "properties_on_current_page": len(properties),
            "has_next_page": has_next,
            "has_prev_page": has_prev,
            "next_page": params.page + 1 if has_next else None,
            "prev_page": params.page - 1 if has_prev else None,
        },
        "applied_filters": _applied_filters(params, sort_by),
    }


async def find_similar_properties(db: AsyncSession, listing: Property, limit: Optional[int] = None) -> List[Property]:
    """
    Widening three-tier lookup: same city + type within the rent band, then
    same city + type, then same type anywhere. Stops as soon as ``limit``
    distinct candidates are collected and ranks them by rent distance.
    """
    limit = limit or settings.SIMILAR_PROPERTIES_LIMIT
    base = [
        Property.status == PropertyStatus.published,
        Property.id != listing.id,
        Property.property_type == listing.property_type,
    ]
    tiers = [
        [
            Property.city == listing.city,
            Property.rent.between(listing.rent * (1 - SIMILAR_RENT_BAND), listing.rent * (1 + SIMILAR_RENT_BAND)),
        ],
        [Property.city == listing.city],
        [],
    ]
    rent_distance = func.abs(Property.rent - listing.rent)
    candidates: Dict[uuid.UUID, Property] = {}
    for extra in tiers:
        # each tier only needs its own closest ``limit`` rows to fill the merged top ``limit``
        stmt = select(Property).where(*base, *extra).order_by(rent_distance, Property.id).limit(limit)
        rows = (await db.execute(stmt)).scalars().all()
        for prop in rows:
            candidates.setdefault(prop.id, prop)
        if len(candidates) >= limit:
            break
    else:
        logger.debug("Similar properties under-supplied", property_id=str(listing.id), found=len(candidates))

    ranked = sorted(candidates.values(), key=lambda p: (abs(p.rent - listing.rent), str(p.id)))
    return ranked[:limit]


async def get_property_details(db: AsyncSession, actor: Actor, property_id: uuid.UUID) -> dict:
    authorize(actor, Action.view_property_details)
    prop = await db.get(Property, property_id)
    if prop is None or prop.status != PropertyStatus.published:
        raise NotFoundError("Property not found")

    bookings = (
        await db.execute(select(Booking).where(Booking.property_id == prop.id).order_by(Booking.visit_date))
    ).scalars().all()
    booked_slots = [
        {
            "id": b.id,
            "visit_date": b.visit_date,
            "time_slot": b.time_slot,
            "status": b.status,
            "booked_by_current_user": b.user_id == actor.id,
        }
        for b in bookings
    ]
    similar = await find_similar_properties(db, prop)
    return {
        "property": prop,
        "owners": await owner_summaries(db, [prop, *similar]),
        "booking_info": {
            "user_has_booking": any(s["booked_by_current_user"] for s in booked_slots),
            "booked_slots": booked_slots,
        },
        "similar_properties": similar,
    }


# ---------- owner operations ----------

async def get_owner_profile(db: AsyncSession, actor: Actor) -> Owner:
    owner = await db.scalar(select(Owner).where(Owner.user_id == actor.id))
    if owner is None:
        raise AuthorizationError("Owner profile not found")
    return owner


async def upload_property(db: AsyncSession, actor: Actor, payload: PropertyCreate) -> Property:
    authorize(actor, Action.manage_own_properties)
    owner = await get_owner_profile(db, actor)

    prop = Property(owner_id=owner.id, status=PropertyStatus.pending, **payload.to_columns())
    db.add(prop)
    await db.flush()
    last_position = await db.scalar(
        select(func.coalesce(func.max(owner_properties.c.position), 0)).where(owner_properties.c.owner_id == owner.id)
    )
    await db.execute(
        owner_properties.insert().values(owner_id=owner.id, property_id=prop.id, position=last_position + 1)
    )
    # back-pointer and membership entry land in one commit
    await db.commit()
    await db.refresh(prop)
    logger.info("Property uploaded", property_id=str(prop.id), owner_id=str(owner.id))
    return prop


async def list_owner_properties(db: AsyncSession, actor: Actor) -> List[Property]:
    authorize(actor, Action.manage_own_properties)
    owner = await get_owner_profile(db, actor)
    stmt = (
        select(Property)
        .join(owner_properties, owner_properties.c.property_id == Property.id)
        .where(owner_properties.c.owner_id == owner.id)
        .order_by(owner_properties.c.position)
    )
    return list((await db.execute(stmt)).scalars().all())


async def _get_owned_property(db: AsyncSession, owner: Owner, property_id: uuid.UUID) -> Property:
    stmt = (
        select(Property)
        .join(owner_properties, owner_properties.c.property_id == Property.id)
        .where(owner_properties.c.owner_id == owner.id, Property.id == property_id)
    )
    prop = await db.scalar(stmt)
    if prop is None:
        raise NotFoundError("Property not found or you do not have permission to access this property")
    return prop


async def get_owner_property(db: AsyncSession, actor: Actor, property_id: uuid.UUID) -> Property:
    authorize(actor, Action.manage_own_properties)
    owner = await get_owner_profile(db, actor)
    return await _get_owned_property(db, owner, property_id)


async def update_property(db: AsyncSession, actor: Actor, property_id: uuid.UUID, payload: PropertyUpdate) -> Property:
    """Owner edit. Approved or published listings go back to review."""
    authorize(actor, Action.manage_own_properties)
    owner = await get_owner_profile(db, actor)
    prop = await _get_owned_property(db, owner, property_id)
    if prop.status == PropertyStatus.sold:
        raise ConflictError("Sold properties cannot be edited")

    values = payload.to_columns()
    seen_status = prop.status
    if seen_status in allowed_sources(PropertyStatus.pending):
        values["status"] = PropertyStatus.pending
    values["updated_at"] = utcnow()

    result = await db.execute(
        update(Property)
        .where(Property.id == prop.id, Property.status == seen_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Property was modified by another request, please retry")
    await db.commit()
    await db.refresh(prop)
    logger.info("Property updated", property_id=str(prop.id), status=prop.status.value, previous_status=seen_status.value)
    return prop


async def delete_property(db: AsyncSession, actor: Actor, property_id: uuid.UUID) -> None:
    authorize(actor, Action.manage_own_properties)
    owner = await get_owner_profile(db, actor)
    prop = await _get_owned_property(db, owner, property_id)

    await db.execute(delete(Booking).where(Booking.property_id == prop.id))
    await db.execute(delete(WishlistItem).where(WishlistItem.property_id == prop.id))
    await db.execute(
        owner_properties.delete().where(
            owner_properties.c.owner_id == owner.id, owner_properties.c.property_id == prop.id
        )
    )
    await db.delete(prop)
    await db.commit()
    logger.info("Property deleted", property_id=str(property_id), owner_id=str(owner.id))


# ---------- admin moderation ----------

async def change_property_status(
    db: AsyncSession, actor: Actor, property_id: uuid.UUID, target: PropertyStatus
) -> Tuple[Property, bool]:
    """Move a property along the transition table.

    Returns ``(property, changed)``; a same-status request is acknowledged
    without writing. The write only lands if the status is still one the
    table allows, so two racing moderators cannot both succeed.
    """
    authorize(actor, Action.moderate_properties)
    prop = await db.get(Property, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    if not check_property_transition(prop.status, target):
        return prop, False

    previous = prop.status
    result = await db.execute(
        update(Property)
        .where(Property.id == prop.id, Property.status.in_(sorted(allowed_sources(target), key=lambda s: s.value)))
        .values(status=target, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise ConflictError("Property status was changed by another request, please retry")
    await db.commit()
    await db.refresh(prop)
    logger.info("Property status changed", property_id=str(prop.id), previous_status=previous.value, status=target.value)
    return prop, True


async def review_property(db: AsyncSession, actor: Actor, property_id: uuid.UUID, status: PropertyStatus):
    if status not in (PropertyStatus.approved, PropertyStatus.rejected):
        raise ValidationError("Invalid status. Must be either approved or rejected")
    return await change_property_status(db, actor, property_id, status)


async def publish_property(db: AsyncSession, actor: Actor, property_id: uuid.UUID):
    return await change_property_status(db, actor, property_id, PropertyStatus.published)


async def update_property_status(db: AsyncSession, actor: Actor, property_id: uuid.UUID, status: PropertyStatus):
    if status == PropertyStatus.pending:
        raise ValidationError("Properties return to pending only when their owner edits them")
    return await change_property_status(db, actor, property_id, status)


async def list_all_properties(db: AsyncSession, actor: Actor) -> dict:
    authorize(actor, Action.moderate_properties)
    properties = (await db.execute(select(Property).order_by(Property.created_at.desc(), Property.id))).scalars().all()
    rows = (await db.execute(select(Property.status, func.count()).group_by(Property.status))).all()
    breakdown = {status.value: 0 for status in PropertyStatus}
    for status, count in rows:
        breakdown[status.value] = count
    return {
        "properties": list(properties),
        "owners": await owner_summaries(db, properties),
        "total_properties": len(properties),
        "status_breakdown": breakdown,
    }
