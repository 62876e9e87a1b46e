import pytest

from app.models import BookingStatus, PropertyStatus, Role
from app.services import notifications


@pytest.mark.asyncio
async def test_search_is_public_and_wrapped_in_envelope(client, factory):
    owner = await factory.owner()
    await factory.property(owner, amenities=["gym"])
    await factory.property(owner, amenities=["pool"])
    await factory.property(owner, status=PropertyStatus.pending, amenities=["gym"])

    response = await client.get("/api/user/properties", params={"amenities": "gym,sauna"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["error"] is None
    assert len(body["data"]["properties"]) == 1
    assert body["data"]["properties"][0]["owner"]["id"] == str(owner.id)
    assert body["data"]["pagination"]["total_properties"] == 1
    assert body["data"]["applied_filters"]["amenities"] == ["gym", "sauna"]


@pytest.mark.asyncio
async def test_search_rejects_oversized_page(client):
    response = await client.get("/api/user/properties", params={"limit": 500})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"]["message"] == "Limit must be between 1 and 100"


@pytest.mark.asyncio
async def test_protected_route_without_login_is_401(client):
    response = await client.get("/api/booking")

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Access denied. No token provided."


@pytest.mark.asyncio
async def test_property_details_with_similar_listings(client, factory, login):
    owner = await factory.owner()
    listing = await factory.property(owner, rent=1000)
    neighbour = await factory.property(owner, rent=1100)
    login(await factory.user())

    response = await client.get(f"/api/user/properties/{listing.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["property"]["id"] == str(listing.id)
    assert data["property"]["location"]["city"] == "Pune"
    assert [p["id"] for p in data["similar_properties"]] == [str(neighbour.id)]
    assert data["booking_info"] == {"user_has_booking": False, "booked_slots": []}


@pytest.mark.asyncio
async def test_create_booking_returns_201_and_notifies(client, factory, login, sent_notifications):
    owner = await factory.owner()
    listing = await factory.property(owner)
    user = await factory.user()
    login(user)
    payload = {"property_id": str(listing.id), "visit_date": "2026-11-02", "time_slot": "10:00-11:00"}

    response = await client.post("/api/booking", json=payload)

    assert response.status_code == 201
    body = response.json()
    assert body["status_code"] == 201
    booking = body["data"]["booking"]
    assert booking["status"] == "pending"
    assert booking["time_change_request"]["requested"] is False
    assert sent_notifications == [
        {
            "event": notifications.BOOKING_CREATED,
            "recipient_id": user.id,
            "data": {
                "booking_id": booking["id"],
                "property_id": str(listing.id),
                "visit_date": "2026-11-02",
                "time_slot": "10:00-11:00",
            },
        }
    ]

    duplicate = await client.post("/api/booking", json=payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["details"] == {"booking_id": booking["id"]}


@pytest.mark.asyncio
async def test_admin_cannot_create_booking(client, factory, login):
    owner = await factory.owner()
    listing = await factory.property(owner)
    login(await factory.user(Role.admin))

    response = await client.post(
        "/api/booking",
        json={"property_id": str(listing.id), "visit_date": "2026-11-02", "time_slot": "10:00-11:00"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Only users can book properties"


@pytest.mark.asyncio
async def test_time_change_negotiation_over_http(client, factory, login, sent_notifications):
    owner = await factory.owner()
    listing = await factory.property(owner)
    user = await factory.user()
    admin = await factory.user(Role.admin)
    booking = await factory.booking(user, listing)

    login(admin)
    response = await client.post(
        f"/api/booking/{booking.id}/time-change-request",
        json={"reason": "Agent unavailable", "suggested_slots": ["12:00-13:00", "17:00-18:00"]},
    )
    assert response.status_code == 200
    assert response.json()["data"]["booking"]["time_change_request"]["suggested_slots"] == ["12:00-13:00", "17:00-18:00"]
    assert sent_notifications[0]["event"] == notifications.BOOKING_TIME_CHANGE_REQUESTED
    assert sent_notifications[0]["recipient_id"] == user.id

    login(user)
    bad = await client.post(
        f"/api/booking/{booking.id}/time-change-response",
        json={"action": "accept", "new_time_slot": "09:00-10:00"},
    )
    assert bad.status_code == 409
    assert bad.json()["error"]["details"] == {"valid_slots": ["12:00-13:00", "17:00-18:00"]}

    good = await client.post(
        f"/api/booking/{booking.id}/time-change-response",
        json={"action": "accept", "new_time_slot": "17:00-18:00"},
    )
    assert good.status_code == 200
    accepted = good.json()["data"]["booking"]
    assert accepted["time_slot"] == "17:00-18:00"
    assert accepted["status"] == BookingStatus.approved.value
    assert accepted["time_change_request"]["requested"] is False


@pytest.mark.asyncio
async def test_time_change_response_rejects_unknown_action(client, factory, login):
    owner = await factory.owner()
    listing = await factory.property(owner)
    user = await factory.user()
    booking = await factory.booking(user, listing)
    login(user)

    response = await client.post(f"/api/booking/{booking.id}/time-change-response", json={"action": "maybe"})

    assert response.status_code == 422
    assert response.json()["error"]["message"] == "Invalid request"


@pytest.mark.asyncio
async def test_list_bookings_includes_property_summary(client, factory, login):
    owner = await factory.owner()
    listing = await factory.property(owner, title="Lake view")
    user = await factory.user()
    await factory.booking(user, listing)
    login(user)

    response = await client.get("/api/booking")

    data = response.json()["data"]
    assert data["total_bookings"] == 1
    assert data["total_by_status"]["pending"] == 1
    assert data["bookings"][0]["property"]["title"] == "Lake view"


@pytest.mark.asyncio
async def test_admin_moderation_flow(client, factory, login, sent_notifications):
    owner = await factory.owner()
    listing = await factory.property(owner, status=PropertyStatus.pending)
    login(await factory.user(Role.admin))

    too_early = await client.patch(f"/api/admin/properties/{listing.id}/publish")
    assert too_early.status_code == 409
    assert too_early.json()["error"]["details"] == {"current_status": "pending", "requested_status": "published"}

    approved = await client.patch(f"/api/admin/properties/{listing.id}/review", json={"status": "approved"})
    assert approved.json()["data"]["changed"] is True

    published = await client.patch(f"/api/admin/properties/{listing.id}/publish")
    assert published.status_code == 200
    assert published.json()["data"]["property"]["status"] == "published"

    again = await client.patch(f"/api/admin/properties/{listing.id}/publish")
    assert again.status_code == 200
    assert again.json()["data"]["changed"] is False
    assert again.json()["data"]["message"] == "Property is already published"

    assert [n["data"]["status"] for n in sent_notifications] == ["approved", "published"]
    assert all(n["recipient_id"] == owner.id for n in sent_notifications)


@pytest.mark.asyncio
async def test_owner_upload_and_edit(client, factory, login):
    owner_user = await factory.user(Role.owner)
    await factory.owner(owner_user)
    login(owner_user)

    created = await client.post(
        "/api/owner/properties",
        json={"title": "Loft", "rent": 1800, "property_type": "condo", "location": {"city": "Delhi"}},
    )
    assert created.status_code == 201
    prop = created.json()["data"]["property"]
    assert prop["status"] == "pending"
    assert prop["location"]["city"] == "Delhi"

    rejected = await client.patch(f"/api/owner/properties/{prop['id']}", json={"status": "published"})
    assert rejected.status_code == 422

    edited = await client.patch(f"/api/owner/properties/{prop['id']}", json={"rent": 1700})
    assert edited.status_code == 200
    assert edited.json()["data"]["property"]["rent"] == 1700

    listed = await client.get("/api/owner/properties")
    assert listed.json()["data"]["total_properties"] == 1

    deleted = await client.delete(f"/api/owner/properties/{prop['id']}")
    assert deleted.status_code == 200
    missing = await client.get(f"/api/owner/properties/{prop['id']}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_wishlist_round_trip(client, factory, login):
    owner = await factory.owner()
    listing = await factory.property(owner)
    login(await factory.user())

    first = await client.post("/api/user/wishlist", json={"property_id": str(listing.id)})
    second = await client.post("/api/user/wishlist", json={"property_id": str(listing.id)})

    assert first.json()["data"]["is_new_property"] is True
    assert second.json()["data"]["is_new_property"] is False
    assert second.json()["data"]["wishlist"]["total_items"] == 1

    removed = await client.request("DELETE", "/api/user/wishlist", json={"property_id": str(listing.id)})
    assert removed.json()["data"]["wishlist"]["total_items"] == 0
    missing = await client.request("DELETE", "/api/user/wishlist", json={"property_id": str(listing.id)})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_health_reports_published_count(client, factory):
    owner = await factory.owner()
    await factory.property(owner)

    response = await client.get("/health")

    body = response.json()
    assert body["status"] == "ok"
    assert body["published_properties_count"] == 1
    assert body["config"]["notification_url_set"] is False
