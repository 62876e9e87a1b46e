import uuid

import httpx
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from pybreaker import CircuitBreakerError

from app.config import settings
from app.dependencies import auth
from app.models import Role
from app.services import notifications
from app.utils.retry import retry_api


def _credentials(token="token-123"):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_current_user_built_from_verified_payload(monkeypatch):
    user_id = uuid.uuid4()

    async def fake_verify(token):
        assert token == "token-123"
        return {"user_id": str(user_id), "role": "ADMIN", "email": "a@example.com"}

    monkeypatch.setattr(auth, "verify_token", fake_verify)

    actor = await auth.get_current_user(_credentials())

    assert actor.id == user_id
    assert actor.role == Role.admin
    assert actor.email == "a@example.com"


@pytest.mark.asyncio
async def test_current_user_requires_credentials():
    with pytest.raises(HTTPException) as excinfo:
        await auth.get_current_user(None)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(monkeypatch):
    async def fake_verify(token):
        return {"id": str(uuid.uuid4()), "role": "superuser"}

    monkeypatch.setattr(auth, "verify_token", fake_verify)

    with pytest.raises(HTTPException) as excinfo:
        await auth.get_current_user(_credentials())
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_identity_service_outage_is_503(monkeypatch):
    async def fake_verify(token):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(auth, "verify_token", fake_verify)

    with pytest.raises(HTTPException) as excinfo:
        await auth.get_current_user(_credentials())
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
async def test_notify_is_noop_without_url(monkeypatch):
    calls = []

    async def fake_post(payload):
        calls.append(payload)

    monkeypatch.setattr(settings, "NOTIFICATION_URL", "")
    monkeypatch.setattr(notifications, "_post_notification", fake_post)

    await notifications.notify(notifications.BOOKING_CREATED, uuid.uuid4(), {"booking_id": "b1"})

    assert calls == []


@pytest.mark.asyncio
async def test_notify_posts_event_payload(monkeypatch):
    calls = []
    recipient = uuid.uuid4()

    async def fake_post(payload):
        calls.append(payload)

    monkeypatch.setattr(settings, "NOTIFICATION_URL", "http://notify.test")
    monkeypatch.setattr(notifications, "_post_notification", fake_post)

    await notifications.notify(notifications.PROPERTY_STATUS_CHANGED, recipient, {"status": "published"})

    assert len(calls) == 1
    assert calls[0]["event"] == "property.status_changed"
    assert calls[0]["recipient_id"] == str(recipient)
    assert calls[0]["data"] == {"status": "published"}
    assert "sent_at" in calls[0]


@pytest.mark.asyncio
async def test_notify_swallows_delivery_failures(monkeypatch):
    async def failing_post(payload):
        raise httpx.ConnectError("notification service down")

    monkeypatch.setattr(settings, "NOTIFICATION_URL", "http://notify.test")
    monkeypatch.setattr(notifications, "_post_notification", failing_post)

    await notifications.notify(notifications.BOOKING_STATUS_CHANGED, uuid.uuid4())


@pytest.mark.asyncio
async def test_retry_api_retries_then_reraises():
    attempts = []

    @retry_api(tries=3, delay=0, backoff=1)
    async def flaky():
        attempts.append(1)
        raise httpx.ReadTimeout("slow")

    with pytest.raises(httpx.ReadTimeout):
        await flaky()
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retry_api_returns_first_success():
    attempts = []

    @retry_api(tries=3, delay=0, backoff=1)
    async def eventually():
        attempts.append(1)
        if len(attempts) < 2:
            raise httpx.ReadTimeout("slow")
        return "ok"

    assert await eventually() == "ok"
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_retry_api_leaves_other_errors_alone():
    attempts = []

    @retry_api(tries=3, delay=0, backoff=1, retry_on=(httpx.TransportError,))
    async def rejected():
        attempts.append(1)
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await rejected()
    assert len(attempts) == 1


@pytest.fixture
def closed_breakers():
    notifications.breaker.close()
    auth.breaker.close()
    yield
    notifications.breaker.close()
    auth.breaker.close()


@pytest.mark.asyncio
async def test_notification_breaker_opens_after_repeated_failures(monkeypatch, closed_breakers):
    sends = []

    async def failing_send(payload):
        sends.append(payload)
        raise httpx.ConnectError("notification service down")

    monkeypatch.setattr(notifications, "_send", failing_send)

    for _ in range(notifications.breaker.fail_max - 1):
        with pytest.raises(httpx.ConnectError):
            await notifications._post_notification({"event": "x"})
    assert notifications.breaker.fail_counter == notifications.breaker.fail_max - 1

    with pytest.raises(CircuitBreakerError):
        await notifications._post_notification({"event": "x"})
    assert notifications.breaker.current_state == "open"

    with pytest.raises(CircuitBreakerError):
        await notifications._post_notification({"event": "x"})
    assert len(sends) == notifications.breaker.fail_max


@pytest.mark.asyncio
async def test_notification_success_resets_failure_count(monkeypatch, closed_breakers):
    outcomes = [httpx.ConnectError("blip"), None]

    async def flaky_send(payload):
        outcome = outcomes.pop(0)
        if outcome is not None:
            raise outcome

    monkeypatch.setattr(notifications, "_send", flaky_send)

    with pytest.raises(httpx.ConnectError):
        await notifications._post_notification({"event": "x"})
    await notifications._post_notification({"event": "x"})

    assert notifications.breaker.fail_counter == 0
    assert notifications.breaker.current_state == "closed"


@pytest.mark.asyncio
async def test_identity_breaker_opens_and_short_circuits(monkeypatch, closed_breakers):
    calls = []

    async def unreachable(self, url, **kwargs):
        calls.append(url)
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.AsyncClient, "get", unreachable)

    for _ in range(auth.breaker.fail_max):
        with pytest.raises(HTTPException) as excinfo:
            await auth.get_current_user(_credentials())
        assert excinfo.value.status_code == 503
    assert auth.breaker.current_state == "open"

    with pytest.raises(HTTPException) as excinfo:
        await auth.get_current_user(_credentials())
    assert excinfo.value.status_code == 503
    assert len(calls) == auth.breaker.fail_max


@pytest.mark.asyncio
async def test_rejected_token_does_not_count_against_breaker(monkeypatch, closed_breakers):
    async def rejecting(self, url, **kwargs):
        return httpx.Response(401, json={"message": "expired"}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", rejecting)

    with pytest.raises(HTTPException) as excinfo:
        await auth.get_current_user(_credentials())

    assert excinfo.value.status_code == 401
    assert auth.breaker.fail_counter == 0
