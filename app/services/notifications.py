import uuid
from typing import Any, Dict, Optional

import httpx
from pybreaker import CircuitBreaker
from structlog import get_logger

from app.config import settings
from app.models.base import utcnow
from app.utils.retry import retry_api

logger = get_logger(__name__)
breaker = CircuitBreaker(fail_max=5, reset_timeout=60, name="notifications")

BOOKING_CREATED = "booking.created"
BOOKING_STATUS_CHANGED = "booking.status_changed"
BOOKING_TIME_CHANGE_REQUESTED = "booking.time_change_requested"
PROPERTY_STATUS_CHANGED = "property.status_changed"


@retry_api(tries=3, delay=0.5, backoff=2, retry_on=(httpx.TransportError, httpx.HTTPStatusError))
async def _send(payload: Dict[str, Any]) -> None:
    async with httpx.AsyncClient() as client:
        response = await client.post(f"{settings.NOTIFICATION_URL}/notifications", json=payload, timeout=10.0)
        response.raise_for_status()


async def _post_notification(payload: Dict[str, Any]) -> None:
    # one failed delivery (after retries) counts once against the breaker;
    # while open, CircuitBreakerError is raised without touching the network
    with breaker.calling():
        await _send(payload)


async def notify(event: str, recipient_id: uuid.UUID, data: Optional[Dict[str, Any]] = None) -> None:
    """Hand an event to the notification service.

    Runs as a background task after the response is sent, so delivery
    problems are logged and dropped.
    """
    if not settings.NOTIFICATION_URL:
        logger.debug("Notification dispatch disabled", notification_event=event)
        return
    payload = {
        "event": event,
        "recipient_id": str(recipient_id),
        "data": data or {},
        "sent_at": utcnow().isoformat(),
    }
    try:
        await _post_notification(payload)
        logger.info("Notification dispatched", notification_event=event, recipient_id=str(recipient_id))
    except Exception as e:
        logger.warning("Notification dispatch failed", notification_event=event, recipient_id=str(recipient_id), error=str(e))
