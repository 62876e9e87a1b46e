from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError
import httpx
from app.config import settings
from app.schemas.auth import Actor
from structlog import get_logger
from pybreaker import CircuitBreaker, CircuitBreakerError

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
breaker = CircuitBreaker(fail_max=3, reset_timeout=60, name="user-management")


async def verify_token(token: str) -> dict:
    # only transport errors and 5xx count against the breaker, a rejected token does not
    with breaker.calling():
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{settings.USER_MANAGEMENT_URL}/auth/verify",
                headers={"Authorization": f"Bearer {token}"},
                timeout=10.0,
            )
        if response.status_code >= 500:
            response.raise_for_status()
    if response.status_code != 200:
        logger.warning("Token verification failed", status_code=response.status_code)
        raise HTTPException(status_code=401, detail="Invalid token")
    return response.json()


async def get_current_user(credentials: HTTPAuthorizationCredentials = Security(security)) -> Actor:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")
    try:
        payload = await verify_token(credentials.credentials)
    except (httpx.HTTPError, CircuitBreakerError) as e:
        logger.error("User management service unreachable", error=str(e))
        raise HTTPException(status_code=503, detail="Authentication service unavailable")
    try:
        return Actor(
            id=payload.get("id") or payload.get("user_id"),
            role=str(payload.get("role", "")).lower(),
            email=payload.get("email"),
        )
    except ValidationError:
        logger.warning("Token payload rejected", payload_keys=sorted(payload))
        raise HTTPException(status_code=401, detail="Invalid token")
