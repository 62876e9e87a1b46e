from fastapi import Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from app.config import settings

booking_rate_limiter = RateLimiter(
    times=settings.BOOKING_RATE_LIMIT_TIMES,
    seconds=settings.BOOKING_RATE_LIMIT_SECONDS,
)


async def limit_booking_creation(request: Request, response: Response):
    # The limiter is only initialised when Redis is reachable at startup
    if FastAPILimiter.redis is None:
        return
    await booking_rate_limiter(request, response)
