import time

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.routers import admin, bookings, owner, properties
from app.core.errors import AppError, InternalError
from app.core.logging import setup_logging
from app.schemas.common import error_envelope
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis
from app.config import settings
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_session
from app.models import Property, PropertyStatus
from structlog import get_logger

logger = get_logger(__name__)

app = FastAPI(title="Rental Marketplace API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(properties.router)
app.include_router(bookings.router)
app.include_router(owner.router)
app.include_router(admin.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.status_code, "Internal server error"))
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_envelope(exc.status_code, exc.message, exc.details)),
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error", path=request.url.path, error=str(exc))
    return await app_error_handler(request, InternalError("Database error"))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]
    return JSONResponse(status_code=422, content=jsonable_encoder(error_envelope(422, "Invalid request", details)))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content=error_envelope(500, "Internal server error"))


@app.on_event("startup")
async def startup_event():
    setup_logging()
    # Initialize rate limiter only if Redis is available; skip gracefully on failure
    try:
        if settings.REDIS_URL:
            redis = Redis.from_url(settings.REDIS_URL)
            await FastAPILimiter.init(redis)
    except Exception as e:
        logger.warning("Rate limiter disabled", error=str(e))


@app.get("/health", tags=["health"])
async def health(session: AsyncSession = Depends(get_session)):
    details = {"status": "ok"}
    try:
        await session.execute(text("SELECT 1"))
        published = await session.scalar(
            select(func.count()).select_from(Property).where(Property.status == PropertyStatus.published)
        )
        details["database"] = "up"
        details["published_properties_count"] = int(published or 0)
    except Exception as e:
        logger.error("Health check database probe failed", error=str(e))
        details["status"] = "degraded"
        details["database"] = "down"
    # Config presence checks (no secrets exposed)
    details["config"] = {
        "db_url_set": bool(settings.DATABASE_URL),
        "redis_url_set": bool(settings.REDIS_URL),
        "notification_url_set": bool(settings.NOTIFICATION_URL),
    }
    return details
