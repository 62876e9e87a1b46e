from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://user:password@db:5432/rental_db"
    DATABASE_SSL: bool = False
    REDIS_URL: str = ""
    USER_MANAGEMENT_URL: str = "http://user-management:8000"
    NOTIFICATION_URL: str = ""
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    SIMILAR_PROPERTIES_LIMIT: int = 5
    BOOKING_RATE_LIMIT_TIMES: int = 10
    BOOKING_RATE_LIMIT_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("DATABASE_URL")
    def use_async_driver(cls, v):
        """
        Hosting providers hand out plain ``postgres://`` URLs; the app needs the
        asyncpg driver.
        """
        if v.startswith("postgres://"):
            return "postgresql+asyncpg://" + v[len("postgres://"):]
        if v.startswith("postgresql://"):
            return "postgresql+asyncpg://" + v[len("postgresql://"):]
        return v


settings = Settings()
