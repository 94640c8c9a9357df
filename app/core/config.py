# app/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local/tests)
      - JWT_SECRET (shared secret used by the auth service to sign tokens)

    Delivery policy (optional):
      - DELIVERY_ASSIGNABLE_STATUSES: order statuses ready for dispatch
      - DELIVERY_REQUIRE_AVAILABLE_DRIVER: reject busy drivers instead of warning
      - DELIVERY_OTP_MAX_ATTEMPTS: failed codes before lockout (0 = unlimited)
      - DELIVERY_OTP_TTL_MINUTES: code lifetime (unset = never expires)
    """

    PROJECT_NAME: str = "VentasVE Delivery API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # DB config
    DATABASE_URL: str

    # JWT verification (tokens are issued by the auth service)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    # Delivery policy
    # Only statuses the lifecycle can dispatch from; at least one
    DELIVERY_ASSIGNABLE_STATUSES: list[Literal["CONFIRMED", "PREPARING"]] = Field(
        default=["CONFIRMED", "PREPARING"],
        min_length=1,
    )
    DELIVERY_REQUIRE_AVAILABLE_DRIVER: bool = False
    DELIVERY_OTP_MAX_ATTEMPTS: int = 5
    DELIVERY_OTP_TTL_MINUTES: int | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
