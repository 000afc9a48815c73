"""Dependency providers and settings management."""

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status
from pydantic_settings import BaseSettings, SettingsConfigDict

from .database import SessionLocal, get_db  # noqa: F401  get_db re-exported for routers
from .telemetry import set_shop_context


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"
    ENVIRONMENT: str = "development"
    SENTRY_DSN: Optional[str] = None

    # Marketplace read path
    MARKETPLACE_PROMOTED_LIMIT: int = 12
    MARKETPLACE_TRENDING_LIMIT: int = 20
    MARKETPLACE_FEATURED_SHOPS_LIMIT: int = 12

    # Shared secret for the payment webhook; unset disables the check (dev only)
    PAYMENT_WEBHOOK_SECRET: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_session_factory():
    """Session factory for work that outlives the request (background tasks)."""
    return SessionLocal


def get_current_shop_id(x_shop_id: Optional[str] = Header(default=None, alias="X-Shop-ID")) -> UUID:
    """Resolve the calling shop from the `X-Shop-ID` header.

    Authentication happens upstream; the gateway forwards the authenticated
    shop id in this header.
    """
    if not x_shop_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing shop identity")

    try:
        shop_id = UUID(x_shop_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid shop identity")

    set_shop_context(str(shop_id))
    return shop_id
