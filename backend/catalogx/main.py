"""FastAPI application entrypoint.

Configures CORS, error reporting, includes routers, and exposes a
healthcheck endpoint.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from .deps import get_settings  # noqa: E402
from .errors import CatalogxError  # noqa: E402
from .routers import admin as admin_router  # noqa: E402
from .routers import marketplace as marketplace_router  # noqa: E402
from .routers import payment_webhooks as payment_webhooks_router  # noqa: E402
from .routers import promotions as promotions_router  # noqa: E402
from .telemetry import init_sentry  # noqa: E402
from . import schemas  # noqa: E402

# Import models so Alembic can discover metadata
from . import models  # noqa: F401,E402


def create_app() -> FastAPI:
    settings = get_settings()

    if init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT):
        logger.info("[STARTUP] Sentry error tracking enabled")

    app = FastAPI(
        title="catalogx API",
        description="""
        Marketplace discovery and promotion ranking for a multi-shop catalog platform.

        - Cross-shop marketplace feed with filters, sorting and pagination
        - Paid promoted placements blended into the feed
        - Trending products, categories and featured shops
        - Seller promotion dashboard (stats, performance, comparison)
        - Payment-confirmed promotion webhook and admin moderation
        """,
        version="1.0.0",
    )

    # Trust X-Forwarded-Proto from the load balancer
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    allowed_origins = settings.cors_origins
    logger.info(f"[CORS] Allowed origins: {allowed_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogxError)
    async def catalogx_error_handler(request: Request, exc: CatalogxError):
        logger.warning(f"[ERRORS] {type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_user_message()})

    app.include_router(marketplace_router.router)
    app.include_router(promotions_router.router)
    app.include_router(payment_webhooks_router.router)
    app.include_router(admin_router.router)

    @app.get(
        "/health",
        response_model=schemas.HealthResponse,
        tags=["Health"],
        summary="Health check",
    )
    def health():
        return schemas.HealthResponse(status="ok")

    return app


app = create_app()
