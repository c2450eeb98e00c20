from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from app.api import events
from app.api.v1.router import router as api_v1_router
from app.config.logging import setup_logging
from app.config.settings import Settings, get_settings
from app.core.events import Broadcaster
from app.core.logging import get_logger
from app.core.middleware import register_middlewares
from app.db.init_db import init_db
from app.db.session import build_engine, build_session_factory
from app.services.payment import CashfreeGateway, PaymentGateway, RetryPolicy

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    gateway: Optional[PaymentGateway] = None,
    broadcaster: Optional[Broadcaster] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures title, version, debug mode from Settings.
    - Builds the long-lived collaborators (engine, broadcaster, payment
      gateway, retry policy) unless they are passed in.
    - Registers CORS, core middleware, and exception handlers.
    - Includes the versioned API router under /api/v1 and the event
      stream at /ws.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    engine = engine or build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.broadcaster = broadcaster or Broadcaster()
    app.state.payment_gateway = gateway or CashfreeGateway.from_settings(settings)
    app.state.retry_policy = retry_policy or RetryPolicy.from_settings(settings)

    # CORS Configuration
    allow_all = not settings.CORS_ORIGINS or settings.CORS_ORIGINS == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.CORS_ORIGINS,
        # Browsers reject credentials with a wildcard origin
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register shared core middlewares (request ID, timing, errors)
    register_middlewares(app)

    # Mount API v1 under /api/v1
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)
    app.include_router(events.router, tags=["Events"])

    @app.get("/health", tags=["Health"])
    def health(request: Request) -> dict:
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "subscribers": request.app.state.broadcaster.registry.subscriber_count(),
        }

    @app.on_event("startup")
    def on_startup() -> None:
        # Production schemas are managed outside the app; table rows are created lazily
        if settings.ENVIRONMENT != "production":
            init_db(engine, settings.TOTAL_TABLES)
        logger.info(f"{settings.APP_NAME} started", extra={'environment': settings.ENVIRONMENT})

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        app.state.payment_gateway.close()
        engine.dispose()

    return app


app = create_app()
