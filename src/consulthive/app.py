"""Application entry point: the FastAPI service around the operation catalogue.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting through structlog-sentry when ``SENTRY_DSN`` is set
- **Prometheus** HTTP metrics and business counters on ``/metrics``
- **Request IDs** bound into every log line of an HTTP request
- The **operation catalogue**, the signed **payment webhook** and health probes
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from consulthive.api.routes import router as operations_router
from consulthive.api.webhooks import router as webhook_router
from consulthive.config import Settings, get_settings, validate_credentials
from consulthive.drafting.client import get_anthropic_client
from consulthive.drafting.service import AnthropicDrafter, Drafter, UnavailableDrafter
from consulthive.health import register_health_routes
from consulthive.observability.metrics import setup_metrics
from consulthive.observability.middleware import RequestIdMiddleware
from consulthive.observability.sentry import get_sentry_processor, init_sentry
from consulthive.operations.catalogue import build_catalogue
from consulthive.services import (
    AuditService,
    EngagementService,
    OfferService,
    PaymentService,
    ProfileService,
    RequestService,
    ReviewService,
    TransferPackService,
)
from consulthive.store.database import Database

logger = structlog.get_logger()


def configure_logging(production: bool = False, *, sentry: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Args:
        production: JSON rendering at INFO level when True, colored console
            rendering at DEBUG level otherwise.
        sentry: Forward ERROR events to Sentry.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="consulthive")


def build_drafter(settings: Settings) -> Drafter:
    """Return the Anthropic-backed drafter, or one that always fails without a key."""
    api_key = settings.anthropic_api_key.get_secret_value()
    if not api_key:
        logger.warning("ANTHROPIC_API_KEY not set; drafting operations will return AI_ERROR")
        return UnavailableDrafter()
    return AnthropicDrafter(
        get_anthropic_client(api_key),
        model=settings.drafting_model,
        max_attempts=settings.drafting_max_attempts,
    )


def initialize_services(
    settings: Settings | None = None, *, drafter: Drafter | None = None
) -> dict[str, Any]:
    """Set up every shared service of the application.

    Creates the database (schema included), the drafter, one instance of
    each lifecycle service and the operation catalogue wired to them.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        drafter: Drafter override; built from settings when ``None``.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    database = Database(settings.database_path, busy_timeout=settings.db_busy_timeout_seconds)
    database.initialize()

    if drafter is None:
        drafter = build_drafter(settings)

    services: dict[str, Any] = {
        "_settings": settings,
        "database": database,
        "drafter": drafter,
        "requests": RequestService(database, drafter, settings),
        "offers": OfferService(database, drafter, settings),
        "engagements": EngagementService(database, settings),
        "transfer_packs": TransferPackService(database, drafter, settings),
        "payments": PaymentService(database, settings),
        "profiles": ProfileService(database, settings),
        "reviews": ReviewService(database, settings),
        "audit": AuditService(database),
    }
    services["catalogue"] = build_catalogue(services)
    logger.info("Services initialized", operations=len(services["catalogue"].names))
    return services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Log startup and shutdown; connections are opened per unit of work."""
    logger.info("FastAPI application starting", database=str(app.state.services["database"].path))
    yield
    logger.info("FastAPI application stopped")


def create_app(
    settings: Settings | None = None, services: dict[str, Any] | None = None
) -> FastAPI:
    """Create the FastAPI app with middleware, metrics, routers and probes.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.
        services: Pre-built services; built from *settings* when ``None``.

    Returns:
        The configured FastAPI application.
    """
    if services is None:
        services = initialize_services(settings)
    if settings is None:
        settings = services.get("_settings") or get_settings()

    fastapi_app = FastAPI(title="ConsultHive Marketplace Engine", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = settings
    fastapi_app.add_middleware(RequestIdMiddleware)
    setup_metrics(fastapi_app)
    fastapi_app.include_router(operations_router)
    fastapi_app.include_router(webhook_router)
    register_health_routes(fastapi_app)
    return fastapi_app


def run() -> None:
    """Console entry point.

    1. Configure logging and Sentry
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Serve it with uvicorn
    """
    settings = get_settings()
    sentry_enabled = init_sentry(settings.sentry_dsn, production=settings.production)
    configure_logging(production=settings.production, sentry=sentry_enabled)
    logger.info("Application starting", sentry=sentry_enabled)

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(settings, services)

    uvicorn.run(fastapi_app, host="0.0.0.0", port=settings.api_port, log_level="info")


if __name__ == "__main__":
    run()
