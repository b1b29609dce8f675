# backend/slotkeeper/main.py
"""
Application factory.

This is the process entry point that owns the database engine: it builds
the engine and session factory from ``Settings`` and disposes the engine on
shutdown. Services and repositories only ever see sessions.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from .core.config import Settings, get_settings
from .core.exceptions import DomainException
from .database import build_session_factory, create_engine_from_settings
from .integrations.calendar import BusyCalendarSource, NullBusyCalendarSource
from .routes import prometheus
from .routes.v1 import availability as availability_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import payments as payments_v1
from .services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    settings: Settings = app.state.settings
    logger.info(f"slotkeeper API starting up (environment: {settings.environment})")
    if not settings.stripe_configured:
        logger.warning("Stripe is not configured; paid bookings are disabled")
    yield
    logger.info("slotkeeper API shutting down...")
    app.state.engine.dispose()


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


def create_app(
    settings: Optional[Settings] = None,
    calendar_source: Optional[BusyCalendarSource] = None,
    stripe_gateway: Optional[StripeGateway] = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        settings: Configuration; resolved from the environment when omitted
        calendar_source: Busy-time supplier for connected calendars
        stripe_gateway: Stripe client wrapper, replaceable in tests
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="slotkeeper",
        description="Appointment booking engine",
        version="1.0.0",
        lifespan=app_lifespan,
    )

    engine = create_engine_from_settings(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.calendar_source = calendar_source or NullBusyCalendarSource()
    app.state.stripe_gateway = stripe_gateway or StripeGateway(settings)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Create API v1 router
    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(availability_v1.router, prefix="/offerings")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(payments_v1.router, prefix="/payments")

    app.include_router(api_v1)
    app.include_router(prometheus.router)
    return app


def main() -> None:
    import uvicorn

    uvicorn.run("slotkeeper.main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
