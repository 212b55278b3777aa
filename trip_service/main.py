"""
FastAPI application factory with New Relic APM, CORS, lifespan, and the trips router.
"""
import logging
import os

# New Relic must be initialized BEFORE any other imports that it instruments.
if os.getenv("NEW_RELIC_LICENSE_KEY"):
    import newrelic.agent
    newrelic.agent.initialize("newrelic.ini")

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trip_service import __version__
from trip_service.config import Settings, get_settings
from trip_service.database import Database
from trip_service.exceptions import TripServiceError
from trip_service.redis_client import close_redis, create_redis
from trip_service.routers import trips
from trip_service.services.driver_directory import DriverDirectoryClient
from trip_service.services.payment import PaymentClient

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s [%s]", settings.app_name, settings.env)
        database = Database(settings.database_url)
        if settings.auto_create_schema:
            await database.create_schema()
        app.state.database = database
        app.state.redis = create_redis(settings.redis_url)
        # One pooled HTTP client shared by both collaborators.
        http_client = httpx.AsyncClient()
        app.state.directory = DriverDirectoryClient(
            settings.driver_service_url,
            http_client,
            timeout=settings.driver_service_timeout_seconds,
            ordering=settings.driver_ordering,
            ping_grace_ms=settings.ping_grace_ms,
        )
        app.state.payments = PaymentClient(
            settings.payment_service_url,
            http_client,
            timeout=settings.payment_timeout_seconds,
        )
        yield
        await http_client.aclose()
        await close_redis(app.state.redis)
        await database.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Trip lifecycle service: creation, driver assignment, completion and cancellation",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TripServiceError)
    async def trip_service_error_handler(request: Request, exc: TripServiceError):
        if exc.status_code >= 500:
            logger.error("Request failed on %s: %s", request.url, exc, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    # Global error handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s: %s", request.url, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # Health check
    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    app.include_router(trips.router)
    return app


configure_logging(get_settings().log_level)
app = create_app()
