"""Main entry point for the HUD Readings API."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Optional, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import make_asgi_app
from pydantic import ValidationError
from starlette.middleware.cors import CORSMiddleware
from starlette.status import HTTP_400_BAD_REQUEST

from hud_readings.api.middleware import BasicAuthMiddleware, RequestIDMiddleware
from hud_readings.api.readings import router as readings_router
from hud_readings.data.mongodb import MongoDBClient
from hud_readings.data.readings_repository import ReadingsRepository
from hud_readings.utils.config import Settings, get_settings
from hud_readings.utils.error_handling import ReadingsApiError, StartupFailure, StorageError
from hud_readings.utils.logging_utils import setup_json_logging

logger = logging.getLogger(__name__)


def load_settings() -> Settings:
    """
    Load settings from the environment.

    Raises:
        StartupFailure: If required configuration such as CONNECTION_STRING is missing
    """
    try:
        return get_settings()
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]).upper() for err in e.errors() if err.get("loc"))
        raise StartupFailure(f"Invalid configuration: {missing or e}") from e


def connect_database(settings: Settings) -> Tuple[MongoDBClient, ReadingsRepository]:
    """
    Connect to MongoDB and verify the connection with a ping.

    Raises:
        StartupFailure: If the client cannot be created or the ping fails
    """
    try:
        db_client = MongoDBClient(settings)
    except StorageError as e:
        raise StartupFailure(f"Couldn't create database client: {e.message}") from e

    repository = ReadingsRepository.from_client(db_client)
    try:
        repository.health_check()
    except StorageError as e:
        db_client.close()
        raise StartupFailure(f"Couldn't complete database connection test: {e.message}") from e
    return db_client, repository


def describe_validation_errors(exc: RequestValidationError) -> str:
    """Flatten FastAPI validation errors into one message, e.g. "query.page: ..."."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{location}: {msg}" if location else msg)
    return "; ".join(parts) or "Invalid request"


def log_auth_mode(settings: Settings) -> None:
    if settings.credentials is None:
        logger.warning(
            "Username or password missing in environment. Starting unauthenticated API",
            extra={"auth_enabled": False},
        )
    else:
        logger.info(
            "Username and password loaded. Starting authenticated API",
            extra={"auth_enabled": True},
        )


def create_app(
    settings: Settings,
    repository: ReadingsRepository,
    db_client: Optional[MongoDBClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings
        repository: Readings repository shared by every request
        db_client: Client to close on shutdown, if the app owns it

    Returns:
        FastAPI: The configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        logger.info("Starting HUD Readings API...")
        yield
        logger.info("Shutting down HUD Readings API...")
        if db_client is not None:
            db_client.close()

    app = FastAPI(
        title="HUD Readings API",
        description="Stores and serves patient sensor readings",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.readings_repository = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    log_auth_mode(settings)
    # Added last so it is the outermost layer and guards every route
    app.add_middleware(BasicAuthMiddleware, credentials=settings.credentials)

    app.include_router(readings_router)

    @app.get("/status", response_class=PlainTextResponse)
    def get_status() -> str:
        """Liveness check."""
        return "Hi"

    app.mount("/metrics", make_asgi_app())

    @app.exception_handler(ReadingsApiError)
    async def readings_api_error_handler(request: Request, exc: ReadingsApiError):
        if exc.status_code >= 500:
            logger.error(
                f"Request failed: {exc.message}",
                extra={"path": request.url.path, "status_code": exc.status_code},
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        message = describe_validation_errors(exc)
        logger.warning(
            f"Rejected request: {message}",
            extra={"path": request.url.path, "status_code": HTTP_400_BAD_REQUEST},
        )
        return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content={"error": message})

    return app


def main() -> int:
    """
    Start the API. Returns a non-zero exit code without listening if startup fails.
    """
    setup_json_logging("INFO")
    try:
        settings = load_settings()
        setup_json_logging(settings.log_level, settings.log_output, settings.log_file_path)
        db_client, repository = connect_database(settings)
    except StartupFailure as e:
        logger.error(f"No client could be established. {e}")
        return 1

    app = create_app(settings, repository, db_client)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
