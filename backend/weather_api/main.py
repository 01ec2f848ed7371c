"""
Weather Readings API - Backend
==============================
FastAPI application serving weather station readings to schools.

ARCHITECTURE:
    [Weather Stations] --POST readings--> [This Backend] <--GET-- [Teachers / Students]
                                                |
                                                v
                                           [MongoDB]

RESOURCES:
    1. Auth      - register, login, logout (opaque session tokens)
    2. Users     - teacher-only user management
    3. Readings  - weather data: listing, aggregations, inserts, fixes

HOW TO RUN:
    # Install
    pip install -e .

    # Configure (or export the variables)
    cat > .env <<EOF
    MONGODB_URL=mongodb://localhost:27017
    DATABASE_NAME=weather-api-for-education
    EOF

    # Run the server
    uvicorn weather_api.main:app --reload --port 8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
    - OpenAPI JSON: http://localhost:8000/openapi.json
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from weather_api.routers import auth_router, readings_router, users_router
from weather_api.services import ReadingCatalog, UserDirectory, WeatherStore


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        MONGODB_URL: MongoDB connection string (MDB_URL also accepted)
        DATABASE_NAME: Database holding users and weather data
        MONGODB_TIMEOUT_MS: How long to wait for MongoDB at startup
        CORS_ORIGINS: Comma separated list of allowed origins ("*" = all)
        LOG_LEVEL: DEBUG, INFO, WARNING, ...
        AUDIT_DELETED_READINGS: "true" to copy deleted readings into the log collection
        BCRYPT_ROUNDS: Work factor for password hashes
    """

    MONGODB_URL = os.getenv("MONGODB_URL", os.getenv("MDB_URL", "mongodb://localhost:27017"))

    DATABASE_NAME = os.getenv("DATABASE_NAME", "weather-api-for-education")

    MONGODB_TIMEOUT_MS = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))

    # Every origin is allowed unless narrowed here
    CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    AUDIT_DELETED_READINGS = os.getenv("AUDIT_DELETED_READINGS", "false").lower() in ("1", "true", "yes")

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))


logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)


# =============================================================================
# ERROR ENVELOPE
# =============================================================================

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPExceptions as {"status", "message"}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bad request bodies/params are a 400 in the same envelope."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(
        status_code=400,
        content={
            "status": 400,
            "message": "Invalid request. " + "; ".join(problems),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last resort: anything that escaped the routes is a 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"status": 500, "message": f"Internal server error. {exc}"},
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def attach_services(app: FastAPI, store: WeatherStore):
    """Build the services around a store and hang them on app.state."""
    app.state.store = store
    app.state.user_directory = UserDirectory(store, bcrypt_rounds=Config.BCRYPT_ROUNDS)
    app.state.reading_catalog = ReadingCatalog(store, audit_deletes=Config.AUDIT_DELETED_READINGS)


def create_app(store: Optional[WeatherStore] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        store: An already connected store (tests). When omitted, the app
               connects to Config.MONGODB_URL at startup and closes the
               connection at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        STARTUP:
            1. Connect to MongoDB (exit if it can't be reached)
            2. Build UserDirectory and ReadingCatalog around the store

        SHUTDOWN:
            1. Close the MongoDB client (only if we opened it)
        """
        # ========== STARTUP ==========
        print("=" * 60)
        print("WEATHER READINGS API - Starting Backend")
        print("=" * 60)

        owns_store = store is None
        active_store = store
        if owns_store:
            try:
                active_store = await WeatherStore.connect(
                    Config.MONGODB_URL,
                    Config.DATABASE_NAME,
                    timeout_ms=Config.MONGODB_TIMEOUT_MS,
                )
            except Exception as e:
                logger.error(f"Failed to connect to MongoDB at {Config.MONGODB_URL}: {e}")
                raise SystemExit(1)
            attach_services(app, active_store)

        print(f"   Database: {active_store.database_name}")
        print(f"   Audit deleted readings: {Config.AUDIT_DELETED_READINGS}")
        print(f"   CORS origins: {len(Config.CORS_ORIGINS)} configured")
        print()
        print("API Documentation: http://localhost:8000/docs")
        print("=" * 60)

        yield  # Application runs here

        # ========== SHUTDOWN ==========
        if owns_store:
            print("Shutting down...")
            active_store.close()

    app = FastAPI(
        title="Weather Readings API",
        description="""
## Overview

Weather station readings for classrooms. Stations push readings, teachers
manage users and data, students browse and query the readings.

## Authentication

Log in with `POST /auth/login` and send the returned token in the
`Auth-Key` header.

| Role | Can do |
|------|--------|
| **teacher** | everything |
| **station** | add readings, fix precipitation values |
| **student** | read (their last access time is recorded) |
| **anonymous** | read |

## Responses

Every response is `{"status": <code>, "message": <text>, ...}`.
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Services are available right away when a store is injected
    if store is not None:
        attach_services(app, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials="*" not in Config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(readings_router)

    @app.get("/", summary="API Information")
    async def root():
        """Root endpoint with an overview of the API."""
        return {
            "status": 200,
            "message": "Weather Readings API",
            "version": "1.0.0",
            "documentation": {
                "swagger": "/docs",
                "redoc": "/redoc",
                "openapi": "/openapi.json",
            },
            "endpoints": {
                "auth": ["POST /auth/register", "POST /auth/login", "POST /auth/logout"],
                "users": "/user (teacher only)",
                "weather_readings": "/weather-reading",
            },
        }

    @app.get("/health", summary="Health Check")
    async def health(request: Request):
        """Check the backend and its database connection."""
        try:
            await request.app.state.store.ping()
            database = "connected"
        except Exception as e:
            logger.warning(f"Health check: database unreachable ({e})")
            database = "unreachable"
        return {
            "status": 200,
            "message": "healthy" if database == "connected" else "degraded",
            "database": database,
        }

    return app


app = create_app()
