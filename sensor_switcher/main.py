"""
FastAPI application for the Nest temperature sensor switcher.

Users register thermostats and their remote sensors, share thermostats with
other users, and ask the service to switch which sensor a thermostat follows.
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sensor_switcher.database import Database
from sensor_switcher.dependencies import build_sensor_switcher
from sensor_switcher.exceptions import SwitcherError, UnauthorizedError
from sensor_switcher.routes import health, sensor, thermostat, user
from sensor_switcher.utils.logging import get_logger, setup_logging

VERSION = "1.0.0"

# Load environment variables
load_dotenv()

# Setup logging
setup_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the database and the sensor switcher on startup, close on shutdown.
    """
    log.info("application_starting", version=VERSION)

    database = Database()
    app.state.database = database

    if os.getenv("INIT_DB", "true").lower() == "true":
        log.info("initializing_database")
        await database.init_schema()

    app.state.sensor_switcher = build_sensor_switcher()

    log.info("application_ready")

    yield

    log.info("application_shutting_down")
    await database.close()
    log.info("application_stopped")


app = FastAPI(
    title="Nest Temperature Sensor Switcher",
    version=VERSION,
    description="Manage thermostats and sensors, and switch the active Nest temperature sensor",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert Pydantic validation errors to clean, user-friendly messages.
    Prevents exposing internal validation details, URLs, and type information.
    """
    error_messages = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field = " -> ".join(str(l) for l in loc if l != "body")
        msg = error.get("msg", "Invalid value")
        error_messages.append(f"{field}: {msg}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "details": error_messages
        }
    )


@app.exception_handler(SwitcherError)
async def switcher_exception_handler(request: Request, exc: SwitcherError):
    """
    Map application errors to their HTTP status.
    Server errors only carry their public message; services log the cause.
    """
    if exc.http_status >= 500:
        log.debug(
            "request_failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=exc.message
        )
        return JSONResponse(status_code=exc.http_status, content={"error": exc.public_message})

    content = {"error": exc.public_message}
    if exc.details:
        content["details"] = exc.details

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.http_status, content=content, headers=headers)


# Include routers
app.include_router(user.router, tags=["User"])
app.include_router(thermostat.router, tags=["Thermostat"])
app.include_router(sensor.router, tags=["Sensor"])
app.include_router(health.router, tags=["Health"])


@app.get("/healthz")
async def healthz():
    """
    Liveness check.
    No authentication required.

    Returns:
        dict: {"ok": true}
    """
    return {"ok": True}


@app.get("/")
async def root():
    """
    Root endpoint - basic info.
    """
    return {
        "ok": True,
        "name": "Nest Temperature Sensor Switcher",
        "version": VERSION,
        "status": "operational"
    }
