"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from citypulse.config import settings
from citypulse.api import api_router
from citypulse.database import init_database, close_database
from citypulse.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from citypulse.utils.logging_config import setup_logging

setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/citypulse.log" if settings.is_production else None,
    enable_json_logging=settings.enable_json_logging or settings.is_production,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting CityPulse API")
    await init_database()
    yield
    logger.info("Shutting down CityPulse API")
    await close_database()


app = FastAPI(
    title="CityPulse API",
    description="""
    ## CityPulse

    Ticketing for city events: organizers publish events and coupons,
    attendees book tickets and receive a PDF ticket by email.

    ### Authentication

    Attendees register under `/auth`, organizers under `/organizers`. Both
    receive a JWT to send as `Authorization: Bearer <token>`.

    ### Error Handling

    ```json
    {
      "error": {
        "error_code": "CAPACITY_EXCEEDED",
        "message": "Only 2 seats available",
        "details": {"requested": 3, "available": 2}
      },
      "error_id": "...",
      "timestamp": "..."
    }
    ```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "authentication", "description": "Attendee accounts"},
        {"name": "organizers", "description": "Organizer accounts"},
        {"name": "events", "description": "Event management and browsing"},
        {"name": "bookings", "description": "Ticket booking and cancellation"},
        {"name": "coupons", "description": "Discount codes"},
        {"name": "notifications", "description": "In-app notifications"},
        {"name": "reviews", "description": "Event reviews"},
        {"name": "health", "description": "Service status"},
    ],
    lifespan=lifespan,
)

# Middleware added last runs first: errors are rendered inside the logged span.
app.add_middleware(ErrorHandlerMiddleware, debug=settings.debug)

if settings.enable_request_logging:
    app.add_middleware(LoggingMiddleware, log_requests=True, log_responses=True)

if settings.debug:
    # Credentials cannot be combined with wildcard origins
    cors_origins = ["*"]
    cors_allow_credentials = False
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers,
)

app.include_router(api_router)


@app.get("/", tags=["health"])
async def root():
    """Basic information about the API."""
    return {
        "message": "CityPulse API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "status": "operational",
    }


@app.get("/health", tags=["health"])
async def health_check():
    return {"status": "healthy", "service": "citypulse"}
