"""
FastAPI application entry point.

Configures the API with all routes, middleware, error handling and the
background OTP sweep.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .routes.router import router as api_router
from .deps import get_services, close_services

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def purge_expired_otps():
    """Background job dropping OTPs nobody verified in time."""
    try:
        removed = get_services().otps.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired OTP(s)")
    except Exception as e:
        logger.error(f"Scheduled OTP purge failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    global scheduler

    logger.info("Starting Bookworm auth API...")

    # Fails fast on a missing JWT_SECRET_KEY
    services = get_services()
    logger.info("Services initialized")

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        purge_expired_otps,
        trigger=IntervalTrigger(seconds=services.config.otp.sweep_interval_seconds),
        id="otp_purge",
        name="Purge expired OTPs",
        replace_existing=True
    )
    scheduler.start()
    logger.info(
        f"Background scheduler started - OTP purge every "
        f"{services.config.otp.sweep_interval_seconds}s"
    )

    yield

    # Cleanup on shutdown
    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    close_services()


app = FastAPI(
    title="Bookworm Auth API",
    description="Phone OTP and email/password authentication for Bookworm",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error responses are always {"message": ...}

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        fields = [str(part) for part in first.get("loc", ()) if part != "body"]
        if first.get("type") == "json_invalid":
            message = "Request body must be valid JSON"
        elif fields:
            message = f"Invalid value for '{'.'.join(fields)}': {first.get('msg')}"
        else:
            message = "Request body must be a JSON object"
    else:
        message = "Invalid request"

    return JSONResponse(status_code=400, content={"message": message})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error"}
    )


# Health check
@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "bookworm-auth-api"}


app.include_router(api_router)


# Root endpoint
@app.get("/", tags=["System"])
async def root():
    """API root endpoint."""
    return {
        "name": "Bookworm Auth API",
        "version": "1.0.0",
        "docs": "/docs"
    }
