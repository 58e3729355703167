# backend/lessonbook/main.py
"""
Lessonbook FastAPI application.

All endpoints are mounted under ``/api/v1``.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import assert_env, is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_V1_PREFIX, API_VERSION, BRAND_NAME
from .core.request_context import attach_request_id_filter
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .middleware.request_id import RequestIdMiddleware
from .routes.v1 import (
    availability as availability_v1,
    bookings as bookings_v1,
    health as health_v1,
    offers as offers_v1,
    teachers as teachers_v1,
    webhooks as webhooks_v1,
)

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    assert_env(settings)
    if settings.payment_disabled:
        logger.warning("Payments are disabled: bookings are marked paid at reservation")

    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Last added runs outermost, so the request id wraps everything below
app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

# API v1 router - all endpoints are mounted here
api_v1 = APIRouter(prefix=API_V1_PREFIX)
api_v1.include_router(health_v1.router)
api_v1.include_router(availability_v1.router, prefix="/teachers")
api_v1.include_router(teachers_v1.router, prefix="/teachers")
api_v1.include_router(offers_v1.router, prefix="/teachers")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(webhooks_v1.router, prefix="/webhooks")

app.include_router(api_v1)


@app.get("/")
def read_root() -> dict[str, str]:
    """Root endpoint - API information"""
    return {
        "message": f"Welcome to the {BRAND_NAME} API!",
        "version": API_VERSION,
        "docs": "/docs",
    }
