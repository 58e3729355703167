# backend/lessonbook/routes/v1/health.py
"""
Health check endpoints for monitoring and load balancers.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from ...api.dependencies.auth import get_settings
from ...core.config import Settings
from ...core.constants import API_VERSION, BRAND_NAME
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...schemas.health import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(app_settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Health check endpoint.

    Does not touch the database; used by load balancers and monitoring.
    """
    return HealthResponse(
        status="healthy",
        service=f"{BRAND_NAME.lower()}-api",
        version=API_VERSION,
        environment=app_settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus exposition of the application registry."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
