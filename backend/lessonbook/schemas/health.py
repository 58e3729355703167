"""Health endpoint response."""

from ._strict_base import StrictModel


class HealthResponse(StrictModel):
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
