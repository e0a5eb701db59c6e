"""Response models shared by the gateway routes."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    service: str
    version: str
    status: str
    uptime_seconds: float
    breaker: dict
