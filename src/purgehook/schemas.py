"""API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    pending: bool = False  # Whether a debounced dispatch is waiting to fire


class InvalidationRequest(BaseModel):
    """Request to schedule a cache invalidation."""

    pattern: str | None = Field(
        default=None,
        description='Invalidation pattern, e.g. "/$/" or "/, /page/*, /rss"',
    )


class InvalidationResponse(BaseModel):
    """Response for a scheduled invalidation."""

    status: str = "scheduled"
    pattern: str
    debounce_seconds: float
