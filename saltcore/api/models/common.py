"""
Common API models used across different endpoints.

These models represent shared concepts like errors, base responses and health.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


class APIError(BaseModel):
    """Standard error response format."""
    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Machine-readable error code")
    stage: Optional[str] = Field(None, description="Pipeline stage that failed, if any")
    attempts: Optional[int] = Field(None, description="Generation attempts used before giving up")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_now)


class APIResponse(BaseModel):
    """Base response wrapper for all API endpoints."""
    success: bool = Field(True, description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Human-readable response message")
    timestamp: datetime = Field(default_factory=_now)


class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    timestamp: datetime = Field(default_factory=_now)
    dependencies: Dict[str, str] = Field(..., description="Status of configured tasks")
