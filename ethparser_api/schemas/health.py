"""
Health check schemas for API responses.

This module defines Pydantic models for health check endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone


class HealthCheckResponse(BaseModel):
    """
    Health check response model.

    Attributes:
        status: Overall health status
        timestamp: Current server timestamp
        version: Application version
        parser_running: Whether the polling loop is running
        current_block: Last block processed by the parser
        message: Parser status message
    """

    status: str = Field(
        ...,
        description="Overall health status: healthy, degraded or unhealthy"
    )
    timestamp: datetime = Field(
        ...,
        description="Current server timestamp"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    parser_running: bool = Field(
        default=False,
        description="Whether the parser polling loop is running"
    )
    current_block: Optional[int] = Field(
        default=None,
        description="Last block processed by the parser"
    )
    message: Optional[str] = Field(
        default=None,
        description="Parser status message or error"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-04-20T10:30:00Z",
                "version": "1.0.0",
                "parser_running": True,
                "current_block": 19698125,
                "message": "Parser loop running"
            }
        }


class ErrorResponse(BaseModel):
    """
    Standard error response model.

    Attributes:
        error: Error type/code
        message: Human-readable error message
        detail: Additional error details
        timestamp: Error timestamp
    """

    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(
        default=None,
        description="Additional error details"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Error timestamp"
    )
