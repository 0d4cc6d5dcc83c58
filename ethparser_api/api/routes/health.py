"""
Health check API routes.

This module defines API endpoints for health checks
and parser status monitoring.
"""

from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from ethparser_api.schemas.health import HealthCheckResponse
from ethparser_api.core.config import get_settings, Settings
from ethparser_api.core.parser_runtime import get_parser_runtime, ParserRuntime


router = APIRouter(
    tags=["Health"]
)


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Check the health status of the API and the parser loop."
)
async def health_check(
    settings: Settings = Depends(get_settings),
    runtime: ParserRuntime = Depends(get_parser_runtime)
) -> HealthCheckResponse:
    """
    Perform a health check on the API.

    Reports the parser loop state and how far the chain has been
    processed. Use this endpoint for load balancer checks and monitoring.

    Args:
        settings: Application settings dependency
        runtime: Parser runtime dependency

    Returns:
        HealthCheckResponse: Health check result with status details
    """
    parser_health = runtime.health_check()

    return HealthCheckResponse(
        status=parser_health.get("status"),
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        parser_running=runtime.parser.is_running() if runtime.available else False,
        current_block=runtime.parser.get_current_block() if runtime.available else None,
        message=parser_health.get("message")
    )


@router.get(
    "/",
    summary="Root Endpoint",
    description="API root endpoint with basic information."
)
async def root(
    settings: Settings = Depends(get_settings)
) -> dict:
    """
    Root endpoint returning basic API information.

    Args:
        settings: Application settings dependency

    Returns:
        dict: Basic API information
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }
