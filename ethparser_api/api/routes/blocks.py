"""
Block API routes.

This module defines API endpoints for parsing progress.
"""

from fastapi import APIRouter, HTTPException, Depends

from ethparser_api.schemas.health import ErrorResponse
from ethparser_api.schemas.transactions import CurrentBlockResponse
from ethparser_api.services.parser_service import (
    ParserService,
    ParserUnavailableError,
    get_parser_service,
)


router = APIRouter(
    prefix="/blocks",
    tags=["Blocks"],
    responses={
        503: {"model": ErrorResponse, "description": "Parser unavailable"}
    }
)


@router.get(
    "/current",
    response_model=CurrentBlockResponse,
    summary="Get Current Block",
    description="Last block whose transactions have been processed."
)
async def get_current_block(
    service: ParserService = Depends(get_parser_service)
) -> CurrentBlockResponse:
    try:
        return await service.get_current_block()
    except ParserUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Parser unavailable: {e}")
