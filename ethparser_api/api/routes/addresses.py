"""
Address API routes.

This module defines API endpoints for subscribing addresses and
listing the transactions that involve them.
"""

from fastapi import APIRouter, HTTPException, Depends, Path

from ethparser_api.schemas.health import ErrorResponse
from ethparser_api.schemas.transactions import AddressTransactionsResponse, SubscribeResponse
from ethparser_api.services.parser_service import (
    ParserService,
    ParserUnavailableError,
    get_parser_service,
)


router = APIRouter(
    prefix="/addresses",
    tags=["Addresses"],
    responses={
        500: {"model": ErrorResponse, "description": "Internal server error"},
        503: {"model": ErrorResponse, "description": "Parser unavailable"}
    }
)


@router.post(
    "/{address}",
    response_model=SubscribeResponse,
    summary="Subscribe Address",
    description="Start keeping the transactions sent from or to an address."
)
async def subscribe_address(
    address: str = Path(
        ...,
        description="Ethereum address, any letter case",
        min_length=1,
        examples=["0x115295d8C90Fe127932C6fE78daE6D5a4B975098"]
    ),
    service: ParserService = Depends(get_parser_service)
) -> SubscribeResponse:
    """
    Subscribe an address.

    Only blocks processed after the subscription are searched for the
    address; earlier blocks are not rescanned.

    Raises:
        HTTPException: 503 if the parser is unavailable, 500 if the
            subscription failed
    """
    try:
        result = await service.subscribe(address)
    except ParserUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Parser unavailable: {e}")

    if not result.subscribed:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to subscribe address: {address}"
        )

    return result


@router.get(
    "/{address}/transactions",
    response_model=AddressTransactionsResponse,
    summary="Get Address Transactions",
    description="List the stored transactions sent from or to an address."
)
async def get_address_transactions(
    address: str = Path(
        ...,
        description="Ethereum address, any letter case",
        min_length=1,
        examples=["0x115295d8C90Fe127932C6fE78daE6D5a4B975098"]
    ),
    service: ParserService = Depends(get_parser_service)
) -> AddressTransactionsResponse:
    """
    Get the transactions of an address.

    An address without stored transactions returns an empty list.

    Raises:
        HTTPException: 503 if the parser is unavailable
    """
    try:
        return await service.get_transactions(address)
    except ParserUnavailableError as e:
        raise HTTPException(status_code=503, detail=f"Parser unavailable: {e}")
