"""
Parser service for business logic.

This module maps parser operations to API response models.
"""

from fastapi import Depends

from ethparser_api.core.parser_runtime import ParserRuntime, get_parser_runtime
from ethparser_api.schemas.transactions import (
    AddressTransactionsResponse,
    CurrentBlockResponse,
    SubscribeResponse,
    TransactionResponse,
)


class ParserUnavailableError(RuntimeError):
    """The parser could not be built, typically because no node is configured."""


class ParserService:
    """
    Service class for parser operations.

    Blocking parser calls are executed in the runtime's thread pool.
    """

    def __init__(self, runtime: ParserRuntime):
        """Initialize the parser service."""
        self.runtime = runtime

    def _parser(self):
        if not self.runtime.available:
            raise ParserUnavailableError(self.runtime.error or "Parser not initialized")
        return self.runtime.parser

    async def subscribe(self, address: str) -> SubscribeResponse:
        """
        Start observing an address.

        Args:
            address: Ethereum address

        Returns:
            SubscribeResponse: Whether the subscription succeeded
        """
        parser = self._parser()
        subscribed = await self.runtime.call(parser.subscribe, address)
        return SubscribeResponse(address=address, subscribed=subscribed)

    async def get_transactions(self, address: str) -> AddressTransactionsResponse:
        """
        Get the transactions stored for an address.

        Args:
            address: Ethereum address

        Returns:
            AddressTransactionsResponse: Transactions, empty if none are known
        """
        parser = self._parser()
        transactions = await self.runtime.call(parser.get_transactions, address)
        transactions = sorted(transactions, key=lambda tx: (tx.block_number, tx.hash))

        return AddressTransactionsResponse(
            address=address,
            count=len(transactions),
            transactions=[TransactionResponse.from_transaction(tx) for tx in transactions]
        )

    async def get_current_block(self) -> CurrentBlockResponse:
        """Get the last processed block."""
        parser = self._parser()
        return CurrentBlockResponse(
            current_block=parser.get_current_block(),
            running=parser.is_running()
        )


def get_parser_service(
    runtime: ParserRuntime = Depends(get_parser_runtime)
) -> ParserService:
    """
    Get parser service instance.

    Returns:
        ParserService: Parser service instance
    """
    return ParserService(runtime)
