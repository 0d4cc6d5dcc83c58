"""
Transaction schemas for API responses.

This module defines Pydantic models for address subscription,
transaction lookup and parsing progress endpoints.
"""

from pydantic import BaseModel, Field
from typing import List

from ethparser.models import Transaction


class TransactionResponse(BaseModel):
    """
    A transaction involving an observed address.

    The Wei value is serialized as a decimal string since it routinely
    exceeds 64 bits.
    """

    hash: str = Field(..., description="Transaction hash")
    block_number: int = Field(..., description="Block number", ge=0)
    block_hash: str = Field(..., description="Block hash")
    from_address: str = Field(..., description="Sender address")
    to_address: str = Field(..., description="Receiver address, empty for contract creation")
    value: str = Field(..., description="Transferred value in Wei")

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionResponse":
        return cls(**tx.to_dict())


class AddressTransactionsResponse(BaseModel):
    """
    Transactions of an address.

    Attributes:
        address: The queried address
        count: Number of transactions
        transactions: Transactions in no particular order
    """

    address: str = Field(..., description="Ethereum address")
    count: int = Field(..., description="Number of transactions", ge=0)
    transactions: List[TransactionResponse] = Field(default_factory=list)


class SubscribeResponse(BaseModel):
    """Result of subscribing an address."""

    address: str = Field(..., description="Ethereum address")
    subscribed: bool = Field(..., description="Whether the address is now observed")


class CurrentBlockResponse(BaseModel):
    """Parsing progress."""

    current_block: int = Field(..., description="Last processed block", ge=0)
    running: bool = Field(..., description="Whether the parser loop is running")
