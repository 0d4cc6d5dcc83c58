"""
Exceptions raised by the parser and its collaborators.

Every error defined here derives from ParserError so callers can catch
the whole family at once.
"""

from typing import List, Optional


class ParserError(Exception):
    """Base class for all parser errors."""


class InvalidQuantityError(ParserError, ValueError):
    """A hex quantity string is malformed or out of range."""


class AddressNotFoundError(ParserError, KeyError):
    """No transaction has ever been stored for the address."""

    def __init__(self, address: str):
        super().__init__(address)
        self.address = address

    def __str__(self) -> str:
        return f"address not found: {self.address}"


class AlreadyRunningError(ParserError, RuntimeError):
    """Raised when run() is called while another run() is active."""

    def __init__(self, message: str = "parser is already running"):
        super().__init__(message)


class RPCError(ParserError):
    """Transport or JSON-RPC level failure talking to the node."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class BlockNotFoundError(RPCError):
    """The node returned no block for the requested number."""

    def __init__(self, block_number: int):
        super().__init__(f"block {block_number} not found")
        self.block_number = block_number


class BatchProcessingError(ParserError):
    """
    One or more blocks of a batch failed.

    The progress marker is left untouched when this is raised, so the
    whole batch is attempted again on the next iteration.
    """

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        super().__init__(
            f"errors occurred during block processing: "
            f"{[str(e) for e in self.errors]}"
        )


class StorageError(ParserError):
    """A backing store rejected a read or write."""
