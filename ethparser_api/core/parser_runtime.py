"""
Parser runtime for the API application.

This module owns the parser instance served by the API, runs its polling
loop on a background thread and offers async wrappers so that blocking
repository calls do not stall the event loop.
"""

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from fastapi import Request

from ethparser.bigquery_repository import BigQueryTransactionsRepository
from ethparser.config import ParserConfig
from ethparser.parser import Parser
from ethparser.repositories import TransactionsRepository

from ethparser_api.core.config import Settings


logger = logging.getLogger(__name__)


class ParserRuntime:
    """
    Background runner around a Parser.

    Attributes:
        parser: The served parser, None if it could not be built
        run_on_startup: Whether start() launches the polling loop
        error: Why the parser could not be built, if it could not
    """

    def __init__(
        self,
        parser: Optional[Parser] = None,
        run_on_startup: bool = True,
        error: Optional[str] = None
    ):
        self.parser = parser
        self.run_on_startup = run_on_startup
        self.error = error
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor = ThreadPoolExecutor(max_workers=10, thread_name_prefix="ethparser-api")

    @property
    def available(self) -> bool:
        return self.parser is not None

    def start(self) -> None:
        """Start the polling loop on a daemon thread."""
        if not self.available or not self.run_on_startup:
            return
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="ethparser-loop",
            daemon=True
        )
        self._thread.start()
        logger.info("Parser loop started")

    def _run(self) -> None:
        try:
            self.parser.run(self._stop_event)
        except Exception as e:
            self.error = str(e)
            logger.error(f"Parser loop exited with error: {e}", exc_info=True)

    def stop(self, timeout: float = 30.0) -> None:
        """Stop the polling loop, wait for the batch in flight and release the pool."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Parser loop stopped")
        self._executor.shutdown(wait=True)

    async def call(self, func: Callable, *args: Any) -> Any:
        """
        Run a blocking parser call in the thread pool.

        Args:
            func: Callable to run
            *args: Positional arguments for the callable

        Returns:
            Any: The callable's return value
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    def health_check(self) -> dict[str, Any]:
        """
        Report the state of the parser.

        Returns:
            dict: Health check result with status and message
        """
        if not self.available:
            return {
                "status": "unhealthy",
                "message": self.error or "Parser not initialized",
            }

        running = self.parser.is_running()
        if self.run_on_startup and not running:
            return {
                "status": "degraded",
                "message": self.error or "Parser loop is not running",
            }

        return {
            "status": "healthy",
            "message": "Parser loop running" if running else "Parser loop disabled",
        }


def build_parser_runtime(settings: Settings) -> ParserRuntime:
    """
    Build the parser runtime from application settings.

    A missing RPC endpoint does not prevent the application from starting;
    the runtime then reports itself as unavailable.

    Args:
        settings: Application settings

    Returns:
        ParserRuntime: Runtime ready to be started
    """
    if settings.parser_storage == "bigquery":
        transactions_repo = BigQueryTransactionsRepository()
        if settings.parser_start_block is not None:
            transactions_repo.save_last_processed_block(settings.parser_start_block)
    else:
        transactions_repo = TransactionsRepository(settings.parser_start_block or 0)

    try:
        parser = Parser(
            rpc_endpoint=settings.eth_rpc_endpoint,
            transactions_repository=transactions_repo,
            config=ParserConfig(
                batch_process_timeout=settings.parser_batch_timeout,
                no_new_blocks_pause=settings.parser_no_new_blocks_pause,
                max_blocks_per_batch=settings.parser_max_blocks_per_batch,
            ),
        )
    except ValueError as e:
        # Allow the app to start without a node (for development)
        logger.warning(f"Could not initialize parser: {e}")
        return ParserRuntime(run_on_startup=False, error=str(e))

    for address in settings.subscribed_addresses:
        parser.subscribe(address)

    return ParserRuntime(parser, run_on_startup=settings.run_parser_on_startup)


def get_parser_runtime(request: Request) -> ParserRuntime:
    """
    Get the parser runtime attached to the application.

    Returns:
        ParserRuntime: Runtime created during application startup
    """
    return request.app.state.parser_runtime
