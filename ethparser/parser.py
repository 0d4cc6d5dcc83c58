"""
Ethereum transaction parser.

The parser polls the node for new blocks, fetches and filters each block
of a batch in parallel, stores the transactions that involve observed
addresses and advances the last processed block only when the whole
batch succeeded. A failed batch is retried in full on the next
iteration, which relies on the repositories being idempotent.

Usage:
    parser = Parser(rpc_endpoint="https://cloudflare-eth.com")
    parser.subscribe("0x...")
    parser.run()  # blocks until stop() is called
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Iterable, List, Optional

from .config import CONFIG, ParserConfig
from .ethereum_client import EthereumClient
from .exceptions import (
    AddressNotFoundError,
    AlreadyRunningError,
    BatchProcessingError,
    InvalidQuantityError,
    ParserError,
    RPCError,
    StorageError,
)
from .models import Block, Transaction
from .repositories import (
    AddressesRepository,
    ObserverRepository,
    TransactionsRepository,
    TransactionsRepositoryBase,
)
from .utils import setup_logger


# Upper bound on how long an idle pause keeps running after a stop request
STOP_POLL_INTERVAL = 0.1


class Parser:
    """
    Block ingestion engine.

    Only one run() may be active per instance. Batches execute strictly
    one after another; parallelism happens inside a batch, bounded by
    ParserConfig.max_blocks_per_batch.

    Attributes:
        config: Batch timeout, idle pause and batch size
        ethereum_client: Ledger client used to fetch heights and blocks
        transactions_repo: Store for observed transactions and progress
        addresses_repo: Set of observed addresses
        logger: Any object with info() and error() methods
    """

    def __init__(
        self,
        ethereum_client=None,
        rpc_endpoint: str = None,
        logger=None,
        transactions_repository: TransactionsRepositoryBase = None,
        addresses_repository: ObserverRepository = None,
        config: ParserConfig = None
    ):
        """
        Initialize the parser.

        Args:
            ethereum_client: Ledger client (built from rpc_endpoint if omitted)
            rpc_endpoint: Node URL, falls back to ETH_RPC_ENDPOINT
            logger: Logger (defaults to a module logger)
            transactions_repository: Transaction store (defaults to in-memory)
            addresses_repository: Address registry (defaults to in-memory)
            config: Processing configuration (defaults to config module)

        Raises:
            ValueError: If no client is given and no endpoint is configured
        """
        self.config = config or CONFIG.parser
        self.logger = logger or setup_logger(__name__)
        self.transactions_repo = transactions_repository or TransactionsRepository()
        self.addresses_repo = addresses_repository or AddressesRepository()

        if ethereum_client is None:
            try:
                ethereum_client = EthereumClient(rpc_endpoint)
            except ValueError as e:
                raise ValueError(f"could not create Ethereum client: {e}") from e
        self.ethereum_client = ethereum_client

        # Guards _running, _last_processed_block, _run_stop_event and batch error lists
        self._lock = threading.Lock()
        self._running = False
        self._last_processed_block = 0
        self._run_stop_event: Optional[threading.Event] = None

        # One batch in flight at a time
        self._batch_permit = threading.BoundedSemaphore(1)
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    def get_current_block(self) -> int:
        """Get the last block processed by this parser."""
        with self._lock:
            return self._last_processed_block

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def subscribe(self, address: str) -> bool:
        """
        Start observing an address.

        Failures are logged rather than raised.

        Args:
            address: Ethereum address in any letter case

        Returns:
            bool: True if the address is now observed
        """
        if not address:
            self.logger.error("could not observe address: address is empty")
            return False

        try:
            self.addresses_repo.observe_address(address)
        except Exception as e:
            self.logger.error(f"could not observe address {address}: {e}")
            return False

        self.logger.info(f"started observing address {address}")
        return True

    def get_transactions(self, address: str) -> List[Transaction]:
        """
        Get the stored transactions involving an address.

        An address without transactions yields an empty list. Repository
        failures are logged and also yield an empty list.
        """
        try:
            return self.transactions_repo.get_transactions(address)
        except AddressNotFoundError:
            return []
        except Exception as e:
            self.logger.error(f"could not get transactions for {address}: {e}")
            return []

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """
        Process blocks until the stop event is set.

        Processing resumes after the last processed block stored in the
        transactions repository. A batch in flight is not interrupted by
        the stop event; the loop exits before the next batch.

        Args:
            stop_event: Optional extra event ending the loop, watched along
                with stop()

        Raises:
            AlreadyRunningError: If another run() is active on this parser
            Exception: Whatever the repository raised loading the last
                processed block
        """
        with self._lock:
            if self._running:
                raise AlreadyRunningError()
            self._running = True
            self._run_stop_event = stop_event

        try:
            last_processed = self.transactions_repo.get_last_processed_block()
            self._set_last_processed_block(last_processed)
            self.logger.info(f"parser started after block {last_processed}")

            while not self._should_stop():
                with self._batch_permit:
                    self._run_batch()

            self.logger.info("stopping parser")
        finally:
            with self._lock:
                self._running = False
                self._run_stop_event = None
                self._stop_event.clear()

    def stop(self) -> None:
        """
        Ask the running loop to exit after the current batch.

        A stop() issued before run() has started makes that run return
        without processing a batch.
        """
        self._stop_event.set()

    def _should_stop(self) -> bool:
        if self._stop_event.is_set():
            return True
        with self._lock:
            run_stop_event = self._run_stop_event
        return run_stop_event is not None and run_stop_event.is_set()

    def _pause(self, seconds: float) -> None:
        """Sleep for up to seconds, waking early when the loop is stopped."""
        end = time.monotonic() + seconds
        while not self._should_stop():
            remaining = end - time.monotonic()
            if remaining <= 0:
                return
            self._stop_event.wait(min(remaining, STOP_POLL_INTERVAL))

    def _run_batch(self) -> None:
        self.logger.info("fetching and parsing blocks")
        try:
            self.process_blocks()
        except Exception as e:
            self.logger.error(f"could not process blocks: {e}")
            return

        self.logger.info(f"blocks processed up to {self.get_current_block()}")

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def process_blocks(self) -> None:
        """
        Process the next batch of blocks.

        Fetches up to max_blocks_per_batch new blocks in parallel, saves
        the observed transactions of each block as soon as it is filtered,
        and moves the last processed block forward only if every block of
        the batch succeeded. Otherwise the whole range is attempted again
        on the next call; saves already made by successful blocks are kept.
        Blocks still in flight at the batch deadline fail the batch, and the
        call returns only once they have finished.

        Raises:
            RPCError: If the most recent block number cannot be fetched
            BatchProcessingError: If any block of the batch failed
            StorageError: If the new last processed block cannot be saved
        """
        deadline = time.monotonic() + self.config.batch_process_timeout
        last_processed = self.get_current_block()

        try:
            most_recent = self.ethereum_client.get_most_recent_block_number(
                timeout=self._remaining(deadline)
            )
        except (RPCError, InvalidQuantityError, TimeoutError) as e:
            raise RPCError(f"could not get most recent block: {e}") from e

        pending = min(most_recent - last_processed, self.config.max_blocks_per_batch)
        if pending <= 0:
            self.logger.info("no new blocks, sleeping to avoid spamming the node")
            self._pause(self.config.no_new_blocks_pause)
            return

        errors: List[BaseException] = []

        block_numbers = range(last_processed + 1, last_processed + pending + 1)
        executor = ThreadPoolExecutor(max_workers=pending, thread_name_prefix="ethparser-block")
        try:
            futures = {
                executor.submit(self._fetch_and_process_block, number, deadline, errors): number
                for number in block_numbers
            }
            _, not_done = wait(futures, timeout=max(deadline - time.monotonic(), 0))

            for future in not_done:
                number = futures[future]
                self.logger.error(f"block {number} was not processed before the batch deadline")
                self._add_processing_error(
                    errors, TimeoutError(f"block {number} not processed within the batch timeout")
                )
        finally:
            # Late tasks still count against this batch, never the next one
            executor.shutdown(wait=True, cancel_futures=True)

        failures = self._get_processing_errors(errors)
        if failures:
            raise BatchProcessingError(failures)

        last_of_batch = last_processed + pending
        try:
            self.transactions_repo.save_last_processed_block(last_of_batch)
        except Exception as e:
            raise StorageError(
                f"could not save last processed block {last_of_batch}: {e}"
            ) from e

        self._set_last_processed_block(last_of_batch)

    def _fetch_and_process_block(
        self,
        block_number: int,
        deadline: float,
        errors: List[BaseException]
    ) -> None:
        try:
            block = self.ethereum_client.get_block_by_number(
                block_number, timeout=self._remaining(deadline)
            )
        except Exception as e:
            self.logger.error(f"could not get block {block_number}: {e}")
            self._add_processing_error(errors, e)
            return

        try:
            self.process_block(block)
        except Exception as e:
            self.logger.error(f"could not process block {block.number}: {e}")
            self._add_processing_error(errors, e)

    def process_block(self, block: Block) -> None:
        """
        Filter a block's transactions and save the observed ones.

        Raises:
            ParserError: If an address lookup fails
            StorageError: If the observed transactions cannot be saved
        """
        self.logger.info(
            f"processing block {block.number} with {len(block.transactions)} transactions"
        )

        observed = self.filter_observed_transactions(block.transactions)
        self.logger.info(f"block {block.number}: {len(observed)} observed transactions")

        if not observed:
            return

        try:
            self.transactions_repo.save_transactions(observed)
        except Exception as e:
            raise StorageError(f"could not save transactions: {e}") from e

    def filter_observed_transactions(
        self,
        transactions: Iterable[Transaction]
    ) -> List[Transaction]:
        """
        Keep the transactions whose sender or receiver is observed.

        Raises:
            ParserError: If an address lookup fails, the failure is never
                treated as "not observed"
        """
        observed = []
        for tx in transactions:
            try:
                from_observed = self.addresses_repo.is_address_observed(tx.from_address)
            except Exception as e:
                raise ParserError(
                    f"could not check if address `from` is observed: {e}"
                ) from e

            try:
                to_observed = self.addresses_repo.is_address_observed(tx.to_address)
            except Exception as e:
                raise ParserError(
                    f"could not check if address `to` is observed: {e}"
                ) from e

            if from_observed or to_observed:
                observed.append(tx)

        return observed

    # ------------------------------------------------------------------
    # Locked state helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _remaining(deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("batch deadline exceeded")
        return remaining

    def _set_last_processed_block(self, block_number: int) -> None:
        with self._lock:
            self._last_processed_block = block_number

    def _add_processing_error(self, errors: List[BaseException], error: BaseException) -> None:
        # Late tasks of an expired batch append to that batch's list only
        with self._lock:
            errors.append(error)

    def _get_processing_errors(self, errors: List[BaseException]) -> List[BaseException]:
        with self._lock:
            return list(errors)
