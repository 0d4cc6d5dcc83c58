from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from ethparser.config import ParserConfig
from ethparser.exceptions import RPCError
from ethparser.models import Block, Transaction


ADDRESS_0 = "0x115295d8C90Fe127932C6fE78daE6D5a4B975098"
ADDRESS_1 = "0x225295d8C90Fe127932C6fE78daE6D5a4B975098"


class RecordingLogger:
    """Logger stub keeping every message for assertions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.infos: List[str] = []
        self.errors: List[str] = []

    def info(self, msg, *args, **kwargs) -> None:
        with self._lock:
            self.infos.append(str(msg))

    def error(self, msg, *args, **kwargs) -> None:
        with self._lock:
            self.errors.append(str(msg))

    def got_info(self, fragment: str) -> bool:
        with self._lock:
            return any(fragment in m for m in self.infos)

    def got_error(self, fragment: str) -> bool:
        with self._lock:
            return any(fragment in m for m in self.errors)


class FakeEthereumClient:
    """In-memory chain: blocks not given explicitly are empty."""

    def __init__(
        self,
        most_recent_block: int,
        blocks: Optional[Dict[int, Block]] = None,
        failing_blocks: Iterable[int] = (),
        block_delay: float = 0.0,
    ) -> None:
        self.most_recent_block = most_recent_block
        self.blocks = dict(blocks or {})
        self.failing_blocks = set(failing_blocks)
        self.block_delay = block_delay
        self._lock = threading.Lock()
        self.requested: List[int] = []
        self.active = 0
        self.max_active = 0

    def get_most_recent_block_number(self, timeout: Optional[float] = None) -> int:
        return self.most_recent_block

    def get_block_by_number(self, block_number: int, timeout: Optional[float] = None) -> Block:
        with self._lock:
            self.requested.append(block_number)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.block_delay:
                time.sleep(self.block_delay)
        finally:
            with self._lock:
                self.active -= 1
        if block_number in self.failing_blocks:
            raise RPCError(f"block {block_number} unavailable")
        if block_number in self.blocks:
            return self.blocks[block_number]
        return make_block(block_number)


def make_tx(
    tx_hash: str,
    from_address: str = ADDRESS_0,
    to_address: str = ADDRESS_1,
    block_number: int = 1,
    value: int = 123,
) -> Transaction:
    return Transaction(
        block_hash=f"0xblock{block_number}",
        block_number=block_number,
        hash=tx_hash,
        from_address=from_address,
        to_address=to_address,
        value=value,
    )


def make_block(number: int, transactions: Iterable[Transaction] = ()) -> Block:
    return Block(
        number=number,
        hash=f"0xblock{number}",
        parent_hash=f"0xblock{number - 1}",
        timestamp=datetime(2024, 4, 20, tzinfo=timezone.utc),
        transactions=tuple(transactions),
    )


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def fast_config() -> ParserConfig:
    return ParserConfig(
        batch_process_timeout=2.0,
        no_new_blocks_pause=0.05,
        max_blocks_per_batch=10,
    )
