from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import pytest

from ethparser.ethereum_client import EthereumClient, decode_block
from ethparser.exceptions import BlockNotFoundError, InvalidQuantityError, RPCError


class FakeRpcClient:
    def __init__(self, result: Any) -> None:
        self.result = result
        self.calls: List[Tuple[str, Any, Optional[float]]] = []

    def call(self, method: str, params: Any = None, timeout: Optional[float] = None) -> Any:
        self.calls.append((method, params, timeout))
        return self.result


def block_payload(**overrides) -> dict:
    payload = {
        "number": "0x123",
        "hash": "0xblockhash",
        "parentHash": "0xparenthash",
        "timestamp": "0x6623a1bf",
        "transactions": [
            {
                "blockHash": "0xblockhash",
                "blockNumber": "0x123",
                "hash": "0xtx1",
                "from": "0x115295d8C90Fe127932C6fE78daE6D5a4B975098",
                "to": "0x225295d8C90Fe127932C6fE78daE6D5a4B975098",
                "value": "0x197D4DF19D605767337E9F14D3EEC8920E400000000000000",
                "gas": "0x5208",
                "nonce": "0x1",
            },
            {
                "blockHash": "0xblockhash",
                "blockNumber": "0x123",
                "hash": "0xtx2",
                "from": "0x115295d8C90Fe127932C6fE78daE6D5a4B975098",
                "to": None,
                "value": "0x0",
            },
        ],
    }
    payload.update(overrides)
    return payload


def test_get_most_recent_block_number() -> None:
    rpc = FakeRpcClient("0x12c91cd")
    client = EthereumClient(rpc_client=rpc)

    assert client.get_most_recent_block_number(timeout=3.0) == 19698125
    assert rpc.calls == [("eth_blockNumber", None, 3.0)]


def test_get_most_recent_block_number_invalid() -> None:
    client = EthereumClient(rpc_client=FakeRpcClient("12c91cd"))

    with pytest.raises(InvalidQuantityError, match="could not decode block number"):
        client.get_most_recent_block_number()


def test_get_block_by_number() -> None:
    rpc = FakeRpcClient(block_payload())
    client = EthereumClient(rpc_client=rpc)

    block = client.get_block_by_number(291)

    assert rpc.calls == [("eth_getBlockByNumber", ["0x123", True], None)]
    assert block.number == 291
    assert block.hash == "0xblockhash"
    assert block.parent_hash == "0xparenthash"
    assert block.timestamp == datetime.fromtimestamp(0x6623A1BF, tz=timezone.utc)
    assert len(block.transactions) == 2

    transfer, creation = block.transactions
    assert transfer.block_number == 291
    assert transfer.from_address == "0x115295d8C90Fe127932C6fE78daE6D5a4B975098"
    assert transfer.value == 10 ** 58
    assert creation.to_address == ""
    assert creation.value == 0


def test_get_block_by_number_missing_block() -> None:
    client = EthereumClient(rpc_client=FakeRpcClient(None))

    with pytest.raises(BlockNotFoundError) as exc_info:
        client.get_block_by_number(7)

    assert exc_info.value.block_number == 7


def test_block_with_transaction_hashes_only() -> None:
    with pytest.raises(RPCError, match="hashes only"):
        decode_block(block_payload(transactions=["0xtx1"]))


def test_malformed_transaction_value() -> None:
    payload = block_payload()
    payload["transactions"][0]["value"] = "1000"

    with pytest.raises(InvalidQuantityError, match="could not decode value"):
        decode_block(payload)


def test_malformed_block_number() -> None:
    with pytest.raises(InvalidQuantityError, match="could not decode number"):
        decode_block(block_payload(number="0x"))


def test_empty_block() -> None:
    block = decode_block(block_payload(transactions=[]))
    assert block.transactions == ()
