from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from ethparser.config import CONFIG
from ethparser.exceptions import RPCError
from ethparser.jsonrpc_client import JsonRpcClient


ENDPOINT = "https://test:80"


def make_session(body=None, status_error: Exception = None) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    session = MagicMock()
    session.headers = {}
    session.post.return_value = response
    return session


def test_missing_endpoint(monkeypatch) -> None:
    monkeypatch.setattr(CONFIG.rpc, "endpoint", "")

    with pytest.raises(ValueError, match="rpc endpoint is required"):
        JsonRpcClient(endpoint="", session=make_session())


def test_call_returns_result() -> None:
    session = make_session({"jsonrpc": "2.0", "id": 1, "result": "0x10"})
    client = JsonRpcClient(ENDPOINT, timeout=5.0, session=session)

    assert client.call("eth_blockNumber") == "0x10"

    session.post.assert_called_once_with(
        ENDPOINT,
        json={"jsonrpc": "2.0", "method": "eth_blockNumber", "id": 1},
        timeout=5.0,
    )
    assert session.headers["Content-Type"] == "application/json"


def test_call_sends_params_and_unique_ids() -> None:
    session = make_session({"jsonrpc": "2.0", "id": 1, "result": {}})
    client = JsonRpcClient(ENDPOINT, session=session)

    client.call("eth_getBlockByNumber", ["0x1", True], timeout=2.0)
    client.call("eth_getBlockByNumber", ["0x2", True], timeout=2.0)

    first, second = session.post.call_args_list
    assert first.kwargs["json"]["params"] == ["0x1", True]
    assert first.kwargs["timeout"] == 2.0
    assert first.kwargs["json"]["id"] != second.kwargs["json"]["id"]


def test_call_requires_method() -> None:
    client = JsonRpcClient(ENDPOINT, session=make_session())

    with pytest.raises(ValueError, match="method is required"):
        client.call("")


def test_rpc_error_object() -> None:
    session = make_session({
        "jsonrpc": "2.0",
        "id": 1,
        "error": {"code": -32601, "message": "the method does not exist"},
    })
    client = JsonRpcClient(ENDPOINT, session=session)

    with pytest.raises(RPCError, match="the method does not exist") as exc_info:
        client.call("eth_unknown")

    assert exc_info.value.code == -32601


def test_http_error_status() -> None:
    session = make_session(status_error=requests.HTTPError("502 Bad Gateway"))
    client = JsonRpcClient(ENDPOINT, session=session)

    with pytest.raises(RPCError, match="could not call eth_blockNumber"):
        client.call("eth_blockNumber")


def test_undecodable_body() -> None:
    session = make_session()
    session.post.return_value.json.side_effect = ValueError("Expecting value")
    client = JsonRpcClient(ENDPOINT, session=session)

    with pytest.raises(RPCError, match="could not decode eth_blockNumber response"):
        client.call("eth_blockNumber")


def test_connection_errors_are_retried(monkeypatch) -> None:
    monkeypatch.setattr("ethparser.utils.time.sleep", lambda _: None)
    session = make_session()
    session.post.side_effect = requests.ConnectionError("connection refused")
    client = JsonRpcClient(ENDPOINT, session=session)

    with pytest.raises(RPCError, match="connection refused"):
        client.call("eth_blockNumber")

    assert session.post.call_count == CONFIG.rpc.max_retries + 1


def test_connection_error_then_success(monkeypatch) -> None:
    monkeypatch.setattr("ethparser.utils.time.sleep", lambda _: None)
    session = make_session({"jsonrpc": "2.0", "id": 1, "result": "0x1"})
    ok_response = session.post.return_value
    session.post.side_effect = [requests.ConnectionError("reset"), ok_response]
    client = JsonRpcClient(ENDPOINT, session=session)

    assert client.call("eth_blockNumber") == "0x1"
    assert session.post.call_count == 2


def test_call_with_timeout_is_not_retried(monkeypatch) -> None:
    monkeypatch.setattr("ethparser.utils.time.sleep", lambda _: None)
    session = make_session()
    session.post.side_effect = requests.Timeout("read timed out")
    client = JsonRpcClient(ENDPOINT, session=session)

    with pytest.raises(RPCError, match="read timed out"):
        client.call("eth_getBlockByNumber", ["0x1", True], timeout=0.5)

    session.post.assert_called_once()
    assert session.post.call_args.kwargs["timeout"] == 0.5
