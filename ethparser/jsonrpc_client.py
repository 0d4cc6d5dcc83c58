"""
JSON-RPC 2.0 client for Ethereum nodes.

This module sends JSON-RPC requests over HTTP and unwraps the result
field of the response, turning transport failures and RPC error objects
into RPCError.
"""

import itertools
import requests
from typing import Any, Dict, Optional

from .config import CONFIG
from .exceptions import RPCError
from .utils import setup_logger, retry_with_backoff


JSONRPC_VERSION = "2.0"


class JsonRpcClient:
    """
    Minimal JSON-RPC client over HTTP POST.

    Features:
    - Shared HTTP session for connection reuse across worker threads
    - Automatic retry with exponential backoff on connection failures
    - Unique request ids
    """

    def __init__(
        self,
        endpoint: str = None,
        timeout: float = None,
        session: requests.Session = None
    ):
        """
        Initialize the JSON-RPC client.

        Args:
            endpoint: Node URL (defaults to config)
            timeout: Default request timeout in seconds (defaults to config)
            session: HTTP session to use (a new one is created if omitted)

        Raises:
            ValueError: If no endpoint is configured
        """
        self.endpoint = endpoint or CONFIG.rpc.endpoint
        if not self.endpoint:
            raise ValueError("rpc endpoint is required")

        self.timeout = timeout or CONFIG.rpc.timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        self.logger = setup_logger(__name__)

        self._ids = itertools.count(1)

    def _build_payload(self, method: str, params: Any) -> Dict[str, Any]:
        if not method:
            raise ValueError("method is required")

        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "method": method,
            "id": next(self._ids),
        }
        if params is not None:
            payload["params"] = params
        return payload

    def _send(self, payload: Dict[str, Any], timeout: float) -> requests.Response:
        return self.session.post(self.endpoint, json=payload, timeout=timeout)

    @retry_with_backoff(
        max_retries=CONFIG.rpc.max_retries,
        base_delay=0.5,
        max_delay=5.0,
        exceptions=(requests.ConnectionError, requests.Timeout)
    )
    def _post(self, payload: Dict[str, Any], timeout: float) -> requests.Response:
        return self._send(payload, timeout)

    def call(self, method: str, params: Any = None, timeout: Optional[float] = None) -> Any:
        """
        Call an RPC method and return its decoded result.

        Args:
            method: RPC method name (e.g. "eth_blockNumber")
            params: Positional parameters, omitted from the request when None
            timeout: Request timeout in seconds (defaults to the client timeout).
                Requests with a caller-given timeout are sent once, without
                retries

        Returns:
            Any: The "result" member of the response

        Raises:
            RPCError: If the request fails or the node returns an error object
        """
        payload = self._build_payload(method, params)

        try:
            if timeout is None:
                response = self._post(payload, self.timeout)
            else:
                response = self._send(payload, timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise RPCError(f"could not call {method}: {e}") from e
        except ValueError as e:
            raise RPCError(f"could not decode {method} response: {e}") from e

        if not isinstance(body, dict):
            raise RPCError(f"unexpected {method} response: {body!r}")

        error = body.get("error")
        if error:
            self.logger.error(f"RPC error calling {method}: {error}")
            if isinstance(error, dict):
                raise RPCError(
                    f"rpc error: {error.get('message', 'unknown error')}",
                    code=error.get("code")
                )
            raise RPCError(f"rpc error: {error}")

        return body.get("result")

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self.session.close()
