"""
Minimal async JSON-RPC client bound to a single endpoint.

Every failure is raised as RpcError (or RpcTransportError for timeouts and
connection problems) carrying the redacted endpoint, so callers can classify
it without ever seeing the raw URL.
"""

from typing import Any, List, Optional

import httpx

from unstick.services.redaction import redact_rpc_url


class RpcError(Exception):
    """A single JSON-RPC call against one endpoint failed."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        self.method = method


class RpcTransportError(RpcError):
    """Timeout or connection failure before an RPC response arrived."""


def _error_message(body: Any) -> Optional[str]:
    """Upstream error text from a JSON-RPC body, or None when there is none."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, str):
        return error
    return str(error)


class JsonRpcClient:
    """JSON-RPC over HTTP for one endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.endpoint = redact_rpc_url(url)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout
        self._request_id = 0

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call and return its result member."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        try:
            response = await self._client.post(self.url, json=payload, timeout=self._timeout)
        except httpx.TimeoutException as e:
            raise RpcTransportError(
                f"RPC timeout after {self._timeout}s calling {method}",
                endpoint=self.endpoint,
                method=method,
            ) from e
        except httpx.TransportError as e:
            raise RpcTransportError(
                f"RPC connection error calling {method}: {type(e).__name__}",
                endpoint=self.endpoint,
                method=method,
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise RpcError(
                    f"RPC HTTP {response.status_code}",
                    endpoint=self.endpoint,
                    status_code=response.status_code,
                    method=method,
                ) from e
            raise RpcError(
                f"RPC returned malformed JSON for {method}",
                endpoint=self.endpoint,
                status_code=response.status_code,
                method=method,
            ) from e

        # A JSON-RPC error member wins over the HTTP status, whatever the status
        message = _error_message(body)
        if message is not None:
            raise RpcError(
                message,
                endpoint=self.endpoint,
                status_code=response.status_code,
                method=method,
            )

        if response.status_code >= 400:
            raise RpcError(
                f"RPC HTTP {response.status_code}",
                endpoint=self.endpoint,
                status_code=response.status_code,
                method=method,
            )

        if not isinstance(body, dict):
            raise RpcError(
                f"RPC returned unexpected payload for {method}",
                endpoint=self.endpoint,
                method=method,
            )

        result = body.get("result")
        if result is None:
            raise RpcError(
                f"RPC returned empty result for {method}",
                endpoint=self.endpoint,
                method=method,
            )
        return result

    async def _call_quantity(self, method: str, params: List[Any]) -> int:
        result = await self.call(method, params)
        try:
            return int(result, 16) if isinstance(result, str) else int(result)
        except (TypeError, ValueError) as e:
            raise RpcError(
                f"RPC returned non-numeric result for {method}: {result!r}",
                endpoint=self.endpoint,
                method=method,
            ) from e

    async def get_transaction_count(self, address: str, block_tag: str = "latest") -> int:
        """Next nonce for address at the given block tag ("latest" or "pending")."""
        return await self._call_quantity("eth_getTransactionCount", [address, block_tag])

    async def get_gas_price(self) -> int:
        """Current network gas price in wei."""
        return await self._call_quantity("eth_gasPrice", [])

    async def send_raw_transaction(self, raw_tx: str) -> str:
        """Broadcast a signed transaction and return its hash."""
        if not raw_tx.startswith("0x"):
            raw_tx = f"0x{raw_tx}"
        result = await self.call("eth_sendRawTransaction", [raw_tx])
        if not isinstance(result, str):
            raise RpcError(
                f"RPC returned non-hash result for eth_sendRawTransaction: {result!r}",
                endpoint=self.endpoint,
                method="eth_sendRawTransaction",
            )
        return result
