"""
Tests for the JSON-RPC client using httpx.MockTransport.
"""

import json

import httpx
import pytest

from unstick.providers.rpc import JsonRpcClient, RpcError, RpcTransportError

URL = "https://polygon-mainnet.infura.io/v3/0123456789abcdef0123456789abcdef"


def _client(handler) -> JsonRpcClient:
    transport = httpx.MockTransport(handler)
    return JsonRpcClient(URL, timeout=5.0, client=httpx.AsyncClient(transport=transport))


def _result(value):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": value})
    return handler


@pytest.mark.asyncio
async def test_transaction_count_request_shape():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x1a"})

    client = _client(handler)
    assert await client.get_transaction_count("0xabc", "pending") == 26
    assert seen[0]["method"] == "eth_getTransactionCount"
    assert seen[0]["params"] == ["0xabc", "pending"]
    assert seen[0]["jsonrpc"] == "2.0"


@pytest.mark.asyncio
async def test_gas_price_decoded():
    client = _client(_result(hex(31_000_000_000)))
    assert await client.get_gas_price() == 31_000_000_000


@pytest.mark.asyncio
async def test_send_raw_transaction_returns_hash():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0xhash"})

    client = _client(handler)
    assert await client.send_raw_transaction("f86b") == "0xhash"
    assert seen[0]["params"] == ["0xf86b"]


@pytest.mark.asyncio
async def test_json_rpc_error_message_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32000, "message": "replacement transaction underpriced"},
        })

    with pytest.raises(RpcError) as exc_info:
        await _client(handler).send_raw_transaction("0x00")

    assert str(exc_info.value) == "replacement transaction underpriced"
    assert exc_info.value.endpoint == "https://polygon-mainnet.infura.io/v3/***"


@pytest.mark.asyncio
async def test_http_status_error():
    with pytest.raises(RpcError) as exc_info:
        await _client(lambda request: httpx.Response(429, text="slow down")).get_gas_price()

    assert exc_info.value.status_code == 429
    assert not isinstance(exc_info.value, RpcTransportError)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 429, 500])
async def test_error_body_on_http_error_status_keeps_upstream_message(status):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": -32000, "message": "replacement transaction underpriced"},
        })

    with pytest.raises(RpcError) as exc_info:
        await _client(handler).send_raw_transaction("0x00")

    assert str(exc_info.value) == "replacement transaction underpriced"
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_http_error_status_with_json_but_no_error_member():
    with pytest.raises(RpcError, match="RPC HTTP 503") as exc_info:
        await _client(lambda request: httpx.Response(503, json={"status": "down"})).get_gas_price()

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_empty_result_is_an_error():
    with pytest.raises(RpcError, match="empty result"):
        await _client(_result(None)).get_gas_price()


@pytest.mark.asyncio
async def test_malformed_json_is_an_error():
    with pytest.raises(RpcError, match="malformed"):
        await _client(lambda request: httpx.Response(200, text="<html>")).get_gas_price()


@pytest.mark.asyncio
async def test_non_numeric_quantity_is_an_error():
    with pytest.raises(RpcError, match="non-numeric"):
        await _client(_result("0xzz")).get_transaction_count("0xabc")


@pytest.mark.asyncio
async def test_timeout_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(RpcTransportError, match="timeout"):
        await _client(handler).get_gas_price()


@pytest.mark.asyncio
async def test_connection_error_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RpcTransportError) as exc_info:
        await _client(handler).get_gas_price()

    assert "0123456789abcdef" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_context_manager_closes_owned_client():
    client = JsonRpcClient("https://rpc.example.com", timeout=1.0)
    async with client:
        pass
    assert client._client.is_closed
