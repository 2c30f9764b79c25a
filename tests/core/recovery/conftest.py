"""Shared fakes for recovery tests."""

import pytest

from unstick.core.recovery.endpoints import EndpointPool
from unstick.core.recovery.tx_builder import TransactionBuilder
from unstick.core.wallet.profiles import signing_material_from_key
from unstick.providers.rpc import RpcTransportError
from unstick.services.redaction import redact_rpc_url


TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"

RPC_A = "https://rpc-a.example.com/v3/0123456789abcdef0123456789abcdef"
RPC_B = "https://rpc-b.example.com"
RPC_C = "https://rpc-c.example.com"


class FakeRpcClient:
    """Stands in for JsonRpcClient; answers come from a per-URL script."""

    def __init__(self, url, script, calls):
        self.url = url
        self.endpoint = redact_rpc_url(url)
        self.script = script
        self.calls = calls
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def close(self):
        self.closed = True

    def _answer(self, key, default=None):
        if key not in self.script:
            if default is not None:
                return default
            raise RpcTransportError(f"connection refused ({key})", endpoint=self.endpoint)
        value = self.script[key]
        if isinstance(value, list):
            if not value:
                if default is not None:
                    return default
                raise AssertionError(f"script for {self.url} {key} exhausted")
            value = value.pop(0)
        if isinstance(value, BaseException):
            raise value
        return value

    async def get_transaction_count(self, address, block_tag="latest"):
        self.calls.append((self.url, block_tag, address))
        return self._answer(block_tag)

    async def get_gas_price(self):
        self.calls.append((self.url, "gas_price", None))
        return self._answer("gas_price")

    async def send_raw_transaction(self, raw_tx):
        self.calls.append((self.url, "send", raw_tx))
        sends = sum(1 for c in self.calls if c[1] == "send")
        return self._answer("send", default=f"0x{sends:064x}")


class FakeRpc:
    def __init__(self):
        self.scripts = {}
        self.calls = []
        self.clients = []

    def script(self, url, **answers):
        self.scripts[url] = answers

    def factory(self, url):
        client = FakeRpcClient(url, self.scripts.setdefault(url, {}), self.calls)
        self.clients.append(client)
        return client

    def sends(self):
        """(url, raw_tx) for every broadcast, in order."""
        return [(url, raw) for url, kind, raw in self.calls if kind == "send"]


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def signer():
    return signing_material_from_key("profile-1", TEST_PRIVATE_KEY, name="test")


@pytest.fixture
def pool():
    return EndpointPool.from_urls([RPC_A, RPC_B, RPC_C])


@pytest.fixture
def readable_signing(monkeypatch):
    """Replace signing with a raw tx that spells out its nonce."""
    monkeypatch.setattr(
        TransactionBuilder,
        "sign",
        staticmethod(lambda tx, account: f"0xraw-nonce-{tx.nonce}"),
    )
