"""
Endpoint prober for the read-only diagnostic path.

Walks the pool in order and returns the first endpoint that reports the
confirmed nonce, pending nonce and gas price for an account. All three values
come from the same endpoint so they describe one consistent view of the chain.
"""

import asyncio
from typing import Callable, Optional

import structlog

from unstick.config import settings
from unstick.providers.rpc import JsonRpcClient

from .endpoints import EndpointPool
from .errors import EndpointsUnavailableError
from .models import Diagnosis, SequenceWindow


logger = structlog.stdlib.get_logger(__name__)

ClientFactory = Callable[[str], JsonRpcClient]


def default_client_factory(url: str) -> JsonRpcClient:
    return JsonRpcClient(url, timeout=settings.rpc_timeout_seconds)


class EndpointProber:
    """
    Finds a working endpoint and reads an account's nonce window from it.

    An endpoint that fails any nonce query is skipped entirely. An endpoint
    that answers both nonce queries but not the gas price is remembered as a
    fallback: if no later endpoint gives the full picture, that partial
    diagnosis is returned with the fee level marked unavailable.
    """

    def __init__(
        self,
        pool: EndpointPool,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.pool = pool
        self.client_factory = client_factory or default_client_factory

    async def _probe_endpoint(self, url: str, address: str) -> Diagnosis:
        async with self.client_factory(url) as client:
            confirmed, pending, gas_price = await asyncio.gather(
                client.get_transaction_count(address, "latest"),
                client.get_transaction_count(address, "pending"),
                client.get_gas_price(),
                return_exceptions=True,
            )
            endpoint = client.endpoint

        for value in (confirmed, pending):
            if isinstance(value, BaseException):
                raise value

        window = SequenceWindow(confirmed=confirmed, pending=pending)

        if isinstance(gas_price, BaseException):
            logger.warning(
                "probe_fee_unavailable",
                endpoint=endpoint,
                error=str(gas_price),
            )
            gas_price = None

        return Diagnosis(
            endpoint=endpoint,
            address=address,
            window=window,
            gas_price_wei=gas_price,
        )

    async def probe(self, address: str) -> Diagnosis:
        """
        Diagnose the nonce window for address.

        Raises:
            EndpointsUnavailableError: No endpoint reported both nonces
        """
        partial: Optional[Diagnosis] = None
        attempted = []
        redacted_urls = self.pool.redacted()

        for index, url in enumerate(self.pool):
            redacted = redacted_urls[index]
            attempted.append(redacted)
            try:
                diagnosis = await self._probe_endpoint(url, address)
            except Exception as e:
                logger.warning(
                    "probe_endpoint_failed",
                    endpoint=redacted,
                    position=index,
                    error=str(e),
                )
                continue

            if diagnosis.fee_level_available:
                logger.info(
                    "diagnose_complete",
                    endpoint=diagnosis.endpoint,
                    address=address,
                    confirmed=diagnosis.window.confirmed,
                    pending=diagnosis.window.pending,
                    stuck_count=diagnosis.stuck_count,
                )
                return diagnosis

            if partial is None:
                partial = diagnosis

        if partial is not None:
            logger.info(
                "diagnose_complete",
                endpoint=partial.endpoint,
                address=address,
                confirmed=partial.window.confirmed,
                pending=partial.window.pending,
                stuck_count=partial.stuck_count,
                fee_level_available=False,
            )
            return partial

        raise EndpointsUnavailableError(
            f"All {len(self.pool)} RPC endpoints failed",
            attempted=attempted,
        )
