"""
Gap healer.

Replaces every stuck nonce of an account with a zero-value self-transfer,
strictly in ascending nonce order. Per-attempt failures are classified:

- rate limited / transport failure: move to the next endpoint and retry the
  same nonce; on the last endpoint it is recorded like any other failure
- nonce already used: recorded, continue with the next nonce
- replacement underpriced: recorded, abort the rest of the run
- anything else: recorded, continue with the next nonce

Runs for the same account must not overlap. AccountLocks provides the
per-account serialization when the caller does not.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import structlog

from unstick.config import settings
from unstick.core.wallet.profiles import SigningMaterial
from unstick.providers.rpc import JsonRpcClient

from .endpoints import EndpointCursor, EndpointPool
from .errors import EndpointsUnavailableError, SendErrorKind, classify_send_error
from .models import AttemptResult, FeePolicy, RecoveryReport, SequenceWindow
from .prober import ClientFactory, default_client_factory
from .tx_builder import TransactionBuilder


logger = structlog.stdlib.get_logger(__name__)

StopCheck = Callable[[], Awaitable[bool]]


class AccountLocks:
    """One asyncio.Lock per account, created on first use."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_key(self, account: str) -> str:
        return account.lower()

    def get_lock(self, account: str) -> asyncio.Lock:
        key = self._get_key(account)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def is_locked(self, account: str) -> bool:
        lock = self._locks.get(self._get_key(account))
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, account: str) -> AsyncIterator[None]:
        """Hold the account's lock; released on every exit path."""
        async with self.get_lock(account):
            yield


async def _settle(task: "asyncio.Future[Any]") -> Any:
    """Wait for a task and return its result or the exception it raised."""
    try:
        return await task
    except Exception as e:
        return e


class GapHealer:
    """Sequential retry/failover loop over the stuck nonce range."""

    def __init__(
        self,
        pool: EndpointPool,
        client_factory: Optional[ClientFactory] = None,
        chain_id: Optional[int] = None,
        gas_limit: Optional[int] = None,
    ):
        self.pool = pool
        self.client_factory = client_factory or default_client_factory
        self.chain_id = chain_id if chain_id is not None else settings.chain_id
        self.gas_limit = gas_limit if gas_limit is not None else settings.self_transfer_gas

    async def _read_window(self, client: JsonRpcClient, address: str) -> SequenceWindow:
        try:
            confirmed, pending = await asyncio.gather(
                client.get_transaction_count(address, "latest"),
                client.get_transaction_count(address, "pending"),
            )
            return SequenceWindow(confirmed=confirmed, pending=pending)
        except Exception as e:
            logger.warning(
                "heal_window_unavailable",
                endpoint=client.endpoint,
                error=str(e),
            )
            raise EndpointsUnavailableError(
                f"Could not read nonces from {client.endpoint}: {e}",
                attempted=[client.endpoint],
            ) from e

    def _sign(self, signer: SigningMaterial, nonce: int, fee: FeePolicy) -> str:
        tx = TransactionBuilder.build_self_transfer(
            chain_id=self.chain_id,
            address=signer.address,
            nonce=nonce,
            gas_price_wei=fee.gas_price_wei,
            gas_limit=self.gas_limit,
        )
        return TransactionBuilder.sign(tx, signer.account)

    async def heal(
        self,
        signer: SigningMaterial,
        fee: FeePolicy,
        should_stop: Optional[StopCheck] = None,
    ) -> RecoveryReport:
        """
        Replace every stuck nonce of signer's account.

        Args:
            signer: Signing material for the account
            fee: Gas price used for every replacement
            should_stop: Polled before each new broadcast; returning True
                ends the run after the previous broadcast settled

        Returns:
            RecoveryReport with one entry per nonce attempted

        Raises:
            EndpointsUnavailableError: The first endpoint could not report
                the nonce window (nothing has been broadcast)
        """
        cursor = self.pool.cursor()
        clients: Dict[int, JsonRpcClient] = {}
        log = logger.bind(address=signer.address, profile_id=signer.profile_id)

        def client_for(position: EndpointCursor) -> JsonRpcClient:
            if position.index not in clients:
                clients[position.index] = self.client_factory(position.current)
            return clients[position.index]

        try:
            window = await self._read_window(client_for(cursor), signer.address)
            report = RecoveryReport(window=window, fee=fee, endpoint=cursor.current_redacted)

            if window.stuck_count == 0:
                log.info(
                    "heal_nothing_to_do",
                    confirmed=window.confirmed,
                    pending=window.pending,
                    endpoint=report.endpoint,
                )
                return report

            log.info(
                "heal_started",
                confirmed=window.confirmed,
                pending=window.pending,
                stuck_count=window.stuck_count,
                gas_price_gwei=str(fee.gas_price_gwei),
                endpoint=cursor.current_redacted,
            )

            try:
                await self._run(signer, fee, window, cursor, client_for, report, log, should_stop)
            finally:
                report.endpoint = cursor.current_redacted
                log.info(
                    "heal_complete",
                    sent=report.sent,
                    failed=report.failed,
                    aborted=report.aborted,
                    cancelled=report.cancelled,
                    endpoint=report.endpoint,
                    report=report.to_dict(),
                )
            return report
        finally:
            for client in clients.values():
                await client.close()

    async def _run(
        self,
        signer: SigningMaterial,
        fee: FeePolicy,
        window: SequenceWindow,
        cursor: EndpointCursor,
        client_for: Callable[[EndpointCursor], JsonRpcClient],
        report: RecoveryReport,
        log: Any,
        should_stop: Optional[StopCheck],
    ) -> None:
        nonce = window.confirmed
        while nonce < window.pending:
            if should_stop is not None and await should_stop():
                report.cancelled = True
                log.warning("heal_cancelled", next_nonce=nonce, endpoint=cursor.current_redacted)
                return

            client = client_for(cursor)
            try:
                raw_tx = self._sign(signer, nonce, fee)
                send = asyncio.ensure_future(client.send_raw_transaction(raw_tx))
                try:
                    tx_hash = await asyncio.shield(send)
                except asyncio.CancelledError:
                    # Already broadcast transactions stay broadcast; record it
                    report.cancelled = True
                    outcome = await _settle(send)
                    if isinstance(outcome, Exception):
                        report.results.append(AttemptResult(nonce=nonce, error=str(outcome)))
                    else:
                        report.results.append(AttemptResult(nonce=nonce, tx_hash=outcome))
                    log.warning("heal_cancelled", nonce=nonce, endpoint=cursor.current_redacted)
                    raise
            except Exception as e:
                kind = classify_send_error(e)

                if kind is SendErrorKind.RATE_LIMITED and cursor.has_next():
                    previous = cursor.current_redacted
                    cursor.advance()
                    log.warning(
                        "heal_endpoint_failover",
                        nonce=nonce,
                        from_endpoint=previous,
                        to_endpoint=cursor.current_redacted,
                        error=str(e),
                    )
                    continue

                report.results.append(AttemptResult(nonce=nonce, error=str(e)))

                if kind is SendErrorKind.UNDERPRICED:
                    report.aborted = True
                    log.error(
                        "heal_underpriced_abort",
                        nonce=nonce,
                        gas_price_gwei=str(fee.gas_price_gwei),
                        remaining=window.pending - nonce - 1,
                        error=str(e),
                    )
                    return

                if kind is SendErrorKind.SEQUENCE_ALREADY_USED:
                    log.info("heal_nonce_already_used", nonce=nonce, error=str(e))
                else:
                    log.warning(
                        "heal_attempt_failed",
                        nonce=nonce,
                        kind=kind.value,
                        endpoint=cursor.current_redacted,
                        error=str(e),
                    )
                nonce += 1
                continue

            report.results.append(AttemptResult(nonce=nonce, tx_hash=tx_hash))
            log.info("heal_attempt_sent", nonce=nonce, tx_hash=tx_hash, endpoint=cursor.current_redacted)
            nonce += 1
