"""
Recovery service: the two operations exposed to request handlers.

    service = get_recovery_service()
    diagnosis = await service.diagnose("profile-1")
    report = await service.heal("profile-1", fee_rate_gwei=250)
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from unstick.config import Settings, settings as default_settings
from unstick.core.wallet.profiles import SignerResolver, get_profile_store, resolve_signer

from .endpoints import EndpointPool, build_endpoint_pool
from .errors import InvalidRequestError
from .healer import AccountLocks, GapHealer, StopCheck
from .models import Diagnosis, FeePolicy, RecoveryReport
from .prober import ClientFactory, EndpointProber


logger = structlog.stdlib.get_logger(__name__)

FeeRate = Union[Decimal, float, int, str]


class RecoveryService:
    """
    Diagnose and heal stuck nonces for one account at a time.

    Holds no per-account state apart from the optional heal locks. Signing
    material is resolved on every call and never kept.
    """

    def __init__(
        self,
        resolver: SignerResolver,
        pool: Optional[EndpointPool] = None,
        client_factory: Optional[ClientFactory] = None,
        config: Optional[Settings] = None,
        locks: Optional[AccountLocks] = None,
    ):
        self.config = config or default_settings
        self.resolver = resolver
        self.pool = pool or build_endpoint_pool(self.config)
        self.prober = EndpointProber(self.pool, client_factory=client_factory)
        self.healer = GapHealer(
            self.pool,
            client_factory=client_factory,
            chain_id=self.config.chain_id,
            gas_limit=self.config.self_transfer_gas,
        )
        self.locks = locks if locks is not None else (
            AccountLocks() if self.config.serialize_heals else None
        )

    @staticmethod
    def _require_account_id(account_id: Optional[str]) -> str:
        if account_id is None or not str(account_id).strip():
            raise InvalidRequestError("profileId required")
        return str(account_id).strip()

    def fee_policy(self, fee_rate_gwei: Optional[FeeRate] = None) -> FeePolicy:
        """Validated fee policy; the configured default applies when omitted."""
        if fee_rate_gwei is None:
            fee_rate_gwei = self.config.default_gas_price_gwei
        return FeePolicy.from_gwei(fee_rate_gwei, max_gwei=self.config.max_gas_price_gwei)

    async def diagnose(self, account_id: Optional[str]) -> Diagnosis:
        """
        Report confirmed/pending nonces for the account.

        Raises:
            InvalidRequestError, ProfileNotFoundError, SigningMaterialError:
                before any network call
            EndpointsUnavailableError: every endpoint failed
        """
        account_id = self._require_account_id(account_id)
        signer = await resolve_signer(self.resolver, account_id)
        return await self.prober.probe(signer.address)

    async def heal(
        self,
        account_id: Optional[str],
        fee_rate_gwei: Optional[FeeRate] = None,
        should_stop: Optional[StopCheck] = None,
    ) -> RecoveryReport:
        """
        Replace every stuck nonce of the account with a self-transfer.

        Raises:
            InvalidRequestError, ProfileNotFoundError, SigningMaterialError:
                before any network call
            EndpointsUnavailableError: the nonce window could not be read;
                nothing was broadcast
        """
        account_id = self._require_account_id(account_id)
        fee = self.fee_policy(fee_rate_gwei)
        signer = await resolve_signer(self.resolver, account_id)

        if self.locks is None:
            return await self.healer.heal(signer, fee, should_stop=should_stop)

        if self.locks.is_locked(signer.address):
            logger.info("heal_waiting_for_lock", address=signer.address, profile_id=account_id)
        async with self.locks.hold(signer.address):
            return await self.healer.heal(signer, fee, should_stop=should_stop)


_recovery_service: Optional[RecoveryService] = None


def get_recovery_service() -> RecoveryService:
    """Get the singleton recovery service."""
    global _recovery_service
    if _recovery_service is None:
        _recovery_service = RecoveryService(resolver=get_profile_store())
    return _recovery_service
