"""
Stuck Nonce Recovery

Diagnoses and heals nonce gaps left by transactions that never confirmed:
- EndpointProber: reads confirmed/pending nonces from the first working endpoint
- GapHealer: replaces each stuck nonce with a zero-value self-transfer
- RecoveryService: the diagnose/heal entry points used by the API and CLI

Usage:
    from unstick.core.recovery.service import get_recovery_service

    service = get_recovery_service()
    report = await service.heal("profile-1", fee_rate_gwei=250)

Only the leaf modules are re-exported here; import the prober, healer and
service from their own modules.
"""

from .errors import (
    SendErrorKind,
    RecoveryError,
    InvalidRequestError,
    ProfileNotFoundError,
    SigningMaterialError,
    EndpointsUnavailableError,
    classify_send_error,
)
from .endpoints import (
    EndpointPool,
    EndpointCursor,
    build_endpoint_pool,
)
from .models import (
    SequenceWindow,
    FeePolicy,
    AttemptResult,
    RecoveryReport,
    Diagnosis,
)

__all__ = [
    # Errors
    "SendErrorKind",
    "RecoveryError",
    "InvalidRequestError",
    "ProfileNotFoundError",
    "SigningMaterialError",
    "EndpointsUnavailableError",
    "classify_send_error",
    # Endpoints
    "EndpointPool",
    "EndpointCursor",
    "build_endpoint_pool",
    # Models
    "SequenceWindow",
    "FeePolicy",
    "AttemptResult",
    "RecoveryReport",
    "Diagnosis",
]
