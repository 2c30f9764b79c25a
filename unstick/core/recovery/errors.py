"""
Error Classification

Defines the error types raised by the recovery core and the classifier that
maps a failed broadcast onto the retry policy of a heal run.
"""

import re
from enum import Enum
from typing import Optional

from unstick.providers.rpc import RpcError, RpcTransportError


class SendErrorKind(str, Enum):
    """Outcome classes for a failed replacement broadcast."""

    RATE_LIMITED = "rate_limited"                    # Fail over to the next endpoint, same nonce
    SEQUENCE_ALREADY_USED = "sequence_already_used"  # Nonce resolved itself, move on
    UNDERPRICED = "underpriced"                      # Fee too low, abort the run
    OTHER = "other"                                  # Record and move on


class RecoveryError(Exception):
    """Base class for errors surfaced to callers of the recovery core."""

    code: str = "recovery_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(RecoveryError):
    """Missing or malformed input (account id, fee rate)."""

    code = "invalid_request"


class ProfileNotFoundError(RecoveryError):
    """No signing material is known for the account id."""

    code = "profile_not_found"

    def __init__(self, account_id: str):
        super().__init__(f"Profile not found: {account_id}")
        self.account_id = account_id


class SigningMaterialError(RecoveryError):
    """The profile exists but its key cannot be used for signing."""

    code = "invalid_signing_material"


class EndpointsUnavailableError(RecoveryError):
    """No endpoint in the pool could answer the status queries."""

    code = "all_endpoints_unavailable"

    def __init__(self, message: str = "All RPC endpoints failed", attempted: Optional[list[str]] = None):
        super().__init__(message)
        self.attempted = attempted or []


# Signatures are matched case-insensitively against the upstream error text.
UNDERPRICED_PATTERNS = (
    "replacement transaction underpriced",
    "replacement fee too low",
    "replacement_underpriced",
    "transaction underpriced",
)

SEQUENCE_USED_PATTERNS = (
    "nonce too low",
    "nonce has already been used",
    "already known",
    "nonce_expired",
)

RATE_LIMIT_PATTERNS = (
    "too many",
    "rate limit",
    "quota",
    "network_error",
    "could not detect network",
    "bad result from backend",
    "capacity exceeded",
)

# A 429 status quoted in the message text, never a bare run of digits
RATE_LIMIT_STATUS_RE = re.compile(r"\b(?:http|status(?: code)?)[\s:]*429\b")


def classify_send_error(error: BaseException) -> SendErrorKind:
    """
    Classify a broadcast failure.

    Fee problems win over everything else since they make the rest of the run
    pointless; a stale nonce is next; throttling and transport failures only
    matter when nothing more specific matched.
    """
    message = str(error).lower()

    if any(p in message for p in UNDERPRICED_PATTERNS):
        return SendErrorKind.UNDERPRICED

    if any(p in message for p in SEQUENCE_USED_PATTERNS):
        return SendErrorKind.SEQUENCE_ALREADY_USED

    if isinstance(error, RpcTransportError):
        return SendErrorKind.RATE_LIMITED

    if isinstance(error, RpcError) and error.status_code is not None and (
        error.status_code == 429 or error.status_code >= 500
    ):
        return SendErrorKind.RATE_LIMITED

    if any(p in message for p in RATE_LIMIT_PATTERNS) or RATE_LIMIT_STATUS_RE.search(message):
        return SendErrorKind.RATE_LIMITED

    return SendErrorKind.OTHER
