"""
Recovery models and types.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Union

from .errors import InvalidRequestError


WEI_PER_GWEI = Decimal(10) ** 9


def wei_to_gwei(wei: int) -> float:
    return float(Decimal(wei) / WEI_PER_GWEI)


@dataclass(frozen=True)
class SequenceWindow:
    """Confirmed vs pending nonce for an account."""
    confirmed: int                              # Next nonce a block will accept
    pending: int                                # Next nonce counting the mempool

    def __post_init__(self):
        if self.confirmed < 0 or self.pending < 0:
            raise ValueError("Nonces must be non-negative")
        if self.pending < self.confirmed:
            raise ValueError(
                f"Pending nonce {self.pending} is below confirmed nonce {self.confirmed}"
            )

    @property
    def stuck_count(self) -> int:
        return self.pending - self.confirmed

    @property
    def stuck_nonces(self) -> range:
        return range(self.confirmed, self.pending)


@dataclass(frozen=True)
class FeePolicy:
    """Single legacy gas price applied to every replacement in one run."""
    gas_price_gwei: Decimal
    gas_price_wei: int

    @classmethod
    def from_gwei(
        cls,
        value: Union[Decimal, float, int, str],
        max_gwei: Optional[Decimal] = None,
    ) -> "FeePolicy":
        """
        Validate a caller-supplied fee rate and convert it to wei.

        Rounds half-up to whole wei, the smallest unit the chain accepts.

        Raises:
            InvalidRequestError: Value is not a finite positive number, or
                exceeds max_gwei
        """
        if isinstance(value, bool):
            raise InvalidRequestError("gasPriceGwei must be a number")
        try:
            gwei = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidRequestError("gasPriceGwei must be a number")

        if not gwei.is_finite() or gwei <= 0:
            raise InvalidRequestError("gasPriceGwei must be a positive number")
        if max_gwei is not None and gwei > max_gwei:
            raise InvalidRequestError(f"gasPriceGwei exceeds maximum of {max_gwei}")

        wei = int((gwei * WEI_PER_GWEI).quantize(Decimal(1), rounding=ROUND_HALF_UP))
        if wei <= 0:
            raise InvalidRequestError("gasPriceGwei rounds to zero wei")
        return cls(gas_price_gwei=gwei, gas_price_wei=wei)


@dataclass
class AttemptResult:
    """Outcome of broadcasting the replacement for one nonce."""
    nonce: int
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.tx_hash is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"nonce": self.nonce, "txHash": self.tx_hash, "error": self.error}


@dataclass
class RecoveryReport:
    """Everything a heal run attempted, in nonce order."""
    window: SequenceWindow
    fee: FeePolicy
    endpoint: str                               # Redacted endpoint in use at termination
    results: List[AttemptResult] = field(default_factory=list)
    aborted: bool = False                       # Stopped early on an underpriced rejection
    cancelled: bool = False                     # Caller went away mid-run

    @property
    def stuck_count(self) -> int:
        return self.window.stuck_count

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.sent)

    @property
    def failed(self) -> int:
        return len(self.results) - self.sent

    @property
    def nothing_to_heal(self) -> bool:
        return self.window.stuck_count == 0

    def to_dict(self) -> Dict[str, Any]:
        """Wire format returned to callers."""
        if self.nothing_to_heal:
            return {
                "message": "No stuck transactions",
                "confirmed": self.window.confirmed,
                "pending": self.window.pending,
                "stuckCount": 0,
                "rpcUrl": self.endpoint,
            }
        return {
            "stuckCount": self.stuck_count,
            "gasPriceGwei": float(self.fee.gas_price_gwei),
            "startNonce": self.window.confirmed,
            "endNonce": self.window.pending - 1,
            "rpcUrl": self.endpoint,
            "results": [r.to_dict() for r in self.results],
            "sent": self.sent,
            "failed": self.failed,
            "aborted": self.aborted,
            "cancelled": self.cancelled,
        }


@dataclass
class Diagnosis:
    """Nonce status of an account as seen by one endpoint."""
    endpoint: str                               # Redacted
    address: str
    window: SequenceWindow
    gas_price_wei: Optional[int] = None         # None when the fee query failed

    @property
    def stuck_count(self) -> int:
        return self.window.stuck_count

    @property
    def fee_level_available(self) -> bool:
        return self.gas_price_wei is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rpcUrl": self.endpoint,
            "address": self.address,
            "confirmedNonce": self.window.confirmed,
            "pendingNonce": self.window.pending,
            "stuckCount": self.stuck_count,
            "currentGasGwei": (
                wei_to_gwei(self.gas_price_wei) if self.gas_price_wei is not None else None
            ),
            "feeLevelAvailable": self.fee_level_available,
        }
