from typing import Any, Dict, NoReturn, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from ..core.recovery.errors import (
    EndpointsUnavailableError,
    InvalidRequestError,
    ProfileNotFoundError,
    RecoveryError,
    SigningMaterialError,
)
from ..core.recovery.service import RecoveryService, get_recovery_service


router = APIRouter(prefix="/unstick")

_STATUS_BY_ERROR = {
    InvalidRequestError: 400,
    ProfileNotFoundError: 404,
    SigningMaterialError: 422,
    EndpointsUnavailableError: 503,
}


class UnstickRequest(BaseModel):
    profileId: Optional[str] = Field(default=None, description="Wallet profile whose nonces are stuck")
    gasPriceGwei: Optional[float] = Field(
        default=None,
        description="Gas price for every replacement transaction (defaults to the configured rate)",
    )


def _raise_for(exc: RecoveryError) -> NoReturn:
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)),
        500,
    )
    detail: Dict[str, Any] = {"error": exc.code, "message": exc.message}
    if isinstance(exc, EndpointsUnavailableError):
        detail["attempted"] = exc.attempted
    raise HTTPException(status_code=status_code, detail=detail)


@router.get("")
async def get_nonce_status(
    profileId: Optional[str] = Query(default=None),
    service: RecoveryService = Depends(get_recovery_service),
) -> Dict[str, Any]:
    """Check nonce status (confirmed vs pending) for a profile's wallet."""
    try:
        diagnosis = await service.diagnose(profileId)
    except RecoveryError as exc:
        _raise_for(exc)
    return diagnosis.to_dict()


@router.post("")
async def post_unstick(
    body: UnstickRequest,
    request: Request,
    service: RecoveryService = Depends(get_recovery_service),
) -> Dict[str, Any]:
    """Send replacement self-transfers for every stuck nonce."""
    if body.profileId:
        structlog.contextvars.bind_contextvars(profile_id=body.profileId.strip())
    try:
        report = await service.heal(
            body.profileId,
            fee_rate_gwei=body.gasPriceGwei,
            should_stop=request.is_disconnected,
        )
    except RecoveryError as exc:
        _raise_for(exc)
    return report.to_dict()
