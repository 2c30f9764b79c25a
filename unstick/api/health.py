from fastapi import APIRouter, Depends
from typing import Dict, Any

from ..core.recovery.service import RecoveryService, get_recovery_service

router = APIRouter()


@router.get("/healthz")
async def health_check(
    service: RecoveryService = Depends(get_recovery_service),
) -> Dict[str, Any]:
    """Liveness check listing the configured (redacted) RPC endpoints"""
    return {
        "status": "healthy",
        "chain_id": service.config.chain_id,
        "endpoints": service.pool.redacted(),
        "total_endpoints": len(service.pool),
        "default_gas_price_gwei": float(service.config.default_gas_price_gwei),
    }
