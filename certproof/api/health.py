"""Liveness and readiness endpoints.

/health answers 200 whenever the process can respond and reports each
dependency in ``checks``; ``status`` is "degraded" when one of them is
down.  /ready answers 503 when the ledger cannot be reached, so a load
balancer stops routing verification traffic to an instance that would
only answer "Network error".  Redis is not part of readiness: the course
cache is best-effort.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from certproof.api.dependencies import get_ledger, get_services
from certproof.core.errors import LedgerUnavailable
from certproof.services.container import Services
from certproof.services.ledger import LedgerReader

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _ledger_ok(ledger: LedgerReader) -> bool:
    try:
        await ledger.ping()
    except LedgerUnavailable as e:
        logger.warning("Ledger health check failed: %s", e)
        return False
    return True


@router.get("/health")
async def health(
    services: Annotated[Services, Depends(get_services)],
    ledger: Annotated[LedgerReader, Depends(get_ledger)],
) -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if services.redis is not None:
        try:
            await services.redis.ping()  # type: ignore[attr-defined]
            checks["redis"] = "ok"
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    if await _ledger_ok(ledger):
        checks["ledger"] = "ok"
    else:
        checks["ledger"] = "degraded"
        overall = "degraded"

    return {
        "status": overall,
        "checks": checks,
        "ledger": {
            "backend": services.settings.ledger_backend,
            "contract": services.settings.contract_address,
            "chain_id": services.settings.chain_id,
        },
    }


@router.get("/ready")
async def ready(ledger: Annotated[LedgerReader, Depends(get_ledger)]) -> Response:
    if not await _ledger_ok(ledger):
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
