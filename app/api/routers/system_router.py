# =============================================================================
# File: app/api/routers/system_router.py
# Description: Operator endpoints (on-demand reconciliation)
# =============================================================================

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Request, status

from app.api.dependencies.bus_deps import CurrentActor
from app.api.models.event_api_models import ReconciliationReportResponse
from app.event.exceptions import Unauthorized

log = logging.getLogger("eventhub.api.system")

router = APIRouter(prefix="/system", tags=["system"])


@router.post("/reconciliation", response_model=List[ReconciliationReportResponse])
async def run_reconciliation(request: Request, actor: CurrentActor):
    """Run one reconciliation pass over both aggregate kinds. Super-admin only."""
    if not actor.is_super_admin:
        raise Unauthorized(actor.actor_id, "run reconciliation")

    service = getattr(request.app.state, "reconciliation", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Reconciliation not initialized")

    reports = await service.reconcile_all()
    log.info(f"On-demand reconciliation by {actor.actor_id}: "
             f"{', '.join(f'{k}={r.clean}' for k, r in reports.items())}")
    return [ReconciliationReportResponse.from_report(r) for r in reports.values()]
