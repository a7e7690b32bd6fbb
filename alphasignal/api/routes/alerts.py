"""Alert endpoints: recent, by account, by type, delivered flag."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from alphasignal.api.app import get_worker
from alphasignal.contradiction.types import ContradictionKind
from alphasignal.registry import normalise_handle
from alphasignal.workers.sweep_worker import SweepWorker

router = APIRouter(tags=["alerts"])


@router.get("/alerts/recent")
async def recent_alerts(
    limit: int = Query(10, ge=1, le=200),
    include_suppressed: bool = False,
    worker: SweepWorker = Depends(get_worker),
):
    alerts = await worker.store.recent(limit, include_suppressed=include_suppressed)
    return [a.to_dict() for a in alerts]


@router.get("/alerts/account/{account}")
async def alerts_by_account(account: str, worker: SweepWorker = Depends(get_worker)):
    try:
        handle = normalise_handle(account)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [a.to_dict() for a in await worker.store.by_identity(handle)]


@router.get("/alerts/type/{kind}")
async def alerts_by_type(kind: str, worker: SweepWorker = Depends(get_worker)):
    valid = {k.value for k in ContradictionKind}
    if kind not in valid:
        raise HTTPException(status_code=400, detail=f"type must be one of {sorted(valid)}")
    return [a.to_dict() for a in await worker.store.by_kind(kind)]


@router.post("/alerts/{alert_id}/delivered")
async def mark_alert_delivered(alert_id: str, worker: SweepWorker = Depends(get_worker)):
    if not await worker.store.mark_delivered(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"id": alert_id, "alerted": True}


@router.get("/sentiment/{account}")
async def sentiment_history(
    account: str,
    limit: int = Query(30, ge=1, le=365),
    worker: SweepWorker = Depends(get_worker),
):
    try:
        handle = normalise_handle(account)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [row.to_dict() for row in await worker.store.sentiment_history(handle, limit)]
