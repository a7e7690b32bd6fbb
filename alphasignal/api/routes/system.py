"""System endpoints: health, stats, on-demand sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from alphasignal import __version__
from alphasignal.api.app import get_uptime, get_worker
from alphasignal.errors import StoreUnavailable, SweepInProgress
from alphasignal.workers.sweep_worker import SweepWorker

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(worker: SweepWorker = Depends(get_worker)):
    db_ok = False
    try:
        await worker.store.ping()
        db_ok = True
    except Exception:
        pass

    return {
        "status": "ok" if db_ok else "degraded",
        "version": __version__,
        "uptime_seconds": round(get_uptime(), 1),
        "components": {"db": db_ok},
        "sweep": worker.get_stats(),
    }


@router.post("/sweep")
async def trigger_sweep(worker: SweepWorker = Depends(get_worker)):
    try:
        result = await worker.run_sweep()
    except SweepInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return result.summary()
