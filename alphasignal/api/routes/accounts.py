"""Tracked-account endpoints: list, add, remove."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from alphasignal.api.app import get_worker
from alphasignal.registry import normalise_handle
from alphasignal.workers.sweep_worker import SweepWorker

router = APIRouter(tags=["accounts"])


class AccountIn(BaseModel):
    handle: str


@router.get("/accounts")
async def list_accounts(worker: SweepWorker = Depends(get_worker)):
    return {"accounts": sorted(worker.registry.list())}


@router.post("/accounts")
async def add_account(body: AccountIn, worker: SweepWorker = Depends(get_worker)):
    try:
        handle = normalise_handle(body.handle)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    added = worker.registry.add(handle)
    return {"handle": handle, "added": added}


@router.delete("/accounts/{handle}")
async def remove_account(handle: str, worker: SweepWorker = Depends(get_worker)):
    try:
        key = normalise_handle(handle)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    removed = worker.registry.remove(key)
    return {"handle": key, "removed": removed}
