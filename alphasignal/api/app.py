"""FastAPI application factory with lifespan, CORS, and routers."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from alphasignal import __version__
from alphasignal.config import get_settings
from alphasignal.workers.sweep_worker import SweepWorker

logger = logging.getLogger(__name__)

WorkerFactory = Callable[[], Awaitable[SweepWorker]]

_start_time: float = 0.0


def get_uptime() -> float:
    return time.time() - _start_time if _start_time else 0.0


def get_worker(request: Request) -> SweepWorker:
    return request.app.state.worker


async def _default_worker() -> SweepWorker:
    from alphasignal.runtime import build_worker

    settings = get_settings()
    return await build_worker(settings, mock=settings.mock_mode)


def create_app(worker_factory: WorkerFactory | None = None) -> FastAPI:
    """Build and return the fully-configured FastAPI application."""
    factory = worker_factory or _default_worker
    owns_worker = worker_factory is None

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        global _start_time
        _start_time = time.time()
        app.state.worker = await factory()
        logger.info("AlphaSignal API v%s starting", __version__)
        yield
        if owns_worker:
            await app.state.worker.aclose()
        logger.info("AlphaSignal API shutting down")

    app = FastAPI(
        title="AlphaSignal",
        description="Contradiction alerts for tracked market voices",
        version=__version__,
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from alphasignal.api.routes import accounts, alerts, system
    app.include_router(alerts.router, prefix="/api")
    app.include_router(accounts.router, prefix="/api")
    app.include_router(system.router, prefix="/api")

    return app
