"""Wires settings into a ready-to-run SweepWorker."""

from __future__ import annotations

import logging

from alphasignal.config import Settings
from alphasignal.db.database import init_db
from alphasignal.db.store import AlertStore
from alphasignal.delivery import build_sink
from alphasignal.registry import TrackedAccounts
from alphasignal.sources.base import PostSource
from alphasignal.sources.mock import MockPostSource
from alphasignal.sources.twitter_tapi import TwitterApiIoSource
from alphasignal.workers.sweep_worker import SweepWorker

logger = logging.getLogger(__name__)


def build_source(settings: Settings, mock: bool = False) -> PostSource:
    if mock:
        return MockPostSource()
    if not settings.twitterapiio_api_key:
        logger.warning("TWITTERAPIIO_API_KEY is not set; every fetch will fail until it is")
    return TwitterApiIoSource(settings)


async def build_worker(settings: Settings, mock: bool = False) -> SweepWorker:
    """Create tables, then assemble store, registry, source and sink."""
    await init_db()
    worker = SweepWorker.from_settings(
        settings,
        registry=TrackedAccounts(settings.tracked_accounts),
        source=build_source(settings, mock=mock),
        store=AlertStore(),
        sink=build_sink(settings),
    )
    logger.info(
        "Sweep worker ready: %d accounts, source=%s, cooldown=%dm",
        len(worker.registry), "mock" if mock else "twitterapiio", settings.alert_cooldown_minutes,
    )
    return worker
