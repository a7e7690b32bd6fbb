"""SweepWorker: one pass over every tracked account: fetch → detect → score → admit → deliver.

Accounts are processed concurrently up to ``max_concurrency`` (the post
provider's rate limits are the real constraint). A failure for one account is
logged and reported in the result; it never stops the others. Only an
unreachable alert store aborts a sweep. Sweeps never overlap.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from alphasignal.config import Settings
from alphasignal.contradiction.detector import ContradictionDetector
from alphasignal.contradiction.gate import CooldownGate
from alphasignal.contradiction.lexicon import Lexicon
from alphasignal.contradiction.severity import HIGH_ENGAGEMENT_THRESHOLD, score_severity
from alphasignal.contradiction.types import Stance, Statement
from alphasignal.db.models import ContradictionAlert
from alphasignal.db.store import AlertStore
from alphasignal.delivery import DeliverySink, LoggingDeliverySink
from alphasignal.errors import (
    RateLimited,
    SourceUnavailable,
    StoreUnavailable,
    StoreWriteFailure,
    SweepInProgress,
)
from alphasignal.registry import TrackedAccounts
from alphasignal.sources.base import PostSource
from alphasignal.utils import Clock, utc_now

logger = logging.getLogger(__name__)


class SweepState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class IdentityError:
    identity: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"identity": self.identity, "error_type": self.error_type, "message": self.message}


@dataclass
class SweepResult:
    started_at: datetime
    finished_at: datetime | None = None
    alerts: list[ContradictionAlert] = field(default_factory=list)
    errors: list[IdentityError] = field(default_factory=list)
    identities_checked: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    candidates_found: int = 0
    suppressed: int = 0
    delivered: int = 0
    cancelled: bool = False

    def summary(self) -> dict[str, Any]:
        elapsed = (self.finished_at - self.started_at).total_seconds() if self.finished_at else None
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "elapsed_seconds": elapsed,
            "new_alerts": len(self.alerts),
            "alert_ids": [a.id for a in self.alerts],
            "candidates_found": self.candidates_found,
            "suppressed": self.suppressed,
            "delivered": self.delivered,
            "identities_checked": sorted(self.identities_checked),
            "skipped": sorted(self.skipped),
            "errors": [e.to_dict() for e in self.errors],
            "cancelled": self.cancelled,
        }


class SweepWorker:
    """Runs contradiction sweeps over the tracked accounts."""

    def __init__(
        self,
        registry: TrackedAccounts,
        source: PostSource,
        store: AlertStore,
        gate: CooldownGate,
        detector: ContradictionDetector | None = None,
        sink: DeliverySink | None = None,
        *,
        fetch_limit: int = 20,
        fetch_timeout: float = 15.0,
        max_concurrency: int = 4,
        severity_threshold: int = HIGH_ENGAGEMENT_THRESHOLD,
    ) -> None:
        self._registry = registry
        self._source = source
        self._store = store
        self._gate = gate
        self._detector = detector or ContradictionDetector()
        self._sink = sink or LoggingDeliverySink()
        self._fetch_limit = fetch_limit
        self._fetch_timeout = fetch_timeout
        self._max_concurrency = max(1, max_concurrency)
        self._severity_threshold = severity_threshold
        self._clock: Clock = gate.clock

        self._sweep_lock = asyncio.Lock()
        self._state = SweepState.IDLE
        self._cancel_requested = False

        # stats
        self.sweeps = 0
        self.alerts_total = 0
        self.errors_total = 0
        self.last_sweep_at: str | None = None
        self.last_result: SweepResult | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: TrackedAccounts,
        source: PostSource,
        store: AlertStore,
        sink: DeliverySink | None = None,
        clock: Clock = utc_now,
    ) -> SweepWorker:
        gate = CooldownGate(
            store,
            cooldown=timedelta(minutes=settings.alert_cooldown_minutes),
            clock=clock,
            record_suppressed=settings.record_suppressed,
        )
        return cls(
            registry,
            source,
            store,
            gate,
            detector=ContradictionDetector(Lexicon.from_settings(settings)),
            sink=sink,
            fetch_limit=settings.fetch_limit,
            fetch_timeout=settings.source_timeout_seconds,
            max_concurrency=settings.sweep_max_concurrency,
            severity_threshold=settings.severity_engagement_threshold,
        )

    # ── state ──────────────────────────────────────────────────────────

    @property
    def state(self) -> SweepState:
        return self._state

    @property
    def registry(self) -> TrackedAccounts:
        return self._registry

    @property
    def store(self) -> AlertStore:
        return self._store

    def cancel(self) -> None:
        """Stop the running sweep after the accounts already in flight finish."""
        if self._state is SweepState.RUNNING:
            self._cancel_requested = True
            logger.info("[sweep] cancellation requested")

    # ── sweep ──────────────────────────────────────────────────────────

    async def run_sweep(self) -> SweepResult:
        if self._sweep_lock.locked():
            raise SweepInProgress("a contradiction sweep is already running")

        async with self._sweep_lock:
            self._state = SweepState.RUNNING
            self._cancel_requested = False
            result = SweepResult(started_at=self._clock())
            try:
                try:
                    await self._store.ping()
                except SQLAlchemyError as exc:
                    raise StoreUnavailable("alert store unreachable") from exc

                await self._deliver_pending(result)

                handles = self._registry.ordered()
                logger.info("[sweep] checking %d accounts", len(handles))
                semaphore = asyncio.Semaphore(self._max_concurrency)
                await asyncio.gather(*(self._run_guarded(h, semaphore, result) for h in handles))
            finally:
                result.cancelled = self._cancel_requested
                result.finished_at = self._clock()
                self._state = SweepState.IDLE
                self._cancel_requested = False

        self.sweeps += 1
        self.alerts_total += len(result.alerts)
        self.errors_total += len(result.errors)
        self.last_sweep_at = result.finished_at.isoformat()
        self.last_result = result

        if result.alerts:
            logger.info("[sweep] %d new contradiction alerts", len(result.alerts))
        else:
            logger.info("[sweep] no contradictions detected")
        if result.errors:
            logger.warning(
                "[sweep] %d accounts failed: %s",
                len(result.errors), ", ".join(e.identity for e in result.errors),
            )
        return result

    async def _run_guarded(self, handle: str, semaphore: asyncio.Semaphore, result: SweepResult) -> None:
        async with semaphore:
            if self._cancel_requested:
                result.skipped.append(handle)
                return
            try:
                await self._process_account(handle, result)
            except RateLimited as exc:
                logger.warning("[sweep] %s rate limited, skipped this sweep", handle)
                result.errors.append(IdentityError(handle, "RateLimited", str(exc)))
            except SourceUnavailable as exc:
                logger.warning("[sweep] %s source unavailable: %s", handle, exc)
                result.errors.append(IdentityError(handle, "SourceUnavailable", str(exc)))
            except Exception as exc:
                logger.error("[sweep] error checking %s", handle, exc_info=True)
                result.errors.append(IdentityError(handle, type(exc).__name__, str(exc)))

    async def _fetch(self, handle: str) -> list[Statement]:
        try:
            return await asyncio.wait_for(
                self._source.fetch_recent_posts(handle, self._fetch_limit),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(
                f"fetch for {handle} timed out after {self._fetch_timeout:.0f}s", handle=handle,
            ) from exc

    async def _process_account(self, handle: str, result: SweepResult) -> None:
        result.identities_checked.append(handle)
        statements = await self._fetch(handle)
        now = self._clock()
        await self._record_sentiment(handle, statements, now)

        candidates = self._detector.detect(handle, statements, detected_at=now)
        result.candidates_found += len(candidates)
        if candidates:
            logger.info("[sweep] found %d contradictions in %s's recent posts", len(candidates), handle)

        admitted: list[ContradictionAlert] = []
        for candidate in candidates:
            severity = score_severity(candidate.statement_a, candidate.statement_b, self._severity_threshold)
            try:
                alert = await self._gate.admit(candidate, severity)
            except StoreWriteFailure as exc:
                result.errors.append(IdentityError(handle, "StoreWriteFailure", str(exc)))
                continue
            if alert is None:
                result.suppressed += 1
            else:
                admitted.append(alert)

        result.alerts.extend(admitted)
        await self._deliver(admitted, result)

    async def _record_sentiment(self, handle: str, statements: list[Statement], now: datetime) -> None:
        lexicon = self._detector.lexicon
        stances = [lexicon.classify_stance(s.text).stance for s in statements]
        try:
            await self._store.record_sentiment(
                handle,
                bullish_count=stances.count(Stance.BULLISH),
                bearish_count=stances.count(Stance.BEARISH),
                now=now,
            )
        except SQLAlchemyError:
            logger.warning("[sweep] could not record sentiment snapshot for %s", handle, exc_info=True)

    # ── delivery ───────────────────────────────────────────────────────

    async def _deliver(self, alerts: list[ContradictionAlert], result: SweepResult) -> None:
        for alert in alerts:
            try:
                await self._sink.deliver(alert)
            except Exception:
                logger.warning("[sweep] delivery failed for %s, left pending", alert.id, exc_info=True)
                continue
            try:
                if await self._store.mark_delivered(alert.id):
                    alert.alerted = True
                    result.delivered += 1
            except StoreWriteFailure:
                logger.warning("[sweep] %s delivered but not marked", alert.id)

    async def _deliver_pending(self, result: SweepResult) -> None:
        try:
            pending = await self._store.pending()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("alert store unreachable while loading pending alerts") from exc
        if pending:
            logger.info("[sweep] retrying delivery of %d pending alerts", len(pending))
            await self._deliver(pending, result)

    # ── loop ───────────────────────────────────────────────────────────

    async def run(self, interval: int = 300, once: bool = False) -> None:
        """Continuous loop: sweep → sleep → repeat."""
        logger.info("[sweep] starting sweep worker (interval=%ds)", interval)
        while True:
            try:
                result = await self.run_sweep()
                logger.info(
                    "[HEARTBEAT] sweep_worker cycle=%d done: alerts=%d errors=%d suppressed=%d",
                    self.sweeps, len(result.alerts), len(result.errors), result.suppressed,
                )
            except SweepInProgress:
                logger.warning("[sweep] previous sweep still running, skipping cycle")
            except Exception:
                logger.error("[sweep] fatal sweep error", exc_info=True)
            if once:
                return
            await asyncio.sleep(interval)

    async def aclose(self) -> None:
        await self._source.aclose()
        await self._sink.aclose()

    def get_stats(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "sweeps": self.sweeps,
            "alerts_total": self.alerts_total,
            "errors_total": self.errors_total,
            "last_sweep_at": self.last_sweep_at,
            "tracked_accounts": len(self._registry),
            "gate": self._gate.get_stats(),
            "source": self._source.get_stats(),
        }
