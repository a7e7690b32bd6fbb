from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from alphasignal.contradiction.gate import CooldownGate
from alphasignal.delivery import DeliverySink
from alphasignal.errors import (
    RateLimited,
    SourceUnavailable,
    StoreUnavailable,
    StoreWriteFailure,
    SweepInProgress,
)
from alphasignal.registry import TrackedAccounts
from alphasignal.sources.base import PostSource
from alphasignal.sources.mock import MockPostSource
from alphasignal.workers.sweep_worker import SweepState, SweepWorker
from conftest import FakeClock, statement

BULL = "bitcoin to the moon, buy now"
BEAR = "bitcoin is crashing, sell everything"


def _pair(prefix: str, bull_likes: int = 200, bear_likes: int = 50):
    return [
        statement(f"{prefix}1", BULL, minute=0, likes=bull_likes),
        statement(f"{prefix}2", BEAR, minute=5, likes=bear_likes),
    ]


class RecordingSink(DeliverySink):
    def __init__(self, fail_times: int = 0) -> None:
        self.delivered: list[str] = []
        self._fail_times = fail_times

    async def deliver(self, alert) -> None:
        if self._fail_times > 0:
            self._fail_times -= 1
            raise ConnectionError("notifier down")
        self.delivered.append(alert.id)


def _worker(store, clock, source, handles, sink=None, **kwargs) -> SweepWorker:
    gate = CooldownGate(store, cooldown=timedelta(minutes=30), clock=clock)
    return SweepWorker(
        TrackedAccounts(handles),
        source,
        store,
        gate,
        sink=sink or RecordingSink(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_end_to_end_single_high_severity_alert(store, clock) -> None:
    sink = RecordingSink()
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"], sink=sink)

    result = await worker.run_sweep()

    assert len(result.alerts) == 1
    alert = result.alerts[0]
    assert alert.account == "@x"
    assert alert.type == "sentiment-shift"
    assert alert.severity == "high"
    assert alert.alerted is True
    assert sink.delivered == [alert.id]
    assert result.errors == []
    assert result.identities_checked == ["@x"]
    assert worker.state is SweepState.IDLE

    stored = await store.get(alert.id)
    assert stored.alerted is True
    assert stored.tweet1_id == "x2"
    assert stored.tweet2_id == "x1"


@pytest.mark.asyncio
async def test_rerun_within_cooldown_yields_nothing_new(store, clock) -> None:
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"])

    assert len((await worker.run_sweep()).alerts) == 1
    clock.advance(minutes=5)
    second = await worker.run_sweep()

    assert second.alerts == []
    assert second.suppressed == 1
    assert await store.count() == 1

    clock.advance(minutes=30)
    assert len((await worker.run_sweep()).alerts) == 1


@pytest.mark.asyncio
async def test_one_failing_account_does_not_abort_the_sweep(store, clock) -> None:
    source = MockPostSource(
        {"@one": _pair("a"), "@three": _pair("c")},
        failures={"@two": SourceUnavailable("provider down", handle="@two")},
    )
    worker = _worker(store, clock, source, ["@one", "@two", "@three"])

    result = await worker.run_sweep()

    assert sorted(a.account for a in result.alerts) == ["@one", "@three"]
    assert [(e.identity, e.error_type) for e in result.errors] == [("@two", "SourceUnavailable")]
    assert result.summary()["errors"][0]["identity"] == "@two"


@pytest.mark.asyncio
async def test_rate_limited_account_is_reported(store, clock) -> None:
    source = MockPostSource({"@one": _pair("a")}, failures={"@two": RateLimited("slow down", handle="@two")})
    worker = _worker(store, clock, source, ["@one", "@two"])

    result = await worker.run_sweep()

    assert [a.account for a in result.alerts] == ["@one"]
    assert [e.error_type for e in result.errors] == ["RateLimited"]


class _SlowSource(PostSource):
    @property
    def name(self) -> str:
        return "slow"

    async def fetch_recent_posts(self, handle, limit=20):
        await asyncio.sleep(5)
        return []


@pytest.mark.asyncio
async def test_fetch_timeout_is_a_per_account_failure(store, clock) -> None:
    worker = _worker(store, clock, _SlowSource(), ["@x"], fetch_timeout=0.05)

    result = await worker.run_sweep()

    assert result.alerts == []
    assert [e.error_type for e in result.errors] == ["SourceUnavailable"]
    assert "timed out" in result.errors[0].message


class _GatedSource(PostSource):
    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    @property
    def name(self) -> str:
        return "gated"

    async def fetch_recent_posts(self, handle, limit=20):
        self.started.set()
        await self.release.wait()
        return _pair("x")


@pytest.mark.asyncio
async def test_overlapping_sweeps_are_rejected(store, clock) -> None:
    source = _GatedSource()
    worker = _worker(store, clock, source, ["@x"])

    first = asyncio.create_task(worker.run_sweep())
    await asyncio.wait_for(source.started.wait(), timeout=5)
    assert worker.state is SweepState.RUNNING

    with pytest.raises(SweepInProgress):
        await worker.run_sweep()

    source.release.set()
    result = await first
    assert len(result.alerts) == 1
    assert worker.state is SweepState.IDLE


class _CancellingSource(MockPostSource):
    worker: SweepWorker | None = None

    async def fetch_recent_posts(self, handle, limit=20):
        if handle == "@a" and self.worker is not None:
            self.worker.cancel()
        return await super().fetch_recent_posts(handle, limit)


@pytest.mark.asyncio
async def test_cancel_stops_between_accounts(store, clock) -> None:
    source = _CancellingSource({"@a": _pair("a"), "@b": _pair("b"), "@c": _pair("c")})
    worker = _worker(store, clock, source, ["@a", "@b", "@c"], max_concurrency=1)
    source.worker = worker

    result = await worker.run_sweep()

    # the account in flight finishes; the rest are skipped
    assert [a.account for a in result.alerts] == ["@a"]
    assert sorted(result.skipped) == ["@b", "@c"]
    assert result.cancelled is True
    assert worker.state is SweepState.IDLE


@pytest.mark.asyncio
async def test_failed_delivery_stays_pending_and_is_retried(store, clock) -> None:
    sink = RecordingSink(fail_times=1)
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"], sink=sink)

    first = await worker.run_sweep()
    assert len(first.alerts) == 1
    assert first.delivered == 0
    assert [a.id for a in await store.pending()] == [first.alerts[0].id]

    clock.advance(minutes=1)
    second = await worker.run_sweep()
    assert second.alerts == []
    assert second.delivered == 1
    assert sink.delivered == [first.alerts[0].id]
    assert await store.pending() == []


@pytest.mark.asyncio
async def test_quiet_accounts_produce_an_empty_result(store, clock) -> None:
    source = MockPostSource({"@x": [statement("1", "gm", minute=0), statement("2", "gn", minute=1)]})
    worker = _worker(store, clock, source, ["@x"])

    result = await worker.run_sweep()

    assert result.alerts == []
    assert result.errors == []
    assert result.candidates_found == 0


@pytest.mark.asyncio
async def test_sweep_records_daily_sentiment_snapshot(store) -> None:
    clock = FakeClock(datetime(2020, 1, 1, 12, 0, tzinfo=timezone.utc))
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"])

    await worker.run_sweep()

    history = await store.sentiment_history("@x")
    assert len(history) == 1
    assert history[0].date == "2020-01-01"
    assert (history[0].bullish_count, history[0].bearish_count, history[0].score) == (1, 1, 0)


@pytest.mark.asyncio
async def test_unreachable_store_is_fatal_for_the_sweep(store, clock) -> None:
    async def _down() -> None:
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    store.ping = _down  # type: ignore[method-assign]
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"])

    with pytest.raises(StoreUnavailable):
        await worker.run_sweep()
    assert worker.state is SweepState.IDLE


@pytest.mark.asyncio
async def test_pending_read_failure_is_fatal_for_the_sweep(store, clock) -> None:
    async def _broken(limit: int = 100):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    store.pending = _broken  # type: ignore[method-assign]
    worker = _worker(store, clock, MockPostSource({"@x": _pair("x")}), ["@x"])

    with pytest.raises(StoreUnavailable):
        await worker.run_sweep()
    assert worker.state is SweepState.IDLE


class _FlakyGate(CooldownGate):
    def __init__(self, *args, failures: int = 1, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._failures = failures

    async def admit(self, candidate, severity):
        if self._failures > 0:
            self._failures -= 1
            raise StoreWriteFailure("could not persist alert")
        return await super().admit(candidate, severity)


@pytest.mark.asyncio
async def test_write_failure_on_one_candidate_keeps_the_rest(store, clock) -> None:
    source = MockPostSource({
        "@x": _pair("x") + [statement("x3", "short it all", minute=10, likes=10)],
    })
    gate = _FlakyGate(store, cooldown=timedelta(minutes=30), clock=clock)
    worker = SweepWorker(TrackedAccounts(["@x"]), source, store, gate, sink=RecordingSink())

    result = await worker.run_sweep()

    assert result.candidates_found == 2
    assert [(e.identity, e.error_type) for e in result.errors] == [("@x", "StoreWriteFailure")]
    assert len(result.alerts) == 1
    assert result.alerts[0].tweet1_id == "x2"
    assert await store.count() == 1
