from __future__ import annotations

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from alphasignal.config import Settings
from alphasignal.db.models import ContradictionAlert
from alphasignal.delivery import LoggingDeliverySink, RedisDeliverySink, build_sink
from conftest import BASE_TIME


class _FakeRedis:
    def __init__(self, failures: int = 0) -> None:
        self.lists: dict[str, list[str]] = {}
        self._failures = failures
        self.calls = 0

    async def rpush(self, key: str, value: str) -> int:
        self.calls += 1
        if self._failures > 0:
            self._failures -= 1
            raise RedisConnectionError("connection reset")
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def aclose(self) -> None:
        return None


def _alert() -> ContradictionAlert:
    return ContradictionAlert(
        id="alert_abc",
        account="@x",
        type="sentiment-shift",
        tweet1_id="2",
        tweet1_text="bitcoin is crashing, sell everything",
        tweet1_timestamp=BASE_TIME,
        tweet2_id="1",
        tweet2_text="bitcoin to the moon, buy now",
        tweet2_timestamp=BASE_TIME,
        severity="high",
        detected_at=BASE_TIME,
        created_at=BASE_TIME,
        alerted=False,
        suppressed=False,
    )


@pytest.mark.asyncio
async def test_redis_sink_pushes_json_payload() -> None:
    fake = _FakeRedis()
    sink = RedisDeliverySink("redis://unused", key="outbox", redis_client=fake)

    await sink.deliver(_alert())

    payload = json.loads(fake.lists["outbox"][0])
    assert payload["id"] == "alert_abc"
    assert payload["account"] == "@x"
    assert payload["tweet1"]["text"] == "bitcoin is crashing, sell everything"
    assert payload["detected_at"] == BASE_TIME.isoformat()


@pytest.mark.asyncio
async def test_redis_sink_retries_transient_errors() -> None:
    fake = _FakeRedis(failures=1)
    sink = RedisDeliverySink("redis://unused", key="outbox", redis_client=fake)

    await sink.deliver(_alert())

    assert fake.calls == 2
    assert len(fake.lists["outbox"]) == 1


def test_build_sink_follows_settings() -> None:
    assert isinstance(build_sink(Settings(delivery_backend="log")), LoggingDeliverySink)
    assert isinstance(build_sink(Settings(delivery_backend="redis")), RedisDeliverySink)
