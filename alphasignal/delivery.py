"""Delivery sinks: where newly admitted alerts are handed off.

Formatting and fan-out to subscribers (email, Telegram, ...) happen
downstream of the sink; the pipeline's job ends once ``deliver`` returns.
"""

from __future__ import annotations

import abc
import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from alphasignal.config import Settings
from alphasignal.db.models import ContradictionAlert
from alphasignal.utils import retry

logger = logging.getLogger(__name__)


class DeliverySink(abc.ABC):
    @abc.abstractmethod
    async def deliver(self, alert: ContradictionAlert) -> None:
        """Hand off *alert*. Raise on failure so it stays pending."""

    async def aclose(self) -> None:
        return None


class LoggingDeliverySink(DeliverySink):
    """Writes a log line per alert. Default when no outbox is configured."""

    async def deliver(self, alert: ContradictionAlert) -> None:
        logger.info(
            "[delivery] alert sent: %s - %s contradiction (%s)",
            alert.account, alert.type, alert.severity,
        )


class RedisDeliverySink(DeliverySink):
    """RPUSHes alert payloads onto a Redis list consumed by the notifier."""

    def __init__(self, redis_url: str, key: str = "alphasignal:alerts:outbox", redis_client=None) -> None:
        self._redis = redis_client or aioredis.from_url(redis_url, decode_responses=True)
        self._key = key

    @retry(max_attempts=3, base_delay=0.5, exceptions=(RedisError, OSError))
    async def deliver(self, alert: ContradictionAlert) -> None:
        await self._redis.rpush(self._key, json.dumps(alert.to_dict(), default=str))
        logger.info("[delivery] queued %s for %s on %s", alert.id, alert.account, self._key)

    async def aclose(self) -> None:
        await self._redis.aclose()


def build_sink(settings: Settings) -> DeliverySink:
    if settings.delivery_backend == "redis":
        return RedisDeliverySink(settings.redis_url, key=settings.delivery_redis_key)
    return LoggingDeliverySink()
