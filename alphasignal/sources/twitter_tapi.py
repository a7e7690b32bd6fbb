"""Account timelines from TwitterAPI.io.

Pricing: ~$0.00015 per request (15 credits, 1 USD = 100K credits).
Auth: X-API-Key header.
One ``user/last_tweets`` call per tracked account per sweep; the response
holds up to 20 tweets, newest first.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from alphasignal.config import Settings, get_settings
from alphasignal.contradiction.types import Statement
from alphasignal.errors import RateLimited, SourceUnavailable
from alphasignal.sources.base import PostSource
from alphasignal.utils import RateLimiter, parse_tweet_time

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.twitterapi.io"
_LAST_TWEETS_ENDPOINT = f"{_BASE_URL}/twitter/user/last_tweets"


def _extract_tweets(payload: dict[str, Any]) -> list[dict[str, Any]]:
    # The endpoint has shipped both {"tweets": [...]} and {"data": {"tweets": [...]}}.
    tweets = payload.get("tweets")
    if tweets is None and isinstance(payload.get("data"), dict):
        tweets = payload["data"].get("tweets")
    if not isinstance(tweets, list):
        return []
    return [t for t in tweets if isinstance(t, dict)]


class TwitterApiIoSource(PostSource):
    """Fetches an account's latest tweets through TwitterAPI.io."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        settings = settings or get_settings()
        self._api_key = settings.twitterapiio_api_key
        self._timeout = settings.source_timeout_seconds
        self._limiter = RateLimiter(max_calls=max(1, settings.source_rate_limit), period=60)
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "twitterapiio"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_recent_posts(self, handle: str, limit: int = 20) -> list[Statement]:
        username = handle.lstrip("@")
        self._requests += 1
        try:
            async with self._limiter:
                resp = await self._get_client().get(
                    _LAST_TWEETS_ENDPOINT,
                    headers={"X-API-Key": self._api_key},
                    params={"userName": username},
                    timeout=self._timeout,
                )
        except httpx.TimeoutException as exc:
            self._errors += 1
            raise SourceUnavailable(f"timed out fetching {handle}", handle=handle) from exc
        except httpx.HTTPError as exc:
            self._errors += 1
            raise SourceUnavailable(f"request for {handle} failed: {exc}", handle=handle) from exc

        if resp.status_code == 429:
            self._errors += 1
            retry_after = resp.headers.get("Retry-After")
            logger.warning("[twitter/tapi] rate limited on %s, skipping until next sweep", handle)
            raise RateLimited(
                f"rate limited fetching {handle}",
                handle=handle,
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )

        if resp.status_code != 200:
            self._errors += 1
            raise SourceUnavailable(
                f"last_tweets for {handle} returned HTTP {resp.status_code}", handle=handle,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            self._errors += 1
            raise SourceUnavailable(f"malformed response for {handle}", handle=handle) from exc
        if not isinstance(payload, dict):
            self._errors += 1
            raise SourceUnavailable(
                f"malformed response for {handle}: expected an object, got {type(payload).__name__}",
                handle=handle,
            )

        if str(payload.get("status", "success")).lower() == "error":
            self._errors += 1
            raise SourceUnavailable(
                f"provider error for {handle}: {payload.get('msg') or payload.get('message')}",
                handle=handle,
            )

        statements: list[Statement] = []
        try:
            for tweet in _extract_tweets(payload)[:limit]:
                tid = tweet.get("id")
                if not tid:
                    continue
                created = parse_tweet_time(tweet.get("createdAt"))
                if created is None:
                    logger.warning(
                        "[twitter/tapi] %s: dropping tweet %s with unparseable createdAt %r",
                        handle, tid, tweet.get("createdAt"),
                    )
                    continue
                statements.append(self._make_statement(
                    source_id=tid,
                    text=(tweet.get("text", "") or "")[:2000],
                    timestamp=created,
                    likes=tweet.get("likeCount", 0),
                    shares=tweet.get("retweetCount", 0),
                    replies=tweet.get("replyCount", 0),
                ))
        except (TypeError, ValueError) as exc:
            self._errors += 1
            raise SourceUnavailable(f"malformed tweet in response for {handle}: {exc}", handle=handle) from exc

        logger.debug("[twitter/tapi] %s: %d tweets", handle, len(statements))
        return statements
