"""In-memory post source for ``--mock`` runs and tests."""

from __future__ import annotations

from datetime import timedelta
from typing import Mapping, Sequence

from alphasignal.contradiction.types import EngagementMetrics, Statement
from alphasignal.errors import SourceUnavailable
from alphasignal.sources.base import PostSource
from alphasignal.utils import utc_now

# (handle, minutes ago, likes, retweets, replies, text)
_MOCK_TWEETS = [
    ("@saylor", 5, 4_200, 900, 310, "Bitcoin is the best performing asset of the decade. Buy and hold."),
    ("@saylor", 50, 3_100, 640, 220, "Never sell your bitcoin."),
    ("@elonmusk", 12, 88_000, 9_500, 12_000, "Dogecoin to the moon"),
    ("@elonmusk", 95, 61_000, 7_200, 8_800, "Crypto is looking like a bubble, might dump soon"),
    ("@chamath", 20, 1_900, 310, 150, "Tesla delivery numbers look terrible this quarter"),
    ("@chamath", 140, 2_400, 420, 190, "Tesla execution has been amazing, great team"),
    ("@cz_binance", 30, 35, 12, 8, "Ignore FUD. Keep building."),
    ("@cz_binance", 75, 40, 18, 11, "4"),
    ("@VitalikButerin", 45, 9_800, 1_100, 900, "Ethereum scaling roadmap is in good shape"),
    ("@paulg", 60, 7_500, 800, 400, "Startups should raise less money than they think."),
    ("@sama", 25, 22_000, 2_100, 3_300, "AI progress this year has been wild."),
]


def _default_timelines() -> dict[str, list[Statement]]:
    now = utc_now()
    timelines: dict[str, list[Statement]] = {}
    for idx, (handle, minutes, likes, shares, replies, text) in enumerate(_MOCK_TWEETS):
        timelines.setdefault(handle, []).append(Statement(
            id=f"mock_{idx}",
            text=text,
            timestamp=now - timedelta(minutes=minutes),
            metrics=EngagementMetrics(likes=likes, shares=shares, replies=replies),
        ))
    return timelines


class MockPostSource(PostSource):
    """Serves canned timelines; handles listed in *failures* raise their exception."""

    def __init__(
        self,
        timelines: Mapping[str, Sequence[Statement]] | None = None,
        failures: Mapping[str, Exception] | None = None,
    ) -> None:
        super().__init__()
        self._timelines = {k: list(v) for k, v in (timelines or _default_timelines()).items()}
        self._failures = dict(failures or {})

    @property
    def name(self) -> str:
        return "mock"

    def set_timeline(self, handle: str, statements: Sequence[Statement]) -> None:
        self._timelines[handle] = list(statements)

    def fail(self, handle: str, error: Exception | None = None) -> None:
        self._failures[handle] = error or SourceUnavailable("mock outage", handle=handle)

    async def fetch_recent_posts(self, handle: str, limit: int = 20) -> list[Statement]:
        self._requests += 1
        error = self._failures.get(handle)
        if error is not None:
            self._errors += 1
            raise error
        statements = sorted(self._timelines.get(handle, []), key=lambda s: s.timestamp, reverse=True)
        return statements[:limit]
