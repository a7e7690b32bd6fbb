"""Abstract post source that the sweep worker pulls statements from."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Any

from alphasignal.contradiction.types import EngagementMetrics, Statement
from alphasignal.utils import ensure_utc


class PostSource(abc.ABC):
    """Every post provider inherits from this.

    Implementations raise :class:`~alphasignal.errors.SourceUnavailable` or
    :class:`~alphasignal.errors.RateLimited`; nothing else should escape.
    """

    def __init__(self) -> None:
        self._requests = 0
        self._errors = 0

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short provider identifier, e.g. 'twitterapiio', 'mock'."""

    @abc.abstractmethod
    async def fetch_recent_posts(self, handle: str, limit: int = 20) -> list[Statement]:
        """Return up to *limit* recent statements by *handle*, newest first."""

    async def aclose(self) -> None:
        return None

    # ── helpers ────────────────────────────────────────────────────────

    @staticmethod
    def _make_statement(
        source_id: str,
        text: str,
        timestamp: datetime,
        likes: Any = 0,
        shares: Any = 0,
        replies: Any = 0,
    ) -> Statement:
        """Build a Statement from loosely-typed provider fields.

        Raises ``ValueError``/``TypeError`` on counts that are not integers.
        """
        return Statement(
            id=str(source_id),
            text=text or "",
            timestamp=ensure_utc(timestamp),
            metrics=EngagementMetrics(
                likes=int(likes or 0),
                shares=int(shares or 0),
                replies=int(replies or 0),
            ),
        )

    def get_stats(self) -> dict[str, Any]:
        return {
            "source": self.name,
            "requests": self._requests,
            "error_count": self._errors,
        }
