"""Value types shared by the contradiction pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class Stance(str, enum.Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class ContradictionKind(str, enum.Enum):
    SENTIMENT_SHIFT = "sentiment-shift"
    TOPIC_SHIFT = "topic-shift"


class Severity(str, enum.Enum):
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class EngagementMetrics:
    likes: int = 0
    shares: int = 0
    replies: int = 0


@dataclass(frozen=True)
class Statement:
    """A single post as returned by a post source. Read-only for the sweep."""

    id: str
    text: str
    timestamp: datetime
    metrics: EngagementMetrics = field(default_factory=EngagementMetrics)

    @property
    def engagement(self) -> int:
        return self.metrics.likes + self.metrics.shares


@dataclass(frozen=True)
class ContradictionCandidate:
    """Two statements from one account that take opposing positions.

    ``statement_a`` is the newer of the two.
    """

    identity: str
    kind: ContradictionKind
    statement_a: Statement
    statement_b: Statement
    stance_a: Stance
    stance_b: Stance
    detected_at: datetime
    topic: str | None = None
    sentiment_a: int | None = None
    sentiment_b: int | None = None
