"""Pairwise contradiction detector.

Every pair of an account's recent statements is checked (O(n²); n is capped
by the source fetch limit). Two rules, first match wins per pair:

1. sentiment-shift: one statement is bullish-only, the other bearish-only.
2. topic-shift: both statements mention the same topic keyword and their
   topic-sentiment scores are non-zero with opposite signs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from alphasignal.contradiction.lexicon import DEFAULT_LEXICON, Lexicon, StanceSignal
from alphasignal.contradiction.types import (
    ContradictionCandidate,
    ContradictionKind,
    Stance,
    Statement,
)
from alphasignal.utils import ensure_utc, utc_now


@dataclass(frozen=True)
class _Profile:
    statement: Statement
    signal: StanceSignal
    sentiment: int
    topics: frozenset[str]


def _opposing(a: Stance, b: Stance) -> bool:
    return {a, b} == {Stance.BULLISH, Stance.BEARISH}


class ContradictionDetector:
    """Finds opposing statement pairs for a single account."""

    def __init__(self, lexicon: Lexicon | None = None) -> None:
        self._lexicon = lexicon or DEFAULT_LEXICON

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    def _profile(self, statement: Statement) -> _Profile:
        return _Profile(
            statement=statement,
            signal=self._lexicon.classify_stance(statement.text),
            sentiment=self._lexicon.topic_sentiment(statement.text),
            topics=frozenset(self._lexicon.topics_in(statement.text)),
        )

    def detect(
        self,
        identity: str,
        statements: Sequence[Statement],
        detected_at: datetime | None = None,
    ) -> list[ContradictionCandidate]:
        if len(statements) < 2:
            return []

        detected_at = ensure_utc(detected_at) if detected_at else utc_now()
        ordered = sorted(statements, key=lambda s: ensure_utc(s.timestamp), reverse=True)
        profiles = [self._profile(s) for s in ordered]

        candidates: list[ContradictionCandidate] = []
        for i in range(len(profiles)):
            for j in range(i + 1, len(profiles)):
                candidate = self._compare(identity, profiles[i], profiles[j], detected_at)
                if candidate is not None:
                    candidates.append(candidate)

        return candidates

    def _compare(
        self,
        identity: str,
        a: _Profile,
        b: _Profile,
        detected_at: datetime,
    ) -> ContradictionCandidate | None:
        stance_a = a.signal.stance
        stance_b = b.signal.stance

        if _opposing(stance_a, stance_b):
            return ContradictionCandidate(
                identity=identity,
                kind=ContradictionKind.SENTIMENT_SHIFT,
                statement_a=a.statement,
                statement_b=b.statement,
                stance_a=stance_a,
                stance_b=stance_b,
                detected_at=detected_at,
            )

        # Scores are whole-text, so only the keyword choice depends on the loop.
        if a.sentiment * b.sentiment >= 0:
            return None
        for keyword in self._lexicon.topics:
            if keyword in a.topics and keyword in b.topics:
                return ContradictionCandidate(
                    identity=identity,
                    kind=ContradictionKind.TOPIC_SHIFT,
                    statement_a=a.statement,
                    statement_b=b.statement,
                    stance_a=stance_a,
                    stance_b=stance_b,
                    detected_at=detected_at,
                    topic=keyword,
                    sentiment_a=a.sentiment,
                    sentiment_b=b.sentiment,
                )
        return None
