"""Keyword lexicon: stance and topic-sentiment signals from raw text.

Matching is a case-insensitive substring test, so ``"up"`` also fires on
``"update"``. The keyword sets are data; swap them through settings without
touching the algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass

from alphasignal.config import Settings
from alphasignal.contradiction.types import Stance

BULLISH_TERMS = ("bull", "buy", "long", "moon", "pump", "up", "gain", "profit")
BEARISH_TERMS = ("bear", "sell", "short", "dump", "down", "loss", "crash", "fall")
POSITIVE_WORDS = ("good", "great", "excellent", "love", "amazing", "fantastic", "perfect", "awesome")
NEGATIVE_WORDS = ("bad", "terrible", "awful", "hate", "horrible", "worst", "disappointing", "fail")
TOPIC_KEYWORDS = ("bitcoin", "ethereum", "tesla", "spacex", "dogecoin", "crypto")


@dataclass(frozen=True)
class StanceSignal:
    bullish: bool
    bearish: bool

    @property
    def stance(self) -> Stance:
        if self.bullish and not self.bearish:
            return Stance.BULLISH
        if self.bearish and not self.bullish:
            return Stance.BEARISH
        return Stance.NEUTRAL


def _normalise(terms) -> tuple[str, ...]:
    return tuple(t.strip().lower() for t in terms if t and t.strip())


@dataclass(frozen=True)
class Lexicon:
    bullish: tuple[str, ...] = BULLISH_TERMS
    bearish: tuple[str, ...] = BEARISH_TERMS
    positive: tuple[str, ...] = POSITIVE_WORDS
    negative: tuple[str, ...] = NEGATIVE_WORDS
    topics: tuple[str, ...] = TOPIC_KEYWORDS

    @classmethod
    def from_settings(cls, settings: Settings) -> Lexicon:
        """Build a lexicon, replacing any keyword set the settings override."""
        return cls(
            bullish=_normalise(settings.bullish_terms) or BULLISH_TERMS,
            bearish=_normalise(settings.bearish_terms) or BEARISH_TERMS,
            positive=_normalise(settings.positive_words) or POSITIVE_WORDS,
            negative=_normalise(settings.negative_words) or NEGATIVE_WORDS,
            topics=_normalise(settings.topic_keywords) or TOPIC_KEYWORDS,
        )

    def classify_stance(self, text: str) -> StanceSignal:
        lowered = (text or "").lower()
        return StanceSignal(
            bullish=any(term in lowered for term in self.bullish),
            bearish=any(term in lowered for term in self.bearish),
        )

    def topic_sentiment(self, text: str) -> int:
        """Positive-word count minus negative-word count (each word counted once)."""
        lowered = (text or "").lower()
        pos = sum(1 for word in self.positive if word in lowered)
        neg = sum(1 for word in self.negative if word in lowered)
        return pos - neg

    def topics_in(self, text: str) -> list[str]:
        lowered = (text or "").lower()
        return [kw for kw in self.topics if kw in lowered]


DEFAULT_LEXICON = Lexicon()


def classify_stance(text: str) -> StanceSignal:
    return DEFAULT_LEXICON.classify_stance(text)


def topic_sentiment(text: str) -> int:
    return DEFAULT_LEXICON.topic_sentiment(text)
