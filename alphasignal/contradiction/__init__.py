"""Contradiction pipeline: lexicon → pairwise detector → severity → cooldown gate."""

from alphasignal.contradiction.detector import ContradictionDetector
from alphasignal.contradiction.gate import CooldownGate
from alphasignal.contradiction.lexicon import Lexicon, classify_stance, topic_sentiment
from alphasignal.contradiction.severity import score_severity
from alphasignal.contradiction.types import (
    ContradictionCandidate,
    ContradictionKind,
    EngagementMetrics,
    Severity,
    Stance,
    Statement,
)

__all__ = [
    "ContradictionCandidate",
    "ContradictionDetector",
    "ContradictionKind",
    "CooldownGate",
    "EngagementMetrics",
    "Lexicon",
    "Severity",
    "Stance",
    "Statement",
    "classify_stance",
    "score_severity",
    "topic_sentiment",
]
