"""Severity from engagement: likes + shares on the louder of the two statements."""

from __future__ import annotations

from alphasignal.contradiction.types import Severity, Statement

HIGH_ENGAGEMENT_THRESHOLD = 100


def score_severity(
    statement_a: Statement,
    statement_b: Statement,
    threshold: int = HIGH_ENGAGEMENT_THRESHOLD,
) -> Severity:
    if max(statement_a.engagement, statement_b.engagement) > threshold:
        return Severity.HIGH
    return Severity.MEDIUM
