"""CooldownGate: turns candidates into alerts, at most one per (account, kind) per window.

The gate's clock is the single time source: "now" for the cooldown window and
``created_at`` on new alerts both come from it, and the sweep worker stamps
candidates' ``detected_at`` with the same clock.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from alphasignal.contradiction.types import ContradictionCandidate, Severity
from alphasignal.db.models import ContradictionAlert, new_alert_id
from alphasignal.db.store import AlertStore
from alphasignal.utils import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(minutes=30)


def build_alert(
    candidate: ContradictionCandidate,
    severity: Severity,
    clock: Clock = utc_now,
) -> ContradictionAlert:
    a, b = candidate.statement_a, candidate.statement_b
    return ContradictionAlert(
        id=new_alert_id(),
        account=candidate.identity,
        type=candidate.kind.value,
        topic=candidate.topic,
        tweet1_id=a.id,
        tweet1_text=a.text,
        tweet1_timestamp=ensure_utc(a.timestamp),
        tweet2_id=b.id,
        tweet2_text=b.text,
        tweet2_timestamp=ensure_utc(b.timestamp),
        stance1=candidate.stance_a.value,
        stance2=candidate.stance_b.value,
        sentiment1=candidate.sentiment_a,
        sentiment2=candidate.sentiment_b,
        severity=severity.value,
        detected_at=ensure_utc(candidate.detected_at),
        created_at=clock(),
        alerted=False,
        suppressed=False,
    )


class CooldownGate:
    """Suppresses repeat alerts for the same account and contradiction kind."""

    def __init__(
        self,
        store: AlertStore,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        clock: Clock = utc_now,
        record_suppressed: bool = False,
    ) -> None:
        self._store = store
        self._cooldown = cooldown
        self._clock = clock
        self._record_suppressed = record_suppressed
        self.total_admitted = 0
        self.total_suppressed = 0

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    @property
    def clock(self) -> Clock:
        return self._clock

    async def admit(
        self,
        candidate: ContradictionCandidate,
        severity: Severity,
    ) -> ContradictionAlert | None:
        """Persist and return a new alert, or return None if it falls inside the cooldown."""
        now = self._clock()
        alert = build_alert(candidate, severity, clock=lambda: now)

        if await self._store.append_unless_recent(alert, since=now - self._cooldown):
            self.total_admitted += 1
            logger.info(
                "[gate] new %s alert %s for %s (severity=%s)",
                alert.type, alert.id, alert.account, alert.severity,
            )
            return alert

        self.total_suppressed += 1
        logger.debug(
            "[gate] suppressed %s for %s (cooldown %ds)",
            alert.type, alert.account, int(self._cooldown.total_seconds()),
        )
        if self._record_suppressed:
            alert.suppressed = True
            await self._store.append(alert)
        return None

    def get_stats(self) -> dict[str, int]:
        return {
            "admitted": self.total_admitted,
            "suppressed": self.total_suppressed,
            "cooldown_seconds": int(self._cooldown.total_seconds()),
        }
