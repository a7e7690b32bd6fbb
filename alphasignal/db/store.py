"""AlertStore: append-only alert history with indexed lookups.

All writes go through ``_write_lock`` so the cooldown check-then-insert in
``append_unless_recent`` cannot interleave with another write. Each insert is
its own transaction: a failed commit leaves no partial row behind.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from sqlalchemy import delete, exists, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from alphasignal.db.database import get_session_factory, session_scope
from alphasignal.db.models import ContradictionAlert, SentimentSnapshot
from alphasignal.errors import StoreWriteFailure
from alphasignal.utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AlertStore:
    """Durable record of emitted contradiction alerts."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._factory = session_factory or get_session_factory()
        self._write_lock = asyncio.Lock()

    # ── health ─────────────────────────────────────────────────────────

    async def ping(self) -> None:
        """Raise if the backing database cannot be reached."""
        async with session_scope(self._factory) as session:
            await session.execute(text("SELECT 1"))

    # ── writes ─────────────────────────────────────────────────────────

    async def append(self, alert: ContradictionAlert) -> ContradictionAlert:
        async with self._write_lock:
            await self._insert(alert)
        return alert

    async def append_unless_recent(self, alert: ContradictionAlert, since: datetime) -> bool:
        """Insert *alert* unless a live alert for its (account, type) exists since *since*.

        Returns False when the insert was skipped.
        """
        async with self._write_lock:
            if await self.has_recent(alert.account, alert.type, since):
                return False
            await self._insert(alert)
        return True

    async def _insert(self, alert: ContradictionAlert) -> None:
        try:
            async with session_scope(self._factory) as session:
                session.add(alert)
        except SQLAlchemyError as exc:
            logger.error(
                "[store] failed to persist alert %s for %s (%s)",
                alert.id, alert.account, alert.type, exc_info=True,
            )
            raise StoreWriteFailure(f"could not persist alert {alert.id}") from exc

    async def mark_delivered(self, alert_id: str) -> bool:
        """Flip ``alerted`` on a live alert. Returns False for unknown or suppressed ids."""
        async with self._write_lock:
            try:
                async with session_scope(self._factory) as session:
                    result = await session.execute(
                        update(ContradictionAlert)
                        .where(ContradictionAlert.id == alert_id)
                        .where(ContradictionAlert.suppressed.is_(False))
                        .values(alerted=True)
                    )
            except SQLAlchemyError as exc:
                logger.error("[store] failed to mark %s delivered", alert_id, exc_info=True)
                raise StoreWriteFailure(f"could not mark alert {alert_id} delivered") from exc
        return (result.rowcount or 0) > 0

    async def reset(self) -> int:
        """Delete every alert. Returns the number of rows removed."""
        async with self._write_lock:
            async with session_scope(self._factory) as session:
                result = await session.execute(delete(ContradictionAlert))
        removed = result.rowcount or 0
        logger.warning("[store] cleared %d contradiction alerts", removed)
        return removed

    # ── reads ──────────────────────────────────────────────────────────

    async def has_recent(self, account: str, kind: str, since: datetime) -> bool:
        stmt = select(
            exists().where(
                ContradictionAlert.account == account,
                ContradictionAlert.type == kind,
                ContradictionAlert.suppressed.is_(False),
                ContradictionAlert.detected_at >= ensure_utc(since),
            )
        )
        async with session_scope(self._factory) as session:
            return bool((await session.execute(stmt)).scalar())

    async def _fetch(self, stmt) -> list[ContradictionAlert]:
        async with session_scope(self._factory) as session:
            return list((await session.execute(stmt)).scalars().all())

    @staticmethod
    def _live(stmt, include_suppressed: bool):
        if include_suppressed:
            return stmt
        return stmt.where(ContradictionAlert.suppressed.is_(False))

    async def recent(self, limit: int = 10, include_suppressed: bool = False) -> list[ContradictionAlert]:
        """Most recent alerts, newest first."""
        stmt = select(ContradictionAlert).order_by(ContradictionAlert.seq.desc()).limit(limit)
        return await self._fetch(self._live(stmt, include_suppressed))

    async def by_identity(self, account: str, include_suppressed: bool = False) -> list[ContradictionAlert]:
        stmt = (
            select(ContradictionAlert)
            .where(ContradictionAlert.account == account)
            .order_by(ContradictionAlert.seq.desc())
        )
        return await self._fetch(self._live(stmt, include_suppressed))

    async def by_kind(self, kind: str, include_suppressed: bool = False) -> list[ContradictionAlert]:
        stmt = (
            select(ContradictionAlert)
            .where(ContradictionAlert.type == kind)
            .order_by(ContradictionAlert.seq.desc())
        )
        return await self._fetch(self._live(stmt, include_suppressed))

    async def get(self, alert_id: str) -> ContradictionAlert | None:
        async with session_scope(self._factory) as session:
            return (
                await session.execute(select(ContradictionAlert).where(ContradictionAlert.id == alert_id))
            ).scalar_one_or_none()

    async def pending(self, limit: int = 100) -> list[ContradictionAlert]:
        """Live alerts not yet handed to the delivery sink, oldest first."""
        stmt = (
            select(ContradictionAlert)
            .where(ContradictionAlert.alerted.is_(False))
            .where(ContradictionAlert.suppressed.is_(False))
            .order_by(ContradictionAlert.seq.asc())
            .limit(limit)
        )
        return await self._fetch(stmt)

    async def count(self, include_suppressed: bool = False) -> int:
        stmt = self._live(select(func.count(ContradictionAlert.seq)), include_suppressed)
        async with session_scope(self._factory) as session:
            return int((await session.execute(stmt)).scalar() or 0)

    # ── sentiment history ──────────────────────────────────────────────

    async def record_sentiment(
        self,
        account: str,
        bullish_count: int,
        bearish_count: int,
        now: datetime | None = None,
    ) -> SentimentSnapshot:
        """Upsert the stance tally for *account* on the UTC day of *now*."""
        now = ensure_utc(now) if now else utc_now()
        day = now.date().isoformat()
        async with self._write_lock:
            async with session_scope(self._factory) as session:
                row = (
                    await session.execute(
                        select(SentimentSnapshot)
                        .where(SentimentSnapshot.account == account)
                        .where(SentimentSnapshot.date == day)
                    )
                ).scalar_one_or_none()
                if row is None:
                    row = SentimentSnapshot(account=account, date=day)
                    session.add(row)
                row.bullish_count = bullish_count
                row.bearish_count = bearish_count
                row.score = bullish_count - bearish_count
                row.activity_level = "high" if bullish_count + bearish_count > 5 else "moderate"
                row.updated_at = now
        return row

    async def sentiment_history(self, account: str, limit: int = 30) -> list[SentimentSnapshot]:
        async with session_scope(self._factory) as session:
            return list(
                (
                    await session.execute(
                        select(SentimentSnapshot)
                        .where(SentimentSnapshot.account == account)
                        .order_by(SentimentSnapshot.date.desc())
                        .limit(limit)
                    )
                ).scalars().all()
            )
