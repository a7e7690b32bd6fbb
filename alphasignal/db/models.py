"""SQLAlchemy 2.0 async-compatible ORM models for AlphaSignal."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from alphasignal.utils import ensure_utc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_alert_id() -> str:
    return f"alert_{uuid.uuid4().hex}"


def _iso(dt: datetime | None) -> str | None:
    return ensure_utc(dt).isoformat() if dt else None


class Base(DeclarativeBase):
    """Shared declarative base for all AlphaSignal models."""


# ── Contradiction alerts ───────────────────────────────────────────────

class ContradictionAlert(Base):
    """One admitted (or, when auditing, suppressed) contradiction.

    Column names follow the legacy ``contradictions`` table; ``alerted`` is
    the delivered flag and the only column that changes after insert.
    """

    __tablename__ = "contradictions"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, default=new_alert_id)
    account: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # sentiment-shift / topic-shift
    topic: Mapped[str | None] = mapped_column(String(64), nullable=True)

    tweet1_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tweet1_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    tweet1_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tweet2_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tweet2_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    tweet2_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    stance1: Mapped[str | None] = mapped_column(String(16), nullable=True)
    stance2: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sentiment1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sentiment2: Mapped[int | None] = mapped_column(Integer, nullable=True)

    severity: Mapped[str] = mapped_column(String(16), nullable=False)  # medium / high
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    alerted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    suppressed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_contradictions_account_type_detected", "account", "type", "detected_at"),
        Index("ix_contradictions_type", "type"),
        Index("ix_contradictions_alerted", "alerted", "suppressed"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "account": self.account,
            "type": self.type,
            "topic": self.topic,
            "tweet1": {
                "id": self.tweet1_id,
                "text": self.tweet1_text,
                "timestamp": _iso(self.tweet1_timestamp),
                "stance": self.stance1,
                "sentiment": self.sentiment1,
            },
            "tweet2": {
                "id": self.tweet2_id,
                "text": self.tweet2_text,
                "timestamp": _iso(self.tweet2_timestamp),
                "stance": self.stance2,
                "sentiment": self.sentiment2,
            },
            "severity": self.severity,
            "detected_at": _iso(self.detected_at),
            "created_at": _iso(self.created_at),
            "alerted": bool(self.alerted),
            "suppressed": bool(self.suppressed),
        }


# ── Per-account stance history ─────────────────────────────────────────

class SentimentSnapshot(Base):
    """Daily bullish/bearish tally for an account, overwritten on each sweep."""

    __tablename__ = "sentiment_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account: Mapped[str] = mapped_column(String(256), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD (UTC)
    bullish_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bearish_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activity_level: Mapped[str] = mapped_column(String(16), nullable=False, default="moderate")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("account", "date", name="uq_sentiment_account_date"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "date": self.date,
            "bullish_count": self.bullish_count,
            "bearish_count": self.bearish_count,
            "score": self.score,
            "activity_level": self.activity_level,
            "updated_at": _iso(self.updated_at),
        }
