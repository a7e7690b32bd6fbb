"""Database package: models, engine, session factory, alert store."""

from alphasignal.db.database import init_db, session_scope
from alphasignal.db.models import Base, ContradictionAlert, SentimentSnapshot
from alphasignal.db.store import AlertStore

__all__ = [
    "AlertStore",
    "Base",
    "ContradictionAlert",
    "SentimentSnapshot",
    "init_db",
    "session_scope",
]
