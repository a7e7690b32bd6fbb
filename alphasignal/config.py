"""Centralized configuration via pydantic-settings, loaded from .env."""

from __future__ import annotations

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRACKED_ACCOUNTS = [
    "@gfilche", "@chamath", "@elonmusk", "@saylor", "@cz_binance",
    "@VitalikButerin", "@a16z", "@sequoiacap", "@paulg", "@sama",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Infrastructure ─────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./data/alphasignal.db"
    redis_url: str = "redis://localhost:6379/0"

    # ── Post source (TwitterAPI.io) ────────────────────────────────────
    twitterapiio_api_key: str = ""
    source_timeout_seconds: float = 15.0
    source_rate_limit: int = 30  # calls per minute
    fetch_limit: int = 20

    # ── Tracked accounts ───────────────────────────────────────────────
    tracked_accounts: list[str] = list(DEFAULT_TRACKED_ACCOUNTS)

    # ── Alerting ───────────────────────────────────────────────────────
    alert_cooldown_minutes: int = 30
    severity_engagement_threshold: int = 100
    record_suppressed: bool = False
    delivery_backend: str = "log"  # log / redis
    delivery_redis_key: str = "alphasignal:alerts:outbox"

    # ── Lexicon overrides (empty = built-in keyword sets) ──────────────
    bullish_terms: list[str] = []
    bearish_terms: list[str] = []
    positive_words: list[str] = []
    negative_words: list[str] = []
    topic_keywords: list[str] = []

    # ── Sweep scheduling ───────────────────────────────────────────────
    sweep_interval_seconds: int = 300
    sweep_max_concurrency: int = 4

    # ── API Server ────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"
    mock_mode: bool = False

    # ── Computed helpers ───────────────────────────────────────────────
    @property
    def async_database_url(self) -> str:
        """Return the database URL with an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite:///"):
            url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return url


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton accessor for the global settings."""
    return Settings()
