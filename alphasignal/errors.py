"""Exception taxonomy for the contradiction pipeline."""

from __future__ import annotations


class AlphaSignalError(Exception):
    """Base class for every error raised by AlphaSignal."""


# ── Post source ────────────────────────────────────────────────────────

class SourceError(AlphaSignalError):
    """A post source could not return statements for an account."""

    def __init__(self, message: str, *, handle: str | None = None) -> None:
        super().__init__(message)
        self.handle = handle


class SourceUnavailable(SourceError):
    """Network/provider failure. The account is retried on the next sweep."""


class RateLimited(SourceError):
    """Provider backpressure. The account is skipped for this sweep."""

    def __init__(
        self,
        message: str,
        *,
        handle: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, handle=handle)
        self.retry_after = retry_after


# ── Store ──────────────────────────────────────────────────────────────

class StoreWriteFailure(AlphaSignalError):
    """An alert could not be committed; nothing was written for that record."""


class StoreUnavailable(AlphaSignalError):
    """The alert store cannot be reached at all. Fatal for the whole sweep."""


# ── Orchestration ──────────────────────────────────────────────────────

class SweepInProgress(AlphaSignalError):
    """A sweep was requested while another one is still running."""
