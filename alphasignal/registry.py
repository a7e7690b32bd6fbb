"""Tracked-account registry. Seeded from settings, mutated at runtime."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

logger = logging.getLogger(__name__)


def normalise_handle(handle: str) -> str:
    """``"elonmusk"``, ``"@elonmusk"`` and ``" @@elonmusk "`` all become ``"@elonmusk"``."""
    name = (handle or "").strip().lstrip("@")
    if not name:
        raise ValueError("account handle must not be empty")
    return f"@{name}"


class TrackedAccounts:
    """Set of account handles the sweep worker checks. Add/remove are idempotent."""

    def __init__(self, handles: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._handles: dict[str, None] = {}
        for handle in handles:
            self._handles[normalise_handle(handle)] = None

    def add(self, handle: str) -> bool:
        key = normalise_handle(handle)
        with self._lock:
            if key in self._handles:
                return False
            self._handles[key] = None
        logger.info("[registry] tracking %s", key)
        return True

    def remove(self, handle: str) -> bool:
        key = normalise_handle(handle)
        with self._lock:
            if key not in self._handles:
                return False
            del self._handles[key]
        logger.info("[registry] stopped tracking %s", key)
        return True

    def list(self) -> set[str]:
        with self._lock:
            return set(self._handles)

    def ordered(self) -> list[str]:
        """Handles in insertion order, for deterministic sweeps."""
        with self._lock:
            return list(self._handles)

    def __contains__(self, handle: str) -> bool:
        return normalise_handle(handle) in self.list()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
