from __future__ import annotations

import pytest

from alphasignal.config import DEFAULT_TRACKED_ACCOUNTS, Settings
from alphasignal.registry import TrackedAccounts, normalise_handle


def test_handles_are_normalised() -> None:
    assert normalise_handle("elonmusk") == "@elonmusk"
    assert normalise_handle(" @@elonmusk ") == "@elonmusk"
    with pytest.raises(ValueError):
        normalise_handle("@")


def test_add_and_remove_are_idempotent() -> None:
    registry = TrackedAccounts(["@a"])

    assert registry.add("b") is True
    assert registry.add("@b") is False
    assert registry.list() == {"@a", "@b"}

    assert registry.remove("@a") is True
    assert registry.remove("a") is False
    assert registry.list() == {"@b"}
    assert "b" in registry


def test_seeded_from_settings_in_order() -> None:
    registry = TrackedAccounts(Settings().tracked_accounts)
    assert registry.ordered() == DEFAULT_TRACKED_ACCOUNTS
    assert len(registry) == 10
