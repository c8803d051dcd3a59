"""
Unit tests for core.updates module.
Tests registration order, the applied-updates ledger and failure handling.
"""
import pytest

from arklet.core.errors import ConfigurationError
from arklet.core.updates import UpdateRegistry
from arklet.models.update import AppUpdate


class TestRegistration:
    def test_keys_keep_registration_order(self):
        updates = UpdateRegistry()
        updates.register("0.0.2-b", lambda arklet: None)
        updates.register("0.0.1-a", lambda arklet: None)
        assert updates.keys() == ["0.0.2-b", "0.0.1-a"]

    def test_decorator_form(self):
        updates = UpdateRegistry()

        @updates.register("0.0.1-admins")
        def create_admins(arklet):
            return None

        assert updates.keys() == ["0.0.1-admins"]
        assert create_admins.__name__ == "create_admins"

    def test_duplicate_key_rejected(self):
        updates = UpdateRegistry()
        updates.register("0.0.1", lambda arklet: None)
        with pytest.raises(ConfigurationError, match="already registered"):
            updates.register("0.0.1", lambda arklet: None)


@pytest.mark.asyncio
async def test_apply_runs_pending_updates_once(db):
    updates = UpdateRegistry()
    calls = []

    async def first(arklet):
        calls.append(("first", arklet))

    def second(arklet):
        calls.append(("second", arklet))

    updates.register("0.0.1-first", first)
    updates.register("0.0.2-second", second)

    sentinel = object()
    assert await updates.apply(sentinel) == ["0.0.1-first", "0.0.2-second"]
    assert calls == [("first", sentinel), ("second", sentinel)]
    assert await AppUpdate.filter(key="0.0.1-first").exists()

    # second run: everything is recorded already
    assert await updates.apply(sentinel) == []
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_pending_skips_recorded_keys(db):
    await AppUpdate.create(key="0.0.1-old")
    updates = UpdateRegistry()
    updates.register("0.0.1-old", lambda arklet: None)
    updates.register("0.0.2-new", lambda arklet: None)
    assert await updates.pending() == ["0.0.2-new"]


@pytest.mark.asyncio
async def test_failed_update_stops_and_is_not_recorded(db):
    updates = UpdateRegistry()
    ran = []

    def ok(arklet):
        ran.append("ok")

    def broken(arklet):
        raise RuntimeError("migration failed")

    def later(arklet):
        ran.append("later")

    updates.register("1-ok", ok)
    updates.register("2-broken", broken)
    updates.register("3-later", later)

    with pytest.raises(RuntimeError, match="migration failed"):
        await updates.apply(None)

    assert ran == ["ok"]
    assert await AppUpdate.all().values_list("key", flat=True) == ["1-ok"]
    assert await updates.pending() == ["2-broken", "3-later"]
