"""Tests for Vigil autonomy settings stores (in-memory and SQLite)."""

import asyncio

import pytest

from vigil.autonomy import InMemoryAutonomySettingsStore, SqlAutonomySettingsStore
from vigil.core.models import ApprovalMode, ToolCategory
from vigil.exceptions import InvalidSettingsError


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryAutonomySettingsStore()
    else:
        sql_store = SqlAutonomySettingsStore(str(tmp_path / "settings.db"))
        yield sql_store
        sql_store.close()


class TestSettingsStore:
    @pytest.mark.asyncio
    async def test_first_read_creates_defaults(self, store):
        settings = await store.get_settings("u-1")
        assert settings.default_approval_mode == ApprovalMode.HIGH_RISK_ONLY
        again = await store.get_settings("u-1")
        assert again.updated_at == settings.updated_at

    @pytest.mark.asyncio
    async def test_upsert_merges_and_persists(self, store):
        updated = await store.upsert_settings(
            "u-1", {"category_settings": {"delete": {"mode": "high_risk_only"}}}
        )
        assert updated.category_settings[ToolCategory.DELETE].mode == ApprovalMode.HIGH_RISK_ONLY
        reread = await store.get_settings("u-1")
        assert reread.category_settings[ToolCategory.DELETE].mode == ApprovalMode.HIGH_RISK_ONLY
        assert reread.category_settings[ToolCategory.QUERY].mode == ApprovalMode.TRUST_CONFIDENT

    @pytest.mark.asyncio
    async def test_invalid_update_writes_nothing(self, store):
        await store.upsert_settings("u-1", {"confidence_threshold": 0.9})
        with pytest.raises(InvalidSettingsError):
            await store.upsert_settings("u-1", {"confidence_threshold": 7})
        assert (await store.get_settings("u-1")).confidence_threshold == 0.9

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, store):
        await store.upsert_settings("u-1", {"default_approval_mode": "always_approve"})
        other = await store.get_settings("u-2")
        assert other.default_approval_mode == ApprovalMode.HIGH_RISK_ONLY

    @pytest.mark.asyncio
    async def test_reset_section(self, store):
        await store.upsert_settings("u-1", {"confidence_threshold": 0.55, "default_approval_mode": "always_approve"})
        reset = await store.reset_settings("u-1", section="threshold")
        assert reset.confidence_threshold == 0.8
        assert reset.default_approval_mode == ApprovalMode.ALWAYS_APPROVE
        assert (await store.get_settings("u-1")).confidence_threshold == 0.8

    @pytest.mark.asyncio
    async def test_reset_to_preset(self, store):
        reset = await store.reset_settings("u-1", preset="conservative")
        assert reset.quiet_hours.enabled is True
        assert (await store.get_settings("u-1")).default_approval_mode == ApprovalMode.ALWAYS_APPROVE

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self, store):
        await asyncio.gather(
            store.upsert_settings("u-1", {"tool_overrides": {"send_email": {"mode": "always_approve"}}}),
            store.upsert_settings("u-1", {"tool_overrides": {"delete_task": {"disabled": True}}}),
        )
        settings = await store.get_settings("u-1")
        assert set(settings.tool_overrides) == {"send_email", "delete_task"}

    @pytest.mark.asyncio
    async def test_returned_settings_are_copies(self, store):
        settings = await store.get_settings("u-1")
        settings.confidence_threshold = 0.1
        assert (await store.get_settings("u-1")).confidence_threshold == 0.8


class TestSqlPersistence:
    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "settings.db")
        store = SqlAutonomySettingsStore(path)
        await store.upsert_settings("u-1", {"quiet_hours": {"enabled": True, "timezone": "Europe/Bratislava"}})
        store.close()

        reopened = SqlAutonomySettingsStore(path)
        settings = await reopened.get_settings("u-1")
        reopened.close()
        assert settings.quiet_hours.enabled is True
        assert settings.quiet_hours.timezone == "Europe/Bratislava"
