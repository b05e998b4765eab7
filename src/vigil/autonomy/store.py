"""
Vigil Autonomy Settings Store

Persistence for per-user autonomy settings. Every store shares the
read-merge-validate-write logic in ``AutonomySettingsService``; concrete
stores only load and save whole, already-validated documents.

Settings are created with defaults on first read and are never cached:
each ``get_settings`` reads the backing store.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from vigil.autonomy.settings import (
    AutonomyPreset,
    AutonomySettings,
    SettingsSection,
    default_settings,
    merge_settings,
    reset_settings,
)
from vigil.logging import get_logger
from vigil.storage.db import DbConnection, connect

logger = get_logger("vigil.autonomy.store")


@runtime_checkable
class AutonomySettingsStore(Protocol):
    """What the orchestrator needs from a settings backend."""

    async def get_settings(self, user_id: str) -> AutonomySettings: ...

    async def upsert_settings(
        self, user_id: str, update: Mapping[str, Any]
    ) -> AutonomySettings: ...

    async def reset_settings(
        self,
        user_id: str,
        section: SettingsSection | str | None = None,
        preset: AutonomyPreset | str = AutonomyPreset.DEFAULT,
    ) -> AutonomySettings: ...


class AutonomySettingsService:
    """Shared merge/validate layer. Subclasses implement ``_load`` and ``_save``."""

    def __init__(self) -> None:
        self._write_lock = asyncio.Lock()

    async def _load(self, user_id: str) -> AutonomySettings | None:
        raise NotImplementedError

    async def _save(self, user_id: str, settings: AutonomySettings) -> None:
        raise NotImplementedError

    async def get_settings(self, user_id: str) -> AutonomySettings:
        """Current settings for ``user_id``, created with defaults on first read."""
        settings = await self._load(user_id)
        if settings is None:
            settings = default_settings()
            await self._save(user_id, settings)
            logger.info("Created default autonomy settings", extra={"user_id": user_id})
        return settings

    async def upsert_settings(
        self, user_id: str, update: Mapping[str, Any]
    ) -> AutonomySettings:
        """Merge a partial update and persist it.

        Raises:
            InvalidSettingsError: the merged settings are invalid. Nothing is
                written in that case.
        """
        async with self._write_lock:
            current = await self.get_settings(user_id)
            merged = merge_settings(current, update)
            await self._save(user_id, merged)
        logger.info(
            "Updated autonomy settings",
            extra={"user_id": user_id},
        )
        return merged

    async def reset_settings(
        self,
        user_id: str,
        section: SettingsSection | str | None = None,
        preset: AutonomyPreset | str = AutonomyPreset.DEFAULT,
    ) -> AutonomySettings:
        """Reset everything, or one section, to a preset."""
        async with self._write_lock:
            current = await self.get_settings(user_id)
            updated = reset_settings(current, section=section, preset=preset)
            await self._save(user_id, updated)
        logger.info(
            "Reset autonomy settings to %s%s",
            AutonomyPreset(preset).value,
            f" ({SettingsSection(section).value})" if section else "",
            extra={"user_id": user_id},
        )
        return updated


class InMemoryAutonomySettingsStore(AutonomySettingsService):
    """Dict-backed store for tests and single-process use."""

    def __init__(self) -> None:
        super().__init__()
        self._settings: dict[str, AutonomySettings] = {}

    async def _load(self, user_id: str) -> AutonomySettings | None:
        settings = self._settings.get(user_id)
        return settings.model_copy(deep=True) if settings is not None else None

    async def _save(self, user_id: str, settings: AutonomySettings) -> None:
        self._settings[user_id] = settings.model_copy(deep=True)


class SqlAutonomySettingsStore(AutonomySettingsService):
    """SQLite/PostgreSQL store keeping one JSON document per user."""

    def __init__(self, db_url: str = "vigil.db", conn: DbConnection | None = None):
        super().__init__()
        self._conn = conn or connect(db_url)
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS autonomy_settings (
                user_id TEXT PRIMARY KEY,
                settings TEXT NOT NULL DEFAULT '{}',
                updated_at TEXT DEFAULT ''
            )
        """)
        self._conn.commit()

    def _load_sync(self, user_id: str) -> AutonomySettings | None:
        with self._conn.lock:
            row = self._conn.execute(
                "SELECT settings FROM autonomy_settings WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return AutonomySettings.model_validate(json.loads(row["settings"]))

    def _save_sync(self, user_id: str, settings: AutonomySettings) -> None:
        with self._conn.lock:
            self._conn.upsert(
                "autonomy_settings",
                "user_id",
                ["user_id", "settings", "updated_at"],
                (user_id, settings.model_dump_json(), settings.updated_at.isoformat()),
            )
            self._conn.commit()

    async def _load(self, user_id: str) -> AutonomySettings | None:
        return await asyncio.to_thread(self._load_sync, user_id)

    async def _save(self, user_id: str, settings: AutonomySettings) -> None:
        await asyncio.to_thread(self._save_sync, user_id, settings)

    def close(self) -> None:
        self._conn.close()
