"""Vigil autonomy: per-user approval policy, presets, and the resolver."""

from vigil.autonomy.resolver import (
    RESOLUTION_ORDER,
    AutonomyDecision,
    evaluate_mode,
    is_in_quiet_hours,
    resolve,
)
from vigil.autonomy.settings import (
    AutonomyPreset,
    AutonomySettings,
    CategorySetting,
    QuietHours,
    SettingsSection,
    ToolOverride,
    default_settings,
    merge_settings,
    preset_settings,
    reset_settings,
    validate_settings,
)
from vigil.autonomy.store import (
    AutonomySettingsService,
    AutonomySettingsStore,
    InMemoryAutonomySettingsStore,
    SqlAutonomySettingsStore,
)

__all__ = [
    "RESOLUTION_ORDER",
    "AutonomyDecision",
    "AutonomyPreset",
    "AutonomySettings",
    "AutonomySettingsService",
    "AutonomySettingsStore",
    "CategorySetting",
    "InMemoryAutonomySettingsStore",
    "QuietHours",
    "SettingsSection",
    "SqlAutonomySettingsStore",
    "ToolOverride",
    "default_settings",
    "evaluate_mode",
    "is_in_quiet_hours",
    "merge_settings",
    "preset_settings",
    "reset_settings",
    "resolve",
    "validate_settings",
]
