"""
Vigil Autonomy Settings

Per-user policy configuration consumed by the autonomy resolver, the
named presets, and the merge/validate logic every settings write goes
through.

Settings are hierarchical (tool > quiet hours > category > default) and
validated as a whole: a partial update is merged into the current
settings first, and the merged result must validate before it is stored.
Resolution never sees malformed settings.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from vigil.core.models import ApprovalMode, ToolCategory
from vigil.exceptions import InvalidSettingsError
from vigil.logging import get_logger

logger = get_logger("vigil.autonomy.settings")

CLOCK_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


# ─── Setting Models ─────────────────────────────────────────


class CategorySetting(BaseModel):
    """Approval mode for one tool category, with an optional threshold override."""
    mode: ApprovalMode
    confidence_override: float | None = Field(None, ge=0.0, le=1.0)


class ToolOverride(BaseModel):
    """Most specific setting: one tool by name."""
    mode: ApprovalMode = ApprovalMode.ALWAYS_APPROVE
    confidence_override: float | None = Field(None, ge=0.0, le=1.0)
    always_notify: bool | None = None
    disabled: bool = False


class QuietHours(BaseModel):
    """Recurring daily window during which a forced approval mode applies.

    ``start`` and ``end`` are 24h ``HH:MM`` clock times in ``timezone``.
    A window with start > end spans midnight.
    """
    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"
    mode: ApprovalMode = ApprovalMode.ALWAYS_APPROVE

    @field_validator("start", "end")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        if not CLOCK_PATTERN.match(value):
            raise ValueError(f"must be in HH:MM format, got {value!r}")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {value!r}") from None
        return value

    @staticmethod
    def _minutes(clock: str) -> int:
        hours, minutes = clock.split(":")
        return int(hours) * 60 + int(minutes)

    def contains(self, now: datetime) -> bool:
        """Whether ``now`` falls inside ``[start, end)`` in the configured timezone."""
        if not self.enabled:
            return False
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(ZoneInfo(self.timezone))
        current = local.hour * 60 + local.minute
        start = self._minutes(self.start)
        end = self._minutes(self.end)
        if start > end:
            # Overnight window
            return current >= start or current < end
        return start <= current < end


class AutonomySettings(BaseModel):
    """The full per-user autonomy policy."""
    default_approval_mode: ApprovalMode = ApprovalMode.HIGH_RISK_ONLY
    confidence_threshold: float = Field(0.8, ge=0.0, le=1.0)
    high_risk_override: bool = True
    category_settings: dict[ToolCategory, CategorySetting] = Field(default_factory=dict)
    tool_overrides: dict[str, ToolOverride] = Field(default_factory=dict)
    quiet_hours: QuietHours = Field(default_factory=QuietHours)
    notify_on_auto_execute: bool = True
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_full_autonomy(self) -> bool:
        """True for the dangerous combination: full autonomy with no high-risk guard."""
        return (
            self.default_approval_mode == ApprovalMode.FULL_AUTONOMY
            and not self.high_risk_override
        )


# ─── Presets ────────────────────────────────────────────────


class AutonomyPreset(str, Enum):
    """Named settings bundles a user can reset to."""
    DEFAULT = "default"
    CONSERVATIVE = "conservative"
    PERMISSIVE = "permissive"


PRESET_DESCRIPTIONS: dict[AutonomyPreset, str] = {
    AutonomyPreset.DEFAULT: "Balanced: approve risky actions, auto-execute safe ones",
    AutonomyPreset.CONSERVATIVE: "Maximum control: approve most actions before execution",
    AutonomyPreset.PERMISSIVE: "Maximum convenience: trust confident decisions",
}


def default_settings() -> AutonomySettings:
    """Defaults for a new user. Queries may auto-run; external actions always ask."""
    return AutonomySettings(
        default_approval_mode=ApprovalMode.HIGH_RISK_ONLY,
        confidence_threshold=0.8,
        category_settings={
            ToolCategory.QUERY: CategorySetting(
                mode=ApprovalMode.TRUST_CONFIDENT, confidence_override=0.7
            ),
            ToolCategory.CREATE: CategorySetting(mode=ApprovalMode.HIGH_RISK_ONLY),
            ToolCategory.UPDATE: CategorySetting(mode=ApprovalMode.HIGH_RISK_ONLY),
            ToolCategory.DELETE: CategorySetting(mode=ApprovalMode.ALWAYS_APPROVE),
            ToolCategory.EXTERNAL: CategorySetting(
                mode=ApprovalMode.ALWAYS_APPROVE, confidence_override=0.95
            ),
        },
        quiet_hours=QuietHours(),
        high_risk_override=True,
        notify_on_auto_execute=True,
    )


def conservative_settings() -> AutonomySettings:
    return AutonomySettings(
        default_approval_mode=ApprovalMode.ALWAYS_APPROVE,
        confidence_threshold=0.95,
        category_settings={
            ToolCategory.QUERY: CategorySetting(
                mode=ApprovalMode.TRUST_CONFIDENT, confidence_override=0.9
            ),
            ToolCategory.CREATE: CategorySetting(mode=ApprovalMode.ALWAYS_APPROVE),
            ToolCategory.UPDATE: CategorySetting(mode=ApprovalMode.ALWAYS_APPROVE),
            ToolCategory.DELETE: CategorySetting(mode=ApprovalMode.ALWAYS_APPROVE),
            ToolCategory.EXTERNAL: CategorySetting(mode=ApprovalMode.ALWAYS_APPROVE),
        },
        quiet_hours=QuietHours(
            enabled=True, start="20:00", end="09:00", mode=ApprovalMode.ALWAYS_APPROVE
        ),
        high_risk_override=True,
        notify_on_auto_execute=True,
    )


def permissive_settings() -> AutonomySettings:
    return AutonomySettings(
        default_approval_mode=ApprovalMode.TRUST_CONFIDENT,
        confidence_threshold=0.7,
        category_settings={
            ToolCategory.QUERY: CategorySetting(mode=ApprovalMode.FULL_AUTONOMY),
            ToolCategory.CREATE: CategorySetting(
                mode=ApprovalMode.TRUST_CONFIDENT, confidence_override=0.8
            ),
            ToolCategory.UPDATE: CategorySetting(
                mode=ApprovalMode.TRUST_CONFIDENT, confidence_override=0.85
            ),
            ToolCategory.DELETE: CategorySetting(mode=ApprovalMode.HIGH_RISK_ONLY),
            ToolCategory.EXTERNAL: CategorySetting(mode=ApprovalMode.HIGH_RISK_ONLY),
        },
        quiet_hours=QuietHours(enabled=False),
        high_risk_override=True,
        notify_on_auto_execute=True,
    )


_PRESETS = {
    AutonomyPreset.DEFAULT: default_settings,
    AutonomyPreset.CONSERVATIVE: conservative_settings,
    AutonomyPreset.PERMISSIVE: permissive_settings,
}


def preset_settings(preset: AutonomyPreset | str) -> AutonomySettings:
    """Fresh settings for a named preset."""
    return _PRESETS[AutonomyPreset(preset)]()


# ─── Sections ───────────────────────────────────────────────


class SettingsSection(str, Enum):
    """Independently resettable groups of settings fields."""
    DEFAULT_MODE = "default_mode"
    THRESHOLD = "threshold"
    CATEGORIES = "categories"
    TOOLS = "tools"
    QUIET_HOURS = "quiet_hours"
    SAFETY = "safety"


SECTION_FIELDS: dict[SettingsSection, tuple[str, ...]] = {
    SettingsSection.DEFAULT_MODE: ("default_approval_mode",),
    SettingsSection.THRESHOLD: ("confidence_threshold",),
    SettingsSection.CATEGORIES: ("category_settings",),
    SettingsSection.TOOLS: ("tool_overrides",),
    SettingsSection.QUIET_HOURS: ("quiet_hours",),
    SettingsSection.SAFETY: ("high_risk_override", "notify_on_auto_execute"),
}


# ─── Merge / Validate ───────────────────────────────────────


def _format_validation_error(exc: ValidationError) -> list[str]:
    errors = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err["loc"]) or "(root)"
        errors.append(f"{path}: {err['msg']}")
    return errors


def validate_settings(data: Mapping[str, Any] | AutonomySettings) -> AutonomySettings:
    """Validate a complete settings document.

    Raises:
        InvalidSettingsError: listing every problem found.
    """
    if isinstance(data, AutonomySettings):
        data = data.model_dump()
    try:
        settings = AutonomySettings.model_validate(data)
    except ValidationError as exc:
        raise InvalidSettingsError(_format_validation_error(exc)) from exc

    if settings.is_full_autonomy:
        logger.warning("Full autonomy without high-risk override is in effect")
    return settings


def merge_settings(current: AutonomySettings, update: Mapping[str, Any]) -> AutonomySettings:
    """Apply a partial update on top of ``current`` and validate the result.

    Top-level fields replace. ``category_settings`` and ``tool_overrides``
    merge per key; a key mapped to ``None`` removes that entry.
    ``quiet_hours`` merges field by field.
    """
    unknown = set(update) - set(AutonomySettings.model_fields) - {"updated_at"}
    if unknown:
        raise InvalidSettingsError([f"{name}: unknown setting" for name in sorted(unknown)])

    merged = current.model_dump(mode="json")
    for key, value in update.items():
        if key in ("category_settings", "tool_overrides") and isinstance(value, Mapping):
            section = dict(merged.get(key) or {})
            for name, entry in value.items():
                name = name.value if isinstance(name, Enum) else name
                if entry is None:
                    section.pop(name, None)
                elif isinstance(entry, BaseModel):
                    section[name] = entry.model_dump(mode="json")
                else:
                    section[name] = entry
            merged[key] = section
        elif key == "quiet_hours" and isinstance(value, Mapping):
            merged[key] = {**(merged.get(key) or {}), **value}
        elif isinstance(value, BaseModel):
            merged[key] = value.model_dump(mode="json")
        else:
            merged[key] = value

    merged["updated_at"] = datetime.now(timezone.utc)
    return validate_settings(merged)


def reset_settings(
    current: AutonomySettings,
    section: SettingsSection | str | None = None,
    preset: AutonomyPreset | str = AutonomyPreset.DEFAULT,
) -> AutonomySettings:
    """Reset all settings, or one section, to the given preset's values."""
    target = preset_settings(preset)
    if section is None:
        return target

    fields = SECTION_FIELDS[SettingsSection(section)]
    update = {name: getattr(target, name) for name in fields}
    return current.model_copy(update={**update, "updated_at": datetime.now(timezone.utc)})
