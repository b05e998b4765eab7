"""
Vigil Autonomy Resolver

Decides, for a single candidate tool call, whether the user's autonomy
settings require human approval before execution.

Precedence is an ordered tuple of strategies evaluated with early
return; the first strategy that applies produces the decision:

  1. tool disabled     -> always required
  2. tool override     -> evaluate the override's mode
  3. quiet hours       -> evaluate the quiet-hours mode
  4. category setting  -> evaluate the category's mode
  5. default           -> evaluate the default mode

Every level evaluates its mode with the same rules:

  always_approve   -> required
  high_risk_only   -> required iff risk is high/critical
  trust_confident  -> required iff confidence < threshold (low_confidence)
  full_autonomy    -> not required, unless high_risk_override and the
                      risk is high/critical (high_risk)

Resolution is pure and total. It never performs I/O and never raises for
settings that passed validation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel

from vigil.autonomy.settings import AutonomySettings, QuietHours
from vigil.core.models import ApprovalMode, DeterminedBy, RiskLevel, ToolCategory


class AutonomyDecision(BaseModel):
    """Output of the resolver for one tool call."""
    required: bool
    effective_mode: ApprovalMode
    effective_threshold: float
    determined_by: DeterminedBy
    reason: str
    should_notify: bool = False


@dataclass(frozen=True)
class ResolutionInput:
    """Everything a strategy may look at."""
    settings: AutonomySettings
    tool_name: str
    category: ToolCategory
    risk_level: RiskLevel
    confidence: float
    now: datetime


Strategy = Callable[[ResolutionInput], "AutonomyDecision | None"]


def is_in_quiet_hours(quiet_hours: QuietHours | None, now: datetime | None = None) -> bool:
    """Whether ``now`` falls in the quiet-hours window (handles overnight windows)."""
    if quiet_hours is None:
        return False
    return quiet_hours.contains(now or datetime.now(timezone.utc))


def _pct(value: float) -> str:
    return f"{round(value * 100)}%"


def evaluate_mode(
    mode: ApprovalMode,
    level: DeterminedBy,
    inp: ResolutionInput,
    threshold: float,
    always_notify: bool = False,
) -> AutonomyDecision:
    """Apply one approval mode at a given precedence level."""
    settings = inp.settings
    risk = inp.risk_level
    determined_by = level

    if mode == ApprovalMode.ALWAYS_APPROVE:
        required = True
        reason = "Approval mode requires confirmation for all actions"
    elif mode == ApprovalMode.HIGH_RISK_ONLY:
        required = risk.is_high
        if required:
            reason = f"High-risk action ({risk.value}) requires approval"
        else:
            reason = f"Low/medium risk action ({risk.value}) can auto-execute"
    elif mode == ApprovalMode.TRUST_CONFIDENT:
        required = inp.confidence < threshold
        if required:
            determined_by = DeterminedBy.LOW_CONFIDENCE
            reason = f"Confidence ({_pct(inp.confidence)}) below threshold ({_pct(threshold)})"
        else:
            reason = f"Confidence ({_pct(inp.confidence)}) meets threshold ({_pct(threshold)})"
    else:
        if settings.high_risk_override and risk.is_high:
            required = True
            determined_by = DeterminedBy.HIGH_RISK
            reason = f"High-risk action ({risk.value}) always requires approval"
        else:
            required = False
            reason = "Full autonomy mode - no approval required"

    should_notify = level == DeterminedBy.QUIET_HOURS or (
        not required and (settings.notify_on_auto_execute or always_notify)
    )

    return AutonomyDecision(
        required=required,
        effective_mode=mode,
        effective_threshold=threshold,
        determined_by=determined_by,
        reason=reason,
        should_notify=should_notify,
    )


# ─── Strategies ─────────────────────────────────────────────


def tool_disabled(inp: ResolutionInput) -> AutonomyDecision | None:
    override = inp.settings.tool_overrides.get(inp.tool_name)
    if override is None or not override.disabled:
        return None
    return AutonomyDecision(
        required=True,
        effective_mode=ApprovalMode.ALWAYS_APPROVE,
        effective_threshold=1.0,
        determined_by=DeterminedBy.TOOL,
        reason=f"Tool '{inp.tool_name}' is disabled",
        should_notify=True,
    )


def tool_override(inp: ResolutionInput) -> AutonomyDecision | None:
    override = inp.settings.tool_overrides.get(inp.tool_name)
    if override is None:
        return None
    threshold = (
        override.confidence_override
        if override.confidence_override is not None
        else inp.settings.confidence_threshold
    )
    return evaluate_mode(
        override.mode,
        DeterminedBy.TOOL,
        inp,
        threshold,
        always_notify=bool(override.always_notify),
    )


def quiet_hours(inp: ResolutionInput) -> AutonomyDecision | None:
    if not is_in_quiet_hours(inp.settings.quiet_hours, inp.now):
        return None
    return evaluate_mode(
        inp.settings.quiet_hours.mode,
        DeterminedBy.QUIET_HOURS,
        inp,
        inp.settings.confidence_threshold,
    )


def category_setting(inp: ResolutionInput) -> AutonomyDecision | None:
    setting = inp.settings.category_settings.get(inp.category)
    if setting is None:
        return None
    threshold = (
        setting.confidence_override
        if setting.confidence_override is not None
        else inp.settings.confidence_threshold
    )
    return evaluate_mode(setting.mode, DeterminedBy.CATEGORY, inp, threshold)


def default_mode(inp: ResolutionInput) -> AutonomyDecision:
    return evaluate_mode(
        inp.settings.default_approval_mode,
        DeterminedBy.DEFAULT,
        inp,
        inp.settings.confidence_threshold,
    )


RESOLUTION_ORDER: tuple[Strategy, ...] = (
    tool_disabled,
    tool_override,
    quiet_hours,
    category_setting,
    default_mode,
)


def resolve(
    settings: AutonomySettings,
    tool_name: str,
    category: ToolCategory,
    risk_level: RiskLevel,
    confidence: float,
    now: datetime | None = None,
    order: tuple[Strategy, ...] = RESOLUTION_ORDER,
) -> AutonomyDecision:
    """Decide whether a tool call needs approval.

    Args:
        settings: The user's validated autonomy settings.
        tool_name: Registered tool name (for tool overrides).
        category: The tool's category (for category settings).
        risk_level: The tool's static risk level.
        confidence: Upstream classifier confidence, 0-1.
        now: Decision time; defaults to the current UTC time.
        order: Strategy precedence. The last strategy must always apply.
    """
    inp = ResolutionInput(
        settings=settings,
        tool_name=tool_name,
        category=ToolCategory(category),
        risk_level=RiskLevel(risk_level),
        confidence=confidence,
        now=now or datetime.now(timezone.utc),
    )
    for strategy in order:
        decision = strategy(inp)
        if decision is not None:
            return decision
    # Unreachable with RESOLUTION_ORDER; a custom order without a fallback asks
    return AutonomyDecision(
        required=True,
        effective_mode=ApprovalMode.ALWAYS_APPROVE,
        effective_threshold=settings.confidence_threshold,
        determined_by=DeterminedBy.DEFAULT,
        reason="No autonomy rule applied",
        should_notify=True,
    )
