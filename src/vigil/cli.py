"""
Vigil CLI

Operator commands against the configured database (VIGIL_DATABASE_URL).

Commands:
    vigil tools                              Show the tool catalog
    vigil settings show USER                 Show a user's autonomy settings
    vigil settings set-mode USER MODE        Change the default, a category or a tool mode
    vigil settings reset USER                Reset settings (or one section) to a preset
    vigil resolve USER TOOL --confidence X   Dry-run the approval decision for a tool call
    vigil approvals list USER                Pending approvals for a user
    vigil approvals approve|reject ID        Decide a pending approval
    vigil approvals expire                   Expire overdue approvals
    vigil version                            Show version

Usage:
    pip install vigil
    VIGIL_DATABASE_URL=vigil.db vigil settings show user-1
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.table import Table

from vigil import Vigil, __version__
from vigil.autonomy import AutonomyPreset, SettingsSection, resolve
from vigil.config import VigilConfig
from vigil.core.models import ApprovalDecision, ApprovalMode, RiskLevel, ToolCategory
from vigil.exceptions import VigilError

T = TypeVar("T")

console = Console()

RISK_COLORS = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.CRITICAL: "bold red",
}


def _run(action: Callable[[Vigil], Awaitable[T]]) -> T:
    """Run an async action against a database-backed instance."""
    vigil = Vigil.from_config(VigilConfig.from_env())

    async def _main() -> T:
        return await action(vigil)

    try:
        return asyncio.run(_main())
    except VigilError as exc:
        raise click.ClickException(exc.message) from exc
    finally:
        vigil.close()


def _print_header(title: str) -> None:
    console.print(f"\n[bold]{title}[/]")
    console.print("─" * 60)


def _risk(level: RiskLevel) -> str:
    return f"[{RISK_COLORS[level]}]{level.value}[/]"


@click.group()
@click.version_option(version=__version__, prog_name="vigil")
def cli() -> None:
    """Vigil - autonomy policy and approval workflow for personal agents"""


@cli.command()
def version() -> None:
    """Show the Vigil version."""
    console.print(f"vigil {__version__}")


@cli.command()
def tools() -> None:
    """Show the registered tool catalog."""
    vigil = Vigil()
    table = Table(title="Tools")
    table.add_column("Name", style="bold")
    table.add_column("Category")
    table.add_column("Risk")
    table.add_column("Integrations")
    table.add_column("Approval")
    for tool in vigil.registry:
        table.add_row(
            tool.name,
            tool.category.value,
            _risk(tool.risk_level),
            ", ".join(tool.required_integrations) or "-",
            "always" if tool.requires_approval else "policy",
        )
    console.print(table)


# ─── Settings ───────────────────────────────────────────────


@cli.group()
def settings() -> None:
    """Inspect and change per-user autonomy settings."""


@settings.command("show")
@click.argument("user_id")
@click.option("--json-output", is_flag=True, help="Output as JSON")
def settings_show(user_id: str, json_output: bool) -> None:
    """Show USER_ID's autonomy settings."""

    async def _show(vigil: Vigil):
        return await vigil.settings.get_settings(user_id)

    current = _run(_show)
    if json_output:
        click.echo(json.dumps(current.model_dump(mode="json"), indent=2))
        return

    _print_header(f"Autonomy settings: {user_id}")
    console.print(f"  Default mode:      {current.default_approval_mode.value}")
    console.print(f"  Threshold:         {current.confidence_threshold:.0%}")
    console.print(f"  High-risk override: {'on' if current.high_risk_override else 'off'}")
    console.print(f"  Notify on auto:    {'on' if current.notify_on_auto_execute else 'off'}")
    qh = current.quiet_hours
    if qh.enabled:
        console.print(f"  Quiet hours:       {qh.start}-{qh.end} {qh.timezone} ({qh.mode.value})")
    else:
        console.print("  Quiet hours:       off")
    if current.is_full_autonomy:
        console.print("  [bold red]Full autonomy without high-risk override[/]")

    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Mode")
    table.add_column("Threshold")
    for category, setting in current.category_settings.items():
        threshold = setting.confidence_override
        table.add_row(category.value, setting.mode.value, f"{threshold:.0%}" if threshold is not None else "-")
    console.print(table)

    if current.tool_overrides:
        table = Table(title="Tool overrides")
        table.add_column("Tool")
        table.add_column("Mode")
        table.add_column("Disabled")
        for name, override in current.tool_overrides.items():
            table.add_row(name, override.mode.value, "yes" if override.disabled else "no")
        console.print(table)


@settings.command("set-mode")
@click.argument("user_id")
@click.argument("mode", type=click.Choice([m.value for m in ApprovalMode]))
@click.option("--category", type=click.Choice([c.value for c in ToolCategory]), help="Set a category mode")
@click.option("--tool", "tool_name", help="Set a tool override mode")
@click.option("--threshold", type=float, help="Confidence threshold for the changed level")
def settings_set_mode(
    user_id: str,
    mode: str,
    category: str | None,
    tool_name: str | None,
    threshold: float | None,
) -> None:
    """Set the default, category (--category) or tool (--tool) MODE for USER_ID."""
    if category and tool_name:
        raise click.UsageError("--category and --tool are mutually exclusive")

    update: dict[str, Any]
    if tool_name:
        update = {"tool_overrides": {tool_name: {"mode": mode, "confidence_override": threshold}}}
        target = f"tool {tool_name}"
    elif category:
        update = {"category_settings": {category: {"mode": mode, "confidence_override": threshold}}}
        target = f"category {category}"
    else:
        update = {"default_approval_mode": mode}
        if threshold is not None:
            update["confidence_threshold"] = threshold
        target = "default"

    async def _set(vigil: Vigil):
        return await vigil.settings.upsert_settings(user_id, update)

    updated = _run(_set)
    console.print(f"  [green]Updated[/] {target} mode to {mode} for {user_id}")
    if updated.is_full_autonomy:
        console.print("  [bold red]Warning:[/] full autonomy without high-risk override is in effect")


@settings.command("reset")
@click.argument("user_id")
@click.option("--section", type=click.Choice([s.value for s in SettingsSection]), help="Reset one section only")
@click.option(
    "--preset",
    type=click.Choice([p.value for p in AutonomyPreset]),
    default=AutonomyPreset.DEFAULT.value,
    show_default=True,
)
def settings_reset(user_id: str, section: str | None, preset: str) -> None:
    """Reset USER_ID's settings to a preset."""

    async def _reset(vigil: Vigil):
        return await vigil.settings.reset_settings(user_id, section, preset)

    _run(_reset)
    scope = f"section {section}" if section else "all settings"
    console.print(f"  [green]Reset[/] {scope} to {preset} for {user_id}")


# ─── Resolve ────────────────────────────────────────────────


@cli.command("resolve")
@click.argument("user_id")
@click.argument("tool_name")
@click.option("--confidence", type=click.FloatRange(0.0, 1.0), default=1.0, show_default=True)
def resolve_command(user_id: str, tool_name: str, confidence: float) -> None:
    """Show whether TOOL_NAME would need approval for USER_ID (no execution)."""

    async def _resolve(vigil: Vigil):
        tool = vigil.registry.get(tool_name)
        if tool is None:
            raise click.ClickException(f"Unknown tool: {tool_name}")
        current = await vigil.settings.get_settings(user_id)
        return tool, resolve(current, tool.name, tool.category, tool.risk_level, confidence)

    tool, decision = _run(_resolve)
    required = decision.required or tool.requires_approval
    _print_header(f"Decision: {tool_name} for {user_id}")
    console.print(f"  Category:      {tool.category.value}")
    console.print(f"  Risk:          {_risk(tool.risk_level)}")
    console.print(f"  Mode:          {decision.effective_mode.value}")
    console.print(f"  Threshold:     {decision.effective_threshold:.0%}")
    console.print(f"  Determined by: {decision.determined_by.value}")
    console.print(f"  Reason:        {decision.reason}")
    if tool.requires_approval and not decision.required:
        console.print("  Tool always requires approval")
    verdict = "[yellow]APPROVAL REQUIRED[/]" if required else "[green]AUTO-EXECUTE[/]"
    console.print(f"  Result:        {verdict}")


# ─── Approvals ──────────────────────────────────────────────


@cli.group()
def approvals() -> None:
    """List and decide pending approval requests."""


@approvals.command("list")
@click.argument("user_id")
@click.option("--conversation", "conversation_id", help="Filter by conversation")
@click.option("--limit", type=int, default=20, show_default=True)
def approvals_list(user_id: str, conversation_id: str | None, limit: int) -> None:
    """List USER_ID's pending approvals."""

    async def _list(vigil: Vigil):
        return await vigil.approvals.list_pending(user_id, conversation_id=conversation_id, limit=limit)

    pending = _run(_list)
    if not pending:
        console.print(f"  No pending approvals for {user_id}.")
        return

    table = Table(title=f"Pending approvals: {user_id}")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Tool")
    table.add_column("Risk")
    table.add_column("Confidence")
    table.add_column("Expires")
    for record in pending:
        table.add_row(
            record.id,
            record.tool_name,
            _risk(record.risk_level),
            f"{record.confidence:.0%}",
            record.expires_at.strftime("%Y-%m-%d %H:%M UTC"),
        )
    console.print(table)


def _decide(approval_id: str, decision: ApprovalDecision, notes: str | None, user_id: str | None) -> None:
    async def _apply(vigil: Vigil):
        return await vigil.decide_approval(approval_id, decision, notes=notes, user_id=user_id)

    record = _run(_apply)
    console.print(f"  {record.id}: [bold]{record.status.value}[/] ({record.tool_name})")
    if record.error_message:
        console.print(f"  Note: {record.error_message}")
    elif record.result is not None:
        console.print(json.dumps(record.result, indent=2, default=str))


@approvals.command("approve")
@click.argument("approval_id")
@click.option("--user", "user_id", help="Only decide if the request belongs to this user")
def approvals_approve(approval_id: str, user_id: str | None) -> None:
    """Approve APPROVAL_ID and execute its tool call."""
    _decide(approval_id, ApprovalDecision.APPROVE, None, user_id)


@approvals.command("reject")
@click.argument("approval_id")
@click.option("--notes", help="Reason for rejecting")
@click.option("--user", "user_id", help="Only decide if the request belongs to this user")
def approvals_reject(approval_id: str, notes: str | None, user_id: str | None) -> None:
    """Reject APPROVAL_ID."""
    _decide(approval_id, ApprovalDecision.REJECT, notes, user_id)


@approvals.command("expire")
def approvals_expire() -> None:
    """Expire every overdue pending approval."""

    async def _expire(vigil: Vigil):
        return await vigil.approvals.expire_stale()

    count = _run(_expire)
    console.print(f"  Expired {count} approval{'' if count == 1 else 's'}.")


if __name__ == "__main__":
    cli()
