"""
Vigil Integration Availability

Checks whether a user has connected the external accounts (Gmail,
Calendar, ...) a tool needs. Lookups for one tool run concurrently;
missing integrations are reported in the tool's declaration order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from vigil.logging import get_logger

logger = get_logger("vigil.integrations")

_INSTRUCTIONS = {
    "gmail": "Connect Gmail in Settings > Integrations > Gmail",
    "calendar": "Connect Calendar in Settings > Integrations > Calendar",
    "contacts": "Enable Contacts access in Settings > Integrations > Gmail",
}


@runtime_checkable
class AccountStore(Protocol):
    """Source of truth for which integrations a user has connected."""

    async def is_integration_connected(self, user_id: str, integration_id: str) -> bool: ...


class InMemoryAccountStore:
    """Set-backed account store for tests and the CLI."""

    def __init__(self, connected: dict[str, Iterable[str]] | None = None):
        self._connected: dict[str, set[str]] = {
            user: set(ids) for user, ids in (connected or {}).items()
        }

    def connect(self, user_id: str, integration_id: str) -> None:
        self._connected.setdefault(user_id, set()).add(integration_id)

    def disconnect(self, user_id: str, integration_id: str) -> None:
        self._connected.get(user_id, set()).discard(integration_id)

    async def is_integration_connected(self, user_id: str, integration_id: str) -> bool:
        return integration_id in self._connected.get(user_id, set())


class IntegrationCheck(BaseModel):
    """Result of checking one tool's required integrations for one user."""
    available: bool
    missing: list[str] = Field(default_factory=list)


def connection_instructions(missing: Sequence[str]) -> str:
    """User-facing instructions for connecting each missing integration."""
    return ". ".join(
        _INSTRUCTIONS.get(name, f"Connect {name} in Settings > Integrations") for name in missing
    )


class IntegrationChecker:
    """Answers "are all of this tool's integrations connected for this user?"."""

    def __init__(self, accounts: AccountStore):
        self._accounts = accounts

    async def check(self, user_id: str, required: Sequence[str]) -> IntegrationCheck:
        if not required:
            return IntegrationCheck(available=True)

        connected = await asyncio.gather(
            *(self._accounts.is_integration_connected(user_id, name) for name in required)
        )
        missing = [name for name, ok in zip(required, connected) if not ok]
        if missing:
            logger.debug(
                "Missing integrations: %s", ", ".join(missing), extra={"user_id": user_id}
            )
        return IntegrationCheck(available=not missing, missing=missing)
