"""
Vigil Immutable Audit Log

Tamper-evident record of every tool-call attempt and approval decision.
Every event is linked to the previous one via SHA-256 hash chaining, so
modifying or removing any event breaks the chain.

Features:
- Append-only: events can never be modified or deleted
- Tamper-evident: any modification breaks the hash chain
- Queryable: filter by user, tool, event type or approval
- Exportable: JSON export for external audit tools
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from vigil.core.models import AuditEvent
from vigil.logging import get_logger

logger = get_logger("vigil.audit")


@runtime_checkable
class AuditSink(Protocol):
    """Anything that can durably record an audit event and return its id."""

    async def record(self, event: AuditEvent) -> str: ...


class HashedAuditEvent(BaseModel):
    """An audit event with its position in the hash chain."""

    event: AuditEvent
    hash: str = Field(..., description="SHA-256 hash of this event + previous hash")
    previous_hash: str = Field(..., description="Hash of the previous event")
    sequence: int = Field(0, description="Sequential event number")


def _chain_hash(event: AuditEvent, previous_hash: str, sequence: int) -> str:
    content = json.dumps(
        {
            **event.model_dump(mode="json"),
            "previous_hash": previous_hash,
            "sequence": sequence,
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(content.encode()).hexdigest()


class ImmutableAuditLog:
    """Append-only, hash-chained audit sink.

    Appends are serialized with an asyncio lock so concurrent orchestrator
    calls always produce a linear chain.
    """

    GENESIS_HASH = "0" * 64

    def __init__(self) -> None:
        self._events: list[HashedAuditEvent] = []
        self._current_hash: str = self.GENESIS_HASH
        self._lock = asyncio.Lock()
        self._subscribers: list[Callable[[HashedAuditEvent], Awaitable[None]]] = []

    def subscribe(self, callback: Callable[[HashedAuditEvent], Awaitable[None]]) -> None:
        """Register an async callback for new audit events."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[HashedAuditEvent], Awaitable[None]]) -> None:
        self._subscribers = [s for s in self._subscribers if s is not callback]

    async def _notify_subscribers(self, hashed: HashedAuditEvent) -> None:
        for callback in self._subscribers:
            try:
                await callback(hashed)
            except Exception:
                # A subscriber must not be able to fail the call being audited
                logger.warning("Audit subscriber failed", exc_info=True)

    def append(self, event: AuditEvent) -> HashedAuditEvent:
        """Append an event to the chain (synchronous, no subscriber fan-out)."""
        sequence = len(self._events)
        event_hash = _chain_hash(event, self._current_hash, sequence)
        hashed = HashedAuditEvent(
            event=event,
            hash=event_hash,
            previous_hash=self._current_hash,
            sequence=sequence,
        )
        self._events.append(hashed)
        self._current_hash = event_hash
        return hashed

    async def record(self, event: AuditEvent) -> str:
        """Append an event, notify subscribers, and return the event id."""
        async with self._lock:
            hashed = self.append(event)
        logger.debug(
            "Audit event %s recorded",
            event.event_type,
            extra={"audit_log_id": event.id, "tool_name": event.tool_name, "user_id": event.user_id},
        )
        await self._notify_subscribers(hashed)
        return event.id

    def verify_integrity(self) -> tuple[bool, str]:
        """Verify the entire chain is intact.

        Returns (is_valid, message).
        """
        if not self._events:
            return True, "Empty log - no events to verify"

        expected_prev = self.GENESIS_HASH
        for i, hashed in enumerate(self._events):
            if hashed.previous_hash != expected_prev:
                return False, (
                    f"Chain broken at event {i}: "
                    f"expected previous_hash={expected_prev[:16]}..., "
                    f"got {hashed.previous_hash[:16]}..."
                )

            recomputed = _chain_hash(hashed.event, hashed.previous_hash, hashed.sequence)
            if recomputed != hashed.hash:
                return False, (
                    f"Tampered event at {i}: "
                    f"stored hash={hashed.hash[:16]}..., "
                    f"recomputed={recomputed[:16]}..."
                )
            expected_prev = hashed.hash

        return True, f"All {len(self._events)} events verified - chain intact"

    def get_events(
        self,
        user_id: str | None = None,
        tool_name: str | None = None,
        event_type: str | None = None,
        approval_id: str | None = None,
    ) -> list[HashedAuditEvent]:
        """Query events with optional filters."""
        results = self._events
        if user_id:
            results = [e for e in results if e.event.user_id == user_id]
        if tool_name:
            results = [e for e in results if e.event.tool_name == tool_name]
        if event_type:
            results = [e for e in results if e.event.event_type == event_type]
        if approval_id:
            results = [e for e in results if e.event.approval_id == approval_id]
        return list(results)

    def get(self, audit_log_id: str) -> HashedAuditEvent | None:
        for hashed in self._events:
            if hashed.event.id == audit_log_id:
                return hashed
        return None

    def export_json(self, path: str | Path) -> None:
        """Export the full log as JSON for external audit."""
        data = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "total_events": len(self._events),
            "chain_head": self._current_hash,
            "events": [e.model_dump(mode="json") for e in self._events],
        }
        Path(path).write_text(json.dumps(data, indent=2, default=str))

    @property
    def head_hash(self) -> str:
        """SHA-256 hash of the most recent event in the chain."""
        return self._current_hash

    def __len__(self) -> int:
        return len(self._events)
