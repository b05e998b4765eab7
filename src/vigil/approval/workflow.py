"""
Vigil Approval Workflow

Human-in-the-loop sign-off for tool calls the autonomy policy (or the
caller) refuses to auto-execute.

State machine (all non-pending states are terminal):

    pending ──approve──▶ approved   (tool body runs at approval time)
       │
       ├────reject────▶ rejected
       │
       └──past expiry─▶ expired     (applied lazily on read/decide)

Status changes are compare-and-swap on ``pending``, so of any number of
concurrent deciders exactly one wins and the tool body runs at most once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from vigil.approval.store import ApprovalStore
from vigil.core.models import (
    ApprovalRecord,
    ApprovalStatus,
    ExecutionContext,
    RiskLevel,
    ToolCategory,
    utcnow,
)
from vigil.exceptions import (
    ApprovalAlreadyDecidedError,
    ApprovalExpiredError,
    ApprovalNotFoundError,
)
from vigil.logging import get_logger

logger = get_logger("vigil.approval")

# How long a request stays decidable when no TTL is configured
DEFAULT_TTL_BY_RISK: dict[RiskLevel, timedelta] = {
    RiskLevel.LOW: timedelta(hours=24),
    RiskLevel.MEDIUM: timedelta(hours=12),
    RiskLevel.HIGH: timedelta(hours=4),
    RiskLevel.CRITICAL: timedelta(hours=1),
}

ApprovalExecutor = Callable[[ApprovalRecord], Awaitable[Any]]

CANCELLED_MESSAGE = "cancelled during execution"


class ApprovalWorkflow:
    """Creates, decides and expires approval records on top of an ApprovalStore.

    Args:
        store: Persistence backend.
        ttl_seconds: Global TTL for new requests. None uses the per-risk defaults.
        clock: Returns the current aware UTC datetime. Injected for tests.
    """

    def __init__(
        self,
        store: ApprovalStore,
        ttl_seconds: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def store(self) -> ApprovalStore:
        return self._store

    def ttl_for(self, risk_level: RiskLevel, ttl_seconds: float | None = None) -> timedelta:
        """Explicit TTL, else the configured global TTL, else the per-risk default."""
        if ttl_seconds is not None:
            return timedelta(seconds=ttl_seconds)
        if self._ttl_seconds is not None:
            return timedelta(seconds=self._ttl_seconds)
        return DEFAULT_TTL_BY_RISK[RiskLevel(risk_level)]

    async def create(
        self,
        context: ExecutionContext,
        tool_name: str,
        parameters: dict[str, Any],
        category: ToolCategory,
        risk_level: RiskLevel,
        reasoning: str = "",
        confidence: float = 1.0,
        ttl_seconds: float | None = None,
    ) -> ApprovalRecord:
        """Persist a new pending approval request."""
        now = self._clock()
        record = ApprovalRecord(
            user_id=context.user_id,
            tool_name=tool_name,
            parameters=parameters,
            category=category,
            risk_level=risk_level,
            reasoning=reasoning,
            confidence=confidence,
            session_id=context.session_id,
            conversation_id=context.conversation_id,
            plan_id=context.plan_id,
            step_index=context.step_index,
            requested_at=now,
            expires_at=now + self.ttl_for(risk_level, ttl_seconds),
        )
        await self._store.create(record)
        logger.info(
            "Pending approval created (expires %s)",
            record.expires_at.isoformat(),
            extra={
                "approval_id": record.id,
                "user_id": record.user_id,
                "tool_name": tool_name,
                "risk_level": RiskLevel(risk_level).value,
            },
        )
        return record

    async def _expire(self, record: ApprovalRecord, now: datetime) -> ApprovalRecord:
        expired = await self._store.transition(
            record.id, ApprovalStatus.PENDING, ApprovalStatus.EXPIRED, decided_at=now
        )
        if expired is None:
            # Decided concurrently; report whatever won
            return await self._store.get(record.id) or record
        logger.warning(
            "Approval expired",
            extra={"approval_id": record.id, "user_id": record.user_id, "tool_name": record.tool_name},
        )
        return expired

    async def get(self, approval_id: str, user_id: str | None = None) -> ApprovalRecord:
        """Fetch a record, expiring it first if it is pending and overdue.

        Raises:
            ApprovalNotFoundError: unknown id, or the record belongs to another user.
        """
        record = await self._store.get(approval_id)
        if record is None or (user_id is not None and record.user_id != user_id):
            raise ApprovalNotFoundError(approval_id)
        now = self._clock()
        if record.status == ApprovalStatus.PENDING and record.is_expired(now):
            record = await self._expire(record, now)
        return record

    async def _claim(
        self,
        approval_id: str,
        user_id: str | None,
        to_status: ApprovalStatus,
        **fields: Any,
    ) -> ApprovalRecord:
        """CAS a pending record into ``to_status`` or raise the matching approval error."""
        record = await self.get(approval_id, user_id)
        if record.status == ApprovalStatus.PENDING:
            claimed = await self._store.transition(
                approval_id, ApprovalStatus.PENDING, to_status, **fields
            )
            if claimed is not None:
                return claimed
            record = await self.get(approval_id, user_id)

        if record.status == ApprovalStatus.EXPIRED:
            raise ApprovalExpiredError(approval_id, record.expires_at)
        logger.warning(
            "Approval already decided (%s)",
            record.status.value,
            extra={"approval_id": approval_id, "user_id": record.user_id},
        )
        raise ApprovalAlreadyDecidedError(approval_id, record.status)

    async def approve(
        self,
        approval_id: str,
        executor: ApprovalExecutor,
        user_id: str | None = None,
    ) -> ApprovalRecord:
        """Approve a pending request and run its tool body.

        The record is claimed before ``executor`` runs. If the body fails,
        the record stays approved and the failure is kept in
        ``error_message``. Cancellation while the body runs is recorded the
        same way before it propagates.

        Raises:
            ApprovalNotFoundError, ApprovalExpiredError, ApprovalAlreadyDecidedError
        """
        claimed = await self._claim(
            approval_id, user_id, ApprovalStatus.APPROVED, decided_at=self._clock()
        )
        extra = {"approval_id": approval_id, "user_id": claimed.user_id, "tool_name": claimed.tool_name}
        logger.info("Approval granted, executing tool", extra=extra)

        try:
            result = await executor(claimed)
        except asyncio.CancelledError:
            logger.warning("Approved tool execution cancelled", extra=extra)
            await self._store.update(approval_id, error_message=CANCELLED_MESSAGE)
            raise
        except Exception as exc:
            logger.error("Approved tool execution failed: %s", exc, extra=extra)
            updated = await self._store.update(approval_id, error_message=str(exc) or type(exc).__name__)
        else:
            updated = await self._store.update(approval_id, result=result)
        return updated or claimed

    async def reject(
        self,
        approval_id: str,
        notes: str | None = None,
        user_id: str | None = None,
    ) -> ApprovalRecord:
        """Reject a pending request. ``notes`` are kept in ``error_message``."""
        rejected = await self._claim(
            approval_id,
            user_id,
            ApprovalStatus.REJECTED,
            decided_at=self._clock(),
            error_message=notes,
        )
        logger.info(
            "Approval rejected",
            extra={"approval_id": approval_id, "user_id": rejected.user_id, "tool_name": rejected.tool_name},
        )
        return rejected

    async def list_pending(
        self,
        user_id: str,
        conversation_id: str | None = None,
        plan_id: str | None = None,
        limit: int = 20,
    ) -> list[ApprovalRecord]:
        """Non-expired pending requests for a user, newest first."""
        now = self._clock()
        records = await self._store.list_for_user(
            user_id,
            status=ApprovalStatus.PENDING,
            conversation_id=conversation_id,
            plan_id=plan_id,
        )
        return [r for r in records if not r.is_expired(now)][:limit]

    async def expire_stale(self, now: datetime | None = None) -> int:
        """Expire every overdue pending record. Returns how many were expired."""
        now = now or self._clock()
        count = 0
        for record in await self._store.list_overdue(now):
            expired = await self._store.transition(
                record.id, ApprovalStatus.PENDING, ApprovalStatus.EXPIRED, decided_at=now
            )
            if expired is not None:
                count += 1
        if count:
            logger.info("Expired %d stale approvals", count)
        return count
