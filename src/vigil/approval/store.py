"""
Vigil Approval Store

Persistence for approval records. Records are never deleted; the only
writes after creation are compare-and-swap status transitions out of
``pending`` and result bookkeeping on approved records.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from vigil.core.models import ApprovalRecord, ApprovalStatus
from vigil.storage.db import DbConnection, connect

# Columns that may be written by update() / transition()
MUTABLE_FIELDS = frozenset({"decided_at", "result", "error_message"})


@runtime_checkable
class ApprovalStore(Protocol):
    """Storage contract the approval workflow depends on."""

    async def create(self, record: ApprovalRecord) -> ApprovalRecord: ...

    async def get(self, approval_id: str) -> ApprovalRecord | None: ...

    async def list_for_user(
        self,
        user_id: str,
        status: ApprovalStatus | None = None,
        conversation_id: str | None = None,
        plan_id: str | None = None,
        limit: int | None = None,
    ) -> list[ApprovalRecord]: ...

    async def list_overdue(self, now: datetime) -> list[ApprovalRecord]: ...

    async def transition(
        self,
        approval_id: str,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        **fields: Any,
    ) -> ApprovalRecord | None:
        """Atomically move ``from_status`` → ``to_status``.

        Returns the updated record, or None if the record is missing or is
        no longer in ``from_status``.
        """
        ...

    async def update(self, approval_id: str, **fields: Any) -> ApprovalRecord | None: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update approval fields: {', '.join(sorted(unknown))}")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InMemoryApprovalStore:
    """Dict-backed approval store. CAS is serialized by an asyncio lock."""

    def __init__(self) -> None:
        self._records: dict[str, ApprovalRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, record: ApprovalRecord) -> ApprovalRecord:
        async with self._lock:
            if record.id in self._records:
                raise ValueError(f"Approval '{record.id}' already exists")
            self._records[record.id] = record.model_copy(deep=True)
        return record

    async def get(self, approval_id: str) -> ApprovalRecord | None:
        record = self._records.get(approval_id)
        return record.model_copy(deep=True) if record else None

    async def list_for_user(
        self,
        user_id: str,
        status: ApprovalStatus | None = None,
        conversation_id: str | None = None,
        plan_id: str | None = None,
        limit: int | None = None,
    ) -> list[ApprovalRecord]:
        records = [
            r for r in self._records.values()
            if r.user_id == user_id
            and (status is None or r.status == status)
            and (conversation_id is None or r.conversation_id == conversation_id)
            and (plan_id is None or r.plan_id == plan_id)
        ]
        records.sort(key=lambda r: r.requested_at, reverse=True)
        if limit is not None:
            records = records[:limit]
        return [r.model_copy(deep=True) for r in records]

    async def list_overdue(self, now: datetime) -> list[ApprovalRecord]:
        return [
            r.model_copy(deep=True) for r in self._records.values()
            if r.status == ApprovalStatus.PENDING and r.expires_at <= now
        ]

    async def transition(
        self,
        approval_id: str,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        **fields: Any,
    ) -> ApprovalRecord | None:
        _check_fields(fields)
        async with self._lock:
            record = self._records.get(approval_id)
            if record is None or record.status != from_status:
                return None
            updated = record.model_copy(update={"status": to_status, **fields})
            self._records[approval_id] = updated
        return updated.model_copy(deep=True)

    async def update(self, approval_id: str, **fields: Any) -> ApprovalRecord | None:
        _check_fields(fields)
        async with self._lock:
            record = self._records.get(approval_id)
            if record is None:
                return None
            updated = record.model_copy(update=fields)
            self._records[approval_id] = updated
        return updated.model_copy(deep=True)


class SqlApprovalStore:
    """SQLite/PostgreSQL approval store on ``vigil.storage.db``.

    CAS transitions are a single ``UPDATE ... WHERE status = ?`` whose
    row count tells whether this caller won.
    """

    COLUMNS = [
        "id",
        "user_id",
        "tool_name",
        "parameters",
        "category",
        "risk_level",
        "reasoning",
        "confidence",
        "status",
        "session_id",
        "conversation_id",
        "plan_id",
        "step_index",
        "requested_at",
        "expires_at",
        "decided_at",
        "result",
        "error_message",
    ]

    def __init__(self, db_url: str = "vigil.db", conn: DbConnection | None = None):
        self._conn = conn or connect(db_url)
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS action_approvals (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                tool_name TEXT NOT NULL,
                parameters TEXT DEFAULT '{}',
                category TEXT NOT NULL,
                risk_level TEXT NOT NULL,
                reasoning TEXT DEFAULT '',
                confidence REAL DEFAULT 1.0,
                status TEXT NOT NULL DEFAULT 'pending',
                session_id TEXT,
                conversation_id TEXT,
                plan_id TEXT,
                step_index INTEGER,
                requested_at TEXT NOT NULL,
                expires_at TEXT NOT NULL,
                decided_at TEXT,
                result TEXT,
                error_message TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_approvals_user_status ON action_approvals(user_id, status);
            CREATE INDEX IF NOT EXISTS idx_approvals_expires ON action_approvals(status, expires_at)
        """)
        self._conn.commit()

    # ─── Row mapping ────────────────────────────────────────

    @staticmethod
    def _encode(column: str, value: Any) -> Any:
        if value is None:
            return None
        if column in ("parameters", "result"):
            return json.dumps(value, default=str)
        if isinstance(value, datetime):
            return _as_utc(value).isoformat()
        if hasattr(value, "value"):
            return value.value
        return value

    def _record_values(self, record: ApprovalRecord) -> tuple:
        return tuple(self._encode(c, getattr(record, c)) for c in self.COLUMNS)

    @staticmethod
    def _row_to_record(row: dict[str, Any]) -> ApprovalRecord:
        data = dict(row)
        data["parameters"] = json.loads(data["parameters"] or "{}")
        data["result"] = json.loads(data["result"]) if data.get("result") else None
        return ApprovalRecord.model_validate(data)

    # ─── Sync implementations (run in a worker thread) ──────

    def _create_sync(self, record: ApprovalRecord) -> None:
        placeholders = ", ".join(["?"] * len(self.COLUMNS))
        with self._conn.lock:
            self._conn.execute(
                f"INSERT INTO action_approvals ({', '.join(self.COLUMNS)}) VALUES ({placeholders})",
                self._record_values(record),
            )
            self._conn.commit()

    def _get_sync(self, approval_id: str) -> ApprovalRecord | None:
        with self._conn.lock:
            row = self._conn.execute(
                "SELECT * FROM action_approvals WHERE id = ?", (approval_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def _list_sync(self, where: str, params: tuple, limit: int | None) -> list[ApprovalRecord]:
        sql = f"SELECT * FROM action_approvals WHERE {where} ORDER BY requested_at DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        with self._conn.lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [self._row_to_record(r) for r in rows]

    def _write_sync(self, sql: str, params: tuple) -> int:
        with self._conn.lock:
            try:
                count = self._conn.execute(sql, params).rowcount
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
        return count

    def _set_clause(self, fields: dict[str, Any]) -> tuple[str, tuple]:
        columns = list(fields)
        clause = ", ".join(f"{c} = ?" for c in columns)
        return clause, tuple(self._encode(c, fields[c]) for c in columns)

    # ─── ApprovalStore ──────────────────────────────────────

    async def create(self, record: ApprovalRecord) -> ApprovalRecord:
        await asyncio.to_thread(self._create_sync, record)
        return record

    async def get(self, approval_id: str) -> ApprovalRecord | None:
        return await asyncio.to_thread(self._get_sync, approval_id)

    async def list_for_user(
        self,
        user_id: str,
        status: ApprovalStatus | None = None,
        conversation_id: str | None = None,
        plan_id: str | None = None,
        limit: int | None = None,
    ) -> list[ApprovalRecord]:
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        for column, value in (
            ("status", status.value if status else None),
            ("conversation_id", conversation_id),
            ("plan_id", plan_id),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        return await asyncio.to_thread(self._list_sync, " AND ".join(clauses), tuple(params), limit)

    async def list_overdue(self, now: datetime) -> list[ApprovalRecord]:
        return await asyncio.to_thread(
            self._list_sync,
            "status = ? AND expires_at <= ?",
            (ApprovalStatus.PENDING.value, _as_utc(now).isoformat()),
            None,
        )

    async def transition(
        self,
        approval_id: str,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        **fields: Any,
    ) -> ApprovalRecord | None:
        _check_fields(fields)
        clause, values = self._set_clause({"status": to_status, **fields})
        count = await asyncio.to_thread(
            self._write_sync,
            f"UPDATE action_approvals SET {clause} WHERE id = ? AND status = ?",
            (*values, approval_id, from_status.value),
        )
        if count != 1:
            return None
        return await self.get(approval_id)

    async def update(self, approval_id: str, **fields: Any) -> ApprovalRecord | None:
        _check_fields(fields)
        if not fields:
            return await self.get(approval_id)
        clause, values = self._set_clause(fields)
        count = await asyncio.to_thread(
            self._write_sync,
            f"UPDATE action_approvals SET {clause} WHERE id = ?",
            (*values, approval_id),
        )
        if count != 1:
            return None
        return await self.get(approval_id)

    def close(self) -> None:
        self._conn.close()
