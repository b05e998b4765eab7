"""
Vigil Personal Data Backend

The data-access seam behind the built-in tools. Production deployments
plug in their own task, calendar and mail services; the in-memory
backend here keeps the built-in catalog fully functional for tests,
demos and the CLI.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Task(BaseModel):
    id: str = Field(default_factory=lambda: f"task-{uuid.uuid4().hex[:8]}")
    user_id: str
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_minutes: int | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Attendee(BaseModel):
    email: str
    optional: bool = False


class CalendarEvent(BaseModel):
    id: str = Field(default_factory=lambda: f"evt-{uuid.uuid4().hex[:8]}")
    user_id: str
    summary: str
    description: str | None = None
    location: str | None = None
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    attendees: list[Attendee] = Field(default_factory=list)


class EmailMessage(BaseModel):
    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:8]}")
    user_id: str
    sender: str
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    subject: str = ""
    snippet: str = ""
    body: str = ""
    is_read: bool = False
    is_draft: bool = False
    thread_id: str | None = None
    received_at: datetime = Field(default_factory=_utcnow)


@runtime_checkable
class PersonalDataBackend(Protocol):
    """Async data access used by the built-in tools. Every call is scoped to one user."""

    async def list_tasks(self, user_id: str, **filters: Any) -> list[Task]: ...

    async def create_task(self, task: Task) -> Task: ...

    async def get_task(self, user_id: str, task_id: str) -> Task | None: ...

    async def update_task(
        self, user_id: str, task_id: str, changes: dict[str, Any]
    ) -> Task | None: ...

    async def delete_task(self, user_id: str, task_id: str) -> Task | None: ...

    async def list_events(self, user_id: str, **filters: Any) -> list[CalendarEvent]: ...

    async def create_event(self, event: CalendarEvent) -> CalendarEvent: ...

    async def search_emails(self, user_id: str, **filters: Any) -> list[EmailMessage]: ...

    async def save_draft(self, message: EmailMessage) -> EmailMessage: ...

    async def send_email(self, message: EmailMessage) -> EmailMessage: ...


class InMemoryPersonalDataBackend:
    """Dict-backed implementation of ``PersonalDataBackend``."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self.tasks: dict[str, Task] = {}
        self.events: dict[str, CalendarEvent] = {}
        self.emails: dict[str, EmailMessage] = {}
        self.sent: list[EmailMessage] = []

    # ─── Tasks ──────────────────────────────────────────────

    async def list_tasks(
        self,
        user_id: str,
        query: str | None = None,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        due_before: date | None = None,
        due_after: date | None = None,
        limit: int = 20,
    ) -> list[Task]:
        result = []
        for task in self.tasks.values():
            if task.user_id != user_id:
                continue
            if query and query.lower() not in f"{task.title} {task.description or ''}".lower():
                continue
            if status and task.status != status:
                continue
            if priority and task.priority != priority:
                continue
            if due_before and (task.due_date is None or task.due_date > due_before):
                continue
            if due_after and (task.due_date is None or task.due_date < due_after):
                continue
            result.append(task)
        result.sort(key=lambda t: (t.due_date is None, t.due_date or date.max, t.created_at))
        return result[:limit]

    async def create_task(self, task: Task) -> Task:
        async with self._lock:
            self.tasks[task.id] = task
        return task

    async def get_task(self, user_id: str, task_id: str) -> Task | None:
        task = self.tasks.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    async def update_task(
        self, user_id: str, task_id: str, changes: dict[str, Any]
    ) -> Task | None:
        async with self._lock:
            task = await self.get_task(user_id, task_id)
            if task is None:
                return None
            updated = task.model_copy(update={**changes, "updated_at": _utcnow()})
            self.tasks[task_id] = updated
        return updated

    async def delete_task(self, user_id: str, task_id: str) -> Task | None:
        async with self._lock:
            task = await self.get_task(user_id, task_id)
            if task is None:
                return None
            del self.tasks[task_id]
        return task

    # ─── Calendar ───────────────────────────────────────────

    async def list_events(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        query: str | None = None,
        limit: int = 20,
    ) -> list[CalendarEvent]:
        result = []
        for event in self.events.values():
            if event.user_id != user_id:
                continue
            if start and event.end_time < start:
                continue
            if end and event.start_time > end:
                continue
            if query and query.lower() not in f"{event.summary} {event.description or ''}".lower():
                continue
            result.append(event)
        result.sort(key=lambda e: e.start_time)
        return result[:limit]

    async def create_event(self, event: CalendarEvent) -> CalendarEvent:
        async with self._lock:
            self.events[event.id] = event
        return event

    # ─── Email ──────────────────────────────────────────────

    async def search_emails(
        self,
        user_id: str,
        query: str | None = None,
        sender: str | None = None,
        recipient: str | None = None,
        is_read: bool | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 20,
    ) -> list[EmailMessage]:
        result = []
        for msg in self.emails.values():
            if msg.user_id != user_id or msg.is_draft:
                continue
            if query and query.lower() not in f"{msg.subject} {msg.snippet} {msg.body}".lower():
                continue
            if sender and sender.lower() not in msg.sender.lower():
                continue
            if recipient and not any(recipient.lower() in r.lower() for r in msg.to):
                continue
            if is_read is not None and msg.is_read != is_read:
                continue
            if start and msg.received_at < start:
                continue
            if end and msg.received_at > end:
                continue
            result.append(msg)
        result.sort(key=lambda m: m.received_at, reverse=True)
        return result[:limit]

    async def save_draft(self, message: EmailMessage) -> EmailMessage:
        draft = message.model_copy(update={"is_draft": True})
        async with self._lock:
            self.emails[draft.id] = draft
        return draft

    async def send_email(self, message: EmailMessage) -> EmailMessage:
        sent = message.model_copy(update={"is_draft": False, "is_read": True})
        async with self._lock:
            self.sent.append(sent)
        return sent

    async def add_email(self, message: EmailMessage) -> EmailMessage:
        """Seed an inbox message (not part of the backend protocol)."""
        async with self._lock:
            self.emails[message.id] = message
        return message
