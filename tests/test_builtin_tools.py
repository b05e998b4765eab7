"""Tests for the built-in task, calendar and email tools."""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from vigil.core.models import ExecutionContext
from vigil.exceptions import ToolExecutionError
from vigil.tools.builtin import ALL_BUILTIN_TOOLS, InMemoryPersonalDataBackend, build_default_registry
from vigil.tools.builtin.backend import CalendarEvent, EmailMessage, PersonalDataBackend, Task
from vigil.tools.builtin.calendar import (
    CreateCalendarEventParams,
    CreateCalendarEventTool,
    ListCalendarEventsParams,
    ListCalendarEventsTool,
)
from vigil.tools.builtin.email import (
    ComposeEmailParams,
    DraftEmailTool,
    SearchEmailsParams,
    SearchEmailsTool,
    SendEmailTool,
)
from vigil.tools.builtin.tasks import (
    CreateTaskParams,
    CreateTaskTool,
    DeleteTaskParams,
    DeleteTaskTool,
    ListTasksParams,
    ListTasksTool,
    UpdateTaskParams,
    UpdateTaskTool,
)

CTX = ExecutionContext(user_id="u-1")
OTHER = ExecutionContext(user_id="u-2")
START = datetime(2026, 3, 11, 9, 0, tzinfo=timezone.utc)


# ─── Catalog ────────────────────────────────────────────────


class TestCatalog:
    def test_default_registry_holds_every_builtin(self):
        registry = build_default_registry()
        assert len(registry) == len(ALL_BUILTIN_TOOLS) == 9
        assert "send_email" in registry

    def test_in_memory_backend_satisfies_protocol(self):
        assert isinstance(InMemoryPersonalDataBackend(), PersonalDataBackend)

    def test_send_email_always_needs_approval(self):
        assert SendEmailTool.requires_approval is True
        assert SendEmailTool.required_integrations == ("gmail",)


# ─── Tasks ──────────────────────────────────────────────────


class TestTaskTools:
    @pytest.mark.asyncio
    async def test_create_and_list(self, backend):
        created = await CreateTaskTool(backend).execute(
            CreateTaskParams(title="Buy milk", due_date=date(2026, 3, 12)), CTX
        )
        assert created["title"] == "Buy milk"
        assert "user_id" not in created

        listed = await ListTasksTool(backend).execute(ListTasksParams(), CTX)
        assert [t["id"] for t in listed] == [created["id"]]
        assert await ListTasksTool(backend).execute(ListTasksParams(), OTHER) == []

    @pytest.mark.asyncio
    async def test_list_filters(self, backend):
        await backend.create_task(Task(user_id="u-1", title="Pay rent", due_date=date(2026, 3, 1)))
        await backend.create_task(Task(user_id="u-1", title="Plan trip", due_date=date(2026, 4, 1)))
        await backend.create_task(Task(user_id="u-1", title="Someday"))

        tool = ListTasksTool(backend)
        due_soon = await tool.execute(ListTasksParams(due_before=date(2026, 3, 15)), CTX)
        assert [t["title"] for t in due_soon] == ["Pay rent"]
        matching = await tool.execute(ListTasksParams(query="TRIP"), CTX)
        assert [t["title"] for t in matching] == ["Plan trip"]
        ordered = await tool.execute(ListTasksParams(), CTX)
        assert [t["title"] for t in ordered] == ["Pay rent", "Plan trip", "Someday"]

    @pytest.mark.asyncio
    async def test_update_only_touches_given_fields(self, backend):
        task = await backend.create_task(Task(user_id="u-1", title="Draft", description="keep me"))
        updated = await UpdateTaskTool(backend).execute(
            UpdateTaskParams(task_id=task.id, status="completed"), CTX
        )
        assert updated["status"] == "completed"
        assert updated["description"] == "keep me"

    def test_update_requires_a_change(self):
        with pytest.raises(ValidationError, match="at least one field"):
            UpdateTaskParams(task_id="task-1")

    @pytest.mark.asyncio
    async def test_update_missing_task(self, backend):
        with pytest.raises(ToolExecutionError, match="not found"):
            await UpdateTaskTool(backend).execute(UpdateTaskParams(task_id="task-x", title="New"), CTX)

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_user(self, backend):
        task = await backend.create_task(Task(user_id="u-1", title="Secret"))
        with pytest.raises(ToolExecutionError):
            await DeleteTaskTool(backend).execute(DeleteTaskParams(task_id=task.id), OTHER)
        result = await DeleteTaskTool(backend).execute(DeleteTaskParams(task_id=task.id), CTX)
        assert result == {"id": task.id, "title": "Secret", "deleted": True}
        assert backend.tasks == {}

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            CreateTaskParams(title="x", colour="red")


# ─── Calendar ───────────────────────────────────────────────


class TestCalendarTools:
    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="end_time must not be before start_time"):
            CreateCalendarEventParams(summary="Standup", start_time=START, end_time=START - timedelta(minutes=1))

    def test_attendee_email_validated(self):
        with pytest.raises(ValidationError):
            CreateCalendarEventParams(
                summary="Standup",
                start_time=START,
                end_time=START + timedelta(minutes=15),
                attendees=[{"email": "not-an-email"}],
            )

    @pytest.mark.asyncio
    async def test_create_and_list_in_range(self, backend):
        created = await CreateCalendarEventTool(backend).execute(
            CreateCalendarEventParams(
                summary="Standup",
                start_time=START,
                end_time=START + timedelta(minutes=15),
                attendees=[{"email": "ann@example.com"}],
            ),
            CTX,
        )
        assert created["attendees"] == [{"email": "ann@example.com", "optional": False}]
        later = START + timedelta(days=7)
        await backend.create_event(
            CalendarEvent(user_id="u-1", summary="Later", start_time=later, end_time=later + timedelta(hours=1))
        )

        tool = ListCalendarEventsTool(backend)
        in_range = await tool.execute(
            ListCalendarEventsParams(start_date=START - timedelta(hours=1), end_date=START + timedelta(days=1)), CTX
        )
        assert [e["summary"] for e in in_range] == ["Standup"]


# ─── Email ──────────────────────────────────────────────────


class TestEmailTools:
    @pytest.mark.asyncio
    async def test_search_skips_drafts_and_filters(self, backend):
        await backend.add_email(EmailMessage(user_id="u-1", sender="boss@work.com", subject="Budget", is_read=False))
        await backend.add_email(EmailMessage(user_id="u-1", sender="news@shop.com", subject="Sale", is_read=True))
        await backend.save_draft(EmailMessage(user_id="u-1", sender="me", subject="Budget reply"))

        tool = SearchEmailsTool(backend)
        assert [m["subject"] for m in await tool.execute(SearchEmailsParams(query="budget"), CTX)] == ["Budget"]
        unread = await tool.execute(SearchEmailsParams(is_read=False), CTX)
        assert [m["sender"] for m in unread] == ["boss@work.com"]
        assert "body" not in unread[0]

    @pytest.mark.asyncio
    async def test_draft_does_not_send(self, backend):
        params = ComposeEmailParams(to=["ann@example.com"], subject="Lunch", body="Noon?")
        result = await DraftEmailTool(backend).execute(params, CTX)
        assert result["draft"] is True
        assert result["to"] == ["ann@example.com"]
        assert backend.sent == []
        assert backend.emails[result["id"]].is_draft is True

    @pytest.mark.asyncio
    async def test_send(self, backend):
        params = ComposeEmailParams(to=["ann@example.com"], cc=["bob@example.com"], subject="Lunch", body="Noon?")
        result = await SendEmailTool(backend, sender="me@example.com").execute(params, CTX)
        assert result["sent"] is True
        assert backend.sent[0].sender == "me@example.com"
        assert backend.sent[0].cc == ["bob@example.com"]

    def test_recipients_required(self):
        with pytest.raises(ValidationError):
            ComposeEmailParams(to=[], subject="Hi", body="x")
