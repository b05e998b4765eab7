"""Calendar tools: list and create events on the user's connected calendar."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field, model_validator

from vigil.core.models import ExecutionContext, RiskLevel, ToolCategory
from vigil.tools.builtin.backend import Attendee, CalendarEvent, PersonalDataBackend
from vigil.tools.models import Tool, ToolParameters


class ListCalendarEventsParams(ToolParameters):
    start_date: datetime | None = None
    end_date: datetime | None = None
    query: str | None = None
    limit: int = Field(20, ge=1, le=50)


class ListCalendarEventsTool(Tool):
    name = "list_calendar_events"
    description = "List events on the user's calendar within an optional time range"
    category = ToolCategory.QUERY
    risk_level = RiskLevel.LOW
    parameters = ListCalendarEventsParams
    required_integrations = ("calendar",)
    idempotent = True

    def __init__(self, backend: PersonalDataBackend):
        self.backend = backend

    async def execute(
        self, params: ListCalendarEventsParams, context: ExecutionContext
    ) -> list[dict]:
        events = await self.backend.list_events(
            context.user_id,
            start=params.start_date,
            end=params.end_date,
            query=params.query,
            limit=params.limit,
        )
        return [e.model_dump(mode="json", exclude={"user_id"}) for e in events]


class AttendeeParams(ToolParameters):
    email: EmailStr
    optional: bool = False


class CreateCalendarEventParams(ToolParameters):
    summary: str = Field(min_length=1, max_length=1000)
    description: str | None = Field(None, max_length=10000)
    location: str | None = Field(None, max_length=1000)
    start_time: datetime
    end_time: datetime
    all_day: bool = False
    attendees: list[AttendeeParams] = Field(default_factory=list, max_length=100)

    @model_validator(mode="after")
    def _end_after_start(self) -> CreateCalendarEventParams:
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class CreateCalendarEventTool(Tool):
    name = "create_calendar_event"
    description = "Create an event on the user's calendar and invite attendees"
    category = ToolCategory.EXTERNAL
    risk_level = RiskLevel.HIGH
    parameters = CreateCalendarEventParams
    required_integrations = ("calendar",)

    def __init__(self, backend: PersonalDataBackend):
        self.backend = backend

    async def execute(self, params: CreateCalendarEventParams, context: ExecutionContext) -> dict:
        event = CalendarEvent(
            user_id=context.user_id,
            summary=params.summary,
            description=params.description,
            location=params.location,
            start_time=params.start_time,
            end_time=params.end_time,
            all_day=params.all_day,
            attendees=[Attendee(email=a.email, optional=a.optional) for a in params.attendees],
        )
        created = await self.backend.create_event(event)
        return created.model_dump(mode="json", exclude={"user_id"})
