"""Email tools: search the inbox, save drafts, and send mail through Gmail."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from vigil.core.models import ExecutionContext, RiskLevel, ToolCategory
from vigil.tools.builtin.backend import EmailMessage, PersonalDataBackend
from vigil.tools.models import Tool, ToolParameters


class _GmailTool(Tool):
    required_integrations = ("gmail",)

    def __init__(self, backend: PersonalDataBackend, sender: str = "me"):
        self.backend = backend
        self.sender = sender


class SearchEmailsParams(ToolParameters):
    query: str | None = None
    sender: str | None = None
    to: str | None = None
    is_read: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(20, ge=1, le=50)


class SearchEmailsTool(_GmailTool):
    name = "search_emails"
    description = "Search the user's email by text, sender, recipient, read state or date"
    category = ToolCategory.QUERY
    risk_level = RiskLevel.LOW
    parameters = SearchEmailsParams
    idempotent = True

    async def execute(self, params: SearchEmailsParams, context: ExecutionContext) -> list[dict]:
        messages = await self.backend.search_emails(
            context.user_id,
            query=params.query,
            sender=params.sender,
            recipient=params.to,
            is_read=params.is_read,
            start=params.start_date,
            end=params.end_date,
            limit=params.limit,
        )
        return [
            m.model_dump(mode="json", include={"id", "sender", "to", "subject", "snippet", "received_at", "is_read"})
            for m in messages
        ]


class ComposeEmailParams(ToolParameters):
    to: list[EmailStr] = Field(min_length=1, max_length=50)
    cc: list[EmailStr] = Field(default_factory=list, max_length=50)
    subject: str = Field(min_length=1, max_length=998)
    body: str = Field(min_length=1, max_length=100000)
    thread_id: str | None = None

    def to_message(self, user_id: str, sender: str) -> EmailMessage:
        return EmailMessage(
            user_id=user_id,
            sender=sender,
            to=[str(a) for a in self.to],
            cc=[str(a) for a in self.cc],
            subject=self.subject,
            body=self.body,
            snippet=self.body[:100],
            thread_id=self.thread_id,
        )


def _summary(message: EmailMessage) -> dict:
    return {
        "id": message.id,
        "to": message.to,
        "cc": message.cc,
        "subject": message.subject,
        "thread_id": message.thread_id,
    }


class DraftEmailTool(_GmailTool):
    name = "draft_email"
    description = "Compose an email draft for the user to review (does not send)"
    category = ToolCategory.DRAFT
    risk_level = RiskLevel.MEDIUM
    parameters = ComposeEmailParams

    async def execute(self, params: ComposeEmailParams, context: ExecutionContext) -> dict:
        draft = await self.backend.save_draft(params.to_message(context.user_id, self.sender))
        return {**_summary(draft), "draft": True}


class SendEmailTool(_GmailTool):
    name = "send_email"
    description = "Send an email on the user's behalf"
    category = ToolCategory.EXTERNAL
    risk_level = RiskLevel.HIGH
    parameters = ComposeEmailParams
    requires_approval = True

    async def execute(self, params: ComposeEmailParams, context: ExecutionContext) -> dict:
        sent = await self.backend.send_email(params.to_message(context.user_id, self.sender))
        return {**_summary(sent), "sent": True}
