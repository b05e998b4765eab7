"""Task tools: list, create, update and delete the user's to-do items."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field, model_validator

from vigil.core.models import ExecutionContext, RiskLevel, ToolCategory
from vigil.exceptions import ToolExecutionError
from vigil.tools.builtin.backend import PersonalDataBackend, Task, TaskPriority, TaskStatus
from vigil.tools.models import Tool, ToolParameters


def _task_dict(task: Task) -> dict[str, Any]:
    return task.model_dump(mode="json", exclude={"user_id"})


class _BackendTool(Tool):
    def __init__(self, backend: PersonalDataBackend):
        self.backend = backend


# ─── list_tasks ─────────────────────────────────────────────


class ListTasksParams(ToolParameters):
    query: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_before: date | None = None
    due_after: date | None = None
    limit: int = Field(20, ge=1, le=50)


class ListTasksTool(_BackendTool):
    name = "list_tasks"
    description = "List the user's tasks, optionally filtered by text, status, priority or due date"
    category = ToolCategory.QUERY
    risk_level = RiskLevel.LOW
    parameters = ListTasksParams
    idempotent = True

    async def execute(self, params: ListTasksParams, context: ExecutionContext) -> list[dict]:
        tasks = await self.backend.list_tasks(context.user_id, **params.model_dump())
        return [_task_dict(t) for t in tasks]


# ─── create_task ────────────────────────────────────────────


class CreateTaskParams(ToolParameters):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(None, max_length=5000)
    due_date: date | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    tags: list[str] = Field(default_factory=list, max_length=20)
    estimated_minutes: int | None = Field(None, ge=1, le=10080)


class CreateTaskTool(_BackendTool):
    name = "create_task"
    description = "Create a new task or to-do item for the user"
    category = ToolCategory.CREATE
    risk_level = RiskLevel.LOW
    parameters = CreateTaskParams

    async def execute(self, params: CreateTaskParams, context: ExecutionContext) -> dict:
        task = await self.backend.create_task(Task(user_id=context.user_id, **params.model_dump()))
        return _task_dict(task)


# ─── update_task ────────────────────────────────────────────


class UpdateTaskParams(ToolParameters):
    task_id: str = Field(min_length=1)
    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = Field(None, max_length=5000)
    due_date: date | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    tags: list[str] | None = Field(None, max_length=20)
    estimated_minutes: int | None = Field(None, ge=1, le=10080)

    @model_validator(mode="after")
    def _has_changes(self) -> UpdateTaskParams:
        if not self.model_fields_set - {"task_id"}:
            raise ValueError("at least one field to update is required")
        return self


class UpdateTaskTool(_BackendTool):
    name = "update_task"
    description = "Update an existing task (title, status, priority, due date, ...)"
    category = ToolCategory.UPDATE
    risk_level = RiskLevel.MEDIUM
    parameters = UpdateTaskParams
    idempotent = True

    async def execute(self, params: UpdateTaskParams, context: ExecutionContext) -> dict:
        changes = params.model_dump(exclude={"task_id"}, include=params.model_fields_set)
        task = await self.backend.update_task(context.user_id, params.task_id, changes)
        if task is None:
            raise ToolExecutionError(self.name, f"Task '{params.task_id}' not found")
        return _task_dict(task)


# ─── delete_task ────────────────────────────────────────────


class DeleteTaskParams(ToolParameters):
    task_id: str = Field(min_length=1)


class DeleteTaskTool(_BackendTool):
    name = "delete_task"
    description = "Permanently delete a task"
    category = ToolCategory.DELETE
    risk_level = RiskLevel.HIGH
    parameters = DeleteTaskParams

    async def execute(self, params: DeleteTaskParams, context: ExecutionContext) -> dict:
        task = await self.backend.delete_task(context.user_id, params.task_id)
        if task is None:
            raise ToolExecutionError(self.name, f"Task '{params.task_id}' not found")
        return {"id": task.id, "title": task.title, "deleted": True}
