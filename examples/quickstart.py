"""Vigil quickstart: run tool calls through the autonomy policy and approve one."""

import asyncio

from vigil import ClassificationDecision, ExecutionContext, ExecutionRequest, Vigil
from vigil.integrations import InMemoryAccountStore


async def main() -> None:
    vigil = Vigil(accounts=InMemoryAccountStore({"user-1": ["gmail"]}))
    context = ExecutionContext(user_id="user-1", conversation_id="conv-1")

    # Low-risk create: auto-executes under the default settings
    outcome = await vigil.execute_tool_call(
        ExecutionRequest(
            tool_name="create_task",
            parameters={"title": "Buy milk", "due_date": "2026-03-12"},
            context=context,
            decision=ClassificationDecision(confidence=0.95, reasoning="User asked for a reminder"),
        )
    )
    print(vigil.format_execution_result(outcome, "create_task").summary)

    # Sending email always needs approval
    outcome = await vigil.execute_tool_call(
        ExecutionRequest(
            tool_name="send_email",
            parameters={"to": ["ann@example.com"], "subject": "Lunch", "body": "Noon tomorrow?"},
            context=context,
            decision=ClassificationDecision(confidence=0.9, reasoning="User asked to invite Ann"),
        )
    )
    print(vigil.format_execution_result(outcome, "send_email").summary)

    record = await vigil.decide_approval(outcome.approval_id, "approve", user_id="user-1")
    print(f"{record.id}: {record.status.value} -> {record.result}")

    valid, message = vigil.audit.verify_integrity()
    print(f"Audit chain: {message}")


if __name__ == "__main__":
    asyncio.run(main())
