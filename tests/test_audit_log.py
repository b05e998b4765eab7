"""Tests for the Vigil immutable audit log."""

import asyncio
import json

import pytest

from vigil.audit import AuditSink, ImmutableAuditLog
from vigil.core.models import AuditEvent


def make_event(**kwargs) -> AuditEvent:
    defaults = {"event_type": "tool_executed", "tool_name": "create_task", "user_id": "u-1", "outcome": "success"}
    defaults.update(kwargs)
    return AuditEvent(**defaults)


class TestImmutableAuditLog:
    def test_empty_log(self):
        log = ImmutableAuditLog()
        assert len(log) == 0
        valid, _ = log.verify_integrity()
        assert valid is True
        assert log.head_hash == ImmutableAuditLog.GENESIS_HASH

    def test_append_links_chain(self):
        log = ImmutableAuditLog()
        h1 = log.append(make_event())
        h2 = log.append(make_event())
        assert h1.sequence == 0
        assert h1.previous_hash == ImmutableAuditLog.GENESIS_HASH
        assert h2.previous_hash == h1.hash
        assert log.head_hash == h2.hash

    def test_is_an_audit_sink(self):
        assert isinstance(ImmutableAuditLog(), AuditSink)

    @pytest.mark.asyncio
    async def test_record_returns_event_id(self):
        log = ImmutableAuditLog()
        event = make_event()
        assert await log.record(event) == event.id
        assert log.get(event.id).event == event

    @pytest.mark.asyncio
    async def test_concurrent_records_form_one_chain(self):
        log = ImmutableAuditLog()
        await asyncio.gather(*(log.record(make_event(tool_name=f"t{i}")) for i in range(20)))
        assert len(log) == 20
        assert [e.sequence for e in log.get_events()] == list(range(20))
        assert log.verify_integrity()[0] is True

    def test_tampering_is_detected(self):
        log = ImmutableAuditLog()
        log.append(make_event())
        log.append(make_event())
        log._events[0].event.outcome = "failure"
        valid, message = log.verify_integrity()
        assert valid is False
        assert "Tampered event at 0" in message

    def test_broken_link_is_detected(self):
        log = ImmutableAuditLog()
        log.append(make_event())
        log.append(make_event())
        log._events[1].previous_hash = "f" * 64
        valid, message = log.verify_integrity()
        assert valid is False
        assert "Chain broken at event 1" in message

    def test_filters(self):
        log = ImmutableAuditLog()
        log.append(make_event(user_id="u-1", tool_name="send_email", event_type="approval_requested", approval_id="apr-1"))
        log.append(make_event(user_id="u-2"))
        log.append(make_event(user_id="u-1", event_type="approval_approved", approval_id="apr-1"))

        assert len(log.get_events(user_id="u-1")) == 2
        assert len(log.get_events(tool_name="send_email")) == 1
        assert len(log.get_events(approval_id="apr-1")) == 2
        assert len(log.get_events(user_id="u-1", event_type="approval_approved")) == 1

    def test_get_unknown(self):
        assert ImmutableAuditLog().get("aud-missing") is None

    @pytest.mark.asyncio
    async def test_subscribers_are_notified(self):
        log = ImmutableAuditLog()
        seen = []

        async def on_event(hashed):
            seen.append(hashed.event.event_type)

        log.subscribe(on_event)
        await log.record(make_event(event_type="a"))
        log.unsubscribe(on_event)
        await log.record(make_event(event_type="b"))
        assert seen == ["a"]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_recording(self):
        log = ImmutableAuditLog()

        async def broken(hashed):
            raise RuntimeError("subscriber down")

        log.subscribe(broken)
        await log.record(make_event())
        assert len(log) == 1

    def test_export_json(self, tmp_path):
        log = ImmutableAuditLog()
        log.append(make_event())
        path = tmp_path / "audit.json"
        log.export_json(path)
        data = json.loads(path.read_text())
        assert data["total_events"] == 1
        assert data["chain_head"] == log.head_hash
        assert data["events"][0]["event"]["tool_name"] == "create_task"
