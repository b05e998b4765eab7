"""Vigil audit: hash-chained, tamper-evident record of every tool call."""

from vigil.audit.log import AuditSink, HashedAuditEvent, ImmutableAuditLog

__all__ = ["AuditSink", "HashedAuditEvent", "ImmutableAuditLog"]
