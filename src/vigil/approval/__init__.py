"""Vigil approval workflow: pending → approved | rejected | expired."""

from vigil.approval.store import ApprovalStore, InMemoryApprovalStore, SqlApprovalStore
from vigil.approval.workflow import DEFAULT_TTL_BY_RISK, ApprovalExecutor, ApprovalWorkflow

__all__ = [
    "DEFAULT_TTL_BY_RISK",
    "ApprovalExecutor",
    "ApprovalStore",
    "ApprovalWorkflow",
    "InMemoryApprovalStore",
    "SqlApprovalStore",
]
