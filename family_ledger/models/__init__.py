"""
Data Models Package

This package contains all Pydantic models used in the Family Ledger system.
"""

from family_ledger.models.ledger import (
    Account,
    AccountStats,
    LeaderboardEntry,
    PointsEntry,
    Task,
    ValidationIssue,
)
from family_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountStats",
    "LeaderboardEntry",
    "PointsEntry",
    "Task",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
