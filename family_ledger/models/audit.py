"""
Audit Models for Family Ledger

Every store mutation, and every rejected mutation, produces an audit event.
This provides:
1. Traceability of how each balance was reached
2. A record of reassignments (the store itself keeps only the current assignee)
3. Debugging information when a caller gets an error

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


DESCRIPTION_MAX_LENGTH = 500


def _clip(text: str, limit: int = DESCRIPTION_MAX_LENGTH) -> str:
    """Shorten text to at most `limit` characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"

    # Tasks
    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"

    # Balances
    POINTS_AWARDED = "points_awarded"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('account' or 'task')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action in the UI)"
    )

    description: str = Field(
        ...,
        max_length=DESCRIPTION_MAX_LENGTH,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_row(self) -> list[str]:
        """
        Flatten into a list of strings for tabular display.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id is not None else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(account_id, username, role)
        event = AuditEventBuilder.task_completed(task_id, title, assignee)
    """

    @staticmethod
    def account_created(
        account_id: int,
        username: str,
        role: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=_clip(f"Account created: {username}"),
            details={
                "username": username,
                "role": role,
            },
        )

    @staticmethod
    def task_created(
        task_id: int,
        title: str,
        points: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TASK_CREATED,
            entity_type="task",
            entity_id=task_id,
            correlation_id=correlation_id,
            description=_clip(f"Task created: {title}"),
            details={
                "title": title,
                "points": points,
            },
        )

    @staticmethod
    def task_assigned(
        task_id: int,
        account_id: int,
        previous_assignee: Optional[int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        if previous_assignee is None:
            description = f"Task {task_id} assigned to account {account_id}"
        else:
            description = (
                f"Task {task_id} reassigned from account {previous_assignee} "
                f"to account {account_id}"
            )
        return AuditEvent(
            event_type=AuditEventType.TASK_ASSIGNED,
            entity_type="task",
            entity_id=task_id,
            correlation_id=correlation_id,
            description=description,
            details={
                "account_id": account_id,
                "previous_assignee": previous_assignee,
            },
        )

    @staticmethod
    def task_completed(
        task_id: int,
        title: str,
        assigned_to: Optional[int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TASK_COMPLETED,
            entity_type="task",
            entity_id=task_id,
            correlation_id=correlation_id,
            description=_clip(f"Task completed: {title}"),
            details={
                "assigned_to": assigned_to,
            },
        )

    @staticmethod
    def points_awarded(
        account_id: int,
        task_id: int,
        points: int,
        total_points: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POINTS_AWARDED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} earned {points} points",
            details={
                "task_id": task_id,
                "points_change": points,
                "total_points": total_points,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_kind: str,
        reason: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=_clip(f"{operation} rejected: {reason}"),
            details={
                "operation": operation,
            },
            error_code=error_kind,
            error_message=reason,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=_clip(f"System error: {error_type}"),
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )
