"""
Abstract Audit Storage Interface

DESIGN DECISION: The audit trail writes through an abstract interface.
This allows us to:
1. Keep the trail in memory for a single process (the default)
2. Plug in a durable sink from a hosting layer later
3. Use a failing or recording double in tests

The ledger records themselves never go through this interface;
the store holds them in memory only.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from family_ledger.models.audit import AuditEvent


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully

        Raises:
            StorageError: If the backend cannot accept the event
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one UI action).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity ('account' or 'task')
            entity_id: The entity's store id

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: Optional[int] = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return (None = all kept)

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for audit storage operations."""
    pass
