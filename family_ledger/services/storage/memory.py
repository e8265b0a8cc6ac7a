"""
In-memory audit storage.

Keeps the most recent events in a bounded deque; once full, the oldest
events are dropped. Lives exactly as long as the process.
"""

import threading
from collections import deque
from typing import Optional
from uuid import UUID

from family_ledger.models.audit import AuditEvent
from family_ledger.services.storage.interface import AuditStorageInterface


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Append-only, bounded audit trail held in process memory.

    Appends and reads share one lock, so readers always iterate a
    snapshot even while another thread is writing.
    """

    def __init__(self, max_events: int = 1000):
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events: deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._events)

    @property
    def max_events(self) -> int:
        return self._events.maxlen

    def _snapshot(self) -> list[AuditEvent]:
        with self._lock:
            return list(self._events)

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._snapshot() if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        return [
            e for e in self._snapshot()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: Optional[int] = 100,
    ) -> list[AuditEvent]:
        events = self._snapshot()
        events.reverse()
        if limit is None:
            return events
        return events[:limit]
