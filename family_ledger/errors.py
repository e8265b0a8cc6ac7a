"""
Ledger Errors

A small closed set of error types raised by the ledger store.
All of them are recoverable: the store is left unchanged whenever one is raised.

Each error keeps:
- `reason`: the short literal a caller can match on
  ("empty username", "account", "already completed", ...)
- structured context (which field, which entity and id)
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger store operations."""

    kind = "ledger_error"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason)


class ValidationError(LedgerError):
    """A caller-supplied field fails a precondition."""

    kind = "validation_error"

    def __init__(self, field: str, reason: str):
        self.field = field
        super().__init__(reason)


class NotFoundError(LedgerError):
    """A referenced id does not exist. `reason` is the entity kind."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(entity, f"{entity} {entity_id} not found")


class ConflictError(LedgerError):
    """The operation is not allowed in the entity's current state."""

    kind = "conflict"

    def __init__(self, entity: str, entity_id: int, reason: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(reason, f"{entity} {entity_id}: {reason}")
