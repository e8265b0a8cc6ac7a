"""Ledger store package."""

from family_ledger.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from family_ledger.store.ledger import LedgerStore

__all__ = [
    "LedgerStore",
    # Exceptions
    "ConflictError",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
]
