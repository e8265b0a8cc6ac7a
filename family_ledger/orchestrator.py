"""
Component Factory for Family Ledger

Hosting layers (the Streamlit dashboard, tests, a future HTTP server) get
their ledger from here so that every host wires it the same way:

    settings → logging → audit storage → audit logger → store

DESIGN DECISION: The factory builds a NEW store on every call.
A host that wants one ledger per application lifetime keeps the result
(e.g. behind `st.cache_resource`); there is no module-level instance.
"""

from typing import Optional

from family_ledger.audit import AuditLogger, configure_logging
from family_ledger.config import get_settings
from family_ledger.services.storage import InMemoryAuditStorage
from family_ledger.store import LedgerStore


def create_app_components(
    use_audit_storage: Optional[bool] = None,
) -> tuple[LedgerStore, AuditLogger, Optional[InMemoryAuditStorage]]:
    """
    Factory function to create all application components.

    Args:
        use_audit_storage: Keep an in-memory audit trail.
                          None = follow LEDGER_AUDIT_ENABLED.

    Returns:
        (store, audit_logger, audit_storage)
        audit_storage is None when the trail is disabled; the audit logger
        then only writes to the local structured log.
    """
    settings = get_settings()
    ledger_settings = settings.ledger

    configure_logging(settings.logging)

    if use_audit_storage is None:
        use_audit_storage = ledger_settings.audit_enabled

    audit_storage = None
    if use_audit_storage:
        audit_storage = InMemoryAuditStorage(max_events=ledger_settings.audit_max_events)

    audit_logger = AuditLogger(audit_storage)

    store = LedgerStore(
        audit_logger=audit_logger,
        settings=ledger_settings,
    )

    return store, audit_logger, audit_storage
