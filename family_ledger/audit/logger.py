"""
Audit Logger

DESIGN DECISION: Every store mutation, and every rejected mutation, is logged.
This provides:
1. Traceability of balances and assignments
2. Debugging capability for hosts mapping errors to their own responses

The audit logger:
- Is synchronous, like the store it observes
- Never raises into the store: failures building or storing an event are logged
- Supports correlation IDs to trace related events
"""

import logging
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from family_ledger.config import LoggingSettings, get_settings
from family_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from family_ledger.services.storage import AuditStorageInterface


def _configure_structlog(json_output: bool = True) -> None:
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging; stdlib handlers are left to the host
_configure_structlog()


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog and the stdlib root level it filters on.

    Called by `create_app_components()`; importing this module only
    configures structlog and leaves stdlib logging alone.
    """
    settings = settings or get_settings().logging

    logging.basicConfig(format="%(message)s", level=settings.level)
    logging.getLogger().setLevel(settings.level)

    _configure_structlog(settings.json_output)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for the audit trail.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("family_ledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def _build_and_log(self, build: Callable[..., AuditEvent], **kwargs) -> bool:
        """
        Build an event and log it.

        The store calls the log_* helpers after changing its state, so a
        builder failure is logged and reported as False, never raised.
        """
        try:
            event = build(**kwargs)
        except Exception as e:
            self._logger.error(
                "audit_event_build_failed",
                builder=build.__name__,
                error=str(e),
            )
            return False
        return self.log(event)

    def log_account_created(
        self,
        account_id: int,
        username: str,
        role: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return self._build_and_log(
            AuditEventBuilder.account_created,
            account_id=account_id,
            username=username,
            role=role,
            correlation_id=correlation_id,
        )

    def log_task_created(
        self,
        task_id: int,
        title: str,
        points: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return self._build_and_log(
            AuditEventBuilder.task_created,
            task_id=task_id,
            title=title,
            points=points,
            correlation_id=correlation_id,
        )

    def log_task_assigned(
        self,
        task_id: int,
        account_id: int,
        previous_assignee: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log an assignment; `previous_assignee` is set on reassignment."""
        return self._build_and_log(
            AuditEventBuilder.task_assigned,
            task_id=task_id,
            account_id=account_id,
            previous_assignee=previous_assignee,
            correlation_id=correlation_id,
        )

    def log_task_completed(
        self,
        task_id: int,
        title: str,
        assigned_to: Optional[int],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return self._build_and_log(
            AuditEventBuilder.task_completed,
            task_id=task_id,
            title=title,
            assigned_to=assigned_to,
            correlation_id=correlation_id,
        )

    def log_points_awarded(
        self,
        account_id: int,
        task_id: int,
        points: int,
        total_points: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        return self._build_and_log(
            AuditEventBuilder.points_awarded,
            account_id=account_id,
            task_id=task_id,
            points=points,
            total_points=total_points,
            correlation_id=correlation_id,
        )

    def log_operation_rejected(
        self,
        operation: str,
        error_kind: str,
        reason: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log a store operation that failed without changing state."""
        return self._build_and_log(
            AuditEventBuilder.operation_rejected,
            operation=operation,
            error_kind=error_kind,
            reason=reason,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log an unexpected error raised in a hosting layer."""
        return self._build_and_log(
            AuditEventBuilder.system_error,
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action and pass it to every
    store call made for that action.
    """
    return uuid4()
