"""
Tests for the audit logger, the in-memory audit storage, and the
events the store emits.
"""

import logging
import subprocess
import sys
import threading
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from family_ledger.audit import AuditLogger, configure_logging, create_correlation_id
from family_ledger.config import LedgerSettings, LoggingSettings
from family_ledger.errors import ConflictError, NotFoundError, ValidationError
from family_ledger.models.audit import (
    DESCRIPTION_MAX_LENGTH,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from family_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)
from family_ledger.store import LedgerStore


class FailingAuditStorage(InMemoryAuditStorage):
    """Storage double whose writes always fail."""

    def append_event(self, event):
        raise StorageError("disk on fire")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage(max_events=100)


@pytest.fixture
def store(audit_storage):
    return LedgerStore(
        audit_logger=AuditLogger(audit_storage),
        settings=LedgerSettings(),
    )


def event_types(storage):
    return [e.event_type for e in reversed(storage.get_recent_events(limit=None))]


class TestInMemoryAuditStorage:
    """Tests for the bounded in-memory trail."""

    def test_is_an_audit_storage(self):
        """Test the implementation satisfies the interface."""
        assert isinstance(InMemoryAuditStorage(), AuditStorageInterface)

    def test_recent_events_newest_first(self, audit_storage):
        """Test get_recent_events ordering and limit."""
        for task_id in (1, 2, 3):
            audit_storage.append_event(AuditEventBuilder.task_created(task_id, "t", 1))
        recent = audit_storage.get_recent_events(limit=2)
        assert [e.entity_id for e in recent] == [3, 2]

    def test_oldest_events_dropped(self):
        """Test the trail keeps at most max_events."""
        storage = InMemoryAuditStorage(max_events=2)
        for task_id in (1, 2, 3):
            storage.append_event(AuditEventBuilder.task_created(task_id, "t", 1))
        assert len(storage) == 2
        assert [e.entity_id for e in storage.get_recent_events()] == [3, 2]

    def test_rejects_zero_capacity(self):
        """Test max_events must be positive."""
        with pytest.raises(ValueError):
            InMemoryAuditStorage(max_events=0)

    def test_events_by_entity(self, audit_storage):
        """Test filtering by entity type and id."""
        audit_storage.append_event(AuditEventBuilder.task_created(1, "t", 1))
        audit_storage.append_event(AuditEventBuilder.account_created(1, "alice", "child"))
        events = audit_storage.get_events_by_entity("account", 1)
        assert [e.event_type for e in events] == [AuditEventType.ACCOUNT_CREATED]

    def test_events_by_correlation_id(self, audit_storage):
        """Test filtering by correlation id."""
        correlation_id = create_correlation_id()
        audit_storage.append_event(AuditEventBuilder.task_created(1, "t", 1, correlation_id))
        audit_storage.append_event(AuditEventBuilder.task_created(2, "t", 1))
        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.entity_id for e in events] == [1]


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_without_storage(self):
        """Test local-only logging reports success."""
        assert AuditLogger().log(AuditEventBuilder.task_created(1, "t", 1)) is True

    def test_log_writes_to_storage(self, audit_storage):
        """Test events reach the storage backend."""
        logger = AuditLogger(audit_storage)
        assert logger.log(AuditEventBuilder.task_created(1, "t", 1)) is True
        assert len(audit_storage) == 1

    def test_storage_failure_is_reported_not_raised(self):
        """Test a failing backend returns False."""
        logger = AuditLogger(FailingAuditStorage())
        assert logger.log(AuditEventBuilder.task_created(1, "t", 1)) is False

    def test_log_level_follows_severity(self):
        """Test warnings are logged at warning level."""
        with capture_logs() as logs:
            logger = AuditLogger()
            logger.log_operation_rejected(
                operation="complete_task",
                error_kind="conflict",
                reason="already completed",
            )
        assert logs[0]["event"] == "audit_event"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["error_message"] == "already completed"


class TestStoreAuditTrail:
    """Tests for the events the store emits."""

    def test_successful_flow(self, store, audit_storage):
        """Test create, assign and complete produce their events in order."""
        account = store.create_account("alice", "alice@example.com", "child")
        task = store.create_task("Dishes", "", 5)
        store.assign_task(task.id, account.id)
        store.complete_task(task.id)

        assert event_types(audit_storage) == [
            AuditEventType.ACCOUNT_CREATED,
            AuditEventType.TASK_CREATED,
            AuditEventType.TASK_ASSIGNED,
            AuditEventType.TASK_COMPLETED,
            AuditEventType.POINTS_AWARDED,
        ]
        awarded = audit_storage.get_events_by_entity("account", account.id)[-1]
        assert awarded.details["total_points"] == 5

    def test_unassigned_completion_awards_nothing(self, store, audit_storage):
        """Test no points event for an unassigned task."""
        task = store.create_task("Dishes", "", 5)
        store.complete_task(task.id)
        assert AuditEventType.POINTS_AWARDED not in event_types(audit_storage)

    def test_reassignment_recorded(self, store, audit_storage):
        """Test the previous assignee is kept in the trail."""
        alice = store.create_account("alice", "alice@example.com", "child")
        bob = store.create_account("bob", "bob@example.com", "child")
        task = store.create_task("Dishes", "", 5)
        store.assign_task(task.id, alice.id)
        store.assign_task(task.id, bob.id)

        assigned = [
            e for e in audit_storage.get_events_by_entity("task", task.id)
            if e.event_type == AuditEventType.TASK_ASSIGNED
        ]
        assert assigned[-1].details == {"account_id": bob.id, "previous_assignee": alice.id}

    def test_rejections_recorded(self, store, audit_storage):
        """Test each failed operation leaves a warning event."""
        with pytest.raises(ValidationError):
            store.create_account("", "a@b.com", "child")
        with pytest.raises(NotFoundError):
            store.assign_task(1, 99)
        task = store.create_task("Dishes", "", 5)
        store.complete_task(task.id)
        with pytest.raises(ConflictError):
            store.complete_task(task.id)

        rejected = [
            e for e in reversed(audit_storage.get_recent_events(limit=None))
            if e.event_type == AuditEventType.OPERATION_REJECTED
        ]
        assert [e.error_message for e in rejected] == [
            "empty username",
            "account",
            "already completed",
        ]
        assert all(e.severity == AuditSeverity.WARNING for e in rejected)
        assert rejected[1].entity_id == 99

    def test_correlation_id_propagates(self, store, audit_storage):
        """Test one correlation id ties together a user action."""
        correlation_id = create_correlation_id()
        account = store.create_account("alice", "alice@example.com", "child")
        task = store.create_task("Dishes", "", 5)
        store.assign_task(task.id, account.id)
        store.complete_task(task.id, correlation_id=correlation_id)

        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.TASK_COMPLETED,
            AuditEventType.POINTS_AWARDED,
        ]

    def test_failing_audit_storage_does_not_break_store(self):
        """Test the store keeps working when the trail cannot be written."""
        store = LedgerStore(
            audit_logger=AuditLogger(FailingAuditStorage()),
            settings=LedgerSettings(),
        )
        account = store.create_account("alice", "alice@example.com", "child")
        assert store.get_account(account.id) == account

    def test_builder_failure_does_not_break_store(self, monkeypatch, audit_storage):
        """Test an event that cannot be built is logged, not raised."""
        def broken_builder(**kwargs):
            raise ValueError("cannot build event")

        monkeypatch.setattr(AuditEventBuilder, "account_created", staticmethod(broken_builder))

        with capture_logs() as logs:
            store = LedgerStore(
                audit_logger=AuditLogger(audit_storage),
                settings=LedgerSettings(),
            )
            account = store.create_account("alice", "alice@example.com", "child")

        assert account.id == 1
        assert store.list_accounts() == [account]
        assert store.create_account("bob", "bob@example.com", "child").id == 2
        failures = [e for e in logs if e["event"] == "audit_event_build_failed"]
        assert len(failures) == 2
        assert failures[0]["error"] == "cannot build event"


class TestLongText:
    """Tests for caller text longer than an audit description allows."""

    def test_builders_clip_description(self):
        """Test long titles are cut to the description limit."""
        event = AuditEventBuilder.task_created(1, "t" * 600, 10)
        assert len(event.description) == DESCRIPTION_MAX_LENGTH
        assert event.description.endswith("...")
        assert event.details["title"] == "t" * 600

    def test_short_description_unchanged(self):
        """Test descriptions within the limit are kept as-is."""
        event = AuditEventBuilder.account_created(1, "alice", "child")
        assert event.description == "Account created: alice"

    def test_long_username_account_is_stored(self, store, audit_storage):
        """Test a long username creates exactly one account and advances ids."""
        account = store.create_account("u" * 600, "a@b.com", "child")
        assert account.id == 1
        assert account.username == "u" * 600
        assert len(store.list_accounts()) == 1
        assert store.create_account("bob", "bob@example.com", "child").id == 2

        created = audit_storage.get_events_by_entity("account", account.id)
        assert len(created) == 1
        assert len(created[0].description) <= DESCRIPTION_MAX_LENGTH

    def test_long_title_task_completes_once(self, store, audit_storage):
        """Test a long title task is created, completed and credited once."""
        account = store.create_account("alice", "alice@example.com", "child")
        task = store.create_task("t" * 600, "", 10)
        store.assign_task(task.id, account.id)
        store.complete_task(task.id)

        assert store.get_task(task.id).completed is True
        assert store.get_account(account.id).points == 10
        assert len(store.points_history(account.id)) == 1
        assert event_types(audit_storage)[-2:] == [
            AuditEventType.TASK_COMPLETED,
            AuditEventType.POINTS_AWARDED,
        ]
        assert all(
            len(e.description) <= DESCRIPTION_MAX_LENGTH
            for e in audit_storage.get_recent_events(limit=None)
        )


class TestConcurrentTrail:
    """Tests for reading the trail while another thread writes."""

    def test_reads_during_appends(self, audit_storage):
        """Test readers never see a deque mutated mid-iteration."""
        errors = []
        done = threading.Event()

        def writer():
            for task_id in range(5000):
                audit_storage.append_event(AuditEventBuilder.task_created(task_id, "t", 1))
            done.set()

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            while not done.is_set():
                try:
                    audit_storage.get_recent_events(limit=100)
                    audit_storage.get_events_by_entity("task", 1)
                except RuntimeError as e:
                    errors.append(e)
        finally:
            thread.join()

        assert errors == []
        assert len(audit_storage) == audit_storage.max_events


class TestConfigureLogging:
    """Tests for stdlib logging setup."""

    def test_import_leaves_root_logger_alone(self):
        """Test importing the package does not touch stdlib logging."""
        code = (
            "import logging\n"
            "import family_ledger.audit\n"
            "root = logging.getLogger()\n"
            "print(root.level, len(root.handlers))\n"
        )
        result = subprocess.run(
            [sys.executable, "-c", code],
            cwd=Path(__file__).resolve().parents[1],
            capture_output=True,
            text=True,
            check=True,
        )
        assert result.stdout.split() == [str(logging.WARNING), "0"]

    def test_configure_logging_sets_root_level(self):
        """Test configure_logging applies the configured level."""
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging(LoggingSettings(level="DEBUG"))
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
