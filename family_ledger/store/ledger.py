"""
Ledger Store

The in-memory repository owning all accounts and reward tasks.

It is the sole mutator of identifiers, balances, assignment and completion
state, and the sole source of derived views (leaderboard, history, stats).

DESIGN DECISIONS:
- One explicitly constructed instance per application lifetime; no module
  level singleton. Hosts build it through `create_app_components()`.
- Every operation fully succeeds or raises a LedgerError having changed
  nothing. All checks run before the first write.
- Records are frozen models, so lookups return the stored instances
  directly; updates replace them with `model_copy(update=...)`.
- Synchronous and unlocked. A host with concurrent callers must serialize
  access itself.
- Leaderboard ties are broken by ascending account id (creation order).
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from family_ledger.audit import AuditLogger
from family_ledger.config import LedgerSettings, get_settings
from family_ledger.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from family_ledger.models.ledger import (
    Account,
    AccountStats,
    LeaderboardEntry,
    PointsEntry,
    Task,
)
from family_ledger.validation import LedgerValidator


class LedgerStore:
    """
    Accounts, tasks and the points they earn.

    Ids start at 1 in each collection and only advance when a create
    call succeeds.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        """
        Initialize an empty store.

        Args:
            audit_logger: Receives an event for every mutation and rejection.
                          If None, nothing is audited.
            validator: Field rules for new records.
            settings: Ledger settings (defaults from the environment).
        """
        self._settings = settings or get_settings().ledger
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger

        self._accounts: dict[int, Account] = {}
        self._tasks: dict[int, Task] = {}
        self._history: list[PointsEntry] = []

        self._next_account_id = 1
        self._next_task_id = 1

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def create_account(
        self,
        username: str,
        email: str,
        role: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Create an account with a zero balance.

        Args:
            username: Must not be empty
            email: Must not be empty and must contain '@'
            role: Free-form label; the configured default role when None

        Raises:
            ValidationError: "empty username" or "invalid email" (checked in that order)
        """
        try:
            self._validator.check_account(username, email)
        except ValidationError as e:
            raise self._rejected("create_account", e, "account", correlation_id)

        account = Account(
            id=self._next_account_id,
            username=username,
            email=email,
            role=self._settings.default_role if role is None else role,
        )
        self._accounts[account.id] = account
        self._next_account_id += 1

        if self._audit_logger:
            self._audit_logger.log_account_created(
                account_id=account.id,
                username=account.username,
                role=account.role,
                correlation_id=correlation_id,
            )

        return account

    def get_account(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    def list_accounts(self, role: Optional[str] = None) -> list[Account]:
        """All accounts in id order, optionally only those with `role`."""
        return [
            account for account in self._accounts.values()
            if role is None or account.role == role
        ]

    # =========================================================================
    # TASKS
    # =========================================================================

    def create_task(
        self,
        title: str,
        description: str,
        points: int,
        correlation_id: Optional[UUID] = None,
    ) -> Task:
        """
        Create an unassigned, incomplete task.

        Raises:
            ValidationError: "empty title" or "negative points" (checked in that order)
        """
        try:
            self._validator.check_task(title, points)
        except ValidationError as e:
            raise self._rejected("create_task", e, "task", correlation_id)

        task = Task(
            id=self._next_task_id,
            title=title,
            description=description,
            points=points,
        )
        self._tasks[task.id] = task
        self._next_task_id += 1

        if self._audit_logger:
            self._audit_logger.log_task_created(
                task_id=task.id,
                title=task.title,
                points=task.points,
                correlation_id=correlation_id,
            )

        return task

    def get_task(self, task_id: int) -> Optional[Task]:
        return self._tasks.get(task_id)

    def list_tasks(
        self,
        assigned_to: Optional[int] = None,
        completed: Optional[bool] = None,
    ) -> list[Task]:
        """All tasks in id order, optionally filtered by assignee and/or completion."""
        return [
            task for task in self._tasks.values()
            if (assigned_to is None or task.assigned_to == assigned_to)
            and (completed is None or task.completed == completed)
        ]

    def assign_task(
        self,
        task_id: int,
        account_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Make `account_id` the task's assignee.

        Any previous assignee is replaced. Balances are never adjusted
        here, not even when the task was already completed.

        Raises:
            NotFoundError: "account" (checked first), then "task"
        """
        if account_id not in self._accounts:
            raise self._rejected(
                "assign_task", NotFoundError("account", account_id), "account", correlation_id
            )

        task = self._tasks.get(task_id)
        if task is None:
            raise self._rejected(
                "assign_task", NotFoundError("task", task_id), "task", correlation_id
            )

        previous_assignee = task.assigned_to
        self._tasks[task_id] = task.model_copy(update={"assigned_to": account_id})

        if self._audit_logger:
            self._audit_logger.log_task_assigned(
                task_id=task_id,
                account_id=account_id,
                previous_assignee=previous_assignee,
                correlation_id=correlation_id,
            )

    def complete_task(
        self,
        task_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Mark a task completed and credit its points to the assignee.

        An unassigned task completes without crediting anyone; its points
        are not banked for a later assignee.

        Raises:
            NotFoundError: "task"
            ConflictError: "already completed"
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise self._rejected(
                "complete_task", NotFoundError("task", task_id), "task", correlation_id
            )

        if task.completed:
            raise self._rejected(
                "complete_task",
                ConflictError("task", task_id, "already completed"),
                "task",
                correlation_id,
            )

        self._tasks[task_id] = task.model_copy(update={"completed": True})

        if self._audit_logger:
            self._audit_logger.log_task_completed(
                task_id=task_id,
                title=task.title,
                assigned_to=task.assigned_to,
                correlation_id=correlation_id,
            )

        account = self._accounts.get(task.assigned_to) if task.is_assigned else None
        if account is not None:
            self._credit(account, task, correlation_id)

    def _credit(
        self,
        account: Account,
        task: Task,
        correlation_id: Optional[UUID],
    ) -> None:
        total = account.points + task.points
        self._accounts[account.id] = account.model_copy(update={"points": total})
        self._history.append(PointsEntry(
            entry_id=len(self._history) + 1,
            account_id=account.id,
            task_id=task.id,
            points_change=task.points,
            total_points=total,
            reason=f"Completed task: {task.title}",
        ))

        if self._audit_logger:
            self._audit_logger.log_points_awarded(
                account_id=account.id,
                task_id=task.id,
                points=task.points,
                total_points=total,
                correlation_id=correlation_id,
            )

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def leaderboard(self) -> list[Account]:
        """All accounts by descending points; ties by ascending id."""
        return sorted(self._accounts.values(), key=lambda a: (-a.points, a.id))

    def ranked_leaderboard(
        self,
        limit: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[LeaderboardEntry]:
        """
        Numbered leaderboard rows.

        Args:
            limit: Keep only the first `limit` rows (must be >= 1)
            since: Rank by points earned at or after this instant instead of
                   by balance. Naive datetimes are taken as UTC.

        Raises:
            ValidationError: "invalid limit"
        """
        if limit is not None and limit < 1:
            raise ValidationError("limit", "invalid limit")

        if since is None:
            rows = [
                (account, account.points, self._completed_count(account.id))
                for account in self._accounts.values()
            ]
        else:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            earned = {account_id: [0, 0] for account_id in self._accounts}
            for entry in self._history:
                if entry.created_at >= since:
                    earned[entry.account_id][0] += entry.points_change
                    earned[entry.account_id][1] += 1
            rows = [
                (account, *earned[account.id])
                for account in self._accounts.values()
            ]

        rows.sort(key=lambda row: (-row[1], row[0].id))
        if limit is not None:
            rows = rows[:limit]

        return [
            LeaderboardEntry(
                rank=position,
                account=account,
                points=points,
                completed_tasks=completed,
            )
            for position, (account, points, completed) in enumerate(rows, start=1)
        ]

    def points_history(self, account_id: int) -> list[PointsEntry]:
        """
        Credits received by an account, newest first.

        Raises:
            NotFoundError: "account"
        """
        if account_id not in self._accounts:
            raise NotFoundError("account", account_id)
        return [e for e in reversed(self._history) if e.account_id == account_id]

    def account_stats(self, account_id: int) -> AccountStats:
        """
        Points and task counts for an account's current assignments.

        Raises:
            NotFoundError: "account"
        """
        account = self._accounts.get(account_id)
        if account is None:
            raise NotFoundError("account", account_id)

        assigned = self.list_tasks(assigned_to=account_id)
        completed = sum(1 for task in assigned if task.completed)

        return AccountStats(
            account_id=account_id,
            total_points=account.points,
            assigned_tasks=len(assigned),
            completed_tasks=completed,
            pending_tasks=len(assigned) - completed,
        )

    def _completed_count(self, account_id: int) -> int:
        return sum(
            1 for task in self._tasks.values()
            if task.assigned_to == account_id and task.completed
        )

    # =========================================================================
    # AUDIT
    # =========================================================================

    def _rejected(
        self,
        operation: str,
        error: LedgerError,
        entity_type: str,
        correlation_id: Optional[UUID],
    ) -> LedgerError:
        """Audit a rejected operation and hand the error back for raising."""
        if self._audit_logger:
            self._audit_logger.log_operation_rejected(
                operation=operation,
                error_kind=error.kind,
                reason=error.reason,
                entity_type=entity_type,
                entity_id=getattr(error, "entity_id", None),
                correlation_id=correlation_id,
            )
        return error
