"""
Core Data Models for Family Ledger

These models define the records held by the ledger store:
accounts, reward tasks, the points history written on completion,
and the derived leaderboard/statistics views.

DESIGN DECISION: Stored records are frozen Pydantic models.
The store hands out the same instances it holds; because they are
immutable, callers can only change state through store operations.
Updates inside the store go through `model_copy(update=...)`.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# STORED RECORDS
# =============================================================================

class Account(BaseModel):
    """
    A participant in the ledger.

    `points` starts at 0 and only grows when a task assigned
    to this account is completed.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned identifier, never reused"
    )
    username: str = Field(
        ...,
        description="Display name"
    )
    email: str = Field(
        ...,
        description="Contact address (must contain '@')"
    )
    role: str = Field(
        ...,
        description="Free-form role label, e.g. 'admin' or 'child'"
    )
    points: int = Field(
        default=0,
        description="Current points balance"
    )


class Task(BaseModel):
    """
    An assignable reward task.

    Lifecycle:
    - created unassigned and not completed
    - assigned (and re-assigned) to an existing account
    - completed exactly once; completion is terminal
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        ge=1,
        description="Store-assigned identifier, never reused"
    )
    title: str
    description: str = ""
    points: int = Field(
        ...,
        description="Reward credited to the assignee on completion"
    )
    assigned_to: Optional[int] = Field(
        default=None,
        description="Account id of the current assignee"
    )
    completed: bool = False

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None


class PointsEntry(BaseModel):
    """One credit in an account's points history."""

    model_config = ConfigDict(frozen=True)

    entry_id: int = Field(ge=1)
    account_id: int
    task_id: int
    points_change: int
    total_points: int = Field(
        ...,
        description="Account balance right after this credit"
    )
    reason: str
    created_at: datetime = Field(
        default_factory=_utcnow
    )


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class LeaderboardEntry(BaseModel):
    """A ranked row of the leaderboard."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(
        ...,
        ge=1,
        description="Sequential position, 1 = top"
    )
    account: Account
    points: int = Field(
        ...,
        description="Balance, or points earned inside the requested window"
    )
    completed_tasks: int = Field(ge=0)


class AccountStats(BaseModel):
    """Task and points summary for one account."""

    model_config = ConfigDict(frozen=True)

    account_id: int
    total_points: int
    assigned_tasks: int = Field(ge=0)
    completed_tasks: int = Field(ge=0)
    pending_tasks: int = Field(ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in caller-supplied fields."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Short reason, e.g. 'empty username'"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
