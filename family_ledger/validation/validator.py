"""
Field Validation for New Ledger Records

DESIGN DECISION: Rules are evaluated in a fixed order and collected as
ValidationIssue objects. The store only reports the FIRST issue (the
error callers match on); a UI can show all of them at once.

Account rules, in order:
1. username must not be empty
2. email must not be empty and must contain '@' (presence check only)

Task rules, in order:
1. title must not be empty
2. points must not be negative

IMPORTANT: Validation NEVER silently fixes issues.
No stripping, no lower-casing: a whitespace-only username is accepted as given.
"""

from family_ledger.errors import ValidationError
from family_ledger.models.ledger import ValidationIssue


class LedgerValidator:
    """Validates caller-supplied fields for new accounts and tasks."""

    def account_issues(
        self,
        username: str,
        email: str,
    ) -> list[ValidationIssue]:
        """
        Collect all issues with a new account's fields.

        Returns: issues in check order (empty list = valid)
        """
        issues = []

        if not username:
            issues.append(ValidationIssue(
                field="username",
                issue_type="missing",
                message="empty username",
                suggested_fix="Enter a username",
            ))

        if not email or "@" not in email:
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="invalid email",
                suggested_fix="Enter an address like name@example.com",
            ))

        return issues

    def task_issues(
        self,
        title: str,
        points: int,
    ) -> list[ValidationIssue]:
        """
        Collect all issues with a new task's fields.

        Returns: issues in check order (empty list = valid)
        """
        issues = []

        if not title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="empty title",
                suggested_fix="Enter a task title",
            ))

        if points < 0:
            issues.append(ValidationIssue(
                field="points",
                issue_type="invalid_value",
                message="negative points",
                suggested_fix="Use zero or a positive reward",
            ))

        return issues

    def check_account(self, username: str, email: str) -> None:
        """Raise ValidationError for the first account issue, if any."""
        self._raise_first(self.account_issues(username, email))

    def check_task(self, title: str, points: int) -> None:
        """Raise ValidationError for the first task issue, if any."""
        self._raise_first(self.task_issues(title, points))

    @staticmethod
    def _raise_first(issues: list[ValidationIssue]) -> None:
        if issues:
            first = issues[0]
            raise ValidationError(first.field, first.message)

    @staticmethod
    def get_user_friendly_summary(issues: list[ValidationIssue]) -> str:
        """
        Generate a readable summary of validation issues.

        This is what the dashboard shows under a rejected form.
        """
        if not issues:
            return "✅ All checks passed."

        lines = ["❌ Please fix the following:"]
        for issue in issues:
            lines.append(f"   • {issue.field}: {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
