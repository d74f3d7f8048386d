"""
Transaction Validation

DESIGN DECISION: Validation runs before a transaction is written and
reports what looks wrong. The engine itself tolerates every one of these
problems (dangling accounts get a legacy account, unresolved categories
simply never match a budget), so nothing here blocks a write on its own.
The caller decides what to do with the result.

CHECKS:
- Structural: unknown source or destination account, self-transfer,
  zero amount, unresolved category
- Semantic: date too far in the future, likely duplicate of an
  existing entry

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date, timedelta
from typing import Optional

import structlog

from pocket_ledger.config import EngineSettings, get_settings
from pocket_ledger.engine.categories import CategoryResolver
from pocket_ledger.models.ledger import ZERO, LedgerSnapshot, Transaction
from pocket_ledger.models.validation import DuplicateMatch, ValidationIssue, ValidationResult
from pocket_ledger.validation.duplicates import duplicate_warning, find_potential_duplicates


logger = structlog.get_logger(__name__)


class TransactionValidator:
    """
    Validates a transaction against the current ledger snapshot.

    Structural checks only need the snapshot's accounts and categories.
    Duplicate detection compares against its transactions.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine

    def _validate_structure(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
    ) -> list[ValidationIssue]:
        issues = []
        account_ids = {account.id for account in snapshot.accounts}

        if transaction.account_id not in account_ids:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unknown_account",
                message=f"Account {transaction.account_id} does not exist",
                severity="error",
                suggested_fix="Pick one of your existing accounts",
            ))

        if transaction.is_transfer:
            if transaction.to_account_id not in account_ids:
                issues.append(ValidationIssue(
                    field="to_account_id",
                    issue_type="unknown_account",
                    message=f"Destination account {transaction.to_account_id} does not exist",
                    severity="error",
                    suggested_fix="Pick one of your existing accounts",
                ))
            if transaction.to_account_id == transaction.account_id:
                issues.append(ValidationIssue(
                    field="to_account_id",
                    issue_type="self_transfer",
                    message="Transfer source and destination are the same account",
                    severity="warning",
                    suggested_fix="Choose a different destination account",
                ))

        if transaction.amount == ZERO:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount is zero",
                severity="warning",
                suggested_fix="Check if the amount was entered correctly",
            ))

        if not transaction.is_transfer:
            resolver = CategoryResolver(snapshot.categories)
            if resolver.resolve(transaction.category) is None:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="unresolved_category",
                    message=f"Category \"{transaction.category}\" does not match any category",
                    severity="warning",
                    suggested_fix="This entry will not count toward any category budget",
                ))

        return issues

    def _validate_semantics(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
        today: date,
    ) -> tuple[list[ValidationIssue], list[DuplicateMatch]]:
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if transaction.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({transaction.date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        duplicates = find_potential_duplicates(
            transaction,
            snapshot.transactions,
            threshold=self._settings.duplicate_confidence_threshold,
            today=today,
        )
        if duplicates:
            issues.append(ValidationIssue(
                field="duplicate",
                issue_type="potential_duplicate",
                message=duplicate_warning(duplicates[0]),
                severity="warning",
                suggested_fix="Please verify this isn't a duplicate entry",
            ))

        return issues, duplicates

    def validate(
        self,
        transaction: Transaction,
        snapshot: LedgerSnapshot,
        today: Optional[date] = None,
        check_duplicates: bool = True,
    ) -> ValidationResult:
        """
        Run every check and collect the findings.

        Args:
            transaction: Entry about to be written
            snapshot: Current ledger contents
            today: Reference day for date checks
            check_duplicates: Set False to skip the semantic stage

        Returns:
            ValidationResult with all issues and duplicate matches
        """
        today = today or date.today()
        issues = self._validate_structure(transaction, snapshot)
        duplicates: list[DuplicateMatch] = []

        if check_duplicates:
            semantic_issues, duplicates = self._validate_semantics(transaction, snapshot, today)
            issues.extend(semantic_issues)

        result = ValidationResult(
            transaction_id=transaction.id,
            issues=issues,
            duplicates=duplicates,
        )
        if issues:
            logger.info(
                "transaction_validation_issues",
                transaction_id=transaction.id,
                error_count=result.error_count,
                issue_types=[issue.issue_type for issue in issues],
            )
        return result
