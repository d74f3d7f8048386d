"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the engine must conform to these schemas.
"""

from pocket_ledger.models.ledger import (
    Account,
    AccountType,
    BudgetGoal,
    BudgetPeriod,
    Category,
    CategoryType,
    LedgerEntity,
    LedgerSnapshot,
    RecurrenceFrequency,
    RecurringTransaction,
    Transaction,
    TransactionTemplate,
    TransactionType,
    normalize_amount,
    round_money,
)
from pocket_ledger.models.currency import ConvertedAmount, RateTable
from pocket_ledger.models.reports import (
    AccountHistoryEntry,
    BudgetCompletion,
    BudgetEvaluation,
    BudgetProgress,
    CategoryBreakdownEntry,
    DailyBudgetCheck,
    PeriodSummary,
    PeriodWindow,
)
from pocket_ledger.models.validation import (
    DuplicateMatch,
    ValidationIssue,
    ValidationResult,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountType",
    "BudgetGoal",
    "BudgetPeriod",
    "Category",
    "CategoryType",
    "LedgerEntity",
    "LedgerSnapshot",
    "RecurrenceFrequency",
    "RecurringTransaction",
    "Transaction",
    "TransactionTemplate",
    "TransactionType",
    "normalize_amount",
    "round_money",
    # Currency models
    "ConvertedAmount",
    "RateTable",
    # Derived models
    "AccountHistoryEntry",
    "BudgetCompletion",
    "BudgetEvaluation",
    "BudgetProgress",
    "CategoryBreakdownEntry",
    "DailyBudgetCheck",
    "PeriodSummary",
    "PeriodWindow",
    # Validation models
    "DuplicateMatch",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
