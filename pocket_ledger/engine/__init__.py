"""
Derivation Engine

Pure functions that turn the stored ledger into balances, summaries,
budget progress and recurring occurrences. Nothing in this package
performs I/O.
"""

from pocket_ledger.engine.budgets import (
    budget_period_bounds,
    budget_progress,
    check_completion,
    check_daily_success,
    current_spending,
    effective_period_bounds,
    evaluate_budgets,
    is_end_of_period,
    period_key,
)
from pocket_ledger.engine.categories import (
    CategoryResolver,
    active_accounts_for_category,
    get_category_ids_for_budget,
    is_category_active_for_account,
    matches,
)
from pocket_ledger.engine.currency import (
    CurrencyConverter,
    convert,
    convert_with_status,
    converted_totals,
    resolve_transaction_currency,
    sum_by_category,
    sum_converted,
)
from pocket_ledger.engine.ledger import (
    account_history,
    filter_transactions_by_account,
    reconcile,
    sort_by_recency,
    total_balance,
    transaction_delta,
)
from pocket_ledger.engine.periods import (
    add_months,
    month_bounds,
    monthly_periods,
    week_bounds,
)
from pocket_ledger.engine.recurring import (
    advance,
    create_recurring,
    due_recurring,
    materialize,
    materialize_due,
    next_occurrence,
)
from pocket_ledger.engine.summary import (
    category_breakdown,
    percentage_change,
    summarize,
)

__all__ = [
    # Budgets
    "budget_period_bounds",
    "budget_progress",
    "check_completion",
    "check_daily_success",
    "current_spending",
    "effective_period_bounds",
    "evaluate_budgets",
    "is_end_of_period",
    "period_key",
    # Categories
    "CategoryResolver",
    "active_accounts_for_category",
    "get_category_ids_for_budget",
    "is_category_active_for_account",
    "matches",
    # Currency
    "CurrencyConverter",
    "convert",
    "convert_with_status",
    "converted_totals",
    "resolve_transaction_currency",
    "sum_by_category",
    "sum_converted",
    # Ledger
    "account_history",
    "filter_transactions_by_account",
    "reconcile",
    "sort_by_recency",
    "total_balance",
    "transaction_delta",
    # Periods
    "add_months",
    "month_bounds",
    "monthly_periods",
    "week_bounds",
    # Recurring
    "advance",
    "create_recurring",
    "due_recurring",
    "materialize",
    "materialize_due",
    "next_occurrence",
    # Summary
    "category_breakdown",
    "percentage_change",
    "summarize",
]
