"""
Budget Progress Tracker

Computes spending against a goal for its current period and decides when
a period has completed within target.

DESIGN DECISION: The tracker holds no state. Deduplication of completion
signals uses a set of period keys that the caller owns, persists, and
passes back in. Each call returns the new (immutable) key set.

The tracker never talks to the reward collaborator. It only reports
`points_eligible`; forwarding the event is the caller's job.

Periods:
- week:  Monday to Sunday of the current calendar week
- month: 1st to last calendar day of the current month

A goal's creation day clamps the period start. If the clamp moves the
start past the period end, spending is zero.

IMPORTANT: `created_at` is stored as naive UTC, so the clamp compares UTC
days. `today` defaults to the current UTC day for the same reason; callers
that pass a local day accept that a goal created near midnight may clamp
to the neighbouring day.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import AbstractSet, Callable, Iterable, Optional, Sequence

import structlog

from pocket_ledger.engine.categories import CategoryResolver
from pocket_ledger.engine.periods import month_bounds, week_bounds
from pocket_ledger.models.ledger import (
    ZERO,
    BudgetGoal,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionType,
    utc_now,
)
from pocket_ledger.models.reports import (
    BudgetCompletion,
    BudgetEvaluation,
    BudgetProgress,
    DailyBudgetCheck,
)


logger = structlog.get_logger(__name__)

AmountConverter = Callable[[Transaction], Decimal]

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30


# =============================================================================
# PERIOD BOUNDS AND KEYS
# =============================================================================

def budget_period_bounds(period: BudgetPeriod, today: date) -> tuple[date, date]:
    """Inclusive first and last day of the period containing `today`."""
    if period == BudgetPeriod.WEEK:
        return week_bounds(today)
    return month_bounds(today)


def effective_period_bounds(
    goal: BudgetGoal,
    today: date,
) -> tuple[Optional[date], date]:
    """
    Period bounds clamped to the goal's creation day.

    Returns (None, period_end) when the goal was created after the
    current period ends.
    """
    start, end = budget_period_bounds(goal.period, today)
    created = goal.created_at.date()
    if created > end:
        return None, end
    return max(start, created), end


def is_end_of_period(period: BudgetPeriod, today: date) -> bool:
    """True only on Sunday (weekly) or on the last day of the month (monthly)."""
    if period == BudgetPeriod.WEEK:
        return today.weekday() == 6
    return (today + timedelta(days=1)).month != today.month


def period_key(goal: BudgetGoal, today: date) -> str:
    """
    Stable identifier for the goal's current period.

    Weekly keys use the ISO week (Monday based); monthly keys use year-month.
    """
    if goal.period == BudgetPeriod.WEEK:
        iso_year, iso_week, _ = today.isocalendar()
        return f"{goal.id}:week:{iso_year}-W{iso_week:02d}"
    return f"{goal.id}:month:{today.year}-{today.month:02d}"


def daily_key(today: date) -> str:
    return f"daily:{today.isoformat()}"


# =============================================================================
# SPENDING
# =============================================================================

def _counts_toward(
    transaction: Transaction,
    goal: BudgetGoal,
    resolver: CategoryResolver,
    start: date,
    end: date,
) -> bool:
    if transaction.type != TransactionType.EXPENSE or transaction.exclude_from_reports:
        return False
    if not start <= transaction.date <= end:
        return False
    if goal.category is None:
        return True
    return resolver.matches(transaction.category, goal.category)


def _spend(
    goal: BudgetGoal,
    transactions: Iterable[Transaction],
    resolver: CategoryResolver,
    start: date,
    end: date,
    converter: Optional[AmountConverter],
) -> Decimal:
    total = ZERO
    for transaction in transactions:
        if _counts_toward(transaction, goal, resolver, start, end):
            total += transaction.amount if converter is None else converter(transaction)
    return total


def current_spending(
    goal: BudgetGoal,
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    converter: Optional[AmountConverter] = None,
    today: Optional[date] = None,
) -> Decimal:
    """
    Expense total counted against a goal in its current period.

    Only reportable expenses inside the clamped period that match the
    goal's category (or any category for a whole-wallet goal) count.
    Each amount goes through `converter` first when one is given.
    """
    today = today or utc_now().date()
    start, end = effective_period_bounds(goal, today)
    if start is None:
        return ZERO
    return _spend(goal, transactions, CategoryResolver(categories), start, end, converter)


def budget_progress(
    goal: BudgetGoal,
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    converter: Optional[AmountConverter] = None,
    today: Optional[date] = None,
) -> BudgetProgress:
    """Spent, target and the counted window for a goal's current period."""
    today = today or utc_now().date()
    start, end = effective_period_bounds(goal, today)
    spent = current_spending(goal, transactions, categories, converter, today)
    return BudgetProgress(
        goal_id=goal.id,
        period_start=start,
        period_end=end,
        spent=spent,
        target=goal.target,
    )


# =============================================================================
# COMPLETION
# =============================================================================

def check_completion(
    goal: BudgetGoal,
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    converter: Optional[AmountConverter] = None,
    completed_keys: AbstractSet[str] = frozenset(),
    today: Optional[date] = None,
) -> BudgetCompletion:
    """
    Decide whether the goal's current period just completed within target.

    A period completes only on its last day and only if spending is at or
    under target. Overspending at any point fails the period. The first
    successful evaluation of a period is `points_eligible` and adds its
    key to the returned set; later evaluations of the same period report
    `completed` without eligibility.
    """
    today = today or utc_now().date()
    keys = frozenset(completed_keys)
    key = period_key(goal, today)
    spent = current_spending(goal, transactions, categories, converter, today)

    if spent > goal.target or not is_end_of_period(goal.period, today):
        return BudgetCompletion(
            goal_id=goal.id,
            period_key=key,
            completed=False,
            spent=spent,
            completed_period_keys=keys,
        )

    if key in keys:
        logger.debug("budget_period_already_completed", goal_id=goal.id, period_key=key)
        return BudgetCompletion(
            goal_id=goal.id,
            period_key=key,
            completed=True,
            spent=spent,
            completed_period_keys=keys,
        )

    logger.info("budget_period_completed", goal_id=goal.id, period_key=key, spent=str(spent))
    return BudgetCompletion(
        goal_id=goal.id,
        period_key=key,
        completed=True,
        points_eligible=True,
        spent=spent,
        completed_period_keys=keys | {key},
    )


def daily_target(goal: BudgetGoal) -> Decimal:
    """The goal's target spread over one day of its period."""
    days = DAYS_PER_WEEK if goal.period == BudgetPeriod.WEEK else DAYS_PER_MONTH
    return goal.target / days


def check_daily_success(
    goals: Sequence[BudgetGoal],
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    converter: Optional[AmountConverter] = None,
    completed_keys: AbstractSet[str] = frozenset(),
    today: Optional[date] = None,
) -> DailyBudgetCheck:
    """
    Once-a-day check that today's spending stayed within every daily share.

    Only evaluated on days with at least one transaction, and at most once
    per day (keyed "daily:YYYY-MM-DD"). Goals created after today are
    ignored.

    NOTE: Only spending dated today is compared with the daily share
    (target / 7 or target / 30). Period-to-date spending is not used, so
    this differs from checking the running total against the same share.
    """
    today = today or utc_now().date()
    keys = frozenset(completed_keys)
    key = daily_key(today)

    if key in keys or not goals:
        return DailyBudgetCheck(day_key=key, success=False, completed_period_keys=keys)
    if not any(t.date == today for t in transactions):
        return DailyBudgetCheck(day_key=key, success=False, completed_period_keys=keys)

    resolver = CategoryResolver(categories)
    for goal in goals:
        if goal.created_at.date() > today:
            continue
        spent_today = _spend(goal, transactions, resolver, today, today, converter)
        if spent_today > daily_target(goal):
            return DailyBudgetCheck(day_key=key, success=False, completed_period_keys=keys)

    return DailyBudgetCheck(
        day_key=key,
        success=True,
        points_eligible=True,
        completed_period_keys=keys | {key},
    )


def evaluate_budgets(
    goals: Sequence[BudgetGoal],
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
    converter: Optional[AmountConverter] = None,
    completed_keys: AbstractSet[str] = frozenset(),
    today: Optional[date] = None,
) -> BudgetEvaluation:
    """
    Evaluate every repeating goal, then the daily check.

    The key set is threaded through each evaluation so two goals never
    see a stale view of it.
    """
    today = today or utc_now().date()
    keys = frozenset(completed_keys)
    completions: list[BudgetCompletion] = []

    for goal in goals:
        if not goal.is_repeating:
            continue
        completion = check_completion(goal, transactions, categories, converter, keys, today)
        keys = completion.completed_period_keys
        completions.append(completion)

    daily = None
    if goals:
        daily = check_daily_success(goals, transactions, categories, converter, keys, today)
        keys = daily.completed_period_keys

    return BudgetEvaluation(completions=completions, daily=daily, completed_period_keys=keys)
