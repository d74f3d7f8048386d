"""
Derived Read Models

Everything in this module is computed from the ledger and handed to the
caller. None of it is persisted.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pocket_ledger.models.ledger import ZERO, Transaction


# =============================================================================
# PERIOD SUMMARIES
# =============================================================================

class PeriodSummary(BaseModel):
    """
    Opening/closing balances and flows for one date window.

    endingBalance = opening_balance + period_net + post_period_net
    """

    period_start: date
    period_end: date
    income: Decimal = ZERO
    expense: Decimal = ZERO
    opening_balance: Decimal = ZERO
    period_net: Decimal = ZERO
    post_period_net: Decimal = ZERO

    @property
    def ending_balance(self) -> Decimal:
        return self.opening_balance + self.period_net + self.post_period_net

    @property
    def closing_balance(self) -> Decimal:
        """Balance at the end of the window, ignoring later entries."""
        return self.opening_balance + self.period_net


class CategoryBreakdownEntry(BaseModel):
    """One category's share of a period's income or expense."""

    category: str
    amount: Decimal
    percentage: int = Field(ge=0, le=100)


class PeriodWindow(BaseModel):
    """A selectable reporting window."""

    key: str
    label: str
    start: date
    end: date
    is_future: bool = False


# =============================================================================
# ACCOUNT HISTORY
# =============================================================================

class AccountHistoryEntry(BaseModel):
    """One leg of a transaction as seen from a single account."""

    transaction: Transaction
    delta: Decimal
    running_balance: Decimal


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetProgress(BaseModel):
    """Spending against a goal for its current period."""

    goal_id: str
    period_start: Optional[date] = Field(
        default=None,
        description="Start of the counted window; None when the goal starts after the period"
    )
    period_end: date
    spent: Decimal
    target: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.target - self.spent

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.target

    @property
    def ratio(self) -> float:
        if self.target == ZERO:
            return 0.0 if self.spent == ZERO else 1.0
        return float(self.spent / self.target)


class BudgetCompletion(BaseModel):
    """
    Outcome of evaluating a goal's period completion.

    `completed_period_keys` is the caller's key set after this
    evaluation; the caller persists it and passes it back next time.
    """

    goal_id: str
    period_key: str
    completed: bool
    points_eligible: bool = False
    spent: Decimal = ZERO
    completed_period_keys: frozenset[str] = Field(default_factory=frozenset)


class DailyBudgetCheck(BaseModel):
    """Outcome of the once-a-day "stayed under every budget" check."""

    day_key: str
    success: bool
    points_eligible: bool = False
    completed_period_keys: frozenset[str] = Field(default_factory=frozenset)


class BudgetEvaluation(BaseModel):
    """Everything one pass over the budget goals decided."""

    completions: list[BudgetCompletion] = Field(default_factory=list)
    daily: Optional[DailyBudgetCheck] = None
    completed_period_keys: frozenset[str] = Field(default_factory=frozenset)

    @property
    def rewardable(self) -> list[BudgetCompletion]:
        """Completions that should be forwarded to the reward collaborator."""
        return [c for c in self.completions if c.points_eligible]
