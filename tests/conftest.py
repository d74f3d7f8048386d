"""
Shared fixtures for Pocket Ledger tests.

Every time-dependent call in the tests passes an explicit `today`, so the
suite does not depend on the wall clock.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from pocket_ledger.models.ledger import (
    Account,
    BudgetGoal,
    BudgetPeriod,
    Category,
    Transaction,
    TransactionType,
)


@pytest.fixture
def make_tx():
    """Factory for transactions with sensible defaults."""

    def _make(
        amount="10",
        type=TransactionType.EXPENSE,
        account_id="acc-a",
        to_account_id=None,
        day=date(2024, 3, 15),
        category="Food",
        **extra,
    ) -> Transaction:
        return Transaction(
            amount=Decimal(str(amount)),
            type=type,
            account_id=account_id,
            to_account_id=to_account_id,
            date=day,
            category=category,
            **extra,
        )

    return _make


@pytest.fixture
def accounts() -> list[Account]:
    return [
        Account(id="acc-a", name="Checking", initial_balance=Decimal("100")),
        Account(id="acc-b", name="Savings", initial_balance=Decimal("0")),
    ]


@pytest.fixture
def categories() -> list[Category]:
    return [
        Category(id="cat-food", name="Food"),
        Category(id="cat-groceries", name="Groceries", parent_category_id="cat-food"),
        Category(id="cat-organic", name="Organic", parent_category_id="cat-groceries"),
        Category(id="cat-travel", name="Travel"),
        Category(id="cat-salary", name="Salary"),
    ]


@pytest.fixture
def make_goal():
    """Factory for budget goals."""

    def _make(
        target="200",
        period=BudgetPeriod.MONTH,
        category="Food",
        created_at=datetime(2024, 1, 1),
        **extra,
    ) -> BudgetGoal:
        return BudgetGoal(
            name=extra.pop("name", "Goal"),
            target=Decimal(str(target)),
            period=period,
            category=category,
            created_at=created_at,
            **extra,
        )

    return _make
