"""
Reward Collaborator

Points, missions and leaderboards live outside the engine. The engine
only forwards two kinds of events: a budget period (or day) completed
within target, and a recurring occurrence was logged.

The return value is informational. Nothing the engine computes depends
on it, and a failing notifier never interrupts the ledger flow.
"""

from abc import ABC, abstractmethod

from pocket_ledger.models.ledger import BudgetGoal, Transaction


class RewardNotifier(ABC):
    """Receives completion events from the ledger service."""

    @abstractmethod
    async def budget_period_completed(self, goal: BudgetGoal, period_key: str) -> bool:
        """A goal's period ended within target for the first time."""
        pass

    @abstractmethod
    async def daily_budget_succeeded(self, day_key: str) -> bool:
        """Every goal stayed within its daily share today."""
        pass

    @abstractmethod
    async def recurring_materialized(self, transaction: Transaction) -> bool:
        """A recurring rule produced a ledger entry."""
        pass


class NullRewardNotifier(RewardNotifier):
    """Accepts every event and does nothing."""

    async def budget_period_completed(self, goal: BudgetGoal, period_key: str) -> bool:
        return True

    async def daily_budget_succeeded(self, day_key: str) -> bool:
        return True

    async def recurring_materialized(self, transaction: Transaction) -> bool:
        return True
