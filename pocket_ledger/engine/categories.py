"""
Category Hierarchy Resolver

Decides whether a transaction's category counts toward a budget's category.
Personal budgets and shared budgets both go through `CategoryResolver`, so
the matching rule exists exactly once.

Category references may be an id or a display name. Imported and legacy
rows reference categories by name, so a reference is resolved with two
ordered strategies: exact id first, then exact (case-sensitive) name.

Nesting is one level deep. A child matches its direct parent's budget;
a grandchild does not match its grandparent's budget.
"""

from typing import Callable, Iterable, Optional, Sequence

import structlog

from pocket_ledger.models.ledger import Account, Category


logger = structlog.get_logger(__name__)

LookupStrategy = Callable[[str], Optional[Category]]


class CategoryResolver:
    """
    Resolves category references against a fixed category list.

    Build one per computation; it indexes the list once.
    """

    def __init__(self, categories: Iterable[Category]):
        self._categories: list[Category] = list(categories)
        self._by_id: dict[str, Category] = {}
        self._by_name: dict[str, Category] = {}
        for category in self._categories:
            # First occurrence wins, matching a linear scan
            self._by_id.setdefault(category.id, category)
            self._by_name.setdefault(category.name, category)
        self._strategies: tuple[LookupStrategy, ...] = (
            self._by_id.get,
            self._by_name.get,
        )

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    def resolve(self, ref: Optional[str]) -> Optional[Category]:
        """Resolve a reference by id, then by name. None when neither hits."""
        if not ref:
            return None
        for strategy in self._strategies:
            category = strategy(ref)
            if category is not None:
                return category
        return None

    def matches(self, transaction_ref: Optional[str], budget_ref: Optional[str]) -> bool:
        """
        Check whether a transaction category counts toward a budget category.

        Returns False when either reference does not resolve, so an
        unresolvable budget never swallows unrelated spending.
        """
        transaction_category = self.resolve(transaction_ref)
        if transaction_category is None:
            logger.debug("category_unresolved", ref=transaction_ref, side="transaction")
            return False

        budget_category = self.resolve(budget_ref)
        if budget_category is None:
            logger.debug("category_unresolved", ref=budget_ref, side="budget")
            return False

        if (
            transaction_category.id == budget_category.id
            or transaction_category.name == budget_category.name
        ):
            return True

        return transaction_category.parent_category_id == budget_category.id

    def child_categories(self, parent_id: str) -> list[Category]:
        """Direct children of a category."""
        return [c for c in self._categories if c.parent_category_id == parent_id]

    def category_ids_for_budget(self, category_id: str) -> list[str]:
        """The budget's own id followed by the ids of its direct children."""
        return [category_id, *(child.id for child in self.child_categories(category_id))]


def matches(
    transaction_ref: Optional[str],
    budget_ref: Optional[str],
    categories: Sequence[Category],
) -> bool:
    """Functional form of `CategoryResolver.matches`."""
    return CategoryResolver(categories).matches(transaction_ref, budget_ref)


def get_category_ids_for_budget(category_id: str, categories: Sequence[Category]) -> list[str]:
    """Functional form of `CategoryResolver.category_ids_for_budget`."""
    return CategoryResolver(categories).category_ids_for_budget(category_id)


def active_accounts_for_category(
    category: Category,
    accounts: Sequence[Account],
) -> list[str]:
    """
    Ids of the non-archived accounts a category is offered for.

    A category without an activation list is active for every
    non-archived account.
    """
    active_ids = [account.id for account in accounts if not account.is_archived]
    if category.active_account_ids is None:
        return active_ids
    active = set(active_ids)
    return [account_id for account_id in category.active_account_ids if account_id in active]


def is_category_active_for_account(
    category: Category,
    account_id: str,
    accounts: Sequence[Account],
) -> bool:
    return account_id in active_accounts_for_category(category, accounts)
