"""
Ledger Reconciliation Engine

Account balances are never stored. They are rebuilt from the full
transaction list on every read:

    balance = initial_balance + sum(deltas of every leg touching the account)

DESIGN DECISION: Reconciliation is a pure function. It copies its input,
never mutates it, and produces the same output for the same input no
matter how many times it runs or in which order transactions arrive.

Dangling references are not errors. A transaction that points at a
missing account gets a synthesized "legacy" account (archived and
excluded from totals) so its amount stays visible instead of vanishing.
Synthesized accounts are created by a lookup-or-create helper and are
never written into the caller's account list.

CRITICAL: A transfer is two legs. A self-transfer (source == destination)
still produces both legs; they cancel on the balance but both appear in
the account history.
"""

from decimal import Decimal
from typing import Callable, Iterable, Optional, Sequence

import structlog

from pocket_ledger.models.ledger import (
    ZERO,
    Account,
    AccountType,
    Transaction,
    TransactionType,
    round_money,
)
from pocket_ledger.models.reports import AccountHistoryEntry


logger = structlog.get_logger(__name__)

DEFAULT_LEGACY_ACCOUNT_NAME = "Legacy account"

# Converts an account balance (amount, currency) into the base currency
BalanceConverter = Callable[[Decimal, Optional[str]], Decimal]


# =============================================================================
# DELTAS
# =============================================================================

def leg_deltas(transaction: Transaction) -> list[tuple[str, Decimal]]:
    """
    The (account_id, signed amount) legs a transaction applies.

    Income and expense have one leg. A transfer has two, even when
    source and destination are the same account.
    """
    amount = transaction.amount
    if transaction.type == TransactionType.INCOME:
        return [(transaction.account_id, amount)]
    if transaction.type == TransactionType.EXPENSE:
        return [(transaction.account_id, -amount)]
    return [
        (transaction.account_id, -amount),
        (transaction.to_account_id, amount),
    ]


def transaction_delta(
    transaction: Transaction,
    account_id: Optional[str] = None,
    amount: Optional[Decimal] = None,
) -> Decimal:
    """
    Signed effect of a transaction, optionally scoped to one account.

    Income is +amount and expense is -amount. A transfer is -amount for
    the source and +amount for the destination; unscoped, or scoped to
    an account that is both, its legs cancel to zero.

    Args:
        transaction: The ledger entry
        account_id: Scope account, or None for the system-wide view
        amount: Amount to use instead of the stored one (e.g. converted)
    """
    value = transaction.amount if amount is None else amount

    if transaction.type == TransactionType.INCOME:
        return value
    if transaction.type == TransactionType.EXPENSE:
        return -value

    delta = ZERO
    if account_id is None or transaction.account_id == account_id:
        delta -= value
    if account_id is None or transaction.to_account_id == account_id:
        delta += value
    return delta


# =============================================================================
# RECONCILIATION
# =============================================================================

class _AccountBook:
    """Working set for one reconciliation run."""

    def __init__(
        self,
        accounts: Iterable[Account],
        fallback_currency: str,
        legacy_account_name: str,
    ):
        self._fallback_currency = fallback_currency.upper()
        self._legacy_account_name = legacy_account_name
        self._known: dict[str, Account] = {}
        self._order: list[str] = []
        self._synthesized: dict[str, Account] = {}
        self._balances: dict[str, Decimal] = {}

        for account in accounts:
            if account.id in self._known:
                continue
            self._known[account.id] = account.model_copy(
                update={"currency": account.currency or self._fallback_currency}
            )
            self._order.append(account.id)
            self._balances[account.id] = account.initial_balance

    def get_or_create(self, account_id: str) -> Account:
        """Look up an account, synthesizing a legacy placeholder when missing."""
        account = self._known.get(account_id) or self._synthesized.get(account_id)
        if account is not None:
            return account

        logger.warning("legacy_account_synthesized", account_id=account_id)
        account = Account(
            id=account_id,
            name=self._legacy_account_name,
            type=AccountType.BANK,
            currency=self._fallback_currency,
            initial_balance=ZERO,
            exclude_from_total=True,
            is_archived=True,
        )
        self._synthesized[account_id] = account
        self._balances[account_id] = ZERO
        return account

    def apply(self, account_id: str, delta: Decimal) -> None:
        self.get_or_create(account_id)
        self._balances[account_id] += delta

    def results(self) -> list[Account]:
        accounts = [self._known[account_id] for account_id in self._order]
        accounts.extend(self._synthesized.values())
        return [
            account.model_copy(update={"balance": round_money(self._balances[account.id])})
            for account in accounts
        ]


def reconcile(
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
    fallback_currency: str,
    legacy_account_name: str = DEFAULT_LEGACY_ACCOUNT_NAME,
) -> list[Account]:
    """
    Rebuild every account balance from the ledger.

    Args:
        accounts: Known accounts (never mutated)
        transactions: The full transaction list
        fallback_currency: Currency for accounts that have none
        legacy_account_name: Display name for synthesized accounts

    Returns:
        Known accounts in input order followed by any synthesized
        legacy accounts, each with `balance` set
    """
    book = _AccountBook(accounts, fallback_currency, legacy_account_name)
    for transaction in transactions:
        for account_id, delta in leg_deltas(transaction):
            book.apply(account_id, delta)
    return book.results()


def missing_account_ids(
    accounts: Sequence[Account],
    transactions: Iterable[Transaction],
) -> list[str]:
    """Ids referenced by transactions that have no matching account."""
    known = {account.id for account in accounts}
    missing: list[str] = []
    for transaction in transactions:
        for account_id, _ in leg_deltas(transaction):
            if account_id not in known and account_id not in missing:
                missing.append(account_id)
    return missing


# =============================================================================
# LEDGER VIEWS
# =============================================================================

def filter_transactions_by_account(
    transactions: Iterable[Transaction],
    account_id: Optional[str],
) -> list[Transaction]:
    """
    Transactions touching an account. A transfer belongs to both ends.

    With no account every transaction is returned.
    """
    if not account_id:
        return list(transactions)
    return [
        t for t in transactions
        if t.account_id == account_id
        or (t.type == TransactionType.TRANSFER and t.to_account_id == account_id)
    ]


def sort_by_recency(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first: by date, then by creation time."""
    return sorted(
        transactions,
        key=lambda t: (t.date, t.created_at),
        reverse=True,
    )


def account_history(
    account: Account,
    transactions: Iterable[Transaction],
) -> list[AccountHistoryEntry]:
    """
    Chronological running balance for one account.

    Starts from the account's initial balance. Each leg touching the
    account is one entry, so a self-transfer yields two entries.
    """
    ordered = sorted(
        filter_transactions_by_account(transactions, account.id),
        key=lambda t: (t.date, t.created_at),
    )

    running = account.initial_balance
    history: list[AccountHistoryEntry] = []
    for transaction in ordered:
        for account_id, delta in leg_deltas(transaction):
            if account_id != account.id:
                continue
            running += delta
            history.append(
                AccountHistoryEntry(
                    transaction=transaction,
                    delta=delta,
                    running_balance=running,
                )
            )
    return history


def total_balance(
    accounts: Iterable[Account],
    converter: Optional[BalanceConverter] = None,
) -> Decimal:
    """
    Sum of reconciled balances that count toward the wallet total.

    Archived accounts and accounts flagged `exclude_from_total` are
    skipped. With a converter each balance is first converted from its
    account's currency.
    """
    total = ZERO
    for account in accounts:
        if account.is_archived or account.exclude_from_total:
            continue
        if converter is None:
            total += account.balance
        else:
            total += converter(account.balance, account.currency)
    return total
