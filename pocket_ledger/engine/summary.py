"""
Period Summary Builder

Partitions the ledger around a date window:

    before start        -> opening balance carry-forward
    start..end (incl.)  -> income / expense / period net
    after end           -> post-period net (pre-dated entries)

and reports ending_balance = opening + period net + post-period net.

Deltas use the same rule as reconciliation (`transaction_delta`), scoped
to the selected account when there is one. Amounts pass through an
optional converter before aggregation.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Callable, Iterable, Optional, Sequence

from pocket_ledger.engine.ledger import filter_transactions_by_account, transaction_delta
from pocket_ledger.models.ledger import ZERO, Account, Transaction, TransactionType
from pocket_ledger.models.reports import CategoryBreakdownEntry, PeriodSummary


AmountConverter = Callable[[Transaction], Decimal]

NO_CHANGE = "—"


def _amount(transaction: Transaction, converter: Optional[AmountConverter]) -> Decimal:
    return transaction.amount if converter is None else converter(transaction)


def opening_balance_seed(
    accounts: Sequence[Account],
    visible_account_ids: Iterable[str],
    selected_account_id: Optional[str],
) -> Decimal:
    """
    Starting point for the opening balance.

    A selected account contributes its own initial balance; otherwise the
    initial balances of every visible account are summed.
    """
    if selected_account_id:
        account = next((a for a in accounts if a.id == selected_account_id), None)
        return account.initial_balance if account else ZERO

    visible = set(visible_account_ids)
    return sum((a.initial_balance for a in accounts if a.id in visible), ZERO)


def scope_transactions(
    transactions: Iterable[Transaction],
    visible_account_ids: Iterable[str],
    selected_account_id: Optional[str],
) -> list[Transaction]:
    """
    Transactions visible under an account scope.

    A selected account keeps everything touching it. Otherwise a
    transaction is kept when either end is a visible account; an empty
    visible set keeps everything.
    """
    scoped = filter_transactions_by_account(transactions, selected_account_id)
    if selected_account_id:
        return scoped

    visible = set(visible_account_ids)
    if not visible:
        return scoped
    return [
        t for t in scoped
        if t.account_id in visible or (t.to_account_id is not None and t.to_account_id in visible)
    ]


def summarize(
    transactions: Iterable[Transaction],
    accounts: Sequence[Account],
    visible_account_ids: Iterable[str],
    selected_account_id: Optional[str],
    period_start: date,
    period_end: date,
    converter: Optional[AmountConverter] = None,
) -> PeriodSummary:
    """
    Build the opening/period/post-period summary for a window.

    Archived and excluded accounts are removed from `visible_account_ids`
    by the caller. When an account is selected only its transactions are
    considered.

    Args:
        transactions: Ledger entries
        accounts: All known accounts (for initial balances)
        visible_account_ids: Accounts contributing to the seed when none is selected
        selected_account_id: Single-account scope, or None
        period_start: First day of the window (inclusive)
        period_end: Last day of the window (inclusive)
        converter: Optional per-transaction amount converter

    Returns:
        PeriodSummary
    """
    visible_account_ids = list(visible_account_ids)
    opening = opening_balance_seed(accounts, visible_account_ids, selected_account_id)
    income = ZERO
    expense = ZERO
    period_net = ZERO
    post_period_net = ZERO

    for transaction in filter_transactions_by_account(transactions, selected_account_id):
        amount = _amount(transaction, converter)
        delta = transaction_delta(transaction, selected_account_id, amount)

        if transaction.date < period_start:
            opening += delta
        elif transaction.date <= period_end:
            if transaction.type == TransactionType.INCOME:
                income += amount
            elif transaction.type == TransactionType.EXPENSE:
                expense += amount
            period_net += delta
        else:
            post_period_net += delta

    return PeriodSummary(
        period_start=period_start,
        period_end=period_end,
        income=income,
        expense=expense,
        opening_balance=opening,
        period_net=period_net,
        post_period_net=post_period_net,
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
    period_start: date,
    period_end: date,
    top_n: int = 5,
    converter: Optional[AmountConverter] = None,
) -> list[CategoryBreakdownEntry]:
    """
    Largest categories of one transaction type inside a window.

    Entries flagged `exclude_from_reports` are ignored. Percentages are
    rounded shares of the type's in-window total, so the top entries
    need not add up to 100.
    """
    totals: dict[str, Decimal] = {}
    for transaction in transactions:
        if transaction.type != transaction_type or transaction.exclude_from_reports:
            continue
        if not period_start <= transaction.date <= period_end:
            continue
        totals[transaction.category] = (
            totals.get(transaction.category, ZERO) + _amount(transaction, converter)
        )

    grand_total = sum(totals.values(), ZERO)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:top_n]

    entries = []
    for category, amount in ranked:
        if grand_total > ZERO:
            share = (amount / grand_total * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            percentage = int(share)
        else:
            percentage = 0
        entries.append(
            CategoryBreakdownEntry(category=category, amount=amount, percentage=percentage)
        )
    return entries


def percentage_change(current: Decimal, previous: Decimal) -> str:
    """
    Signed change relative to `previous`, e.g. "+12.5%" or "-3.0%".

    Returns an em dash when there is no previous value to compare against.
    """
    if previous == ZERO:
        return NO_CHANGE
    change = (Decimal(current) - Decimal(previous)) / abs(Decimal(previous)) * 100
    with localcontext() as context:
        context.prec = max(context.prec, change.adjusted() + 2)
        change = change.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    sign = "+" if change >= 0 else ""
    return f"{sign}{change}%"
