"""
Recurring Transaction Scheduler

A recurring rule is a transaction template plus a `next_occurrence` date.
Materializing a rule produces a normal Transaction dated at the current
`next_occurrence` and returns the rule advanced by one cycle.

Cycles:
- weekly:   +7 days
- biweekly: +14 days
- monthly:  +1 calendar month, day clamped to the target month's length

Nothing here mutates its input. Callers persist the returned transaction
and rule together.
"""

from datetime import date, datetime
from typing import Iterable, NamedTuple, Optional, Sequence

import structlog
from dateutil.relativedelta import relativedelta

from pocket_ledger.models.ledger import (
    RecurrenceFrequency,
    RecurringTransaction,
    Transaction,
    TransactionTemplate,
    utc_now,
)


logger = structlog.get_logger(__name__)

DEFAULT_MAX_CATCH_UP = 120

CYCLES: dict[RecurrenceFrequency, relativedelta] = {
    RecurrenceFrequency.WEEKLY: relativedelta(weeks=1),
    RecurrenceFrequency.BIWEEKLY: relativedelta(weeks=2),
    RecurrenceFrequency.MONTHLY: relativedelta(months=1),
}

# Template fields that carry over into each materialized transaction
_TEMPLATE_FIELDS = tuple(
    name for name in TransactionTemplate.model_fields if name != "id"
)


class Materialized(NamedTuple):
    """A new ledger entry and the rule advanced past it."""
    transaction: Transaction
    recurring: RecurringTransaction


class DueRun(NamedTuple):
    """Result of catching up every due rule."""
    transactions: list[Transaction]
    recurring: list[RecurringTransaction]
    # transaction id -> id of the rule that produced it
    sources: dict[str, str]


class CreatedRecurring(NamedTuple):
    """A new rule, plus the existing entry that made it skip its start date."""
    recurring: RecurringTransaction
    duplicate_of: Optional[Transaction]


def next_occurrence(day: date, frequency: RecurrenceFrequency) -> date:
    """The occurrence one cycle after `day`."""
    return day + CYCLES[frequency]


def advance(recurring: RecurringTransaction) -> date:
    """Next occurrence after the rule's current one."""
    return next_occurrence(recurring.next_occurrence, recurring.frequency)


def materialize(
    recurring: RecurringTransaction,
    created_at: Optional[datetime] = None,
) -> Materialized:
    """
    Log the rule's current occurrence as a transaction.

    Works for inactive rules too; the active flag only gates automatic
    runs (`due_recurring`, `materialize_due`).
    """
    fields = {name: getattr(recurring, name) for name in _TEMPLATE_FIELDS}
    transaction = Transaction(
        **fields,
        date=recurring.next_occurrence,
        created_at=created_at or utc_now(),
    )
    advanced = recurring.model_copy(update={"next_occurrence": advance(recurring)})
    return Materialized(transaction=transaction, recurring=advanced)


def due_recurring(
    recurring: Iterable[RecurringTransaction],
    today: Optional[date] = None,
) -> list[RecurringTransaction]:
    """Active rules whose next occurrence is today or earlier."""
    today = today or date.today()
    return [r for r in recurring if r.is_active and r.next_occurrence <= today]


def materialize_due(
    recurring: Iterable[RecurringTransaction],
    today: Optional[date] = None,
    max_catch_up: int = DEFAULT_MAX_CATCH_UP,
) -> DueRun:
    """
    Catch up every missed cycle of every due rule.

    Each rule produces at most `max_catch_up` transactions per run. Only
    rules that advanced are returned.
    """
    today = today or date.today()
    transactions: list[Transaction] = []
    updated: list[RecurringTransaction] = []
    sources: dict[str, str] = {}

    for rule in due_recurring(recurring, today):
        current = rule
        produced = 0
        while current.next_occurrence <= today and produced < max_catch_up:
            transaction, current = materialize(current)
            transactions.append(transaction)
            sources[transaction.id] = rule.id
            produced += 1

        if current.next_occurrence <= today:
            logger.warning(
                "recurring_catch_up_capped",
                recurring_id=rule.id,
                produced=produced,
                next_occurrence=current.next_occurrence.isoformat(),
            )
        updated.append(current)

    return DueRun(transactions=transactions, recurring=updated, sources=sources)


def find_existing_occurrence(
    template: TransactionTemplate,
    on: date,
    transactions: Iterable[Transaction],
) -> Optional[Transaction]:
    """An entry matching the template's date, amount, type, category and note."""
    for transaction in transactions:
        if (
            transaction.date == on
            and transaction.amount == template.amount
            and transaction.type == template.type
            and transaction.category == template.category
            and transaction.note == template.note
        ):
            return transaction
    return None


def create_recurring(
    template: TransactionTemplate,
    frequency: RecurrenceFrequency,
    start_date: date,
    existing_transactions: Sequence[Transaction],
    today: Optional[date] = None,
) -> CreatedRecurring:
    """
    Build a new recurring rule from a template.

    When the start date is today or earlier and a matching entry is
    already logged for it, the rule starts at the following occurrence
    so the start date is not logged twice.
    """
    today = today or date.today()
    fields = {name: getattr(template, name) for name in _TEMPLATE_FIELDS}

    first = start_date
    duplicate = None
    if start_date <= today:
        duplicate = find_existing_occurrence(template, start_date, existing_transactions)
        if duplicate is not None:
            first = next_occurrence(start_date, frequency)
            logger.info(
                "recurring_duplicate_skipped",
                existing_transaction_id=duplicate.id,
                start_date=start_date.isoformat(),
                next_occurrence=first.isoformat(),
            )

    recurring = RecurringTransaction(
        **fields,
        frequency=frequency,
        next_occurrence=first,
        is_active=True,
    )
    return CreatedRecurring(recurring=recurring, duplicate_of=duplicate)
