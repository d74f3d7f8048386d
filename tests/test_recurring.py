"""Tests for the recurring transaction scheduler."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from pocket_ledger.engine.recurring import (
    advance,
    create_recurring,
    due_recurring,
    materialize,
    materialize_due,
    next_occurrence,
)
from pocket_ledger.models.ledger import (
    RecurrenceFrequency,
    RecurringTransaction,
    TransactionTemplate,
    TransactionType,
)


@pytest.fixture
def make_rule():
    def _make(frequency=RecurrenceFrequency.WEEKLY, start=date(2024, 3, 1), **extra):
        return RecurringTransaction(
            amount=extra.pop("amount", Decimal("72")),
            type=extra.pop("type", TransactionType.EXPENSE),
            account_id=extra.pop("account_id", "acc-a"),
            category=extra.pop("category", "Rent"),
            note=extra.pop("note", "Gym membership"),
            frequency=frequency,
            next_occurrence=start,
            **extra,
        )

    return _make


class TestNextOccurrence:
    """Tests for cycle arithmetic."""

    def test_weekly_and_biweekly(self):
        """Test fixed day steps."""
        assert next_occurrence(date(2024, 3, 1), RecurrenceFrequency.WEEKLY) == date(2024, 3, 8)
        assert next_occurrence(date(2024, 3, 1), RecurrenceFrequency.BIWEEKLY) == date(2024, 3, 15)

    def test_monthly_clamps_to_month_end(self):
        """Test that Jan 31 steps to the last day of February."""
        assert next_occurrence(date(2024, 1, 31), RecurrenceFrequency.MONTHLY) == date(2024, 2, 29)
        assert next_occurrence(date(2024, 2, 29), RecurrenceFrequency.MONTHLY) == date(2024, 3, 29)

    def test_weekly_crosses_month_boundary(self, make_rule):
        """Test that a weekly rule advances exactly 7 days into the next month."""
        rule = make_rule(start=date(2024, 1, 29))
        assert advance(rule) == date(2024, 2, 5)

        transaction, advanced = materialize(rule)
        assert transaction.date == date(2024, 1, 29)
        assert advanced.next_occurrence == date(2024, 2, 5)

    def test_biweekly_crosses_year_boundary(self):
        """Test a 14 day step over New Year."""
        assert next_occurrence(date(2024, 12, 25), RecurrenceFrequency.BIWEEKLY) == date(2025, 1, 8)


class TestMaterialize:
    """Tests for materialize."""

    def test_copies_template_and_advances(self, make_rule):
        """Test the produced transaction and the advanced rule."""
        rule = make_rule()
        created = datetime(2024, 3, 1, 8)
        transaction, advanced = materialize(rule, created_at=created)

        assert transaction.date == date(2024, 3, 1)
        assert transaction.amount == Decimal("72.00")
        assert transaction.note == "Gym membership"
        assert transaction.created_at == created
        assert transaction.id != rule.id
        assert advanced.next_occurrence == date(2024, 3, 8)
        assert rule.next_occurrence == date(2024, 3, 1)

    def test_inactive_rule_can_be_logged_manually(self, make_rule):
        """Test that the active flag does not block manual logging."""
        transaction, advanced = materialize(make_rule(is_active=False))
        assert transaction.date == date(2024, 3, 1)
        assert advanced.is_active is False


class TestMaterializeDue:
    """Tests for catch-up runs."""

    def test_catches_up_missed_cycles(self, make_rule):
        """Test that every missed cycle becomes a transaction."""
        rule = make_rule()
        run = materialize_due([rule], today=date(2024, 3, 20))

        assert [t.date for t in run.transactions] == [
            date(2024, 3, 1),
            date(2024, 3, 8),
            date(2024, 3, 15),
        ]
        assert run.recurring[0].next_occurrence == date(2024, 3, 22)
        assert set(run.sources.values()) == {rule.id}

    def test_due_excludes_inactive_and_future(self, make_rule):
        """Test which rules are due."""
        active = make_rule()
        inactive = make_rule(is_active=False)
        future = make_rule(start=date(2024, 4, 1))
        assert due_recurring([active, inactive, future], today=date(2024, 3, 1)) == [active]

    def test_catch_up_is_capped(self, make_rule):
        """Test that one run never exceeds the cap."""
        run = materialize_due(
            [make_rule(start=date(2024, 1, 1))],
            today=date(2024, 3, 20),
            max_catch_up=2,
        )
        assert len(run.transactions) == 2
        assert run.recurring[0].next_occurrence == date(2024, 1, 15)

    def test_nothing_due(self, make_rule):
        """Test an empty run."""
        run = materialize_due([make_rule(start=date(2024, 4, 1))], today=date(2024, 3, 20))
        assert run.transactions == []
        assert run.recurring == []


class TestCreateRecurring:
    """Tests for create_recurring."""

    @pytest.fixture
    def template(self):
        return TransactionTemplate(
            amount=Decimal("72"),
            type=TransactionType.EXPENSE,
            account_id="acc-a",
            category="Rent",
            note="Gym membership",
        )

    def test_starts_on_start_date(self, template):
        """Test a rule without an existing entry."""
        created = create_recurring(
            template, RecurrenceFrequency.MONTHLY, date(2024, 3, 10), [], today=date(2024, 3, 10)
        )
        assert created.recurring.next_occurrence == date(2024, 3, 10)
        assert created.duplicate_of is None
        assert created.recurring.is_active

    def test_skips_already_logged_start(self, template, make_tx):
        """Test that an existing matching entry moves the start one cycle."""
        existing = make_tx(72, day=date(2024, 3, 10), category="Rent", note="Gym membership")
        created = create_recurring(
            template, RecurrenceFrequency.MONTHLY, date(2024, 3, 10), [existing], today=date(2024, 3, 12)
        )
        assert created.recurring.next_occurrence == date(2024, 4, 10)
        assert created.duplicate_of == existing

    def test_future_start_is_not_checked(self, template, make_tx):
        """Test that the guard only applies to past or current start dates."""
        existing = make_tx(72, day=date(2024, 4, 10), category="Rent", note="Gym membership")
        created = create_recurring(
            template, RecurrenceFrequency.MONTHLY, date(2024, 4, 10), [existing], today=date(2024, 3, 12)
        )
        assert created.recurring.next_occurrence == date(2024, 4, 10)
        assert created.duplicate_of is None
