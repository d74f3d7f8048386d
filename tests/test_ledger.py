"""Tests for ledger reconciliation and ledger views."""

import random
from datetime import date, datetime
from decimal import Decimal

import pytest

from pocket_ledger.engine.ledger import (
    account_history,
    filter_transactions_by_account,
    missing_account_ids,
    reconcile,
    sort_by_recency,
    total_balance,
    transaction_delta,
)
from pocket_ledger.models.ledger import Account, TransactionType


def _balances(accounts):
    return {account.id: account.balance for account in accounts}


class TestReconcile:
    """Tests for reconcile."""

    def test_reference_scenario(self, accounts, make_tx):
        """Test income, expense and transfer against two accounts."""
        transactions = [
            make_tx(50, TransactionType.INCOME),
            make_tx(30, TransactionType.EXPENSE),
            make_tx(20, TransactionType.TRANSFER, to_account_id="acc-b"),
        ]
        result = _balances(reconcile(accounts, transactions, "USD"))
        assert result == {"acc-a": Decimal("100.00"), "acc-b": Decimal("20.00")}

    def test_untouched_account_keeps_initial_balance(self, accounts):
        """Test that an account without transactions keeps its initial balance."""
        result = _balances(reconcile(accounts, [], "USD"))
        assert result["acc-a"] == Decimal("100")
        assert result["acc-b"] == Decimal("0")

    def test_input_is_not_mutated(self, accounts, make_tx):
        """Test that reconciliation returns copies."""
        reconcile(accounts, [make_tx(40, TransactionType.INCOME)], "USD")
        assert accounts[0].balance == Decimal("0")

    def test_stored_balance_is_ignored(self, make_tx):
        """Test that a stale stored balance never leaks into the result."""
        account = Account(id="acc-a", name="A", initial_balance=10, balance=999)
        result = reconcile([account], [make_tx(5, TransactionType.EXPENSE)], "USD")
        assert result[0].balance == Decimal("5.00")

    def test_currency_defaults_to_fallback(self, accounts):
        """Test that accounts without currency get the fallback."""
        result = reconcile(accounts, [], "eur")
        assert all(account.currency == "EUR" for account in result)

    def test_missing_account_is_synthesized(self, accounts, make_tx):
        """Test legacy account synthesis for a dangling reference."""
        transactions = [make_tx(15, TransactionType.EXPENSE, account_id="gone")]
        result = reconcile(accounts, transactions, "USD", legacy_account_name="Old wallet")

        assert [a.id for a in result] == ["acc-a", "acc-b", "gone"]
        legacy = result[-1]
        assert legacy.name == "Old wallet"
        assert legacy.is_archived is True
        assert legacy.exclude_from_total is True
        assert legacy.balance == Decimal("-15.00")
        assert len(accounts) == 2

    def test_missing_transfer_destination_is_synthesized(self, accounts, make_tx):
        """Test that the destination leg uses the same synthesis rule."""
        transactions = [make_tx(25, TransactionType.TRANSFER, to_account_id="gone")]
        result = _balances(reconcile(accounts, transactions, "USD"))
        assert result["gone"] == Decimal("25.00")
        assert result["acc-a"] == Decimal("75.00")

    def test_self_transfer_nets_to_zero(self, accounts, make_tx):
        """Test that a self-transfer leaves the balance unchanged."""
        transactions = [make_tx(40, TransactionType.TRANSFER, to_account_id="acc-a")]
        result = _balances(reconcile(accounts, transactions, "USD"))
        assert result["acc-a"] == Decimal("100.00")

    def test_idempotent(self, accounts, make_tx):
        """Test that reconciling the output again yields the same result."""
        transactions = [
            make_tx(50, TransactionType.INCOME),
            make_tx(12.5, TransactionType.EXPENSE, account_id="gone"),
            make_tx(20, TransactionType.TRANSFER, to_account_id="acc-b"),
        ]
        once = reconcile(accounts, transactions, "USD")
        twice = reconcile(once, transactions, "USD")
        assert _balances(once) == _balances(twice)
        assert [a.id for a in once] == [a.id for a in twice]

    def test_order_independent(self, accounts, make_tx):
        """Test that transaction order does not change balances."""
        transactions = [
            make_tx(amount, kind, to_account_id="acc-b" if kind == TransactionType.TRANSFER else None)
            for amount, kind in [
                (10, TransactionType.INCOME),
                (7.25, TransactionType.EXPENSE),
                (3, TransactionType.TRANSFER),
                (99.99, TransactionType.INCOME),
            ]
        ]
        shuffled = list(transactions)
        random.Random(7).shuffle(shuffled)
        assert _balances(reconcile(accounts, transactions, "USD")) == _balances(
            reconcile(accounts, shuffled, "USD")
        )

    def test_transfers_conserve_total(self, make_tx):
        """Test that transfers alone never change the sum of balances."""
        accounts = [Account(id=name, name=name) for name in ("a", "b", "c")]
        transactions = [
            make_tx(10, TransactionType.TRANSFER, account_id="a", to_account_id="b"),
            make_tx(4, TransactionType.TRANSFER, account_id="b", to_account_id="c"),
            make_tx(6, TransactionType.TRANSFER, account_id="c", to_account_id="missing"),
        ]
        result = reconcile(accounts, transactions, "USD")
        assert sum(a.balance for a in result) == Decimal("0")

    def test_missing_account_ids(self, accounts, make_tx):
        """Test the dangling-reference report."""
        transactions = [
            make_tx(1, TransactionType.EXPENSE, account_id="x"),
            make_tx(1, TransactionType.TRANSFER, to_account_id="y"),
            make_tx(1, TransactionType.EXPENSE, account_id="x"),
        ]
        assert missing_account_ids(accounts, transactions) == ["x", "y"]


class TestTransactionDelta:
    """Tests for the shared signed-delta rule."""

    def test_income_and_expense(self, make_tx):
        """Test income is positive and expense negative."""
        assert transaction_delta(make_tx(5, TransactionType.INCOME)) == Decimal("5")
        assert transaction_delta(make_tx(5, TransactionType.EXPENSE)) == Decimal("-5")

    def test_unscoped_transfer_is_zero(self, make_tx):
        """Test that a transfer's legs cancel system-wide."""
        tx = make_tx(8, TransactionType.TRANSFER, to_account_id="acc-b")
        assert transaction_delta(tx) == Decimal("0")

    def test_scoped_transfer(self, make_tx):
        """Test the transfer sign from each side."""
        tx = make_tx(8, TransactionType.TRANSFER, to_account_id="acc-b")
        assert transaction_delta(tx, "acc-a") == Decimal("-8")
        assert transaction_delta(tx, "acc-b") == Decimal("8")
        assert transaction_delta(tx, "other") == Decimal("0")

    def test_scoped_self_transfer_is_zero(self, make_tx):
        """Test a self-transfer scoped to its own account."""
        tx = make_tx(8, TransactionType.TRANSFER, to_account_id="acc-a")
        assert transaction_delta(tx, "acc-a") == Decimal("0")

    def test_amount_override(self, make_tx):
        """Test that a converted amount replaces the stored one."""
        tx = make_tx(10, TransactionType.EXPENSE)
        assert transaction_delta(tx, amount=Decimal("11.5")) == Decimal("-11.5")


class TestLedgerViews:
    """Tests for filtering, ordering and history."""

    def test_filter_includes_both_transfer_ends(self, make_tx):
        """Test that a transfer belongs to source and destination."""
        transfer = make_tx(5, TransactionType.TRANSFER, to_account_id="acc-b")
        expense = make_tx(5, TransactionType.EXPENSE)
        assert filter_transactions_by_account([transfer, expense], "acc-b") == [transfer]
        assert filter_transactions_by_account([transfer, expense], None) == [transfer, expense]

    def test_sort_by_recency(self, make_tx):
        """Test date descending, then creation time descending."""
        old = make_tx(1, day=date(2024, 1, 1), created_at=datetime(2024, 1, 5))
        same_day_early = make_tx(2, day=date(2024, 2, 1), created_at=datetime(2024, 2, 1, 8))
        same_day_late = make_tx(3, day=date(2024, 2, 1), created_at=datetime(2024, 2, 1, 9))
        ordered = sort_by_recency([old, same_day_early, same_day_late])
        assert ordered == [same_day_late, same_day_early, old]

    def test_account_history_running_balance(self, accounts, make_tx):
        """Test running balances from the initial balance."""
        transactions = [
            make_tx(50, TransactionType.INCOME, day=date(2024, 1, 2)),
            make_tx(30, TransactionType.EXPENSE, day=date(2024, 1, 3)),
            make_tx(20, TransactionType.TRANSFER, to_account_id="acc-b", day=date(2024, 1, 4)),
        ]
        history = account_history(accounts[0], transactions)
        assert [entry.running_balance for entry in history] == [
            Decimal("150"),
            Decimal("120"),
            Decimal("100"),
        ]

    def test_self_transfer_has_two_history_entries(self, accounts, make_tx):
        """Test that both legs of a self-transfer appear in the history."""
        history = account_history(
            accounts[0],
            [make_tx(40, TransactionType.TRANSFER, to_account_id="acc-a")],
        )
        assert [entry.delta for entry in history] == [Decimal("-40"), Decimal("40")]
        assert history[-1].running_balance == Decimal("100")


class TestTotalBalance:
    """Tests for total_balance."""

    def test_skips_archived_and_excluded(self):
        """Test that only counted accounts contribute."""
        accounts = [
            Account(name="A", balance=100),
            Account(name="B", balance=50, exclude_from_total=True),
            Account(name="C", balance=25, is_archived=True),
        ]
        assert total_balance(accounts) == Decimal("100")

    def test_converts_each_balance(self):
        """Test per-account conversion to the base currency."""
        accounts = [
            Account(name="A", balance=100, currency="USD"),
            Account(name="B", balance=90, currency="EUR"),
        ]
        rates = {"USD": Decimal("1"), "EUR": Decimal("0.9")}
        total = total_balance(accounts, lambda amount, code: amount / rates[code])
        assert total == pytest.approx(Decimal("200"))


class TestLargeAmounts:
    """Tests for balances beyond the default decimal precision."""

    def test_reconcile_huge_balance(self, make_tx):
        """Test that a balance past 1e27 is rounded without failing."""
        account = Account(id="acc-a", name="Vault")
        transactions = [make_tx("9e25", TransactionType.INCOME) for _ in range(20)]
        result = reconcile([account], transactions, "USD")
        assert result[0].balance == Decimal("1.8e27")
