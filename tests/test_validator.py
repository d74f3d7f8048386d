"""Tests for transaction validation and duplicate detection."""

from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.config import EngineSettings
from pocket_ledger.models.ledger import LedgerSnapshot, TransactionType
from pocket_ledger.validation.duplicates import (
    find_potential_duplicates,
    note_similarity,
    score_duplicate,
)
from pocket_ledger.validation.validator import TransactionValidator


TODAY = date(2024, 3, 20)


@pytest.fixture
def validator() -> TransactionValidator:
    return TransactionValidator(EngineSettings(future_date_tolerance_days=30))


@pytest.fixture
def snapshot(accounts, categories) -> LedgerSnapshot:
    return LedgerSnapshot(accounts=accounts, categories=categories)


class TestDuplicateScoring:
    """Tests for duplicate scoring."""

    def test_note_similarity(self):
        """Test word overlap ignoring short words."""
        assert note_similarity("Coffee", "coffee ") == 1.0
        assert note_similarity("coffee at corner cafe", "coffee corner") == pytest.approx(2 / 3)
        assert note_similarity("", "coffee") == 0.0

    def test_identical_entries(self, make_tx):
        """Test that every signal contributes."""
        first = make_tx(12.5, note="Coffee at corner cafe")
        second = make_tx(12.5, note="Coffee at corner cafe")
        score, reasons = score_duplicate(first, second)
        assert score == pytest.approx(1.1)
        assert len(reasons) == 4

    def test_type_mismatch_scores_nothing(self, make_tx):
        """Test that income never duplicates an expense."""
        score, reasons = score_duplicate(make_tx(10), make_tx(10, TransactionType.INCOME))
        assert score == 0.0
        assert reasons == []

    def test_similar_amount_and_close_date(self, make_tx):
        """Test the partial amount and date tiers."""
        score, reasons = score_duplicate(
            make_tx(100, day=date(2024, 3, 15), category="Travel"),
            make_tx(97, day=date(2024, 3, 17), category="Food"),
        )
        assert score == pytest.approx(0.3)
        assert reasons == ["Similar amount", "Close date (+/-3 days)"]


class TestFindPotentialDuplicates:
    """Tests for find_potential_duplicates."""

    def test_threshold_and_two_reasons(self, make_tx):
        """Test that amount and category alone reach the default threshold."""
        candidate = make_tx(10, day=date(2024, 3, 15))
        existing = [make_tx(10, day=date(2024, 3, 5))]
        matches = find_potential_duplicates(candidate, existing, today=TODAY)
        assert len(matches) == 1
        assert matches[0].confidence == pytest.approx(0.5)

    def test_single_reason_is_not_enough(self, make_tx):
        """Test that one strong signal never matches."""
        candidate = make_tx(10, day=date(2024, 3, 15), category="Travel")
        existing = [make_tx(10, day=date(2024, 3, 5))]
        assert find_potential_duplicates(candidate, existing, today=TODAY) == []

    def test_lookback_window(self, make_tx):
        """Test that old entries are not compared."""
        candidate = make_tx(10, day=date(2024, 2, 19))
        existing = [make_tx(10, day=date(2024, 2, 19))]
        assert find_potential_duplicates(candidate, existing, today=TODAY) == []

    def test_skips_itself_and_sorts_best_first(self, make_tx):
        """Test self exclusion and ordering."""
        candidate = make_tx(10, note="Lunch with team")
        weaker = make_tx(10, day=date(2024, 3, 13))
        stronger = make_tx(10, note="Lunch with team")
        matches = find_potential_duplicates(candidate, [candidate, weaker, stronger], today=TODAY)
        assert [m.existing for m in matches] == [stronger, weaker]
        assert matches[0].confidence == 1.0


class TestTransactionValidator:
    """Tests for TransactionValidator."""

    def test_clean_transaction(self, validator, snapshot, make_tx):
        """Test that a well-formed entry has no issues."""
        result = validator.validate(make_tx(), snapshot, today=TODAY)
        assert result.issues == []
        assert result.is_valid

    def test_unknown_accounts_are_errors(self, validator, snapshot, make_tx):
        """Test both transfer ends against the snapshot."""
        tx = make_tx(5, TransactionType.TRANSFER, account_id="x", to_account_id="y")
        result = validator.validate(tx, snapshot, today=TODAY)
        assert result.error_count == 2
        assert {i.field for i in result.issues if i.severity == "error"} == {"account_id", "to_account_id"}

    def test_self_transfer_is_warning(self, validator, snapshot, make_tx):
        """Test that a self-transfer is allowed with a warning."""
        tx = make_tx(5, TransactionType.TRANSFER, to_account_id="acc-a")
        result = validator.validate(tx, snapshot, today=TODAY)
        assert not result.has_errors
        assert [i.issue_type for i in result.issues] == ["self_transfer"]

    def test_zero_amount_and_unknown_category(self, validator, snapshot, make_tx):
        """Test the soft structural warnings."""
        result = validator.validate(make_tx(0, category="Mystery"), snapshot, today=TODAY)
        assert [i.issue_type for i in result.issues] == ["invalid_value", "unresolved_category"]
        assert result.is_valid

    def test_future_date(self, validator, snapshot, make_tx):
        """Test the future date tolerance."""
        result = validator.validate(make_tx(day=date(2024, 5, 1)), snapshot, today=TODAY)
        assert [i.issue_type for i in result.issues] == ["future_date"]

    def test_potential_duplicate(self, validator, accounts, categories, make_tx):
        """Test that a likely duplicate is reported with its match."""
        existing = make_tx(10, note="Groceries run")
        snapshot = LedgerSnapshot(accounts=accounts, categories=categories, transactions=[existing])
        result = validator.validate(make_tx(10, note="Groceries run"), snapshot, today=TODAY)
        assert [i.issue_type for i in result.issues] == ["potential_duplicate"]
        assert result.duplicates[0].existing == existing

    def test_duplicate_check_can_be_skipped(self, validator, accounts, categories, make_tx):
        """Test check_duplicates=False."""
        existing = make_tx(10)
        snapshot = LedgerSnapshot(accounts=accounts, categories=categories, transactions=[existing])
        result = validator.validate(make_tx(10), snapshot, today=TODAY, check_duplicates=False)
        assert result.duplicates == []
