"""Tests for ledger storage backends."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.config import StorageSettings
from pocket_ledger.models.audit import AuditEvent, AuditEventType
from pocket_ledger.models.ledger import Account, BudgetGoal, LedgerSnapshot, TransactionType
from pocket_ledger.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)


@pytest.fixture
def json_storage(tmp_path):
    settings = StorageSettings(data_path=tmp_path / "ledger.json", retry_attempts=2)
    return JsonFileLedgerStorage(settings=settings, retry_wait_max=0)


@pytest.fixture(params=["memory", "json"])
def storage(request, tmp_path):
    if request.param == "memory":
        return InMemoryLedgerStorage()
    settings = StorageSettings(data_path=tmp_path / "ledger.json", retry_attempts=1)
    return JsonFileLedgerStorage(settings=settings, retry_wait_max=0)


class TestLedgerStorage:
    """Behaviour shared by every ledger storage backend."""

    def test_empty_load(self, storage):
        """Test that a fresh store loads an empty snapshot."""
        snapshot = asyncio.run(storage.load_all())
        assert snapshot.model_dump() == LedgerSnapshot().model_dump()

    def test_save_and_reload(self, storage, make_tx):
        """Test that saved entities come back equal."""
        account = Account(id="acc-a", name="Checking", initial_balance="12.34", currency="EUR")
        transaction = make_tx(5.5, TransactionType.TRANSFER, to_account_id="acc-b", note="move")

        async def scenario():
            await storage.save(account)
            await storage.save(transaction)
            return await storage.load_all()

        snapshot = asyncio.run(scenario())
        assert [a.model_dump() for a in snapshot.accounts] == [account.model_dump()]
        assert [t.model_dump() for t in snapshot.transactions] == [transaction.model_dump()]
        assert snapshot.transactions[0].amount == Decimal("5.50")

    def test_save_replaces_by_id(self, storage):
        """Test that saving an existing id updates it in place."""
        async def scenario():
            await storage.save(Account(id="a", name="Old"))
            await storage.save(Account(id="b", name="Other"))
            await storage.save(Account(id="a", name="New"))
            return await storage.load_all()

        snapshot = asyncio.run(scenario())
        assert [(a.id, a.name) for a in snapshot.accounts] == [("a", "New"), ("b", "Other")]

    def test_batch_is_all_or_nothing(self, storage, make_tx):
        """Test that a failing batch leaves the store untouched."""
        async def scenario():
            await storage.save(Account(id="shared", name="A"))
            with pytest.raises(DuplicateError):
                await storage.save_batch([
                    make_tx(1),
                    BudgetGoal(id="shared", name="Clash", target=1),
                ])
            return await storage.load_all()

        snapshot = asyncio.run(scenario())
        assert snapshot.transactions == []
        assert snapshot.budgets == []

    def test_delete(self, storage, make_tx):
        """Test deletion and deletion of a missing id."""
        transaction = make_tx()

        async def scenario():
            await storage.save(transaction)
            await storage.delete(transaction.id)
            with pytest.raises(NotFoundError):
                await storage.delete(transaction.id)
            return await storage.load_all()

        assert asyncio.run(scenario()).transactions == []


class TestJsonFileStorage:
    """Tests specific to the JSON file backend."""

    def test_document_survives_new_instance(self, json_storage, make_tx):
        """Test that a second store on the same file sees the data."""
        transaction = make_tx(day=date(2024, 1, 2))
        asyncio.run(json_storage.save(transaction))

        reopened = JsonFileLedgerStorage(settings=StorageSettings(data_path=json_storage.path))
        loaded = asyncio.run(reopened.load_all()).transactions
        assert [t.model_dump() for t in loaded] == [transaction.model_dump()]

    def test_no_temp_files_left_behind(self, json_storage, make_tx):
        """Test that writes replace the document atomically."""
        asyncio.run(json_storage.save(make_tx()))
        assert [p.name for p in json_storage.path.parent.iterdir()] == ["ledger.json"]

    def test_very_large_amount_reloads(self, json_storage, make_tx):
        """Test that an amount past the default decimal precision loads back."""
        transaction = make_tx("1e30")
        asyncio.run(json_storage.save(transaction))

        loaded = asyncio.run(json_storage.load_all()).transactions
        assert loaded[0].amount == Decimal("1e30")
        assert loaded[0].amount.as_tuple().exponent == -2

    def test_invalid_document(self, json_storage):
        """Test that a corrupt document is reported, not overwritten."""
        json_storage.path.write_text('{"accounts": [{"id": 1}]}', encoding="utf-8")
        with pytest.raises(StorageError):
            asyncio.run(json_storage.load_all())

    def test_io_failure_is_retried_then_raised(self, tmp_path):
        """Test that persistent OS errors surface as StorageConnectionError."""
        settings = StorageSettings(data_path=tmp_path, retry_attempts=2)
        storage = JsonFileLedgerStorage(settings=settings, retry_wait_max=0)
        with pytest.raises(StorageConnectionError):
            asyncio.run(storage.load_all())


class TestInMemoryAuditStorage:
    """Tests for InMemoryAuditStorage."""

    def test_recent_events_newest_first(self):
        """Test ordering and limit."""
        storage = InMemoryAuditStorage()
        events = [
            AuditEvent(event_type=AuditEventType.ACCOUNT_CREATED, description=str(i))
            for i in range(3)
        ]

        async def scenario():
            for event in events:
                await storage.append_event(event)
            return await storage.get_recent_events(limit=2)

        assert [e.description for e in asyncio.run(scenario())] == ["2", "1"]
