"""
In-Memory Storage

Used by tests and by callers that embed the engine and persist elsewhere.
`LedgerDocument` is also the working representation of the file-backed
store.
"""

from copy import deepcopy
from typing import Optional, Sequence

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import (
    Account,
    BudgetGoal,
    Category,
    LedgerEntity,
    LedgerSnapshot,
    RecurringTransaction,
    Transaction,
)
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


# Snapshot field holding each entity kind
COLLECTIONS: dict[type, str] = {
    Account: "accounts",
    Transaction: "transactions",
    Category: "categories",
    BudgetGoal: "budgets",
    RecurringTransaction: "recurring",
}


def collection_for(entity: LedgerEntity) -> str:
    for kind, name in COLLECTIONS.items():
        if isinstance(entity, kind):
            return name
    raise StorageError(f"Unsupported entity type: {type(entity).__name__}")


class LedgerDocument:
    """
    Id-keyed collections of ledger entities.

    Insertion order is preserved, so a reload returns entities in the
    order they were first saved.
    """

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._collections: dict[str, dict[str, LedgerEntity]] = {
            name: {} for name in COLLECTIONS.values()
        }
        if snapshot is not None:
            for entity in snapshot.entities():
                self.put(entity)

    def copy(self) -> "LedgerDocument":
        clone = LedgerDocument()
        clone._collections = deepcopy(self._collections)
        return clone

    def _owner_of(self, entity_id: str) -> Optional[str]:
        for name, items in self._collections.items():
            if entity_id in items:
                return name
        return None

    def put(self, entity: LedgerEntity) -> None:
        name = collection_for(entity)
        owner = self._owner_of(entity.id)
        if owner is not None and owner != name:
            raise DuplicateError(f"Id {entity.id} is already used by an entry in {owner}")
        self._collections[name][entity.id] = entity.model_copy(deep=True)

    def remove(self, entity_id: str) -> None:
        owner = self._owner_of(entity_id)
        if owner is None:
            raise NotFoundError(f"No entity with id {entity_id}")
        del self._collections[owner][entity_id]

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            **{
                name: [entity.model_copy(deep=True) for entity in items.values()]
                for name, items in self._collections.items()
            }
        )


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage held in process memory."""

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._document = LedgerDocument(snapshot)

    async def load_all(self) -> LedgerSnapshot:
        return self._document.snapshot()

    async def save(self, entity: LedgerEntity) -> bool:
        self._document.put(entity)
        return True

    async def save_batch(self, entities: Sequence[LedgerEntity]) -> bool:
        staged = self._document.copy()
        for entity in entities:
            staged.put(entity)
        self._document = staged
        return True

    async def delete(self, entity_id: str) -> bool:
        self._document.remove(entity_id)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
