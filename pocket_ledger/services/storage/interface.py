"""
Abstract Storage Interface

DESIGN DECISION: The engine never touches persistence. Storage is an
external collaborator behind these interfaces, so that:
1. Tests and embedders can use in-memory storage
2. The file-backed store can be swapped for a database later
3. Retry/backoff stays inside storage implementations

The ledger contract is deliberately small: load everything, save one
entity, save a batch atomically, delete by id. Entities are identified
by their `id` alone.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import LedgerEntity, LedgerSnapshot


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load_all(self) -> LedgerSnapshot:
        """
        Load every stored entity.

        Returns:
            Snapshot of accounts, transactions, categories, budgets and recurring rules

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def save(self, entity: LedgerEntity) -> bool:
        """
        Insert or replace an entity, keyed by its id.

        Raises:
            StorageError: If save fails
            DuplicateError: If the id is already used by an entity of another kind
        """
        pass

    @abstractmethod
    async def save_batch(self, entities: Sequence[LedgerEntity]) -> bool:
        """
        Save several entities as one unit: either all persist or none do.

        Raises:
            StorageError: If the batch could not be written (nothing was persisted)
        """
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """
        Delete an entity by id.

        Raises:
            NotFoundError: If no entity has this id
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to reuse an id across entity kinds."""
    pass


class StorageConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
