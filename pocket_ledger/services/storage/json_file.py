"""
JSON File Storage

Keeps the whole ledger in a single JSON document:

    {"accounts": [...], "transactions": [...], "categories": [...],
     "budgets": [...], "recurring": [...]}

Dates and timestamps are ISO-8601 strings and amounts are decimal strings,
exactly as pydantic serializes the models.

DESIGN DECISION: Every write goes to a temporary file in the same
directory which then replaces the document in one `os.replace`. A crash
mid-write leaves the previous document intact, which is what makes
`save_batch` all-or-nothing.

Transient OS errors are retried with exponential backoff. Retrying lives
here, never in the engine. One writer per file is assumed.
"""

import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar

import structlog
from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from pocket_ledger.config import StorageSettings, get_settings
from pocket_ledger.models.ledger import LedgerEntity, LedgerSnapshot
from pocket_ledger.services.storage.interface import (
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from pocket_ledger.services.storage.memory import LedgerDocument


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class JsonFileLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by one JSON file."""

    def __init__(
        self,
        path: Optional[Path] = None,
        settings: Optional[StorageSettings] = None,
        retry_wait_max: float = 10,
    ):
        """
        Args:
            path: Document location; defaults to the configured data path
            settings: Storage settings; defaults to the cached application settings
            retry_wait_max: Upper bound in seconds for a single backoff wait
        """
        self._settings = settings or get_settings().storage
        self._path = Path(path or self._settings.data_path)
        self._retry_wait_max = retry_wait_max

    @property
    def path(self) -> Path:
        return self._path

    def _with_retry(self, operation: str, func: Callable[[], T]) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self._settings.retry_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=self._retry_wait_max),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return func()
        except OSError as e:
            logger.error("ledger_file_io_failed", operation=operation, path=str(self._path), error=str(e))
            raise StorageConnectionError(f"{operation} failed for {self._path}: {e}") from e
        raise StorageError(f"{operation} did not run")

    # =========================================================================
    # FILE ACCESS
    # =========================================================================

    def _read(self) -> LedgerDocument:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LedgerDocument()

        if not raw.strip():
            return LedgerDocument()
        try:
            snapshot = LedgerSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Ledger file {self._path} is not a valid ledger document") from e
        return LedgerDocument(snapshot)

    def _write(self, document: LedgerDocument) -> None:
        payload = document.snapshot().model_dump_json(indent=2)
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def _update(self, operation: str, change: Callable[[LedgerDocument], None]) -> bool:
        document = self._with_retry(f"{operation}:read", self._read)
        change(document)
        self._with_retry(f"{operation}:write", lambda: self._write(document))
        return True

    # =========================================================================
    # LEDGER STORAGE INTERFACE
    # =========================================================================

    async def load_all(self) -> LedgerSnapshot:
        return self._with_retry("load_all", self._read).snapshot()

    async def save(self, entity: LedgerEntity) -> bool:
        return self._update("save", lambda document: document.put(entity))

    async def save_batch(self, entities: Sequence[LedgerEntity]) -> bool:
        def put_all(document: LedgerDocument) -> None:
            for entity in entities:
                document.put(entity)

        return self._update("save_batch", put_all)

    async def delete(self, entity_id: str) -> bool:
        return self._update("delete", lambda document: document.remove(entity_id))
