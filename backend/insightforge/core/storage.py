"""
Dataset storage for uploaded workbooks.

Holds the parsed sheets of each upload so the dashboard can switch
sheets, re-filter and export without re-uploading. The analysis code
never touches this module; the API layer loads rows from here and hands
them to the profiler.
"""
import logging
import time
import uuid
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, List, Optional, Tuple

from insightforge.core.schemas import ParsedWorkbook, Row, Sheet

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Interface for dataset stores."""

    @abstractmethod
    def save_workbook(self, workbook: ParsedWorkbook, ttl_seconds: int) -> str:
        """Store a workbook and return its dataset id."""

    @abstractmethod
    def get_workbook(self, dataset_id: str) -> Optional[ParsedWorkbook]:
        """Workbook for a dataset id, or None if missing or expired."""

    @abstractmethod
    def delete(self, dataset_id: str) -> bool:
        """Delete a dataset. Returns True if it existed."""

    @abstractmethod
    def cleanup_expired(self) -> int:
        """Remove expired datasets and return how many were removed."""

    def load_rows(self, dataset_id: str, sheet: Optional[str] = None) -> Optional[List[Row]]:
        """Rows of one sheet (the first when no name is given)."""
        workbook = self.get_workbook(dataset_id)
        if workbook is None:
            return None
        found = workbook.sheet(sheet)
        return list(found.rows) if found is not None else None

    def persist_rows(self, dataset_id: str, sheet: str, rows: List[Row], ttl_seconds: int) -> bool:
        """Replace the rows of one sheet. Returns False if the dataset is gone."""
        workbook = self.get_workbook(dataset_id)
        if workbook is None:
            return False
        sheets = [
            Sheet(name=s.name, rows=list(rows)) if s.name == sheet else s
            for s in workbook.sheets
        ]
        if not any(s.name == sheet for s in workbook.sheets):
            sheets.append(Sheet(name=sheet, rows=list(rows)))
        metadata = workbook.metadata.model_copy(update={
            'sheet_names': [s.name for s in sheets],
            'total_rows': sum(len(s.rows) for s in sheets),
        })
        updated = workbook.model_copy(update={'sheets': sheets, 'metadata': metadata})
        self._put(dataset_id, updated, ttl_seconds)
        return True

    @abstractmethod
    def _put(self, dataset_id: str, workbook: ParsedWorkbook, ttl_seconds: int) -> None:
        pass


class InMemoryDatasetStore(StorageBackend):
    """
    Process-local store.

    Datasets are lost on restart and not shared between workers.
    """

    def __init__(self):
        self._store: Dict[str, Tuple[ParsedWorkbook, float]] = {}
        self._lock = Lock()

    def _put(self, dataset_id: str, workbook: ParsedWorkbook, ttl_seconds: int) -> None:
        with self._lock:
            self._store[dataset_id] = (workbook, time.time() + ttl_seconds)

    def save_workbook(self, workbook: ParsedWorkbook, ttl_seconds: int) -> str:
        # Expired datasets are dropped on every save
        removed = self.cleanup_expired()
        if removed:
            logger.info(f"Removed {removed} expired datasets")
        dataset_id = uuid.uuid4().hex
        self._put(dataset_id, workbook, ttl_seconds)
        logger.info(
            f"Stored dataset {dataset_id[:8]}... "
            f"({len(workbook.sheets)} sheets, {workbook.metadata.total_rows} rows)"
        )
        return dataset_id

    def get_workbook(self, dataset_id: str) -> Optional[ParsedWorkbook]:
        with self._lock:
            entry = self._store.get(dataset_id)
            if entry is None:
                return None
            workbook, expires_at = entry
            if time.time() > expires_at:
                del self._store[dataset_id]
                return None
            return workbook

    def delete(self, dataset_id: str) -> bool:
        with self._lock:
            return self._store.pop(dataset_id, None) is not None

    def cleanup_expired(self) -> int:
        now = time.time()
        with self._lock:
            expired = [k for k, (_, expires_at) in self._store.items() if expires_at < now]
            for key in expired:
                del self._store[key]
        return len(expired)

    def size(self) -> int:
        with self._lock:
            return len(self._store)


_store_instance: Optional[InMemoryDatasetStore] = None


def get_dataset_store() -> InMemoryDatasetStore:
    """Process-wide dataset store (singleton)."""
    global _store_instance
    if _store_instance is None:
        _store_instance = InMemoryDatasetStore()
        logger.info("Using in-memory dataset store")
    return _store_instance


def reset_dataset_store():
    """Drop the store instance (used by tests)."""
    global _store_instance
    _store_instance = None
