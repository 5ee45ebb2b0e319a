"""
Storage Backend Module

Key-value document slots, the server-side stand-in for browser local
storage. Each slot holds one JSON document plus a revision number that
increases on every write, so writers can compare-and-swap against the
revision they loaded. Implementations: in-memory (testing, single
process) and SQLite (persistence, shared between processes).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union
from pathlib import Path
import json
import sqlite3
import threading


class StorageError(Exception):
    """Base class for storage failures"""


class ConcurrentModificationError(StorageError):
    """The slot changed since the caller loaded it"""

    def __init__(self, key: str, expected_revision: int, actual_revision: int):
        self.key = key
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            f"Document {key!r} is at revision {actual_revision}, expected {expected_revision}"
        )


class CorruptDocumentError(StorageError):
    """The slot does not hold a JSON object"""


@dataclass
class StoredDocument:
    """A decoded slot together with the revision it was read at"""
    key: str
    revision: int
    data: Dict[str, Any]


class StorageInterface(ABC):
    """
    Abstract interface for document storage backends.

    Backends move raw blobs; JSON encoding and decoding happen here so every
    backend stores byte-identical documents.
    """

    @abstractmethod
    def read_blob(self, key: str) -> Optional[Tuple[int, str]]:
        """Return (revision, blob) for a slot, or None if it is empty"""
        pass

    @abstractmethod
    def write_blob(self, key: str, blob: str, expected_revision: Optional[int] = None) -> int:
        """
        Write a blob and return the new revision.

        expected_revision None writes unconditionally; 0 requires the slot
        to be empty; any other value must equal the stored revision.

        Raises:
            ConcurrentModificationError: If expected_revision does not match
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Empty a slot; returns True if it held a document. Revisions keep counting."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """List occupied slots"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def exists(self, key: str) -> bool:
        return self.read_blob(key) is not None

    def load(self, key: str) -> Optional[StoredDocument]:
        """
        Load and decode a slot.

        Raises:
            CorruptDocumentError: If the slot does not hold a JSON object
        """
        stored = self.read_blob(key)
        if stored is None:
            return None
        revision, blob = stored
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise CorruptDocumentError(f"Document {key!r} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CorruptDocumentError(f"Document {key!r} is not a JSON object")
        return StoredDocument(key=key, revision=revision, data=data)

    def save(self, key: str, data: Dict[str, Any], expected_revision: Optional[int] = None) -> int:
        """Encode and write a document, returning the new revision"""
        blob = json.dumps(data, default=str)
        return self.write_blob(key, blob, expected_revision)


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        # A deleted slot keeps its revision with a None blob
        self._data: Dict[str, Tuple[int, Optional[str]]] = {}
        self._lock = threading.RLock()

    def read_blob(self, key: str) -> Optional[Tuple[int, str]]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None or entry[1] is None:
                return None
            return entry

    def write_blob(self, key: str, blob: str, expected_revision: Optional[int] = None) -> int:
        with self._lock:
            current, stored = self._data.get(key, (0, None))
            if expected_revision is not None:
                if expected_revision == 0:
                    if stored is not None:
                        raise ConcurrentModificationError(key, 0, current)
                elif stored is None or expected_revision != current:
                    raise ConcurrentModificationError(key, expected_revision, current)
            revision = current + 1
            self._data[key] = (revision, blob)
            return revision

    def delete(self, key: str) -> bool:
        with self._lock:
            current, stored = self._data.get(key, (0, None))
            if stored is None:
                return False
            self._data[key] = (current + 1, None)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return [key for key, (_, blob) in self._data.items() if blob is not None]

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:", table: str = "documents"):
        self.db_path = str(db_path)
        self.table = table
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.RLock()

        with self._lock:
            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            # NULL data marks a deleted slot that keeps its revision
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    revision INTEGER NOT NULL,
                    data TEXT,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)
            self._connection.commit()

    def _current_revision(self, key: str) -> int:
        row = self._connection.execute(
            f"SELECT revision FROM {self.table} WHERE key = ?", (key,)
        ).fetchone()
        return row[0] if row else 0

    def read_blob(self, key: str) -> Optional[Tuple[int, str]]:
        with self._lock:
            row = self._connection.execute(
                f"SELECT revision, data FROM {self.table} WHERE key = ? AND data IS NOT NULL",
                (key,)
            ).fetchone()
            if row:
                return row[0], row[1]
            return None

    def write_blob(self, key: str, blob: str, expected_revision: Optional[int] = None) -> int:
        with self._lock:
            with self._connection:
                if expected_revision is None:
                    self._connection.execute(f"""
                        INSERT INTO {self.table} (key, revision, data, updated_at)
                        VALUES (?, 1, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET
                            revision = revision + 1,
                            data = excluded.data,
                            updated_at = excluded.updated_at
                    """, (key, blob))
                    return self._current_revision(key)

                if expected_revision == 0:
                    cursor = self._connection.execute(f"""
                        INSERT INTO {self.table} (key, revision, data, updated_at)
                        VALUES (?, 1, ?, CURRENT_TIMESTAMP)
                        ON CONFLICT(key) DO UPDATE SET
                            revision = revision + 1,
                            data = excluded.data,
                            updated_at = excluded.updated_at
                        WHERE data IS NULL
                    """, (key, blob))
                    if cursor.rowcount == 0:
                        raise ConcurrentModificationError(key, 0, self._current_revision(key))
                    return self._current_revision(key)

                # Compare-and-swap in a single statement
                cursor = self._connection.execute(f"""
                    UPDATE {self.table}
                    SET revision = ?, data = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE key = ? AND revision = ? AND data IS NOT NULL
                """, (expected_revision + 1, blob, key, expected_revision))
                if cursor.rowcount == 0:
                    raise ConcurrentModificationError(key, expected_revision, self._current_revision(key))
                return expected_revision + 1

    def delete(self, key: str) -> bool:
        with self._lock:
            with self._connection:
                cursor = self._connection.execute(f"""
                    UPDATE {self.table}
                    SET revision = revision + 1, data = NULL, updated_at = CURRENT_TIMESTAMP
                    WHERE key = ? AND data IS NOT NULL
                """, (key,))
                return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self._lock:
            rows = self._connection.execute(
                f"SELECT key FROM {self.table} WHERE data IS NOT NULL ORDER BY key"
            ).fetchall()
            return [row[0] for row in rows]

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(backend: str, path: Union[str, Path, None] = None) -> StorageInterface:
    """Build a storage backend by name ("memory" or "sqlite")"""
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(path or ":memory:")
    raise ValueError(f"Unknown storage backend: {backend}")
