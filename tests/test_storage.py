"""
Tests for document storage backends
"""

import pytest
import tempfile
import os

from vanstra_ledger.storage import (
    InMemoryStorage, SQLiteStorage, StorageInterface, ConcurrentModificationError,
    CorruptDocumentError, create_storage
)


test_document = {
    "schema_version": 2,
    "balance": "100.50",
    "items": [1, 2, 3]
}


class StorageContract:
    """Behaviour every backend must share; subclasses provide make_storage"""

    def make_storage(self) -> StorageInterface:
        raise NotImplementedError

    def setup_method(self):
        self.storage = self.make_storage()

    def teardown_method(self):
        self.storage.close()

    def test_empty_slot(self):
        assert self.storage.load("ledger") is None
        assert not self.storage.exists("ledger")
        assert self.storage.keys() == []

    def test_save_and_load(self):
        revision = self.storage.save("ledger", test_document)
        assert revision == 1

        stored = self.storage.load("ledger")
        assert stored.key == "ledger"
        assert stored.revision == 1
        assert stored.data == test_document
        assert self.storage.exists("ledger")

    def test_revision_increases_on_every_write(self):
        assert self.storage.save("ledger", test_document) == 1
        assert self.storage.save("ledger", {"changed": True}) == 2
        assert self.storage.save("ledger", {"changed": False}) == 3
        assert self.storage.load("ledger").data == {"changed": False}

    def test_create_only_when_empty(self):
        assert self.storage.save("ledger", test_document, expected_revision=0) == 1

        with pytest.raises(ConcurrentModificationError) as exc_info:
            self.storage.save("ledger", {"other": True}, expected_revision=0)
        assert exc_info.value.expected_revision == 0
        assert exc_info.value.actual_revision == 1
        assert self.storage.load("ledger").data == test_document

    def test_compare_and_swap(self):
        self.storage.save("ledger", test_document)
        assert self.storage.save("ledger", {"step": 2}, expected_revision=1) == 2

        # A writer still holding revision 1 loses
        with pytest.raises(ConcurrentModificationError) as exc_info:
            self.storage.save("ledger", {"step": "stale"}, expected_revision=1)
        assert exc_info.value.key == "ledger"
        assert exc_info.value.actual_revision == 2
        assert self.storage.load("ledger").data == {"step": 2}

    def test_compare_and_swap_on_empty_slot(self):
        with pytest.raises(ConcurrentModificationError):
            self.storage.save("ledger", test_document, expected_revision=3)
        assert not self.storage.exists("ledger")

    def test_delete_and_keys(self):
        self.storage.save("ledger", test_document)
        self.storage.save("users", {})

        assert sorted(self.storage.keys()) == ["ledger", "users"]
        assert self.storage.delete("ledger")
        assert not self.storage.delete("ledger")
        assert self.storage.keys() == ["users"]

    def test_revision_survives_delete(self):
        assert self.storage.save("ledger", test_document) == 1
        assert self.storage.delete("ledger")
        assert not self.storage.exists("ledger")

        # A writer that loaded revision 1 before the delete must not win
        with pytest.raises(ConcurrentModificationError):
            self.storage.save("ledger", {"step": "stale"}, expected_revision=1)
        assert not self.storage.exists("ledger")

        assert self.storage.save("ledger", {"step": "fresh"}, expected_revision=0) == 3
        assert self.storage.load("ledger").revision == 3

        with pytest.raises(ConcurrentModificationError):
            self.storage.save("ledger", {"step": "stale"}, expected_revision=1)
        assert self.storage.load("ledger").data == {"step": "fresh"}

    def test_corrupt_json(self):
        self.storage.write_blob("ledger", "{not json")
        with pytest.raises(CorruptDocumentError):
            self.storage.load("ledger")

    def test_non_object_document(self):
        self.storage.write_blob("ledger", "[1, 2, 3]")
        with pytest.raises(CorruptDocumentError, match="not a JSON object"):
            self.storage.load("ledger")


class TestInMemoryStorage(StorageContract):
    """Test in-memory backend"""

    def make_storage(self):
        return InMemoryStorage()


class TestSQLiteMemoryStorage(StorageContract):
    """Test SQLite backend without a file"""

    def make_storage(self):
        return SQLiteStorage(":memory:")


class TestSQLiteFileStorage(StorageContract):
    """Test SQLite backend on disk"""

    def make_storage(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "ledger.db")
        return SQLiteStorage(self.db_path)

    def teardown_method(self):
        self.storage.close()
        self.temp_dir.cleanup()

    def test_persists_across_connections(self):
        self.storage.save("ledger", test_document)
        self.storage.close()

        reopened = SQLiteStorage(self.db_path)
        try:
            stored = reopened.load("ledger")
            assert stored.revision == 1
            assert stored.data == test_document
        finally:
            reopened.close()
        self.storage = SQLiteStorage(self.db_path)

    def test_conflict_between_connections(self):
        """Two connections on one file behave like two processes"""
        self.storage.save("ledger", test_document)
        other = SQLiteStorage(self.db_path)
        try:
            loaded = self.storage.load("ledger")
            assert other.save("ledger", {"writer": "other"}, expected_revision=loaded.revision) == 2

            with pytest.raises(ConcurrentModificationError):
                self.storage.save("ledger", {"writer": "self"}, expected_revision=loaded.revision)
            assert self.storage.load("ledger").data == {"writer": "other"}
        finally:
            other.close()


class TestCreateStorage:
    """Test backend factory"""

    def test_memory_backend(self):
        assert isinstance(create_storage("memory"), InMemoryStorage)

    def test_sqlite_backend(self):
        storage = create_storage("sqlite")
        try:
            assert isinstance(storage, SQLiteStorage)
            assert storage.db_path == ":memory:"
        finally:
            storage.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_storage("redis")
