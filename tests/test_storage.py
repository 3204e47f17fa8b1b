"""
Tests for storage backends and transaction support
"""

import pytest

from lending_book.storage import InMemoryStorage, SQLiteStorage, create_storage


record = {
    "id": "loan-1",
    "customerName": "Asha",
    "loanType": "Finance",
    "loanAmount": "10000",
}


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "book.db")
    yield backend
    backend.close()


class TestStorageBackends:
    """Test behaviour shared by every backend"""

    def test_basic_operations(self, storage):
        """Test basic CRUD operations"""
        storage.save("loans", "loan-1", record)
        assert storage.load("loans", "loan-1") == record
        assert storage.exists("loans", "loan-1")
        assert not storage.exists("loans", "missing")
        assert storage.load("loans", "missing") is None

        storage.save("loans", "loan-2", {"id": "loan-2", "loanType": "Tender"})
        assert len(storage.load_all("loans")) == 2
        assert [r["id"] for r in storage.find("loans", {"loanType": "Tender"})] == ["loan-2"]

        assert storage.delete("loans", "loan-1")
        assert not storage.delete("loans", "loan-1")
        assert len(storage.load_all("loans")) == 1

    def test_insertion_order_survives_updates(self, storage):
        """Test records keep their position when replaced"""
        for record_id in ("a", "b", "c"):
            storage.save("loans", record_id, {"id": record_id, "version": 1})
        storage.save("loans", "a", {"id": "a", "version": 2})

        records = storage.load_all("loans")
        assert [r["id"] for r in records] == ["a", "b", "c"]
        assert records[0]["version"] == 2

    def test_loaded_records_are_copies(self, storage):
        """Test mutating a loaded record does not change the store"""
        storage.save("loans", "loan-1", record)
        loaded = storage.load("loans", "loan-1")
        loaded["customerName"] = "Changed"
        assert storage.load("loans", "loan-1")["customerName"] == "Asha"

    def test_clear_table(self, storage):
        """Test clearing a table"""
        storage.save("loans", "loan-1", record)
        storage.clear_table("loans")
        assert len(storage.load_all("loans")) == 0

    def test_atomic_commit(self, storage):
        """Test writes inside a successful block are kept"""
        with storage.atomic():
            storage.save("loans", "loan-1", record)
            storage.save("investors", "inv-1", {"id": "inv-1"})
        assert storage.exists("loans", "loan-1")
        assert storage.exists("investors", "inv-1")

    def test_atomic_rollback(self, storage):
        """Test a failing block leaves earlier data untouched"""
        storage.save("loans", "loan-1", record)

        with pytest.raises(RuntimeError):
            with storage.atomic():
                storage.clear_table("loans")
                storage.save("loans", "loan-2", {"id": "loan-2"})
                raise RuntimeError("restore failed")

        assert storage.exists("loans", "loan-1")
        assert not storage.exists("loans", "loan-2")

    def test_invalid_table_name(self, storage):
        """Test table names are restricted to identifiers"""
        with pytest.raises(ValueError, match="Invalid table name"):
            storage.save("loans; DROP TABLE loans", "x", {})


class TestSQLitePersistence:
    """Test data survives reopening the database"""

    def test_reopen(self, tmp_path):
        """Test records persist across connections"""
        path = tmp_path / "book.db"
        storage = SQLiteStorage(path)
        storage.save("loans", "loan-1", record)
        storage.close()

        reopened = SQLiteStorage(path)
        assert reopened.load("loans", "loan-1") == record
        reopened.close()


class TestCreateStorage:
    """Test backend selection from a URL"""

    def test_memory_url(self):
        """Test memory:// selects the in-memory backend"""
        assert isinstance(create_storage("memory://"), InMemoryStorage)

    def test_sqlite_url(self, tmp_path):
        """Test sqlite:/// selects SQLite with the given path"""
        storage = create_storage(f"sqlite:///{tmp_path / 'book.db'}")
        assert isinstance(storage, SQLiteStorage)
        assert storage.db_path == str(tmp_path / "book.db")
        storage.close()

    def test_unsupported_url(self):
        """Test other URLs are rejected"""
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_storage("postgresql://localhost/book")
        with pytest.raises(ValueError, match="missing a database path"):
            create_storage("sqlite:///")
