"""Integration tests for SqlDataStore and DatabaseManager."""

import pytest

from rowkeeper.core.config import Settings
from rowkeeper.core.exceptions import ConfigurationError
from rowkeeper.infrastructure.persistence.database import DatabaseManager
from rowkeeper.infrastructure.persistence.store import SqlDataStore

pytestmark = pytest.mark.integration


class TestSqlDataStore:
    """Statements and transactions against SQLite."""

    def test_table_schema(self, store) -> None:
        schema = store.table_schema("customers")

        assert schema.columns == ("id", "name", "email", "version", "visits")
        assert schema.primary_key == ("id",)
        assert schema.column_types["id"] is int
        assert schema.column_types["name"] is str

    def test_table_schema_missing_table(self, store) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            store.table_schema("ghosts")

    def test_insert_returns_primary_key(self, store) -> None:
        assert store.insert("customers", {"name": "Ada"}) == {"id": 1}
        assert store.insert("order_items", {"order_id": 4, "product_id": 2, "quantity": 1}) == {
            "order_id": 4,
            "product_id": 2,
        }

    def test_update_delete_select(self, store) -> None:
        store.insert("customers", {"name": "Ada", "visits": 1})
        store.insert("customers", {"name": "Grace", "visits": 2})

        assert store.update("customers", {"email": "x@example.com"}, {"name": "Ada"}) == 1
        assert store.update("customers", {}, {"name": "Ada"}) == 0
        rows = store.select("customers", ["id", "email"], {"email": "x@example.com"})
        assert rows == [{"id": 1, "email": "x@example.com"}]

        assert store.delete("customers", {"id": [1, 2]}) == 2
        assert store.select("customers", ["id"]) == []

    def test_update_counters_single_statement(self, store) -> None:
        store.insert("customers", {"name": "Ada", "visits": None, "version": 5})

        assert store.update_counters("customers", {"visits": 3, "version": -1}, {"id": 1}) == 1
        assert store.select("customers", ["visits", "version"]) == [{"visits": 3, "version": 4}]

    def test_update_counters_unknown_column(self, store) -> None:
        with pytest.raises(ConfigurationError):
            store.update_counters("customers", {"nope": 1}, {})

    def test_transaction_commit(self, store) -> None:
        with store.transaction() as transaction:
            assert store.in_transaction()
            assert transaction.is_active
            store.insert("customers", {"name": "Ada"})

        assert not store.in_transaction()
        assert store.count("customers") == 1

    def test_explicit_rollback(self, store) -> None:
        with store.transaction() as transaction:
            store.insert("customers", {"name": "Ada"})
            transaction.rollback()
            assert not transaction.is_active

        assert store.count("customers") == 0

    def test_exception_rolls_back_and_propagates(self, store) -> None:
        with pytest.raises(KeyError):
            with store.transaction():
                store.insert("customers", {"name": "Ada"})
                raise KeyError("boom")

        assert store.count("customers") == 0
        assert not store.in_transaction()

    def test_savepoint_rollback_keeps_outer_work(self, store) -> None:
        with store.transaction():
            store.insert("customers", {"name": "Ada"})
            with store.transaction() as inner:
                store.insert("customers", {"name": "Grace"})
                inner.rollback()
            store.insert("customers", {"name": "Hedy"})

        names = [row["name"] for row in store.select("customers", ["name"], order_by=["id"])]
        assert names == ["Ada", "Hedy"]

    def test_forget_reflects_again(self, store, engine) -> None:
        store.table_schema("customers")
        store.forget("customers")
        store.forget()

        assert store.table_schema("customers").primary_key == ("id",)


class TestDatabaseManager:
    """Engine lifecycle."""

    def test_check_connection(self, test_settings) -> None:
        db = DatabaseManager(test_settings)

        assert db.check_connection() is True
        assert isinstance(db.data_store(), SqlDataStore)
        db.dispose()

    def test_engine_is_lazy_and_reused(self, test_settings) -> None:
        db = DatabaseManager(test_settings)

        assert db._engine is None
        assert db.engine is db.engine
        db.dispose()
        assert db._engine is None

    def test_managers_do_not_share_engines(self, test_settings) -> None:
        first = DatabaseManager(test_settings)
        second = DatabaseManager(test_settings)

        assert first.engine is not second.engine
        first.dispose()
        assert second.check_connection() is True
        second.dispose()

    def test_file_database_directory_created(self, tmp_path) -> None:
        path = tmp_path / "nested" / "app.db"
        settings = Settings(_env_file=None, database_url=f"sqlite:///{path}")
        db = DatabaseManager(settings)

        assert db.check_connection() is True
        assert path.parent.is_dir()
        db.dispose()

    def test_sqlite_pragmas_applied(self, test_settings) -> None:
        db = DatabaseManager(test_settings)
        with db.engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
            assert conn.exec_driver_sql("PRAGMA busy_timeout").scalar() == 5000
        db.dispose()
