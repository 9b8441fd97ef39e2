"""Integration tests for Repository on an in-memory SQLite database."""

from dataclasses import replace

import pytest

from rowkeeper.core.exceptions import ConfigurationError, StaleRecordError
from rowkeeper.domain.entities.entity_schema import EntitySchema, FieldSpec, FieldType
from rowkeeper.domain.entities.transaction_policy import TransactionPolicy
from rowkeeper.infrastructure.persistence.repositories.repository import Repository

pytestmark = pytest.mark.integration


@pytest.fixture
def customers(store, customer_schema) -> Repository:
    return Repository(store, customer_schema)


@pytest.fixture
def locked_customers(store, locked_customer_schema) -> Repository:
    return Repository(store, locked_customer_schema)


@pytest.fixture
def order_items(store, order_item_schema) -> Repository:
    return Repository(store, order_item_schema)


class TestCrud:
    """Round trips through a real database."""

    def test_insert_assigns_autoincrement_key(self, customers) -> None:
        first = customers.create({"name": "Ada"})
        second = customers.create({"name": "Grace"})

        assert customers.save(first) is True
        assert customers.save(second) is True

        assert first["id"] == 1
        assert second["id"] == 2
        assert first.get_dirty_attributes() == {}

    def test_find_one_loads_clean_record(self, customers) -> None:
        record = customers.create({"name": "Ada", "email": "ada@example.com"})
        customers.save(record)

        found = customers.find_one(record["id"])

        assert found is not None
        assert found["email"] == "ada@example.com"
        assert found["visits"] is None
        assert found.get_dirty_attributes() == {}
        assert customers.equals(record, found)

    def test_find_one_missing(self, customers) -> None:
        assert customers.find_one(404) is None

    def test_find_all_forms(self, customers) -> None:
        for name in ("Ada", "Grace", "Hedy"):
            customers.save(customers.create({"name": name}))

        assert [r["name"] for r in customers.find_all([1, 3])] == ["Ada", "Hedy"]
        assert [r["id"] for r in customers.find_all({"name": ["Grace", "Hedy"]})] == [2, 3]
        assert [r["id"] for r in customers.find_all({"email": None})] == [1, 2, 3]
        assert customers.find_all([]) == []

    def test_query_ordering_and_paging(self, customers) -> None:
        for name in ("Ada", "Grace", "Hedy"):
            customers.save(customers.create({"name": name}))

        records = customers.find().order_by("-id").limit(2).all()
        assert [r["name"] for r in records] == ["Hedy", "Grace"]

        page = customers.find().order_by("name").offset(1).limit(1).one()
        assert page["name"] == "Grace"

        assert customers.find().and_where({"name": "Ada"}).count() == 1
        assert customers.find().and_where({"name": "Nobody"}).exists() is False

    def test_update_changes_only_dirty_columns(self, customers, store) -> None:
        record = customers.create({"name": "Ada", "visits": 1})
        customers.save(record)
        store.update("customers", {"visits": 10}, {"id": record["id"]})

        record["name"] = "Ada Lovelace"
        assert customers.update(record) == 1

        found = customers.find_one(record["id"])
        assert found["name"] == "Ada Lovelace"
        assert found["visits"] == 10

    def test_update_primary_key_uses_old_value(self, customers) -> None:
        record = customers.create({"name": "Ada"})
        customers.save(record)

        record["id"] = 100
        assert customers.update(record) == 1

        assert customers.find_one(1) is None
        assert customers.find_one(100)["name"] == "Ada"
        assert customers.get_old_primary_key(record) == 100

    def test_delete_detaches(self, customers) -> None:
        record = customers.create({"name": "Ada"})
        customers.save(record)

        assert customers.delete(record) == 1
        assert record.is_new_record is True
        assert customers.find_one(1) is None

    def test_delete_missing_row_returns_zero(self, customers) -> None:
        record = customers.create({"name": "Ada"})
        customers.save(record)
        customers.delete_all({"id": record["id"]})

        assert customers.delete(record) == 0
        assert record.is_new_record is True

    def test_composite_key(self, order_items) -> None:
        item = order_items.create({"order_id": 1, "product_id": 2, "quantity": 3})

        assert order_items.save(item) is True
        assert order_items.primary_key() == ("order_id", "product_id")

        found = order_items.find_one({"order_id": 1, "product_id": 2})
        assert found["quantity"] == 3
        assert order_items.equals(item, found)

        found["quantity"] = 5
        assert order_items.save(found) is True
        assert order_items.find_one({"order_id": 1, "product_id": 2})["quantity"] == 5


class TestOptimisticLocking:
    """Concurrent writers detected through the version column."""

    def test_concurrent_updates(self, locked_customers) -> None:
        record = locked_customers.create({"name": "Ada", "version": 3})
        locked_customers.save(record)

        first = locked_customers.find_one(record["id"])
        second = locked_customers.find_one(record["id"])
        first["name"] = "Grace"
        second["name"] = "Hedy"

        assert locked_customers.update(first) == 1
        assert first["version"] == 4

        with pytest.raises(StaleRecordError):
            locked_customers.update(second)
        assert second["version"] == 3

        stored = locked_customers.find_one(record["id"])
        assert stored["name"] == "Grace"
        assert stored["version"] == 4

    def test_stale_delete(self, locked_customers) -> None:
        record = locked_customers.create({"name": "Ada", "version": 0})
        locked_customers.save(record)
        other = locked_customers.find_one(record["id"])
        other["name"] = "Grace"
        locked_customers.update(other)

        with pytest.raises(StaleRecordError):
            locked_customers.delete(record)
        assert locked_customers.find_one(record["id"]) is not None


class TestTransactions:
    """Scenario transactions, rollbacks and savepoints."""

    @pytest.fixture
    def atomic_customers(self, store, customer_schema) -> Repository:
        return Repository(store, replace(customer_schema, transactions=TransactionPolicy.always()))

    def test_exception_in_after_hook_rolls_back(self, atomic_customers, store) -> None:
        def explode(event, record, context):
            raise RuntimeError("audit unavailable")

        atomic_customers.hooks.after_insert.register(explode)

        with pytest.raises(RuntimeError, match="audit unavailable"):
            atomic_customers.insert(atomic_customers.create({"name": "Ada"}))

        assert store.count("customers") == 0

    def test_without_transaction_the_write_stays(self, customers, store) -> None:
        def explode(event, record, context):
            raise RuntimeError("audit unavailable")

        customers.hooks.after_insert.register(explode)

        with pytest.raises(RuntimeError):
            customers.insert(customers.create({"name": "Ada"}))

        assert store.count("customers") == 1

    def test_veto_discards_writes_made_by_earlier_hooks(self, atomic_customers, store) -> None:
        def log_attempt(event, record, context):
            store.insert("order_items", {"order_id": 1, "product_id": 1, "quantity": 1})

        atomic_customers.hooks.before_insert.register(log_attempt, priority=10)
        atomic_customers.hooks.before_insert.register(lambda e, r, c: False)

        assert atomic_customers.insert(atomic_customers.create({"name": "Ada"})) is False

        assert store.count("order_items") == 0
        assert store.count("customers") == 0

    def test_nested_veto_rolls_back_to_savepoint(self, atomic_customers, store) -> None:
        atomic_customers.hooks.before_insert.register(
            lambda e, r, c: r["name"] != "Mallory"
        )

        with store.transaction():
            assert atomic_customers.insert(atomic_customers.create({"name": "Ada"})) is True
            assert atomic_customers.insert(atomic_customers.create({"name": "Mallory"})) is False
            assert store.in_transaction()

        assert not store.in_transaction()
        assert [r["name"] for r in atomic_customers.find_all({"email": None})] == ["Ada"]

    def test_outer_rollback_discards_inner_commits(self, atomic_customers, store) -> None:
        with pytest.raises(ValueError):
            with store.transaction():
                atomic_customers.insert(atomic_customers.create({"name": "Ada"}))
                raise ValueError("abort batch")

        assert store.count("customers") == 0

    def test_stale_update_inside_transaction_rolls_back(self, store, locked_customer_schema) -> None:
        repository = Repository(
            store, replace(locked_customer_schema, transactions=TransactionPolicy.always())
        )
        record = repository.create({"name": "Ada", "version": 1})
        repository.save(record)
        store.update("customers", {"version": 2}, {"id": record["id"]})

        record["name"] = "Grace"
        with pytest.raises(StaleRecordError):
            repository.update(record)

        assert repository.find_one(record["id"])["name"] == "Ada"


class TestCounters:
    """Counter updates computed by the database."""

    def test_null_counts_as_zero(self, customers) -> None:
        record = customers.create({"name": "Ada"})
        customers.save(record)

        assert customers.update_counters(record, {"visits": 2}) is True
        assert record["visits"] == 2
        assert customers.find_one(record["id"])["visits"] == 2

        assert customers.update_counters(record, {"visits": 3}) is True
        assert record["visits"] == 5
        assert customers.find_one(record["id"])["visits"] == 5

    def test_update_all_counters(self, customers) -> None:
        for name in ("Ada", "Grace"):
            customers.save(customers.create({"name": name, "visits": 1}))

        assert customers.update_all_counters({"visits": 4}) == 2
        assert [r["visits"] for r in customers.find_all([1, 2])] == [5, 5]


class TestSchemaBinding:
    """Entity attributes against the real table."""

    def test_missing_table(self, store) -> None:
        repository = Repository(store, EntitySchema.build("ghosts", ["id"], primary_key=["id"]))

        with pytest.raises(ConfigurationError, match="ghosts"):
            repository.find_one(1)

    def test_table_without_primary_key(self, store) -> None:
        repository = Repository(store, EntitySchema.build("notes", ["body"]))

        with pytest.raises(ConfigurationError):
            repository.find_one(1)
        assert repository.find_all({"body": None}) == []

    def test_undeclared_column_rejected(self, store) -> None:
        schema = EntitySchema.build("customers", ["id", FieldSpec("name", FieldType.TEXT)])

        with pytest.raises(ConfigurationError, match="email"):
            Repository(store, schema).find_one(1)

    def test_undeclared_column_ignored(self, store, customers) -> None:
        customers.save(customers.create({"name": "Ada", "visits": 7}))
        schema = EntitySchema.build(
            "customers",
            ["id", FieldSpec("name", FieldType.TEXT)],
            unknown_columns="ignore",
        )

        found = Repository(store, schema).find_one(1)

        assert found.get_attributes() == {"id": 1, "name": "Ada"}

    def test_rejected_binding_blocks_insert(self, store) -> None:
        schema = EntitySchema.build("customers", ["id", FieldSpec("name", FieldType.TEXT)])
        repository = Repository(store, schema)
        record = repository.create({"name": "Ada"})

        with pytest.raises(ConfigurationError, match="email"):
            repository.insert(record)

        assert store.count("customers") == 0
        assert record.is_new_record is True

    def test_rejected_binding_blocks_writes(self, store, customers) -> None:
        customers.save(customers.create({"name": "Ada", "visits": 1}))
        schema = EntitySchema.build("customers", ["id", FieldSpec("name", FieldType.TEXT)])
        repository = Repository(store, schema)
        record = repository.create()
        record.set_old_attributes({"id": 1, "name": "Ada"})
        record["name"] = "Grace"

        with pytest.raises(ConfigurationError):
            repository.update(record)
        with pytest.raises(ConfigurationError):
            repository.update_attributes(record, ["name"])
        with pytest.raises(ConfigurationError):
            repository.update_all_counters({"visits": 1})
        with pytest.raises(ConfigurationError):
            repository.delete(record)
        with pytest.raises(ConfigurationError):
            repository.delete_all()

        assert store.select("customers", ["id", "name", "visits"]) == [{"id": 1, "name": "Ada", "visits": 1}]
