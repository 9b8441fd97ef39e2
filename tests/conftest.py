"""Pytest configuration for all tests."""

from collections.abc import Generator

import pytest
from sqlalchemy import Column, Engine, Integer, MetaData, String, Table, Text

from rowkeeper.core.config import Settings, get_settings
from rowkeeper.domain.entities.entity_schema import EntitySchema, FieldSpec, FieldType
from rowkeeper.infrastructure.persistence.database import build_engine
from rowkeeper.infrastructure.persistence.store import SqlDataStore

metadata = MetaData()

customers_table = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=True),
    Column("version", Integer, nullable=True),
    Column("visits", Integer, nullable=True),
)

order_items_table = Table(
    "order_items",
    metadata,
    Column("order_id", Integer, primary_key=True, autoincrement=False),
    Column("product_id", Integer, primary_key=True, autoincrement=False),
    Column("quantity", Integer, nullable=False),
)

notes_table = Table(
    "notes",
    metadata,
    Column("body", Text),
)

CUSTOMER_FIELDS = (
    FieldSpec("id", FieldType.INTEGER),
    FieldSpec("name", FieldType.TEXT, required=True),
    FieldSpec("email", FieldType.EMAIL),
    FieldSpec("version", FieldType.INTEGER),
    FieldSpec("visits", FieldType.INTEGER),
)


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; start every test from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="testing",
        database_url="sqlite:///:memory:",
        log_level="WARNING",
    )


@pytest.fixture
def engine(test_settings: Settings) -> Generator[Engine, None, None]:
    """In-memory SQLite engine with the test tables created."""
    engine = build_engine(test_settings)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> SqlDataStore:
    return SqlDataStore(engine)


@pytest.fixture
def customer_schema() -> EntitySchema:
    """Customers without optimistic locking."""
    return EntitySchema(table_name="customers", fields=CUSTOMER_FIELDS, primary_key=("id",))


@pytest.fixture
def locked_customer_schema() -> EntitySchema:
    """Customers guarded by the ``version`` column."""
    return EntitySchema(
        table_name="customers",
        fields=CUSTOMER_FIELDS,
        primary_key=("id",),
        lock_column="version",
    )


@pytest.fixture
def order_item_schema() -> EntitySchema:
    """Composite primary key taken from the table."""
    return EntitySchema.build(
        "order_items",
        ["order_id", "product_id", FieldSpec("quantity", FieldType.INTEGER, required=True)],
    )
