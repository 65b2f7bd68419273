from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from tests.helpers.fakes import FakeStore
from tests.helpers.schema import TEST_SCHEMA_CONFIG, build_metadata
from unitwork.adapters.sqlalchemy import SqlAlchemyTransaction, shutdown, startup

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def metadata() -> MetaData:
    return build_metadata()


@pytest.fixture
def sqlite_transaction(
    sqlite_engine: Engine,
    metadata: MetaData,
) -> Iterator[Callable[[], SqlAlchemyTransaction]]:
    startup(
        engine=sqlite_engine,
        metadata=metadata,
        schema_config=TEST_SCHEMA_CONFIG,
        create_tables=True,
        force=True,
    )

    def factory() -> SqlAlchemyTransaction:
        return SqlAlchemyTransaction()

    try:
        yield factory
    finally:
        shutdown()
