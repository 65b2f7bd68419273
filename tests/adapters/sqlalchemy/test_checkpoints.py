from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.helpers.schema import count_rows
from unitwork.adapters.sqlalchemy import Savepoint, SqlAlchemyCheckpoints
from unitwork.domain.model import EntityRef, EntityType
from unitwork.domain.ports import WriteOptions

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import MetaData

    from unitwork.adapters.sqlalchemy import SqlAlchemyTransaction

ACCOUNT = EntityType("account")


def test_rollback_discards_writes_after_the_savepoint(
    sqlite_transaction: Callable[[], SqlAlchemyTransaction], metadata: MetaData
) -> None:
    with sqlite_transaction() as transaction:
        checkpoints = transaction.services.checkpoints
        writer = transaction.services.writer
        outer = checkpoints.create()
        writer.insert([EntityRef.new(ACCOUNT, Name="Kept")], WriteOptions())
        inner = checkpoints.create()
        writer.insert([EntityRef.new(ACCOUNT, Name="Dropped")], WriteOptions())

        checkpoints.rollback(inner)
        assert count_rows(transaction.session, metadata, "account") == 1

        checkpoints.rollback(outer)
        assert count_rows(transaction.session, metadata, "account") == 0


def test_savepoint_names_are_unique(
    sqlite_transaction: Callable[[], SqlAlchemyTransaction],
) -> None:
    with sqlite_transaction() as transaction:
        checkpoints = SqlAlchemyCheckpoints(transaction.session, prefix="test")
        first = checkpoints.create()
        second = checkpoints.create()

    assert first.name.startswith("test_")
    assert first != second


def test_rollback_rejects_foreign_tokens(
    sqlite_transaction: Callable[[], SqlAlchemyTransaction],
) -> None:
    with sqlite_transaction() as transaction:
        checkpoints = transaction.services.checkpoints

        with pytest.raises(TypeError, match="Expected Savepoint, got int"):
            checkpoints.rollback(1)
        assert isinstance(checkpoints.create(), Savepoint)
