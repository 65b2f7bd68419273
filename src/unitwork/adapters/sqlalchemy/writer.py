"""Batch writes over SQLAlchemy Core tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from unitwork.domain.model import OperationResult
from unitwork.domain.ports import WriteOptions

from .checkpoints import SqlAlchemyCheckpoints

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from unitwork.domain.model import EntityRef

    from .checkpoints import Savepoint
    from .schema import SqlAlchemySchema

log = logging.getLogger(__name__)

ABORTED_MESSAGE = "batch rolled back after an earlier failure"
NOT_ATTEMPTED_MESSAGE = "not attempted: batch aborted"


class RowRejectedError(Exception):
    """A row was rejected before or while being written."""

    def __init__(self, *errors: str) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class SqlAlchemyBatchWriter:
    """Write entities one row at a time, each inside its own savepoint.

    A failing row is rolled back on its own and reported, so the rest of the
    batch still goes through. With ``all_or_nothing`` the batch stops at the
    first failure and everything it wrote is rolled back.
    """

    def __init__(self, session: Session, schema: SqlAlchemySchema) -> None:
        self.session = session
        self.schema = schema
        self._savepoints = SqlAlchemyCheckpoints(session, prefix="uow_row")

    def insert(self, entities: Sequence[EntityRef], options: WriteOptions) -> list[OperationResult]:
        return self._run(entities, options, self._insert_one)

    def update(self, entities: Sequence[EntityRef], options: WriteOptions) -> list[OperationResult]:
        return self._run(entities, options, self._update_one)

    def delete(self, entities: Sequence[EntityRef]) -> list[OperationResult]:
        return self._run(entities, WriteOptions(), self._delete_one)

    def _run(
        self,
        entities: Sequence[EntityRef],
        options: WriteOptions,
        write: Callable[[EntityRef], Any],
    ) -> list[OperationResult]:
        batch = self._savepoints.create() if options.all_or_nothing else None
        results: list[OperationResult] = []
        for entity in entities:
            result = self._attempt(entity, write)
            results.append(result)
            if batch is not None and not result.success:
                self._discard(batch)
                return _abort(results, remaining=len(entities) - len(results))
        if batch is not None:
            self._savepoints.release(batch)
        return results

    def _attempt(self, entity: EntityRef, write: Callable[[EntityRef], Any]) -> OperationResult:
        savepoint = self._savepoints.create()
        try:
            identifier = write(entity)
        except RowRejectedError as exc:
            self._discard(savepoint)
            return OperationResult.failed(*exc.errors, id=entity.id)
        except SQLAlchemyError as exc:
            log.debug("Row write failed for %r: %s", entity, exc)
            self._discard(savepoint)
            return OperationResult.failed(_describe(exc), id=entity.id)
        self._savepoints.release(savepoint)
        return OperationResult(id=identifier)

    def _discard(self, savepoint: Savepoint) -> None:
        self._savepoints.rollback(savepoint)
        self._savepoints.release(savepoint)

    def _insert_one(self, entity: EntityRef) -> Any:
        table = self.schema.table_for(entity.entity_type)
        values = self._values(table, entity)
        missing = self.schema.missing_required(table, values)
        if missing:
            raise RowRejectedError(f"required fields are missing: [{', '.join(missing)}]")
        result = self.session.execute(table.insert().values(values))
        primary_key = result.inserted_primary_key
        return primary_key[0] if primary_key else None

    def _update_one(self, entity: EntityRef) -> Any:
        table = self.schema.table_for(entity.entity_type)
        values = self._values(table, entity)
        blanked = [
            name
            for name in self.schema.missing_required(table, values)
            if name in entity.fields
        ]
        if blanked:
            raise RowRejectedError(f"required fields are missing: [{', '.join(blanked)}]")
        if not values:
            return entity.id
        identifier = self.schema.identifier_column(table)
        result = self.session.execute(
            table.update().where(identifier == entity.id).values(values)
        )
        if result.rowcount == 0:
            raise RowRejectedError(f"entity does not exist: {entity.id}")
        return entity.id

    def _delete_one(self, entity: EntityRef) -> Any:
        table = self.schema.table_for(entity.entity_type)
        identifier = self.schema.identifier_column(table)
        result = self.session.execute(table.delete().where(identifier == entity.id))
        if result.rowcount == 0:
            raise RowRejectedError(f"entity does not exist: {entity.id}")
        return entity.id

    def _values(self, table: Table, entity: EntityRef) -> dict[str, Any]:
        identifier = self.schema.config.identifier_column
        unknown = [name for name in entity.fields if name not in table.c]
        if unknown:
            raise RowRejectedError(*(f"unknown field: {name}" for name in unknown))
        return {name: value for name, value in entity.fields.items() if name != identifier}


def _abort(results: list[OperationResult], *, remaining: int) -> list[OperationResult]:
    aborted = [
        result if not result.success else OperationResult.failed(ABORTED_MESSAGE, id=result.id)
        for result in results
    ]
    aborted.extend(OperationResult.failed(NOT_ATTEMPTED_MESSAGE) for _ in range(remaining))
    return aborted


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
