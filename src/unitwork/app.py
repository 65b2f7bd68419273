"""Application entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from unitwork.adapters.sqlalchemy import SqlAlchemyTransaction, is_started, startup
from unitwork.domain.model import EntityRef

if TYPE_CHECKING:
    from collections.abc import Mapping

    from unitwork.adapters.sqlalchemy import SqlAlchemySchema
    from unitwork.domain.model import OperationResult
    from unitwork.domain.unit_of_work import UnitOfWork
    from unitwork.ui.changeset import Changeset, RecordPointer

TransactionFactory = Callable[[], SqlAlchemyTransaction]


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangesetResult:
    """Per-phase results of an applied changeset and the records it named."""

    results: Mapping[str, tuple[OperationResult, ...]]
    refs: Mapping[str, EntityRef]


def apply_changeset(
    changeset: Changeset,
    *,
    transaction_factory: TransactionFactory | None = None,
    database_uri: str | None = None,
) -> ChangesetResult:
    """Stage ``changeset`` on one unit of work and commit it."""

    if transaction_factory is None and not is_started():
        startup(database_uri=database_uri)
    effective_factory = transaction_factory or SqlAlchemyTransaction
    log.info(
        "Applying changeset: new=%d, dirty=%d, deleted=%d, relationships=%d, junctions=%d",
        len(changeset.new),
        len(changeset.dirty),
        len(changeset.deleted),
        len(changeset.relationships),
        len(changeset.junctions),
    )

    with effective_factory() as transaction:
        uow = transaction.unit_of_work()
        refs = stage_changeset(uow, transaction.schema, changeset)
        uow.commit()
        transaction.commit()

    result = ChangesetResult(results=dict(uow.results), refs=refs)
    log.info(
        "Finished changeset: %s",
        ", ".join(f"{tag}={len(items)}" for tag, items in result.results.items()) or "no writes",
    )
    return result


def stage_changeset(
    uow: UnitOfWork,
    schema: SqlAlchemySchema,
    changeset: Changeset,
) -> dict[str, EntityRef]:
    """Register every record of ``changeset`` on ``uow``; return entities by ref."""

    refs: dict[str, EntityRef] = {}
    for record in changeset.new:
        entity = EntityRef.new(schema.entity_type(record.type), **record.values)
        uow.register_new(entity)
        refs[record.ref] = entity

    for record in changeset.dirty:
        entity = EntityRef.existing(schema.entity_type(record.type), record.id, **record.values)
        uow.register_dirty(entity)
        if record.ref is not None:
            refs[record.ref] = entity

    uow.register_deleted(
        EntityRef.existing(schema.entity_type(key.type), key.id) for key in changeset.deleted
    )

    def resolve(pointer: RecordPointer) -> EntityRef:
        if isinstance(pointer, str):
            if pointer not in refs:
                raise ValueError(f"ref used before it is staged: {pointer}")
            return refs[pointer]
        return EntityRef.existing(schema.entity_type(pointer.type), pointer.id)

    for junction in changeset.junctions:
        entity = uow.register_junction(
            schema.entity_type(junction.type),
            junction.source_field,
            junction.target_field,
            resolve(junction.source),
            resolve(junction.target),
        )
        if junction.ref is not None:
            refs[junction.ref] = entity

    for relationship in changeset.relationships:
        uow.register_relationship(
            resolve(relationship.child), relationship.field, resolve(relationship.parent)
        )
    return refs
