"""Phase-by-phase execution of staged writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from unitwork.domain.errors import DependencyError, PersistenceError
from unitwork.domain.model import DELETE_TAG, UPDATE_TAG, OperationResult, insert_tag
from unitwork.domain.ports import WriteOptions

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from unitwork.domain.model import EntityRef, EntityType
    from unitwork.domain.ports import BatchWriteService, WriteOutcome

    from .aggregate import ErrorAggregator
    from .graph import PendingRelationship, RelationshipGraph
    from .registry import EntityRegistry

log = logging.getLogger(__name__)

# Failures are collected per item so the whole error tree can be reported.
BATCH_OPTIONS = WriteOptions(all_or_nothing=False)


@dataclass(slots=True)
class BatchExecutor:
    """Write the staged entities of one unit of work.

    Inserts run per type in the given order, then one update batch, then one
    delete batch. Every phase is attempted even if earlier phases failed; the
    caller decides what to do with the collected errors.
    """

    writer: BatchWriteService
    registry: EntityRegistry
    graph: RelationshipGraph
    aggregator: ErrorAggregator
    results: dict[str, tuple[OperationResult, ...]] = field(
        default_factory=dict[str, tuple[OperationResult, ...]]
    )

    def run(self, order: Sequence[EntityType]) -> dict[str, tuple[OperationResult, ...]]:
        for entity_type in order:
            with self.aggregator.capture(f"insert of {entity_type}"):
                self._insert(entity_type)
        with self.aggregator.capture("update"):
            self._update()
        with self.aggregator.capture("delete"):
            self._delete()
        return self.results

    def _insert(self, entity_type: EntityType) -> None:
        entities = self.registry.new_for(entity_type)
        if not entities:
            return
        _backfill(self.graph.relationships_for_type(entity_type))
        log.debug("Inserting %d %s record(s)", len(entities), entity_type)
        outcomes = self.writer.insert(entities, BATCH_OPTIONS)
        results = self._record(insert_tag(entity_type), entities, outcomes)
        for entity, result in zip(entities, results, strict=True):
            if result.success and result.id is not None:
                entity.id = result.id
        self._raise_failures(results)

    def _update(self) -> None:
        entities = self.registry.dirty
        if not entities:
            return
        for entity in entities:
            _backfill(self.graph.relationships_for(entity))
        log.debug("Updating %d record(s)", len(entities))
        outcomes = self.writer.update(entities, BATCH_OPTIONS)
        self._raise_failures(self._record(UPDATE_TAG, entities, outcomes))

    def _delete(self) -> None:
        entities = self.registry.deleted
        if not entities:
            return
        log.debug("Deleting %d record(s)", len(entities))
        outcomes = self.writer.delete(entities)
        self._raise_failures(self._record(DELETE_TAG, entities, outcomes))

    def _record(
        self,
        tag: str,
        entities: Sequence[EntityRef],
        outcomes: Iterable[WriteOutcome],
    ) -> tuple[OperationResult, ...]:
        results = tuple(OperationResult.wrap(outcome) for outcome in outcomes)
        if len(results) != len(entities):
            raise PersistenceError(
                f"{tag} returned {len(results)} result(s) for {len(entities)} record(s)"
            )
        self.results[tag] = results
        return results

    @staticmethod
    def _raise_failures(results: Sequence[OperationResult]) -> None:
        messages = [
            f"Record {index}: {result.detail}"
            for index, result in enumerate(results)
            if not result.success
        ]
        if messages:
            raise PersistenceError.from_messages(messages)


def _backfill(relationships: Iterable[PendingRelationship]) -> None:
    pending = tuple(relationships)
    for relationship in pending:
        if relationship.parent.id is None:
            raise DependencyError(
                f"cannot resolve {relationship.child.entity_type}.{relationship.field}: "
                f"parent {relationship.parent.entity_type} has no identifier"
            )
    for relationship in pending:
        relationship.backfill()
