"""Ports for the services a unit of work writes through."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from unitwork.domain.model import EntityRef, EntityType


type Checkpoint = object


@runtime_checkable
class WriteOutcome(Protocol):
    """Result of writing one item, as reported by a backend."""

    @property
    def id(self) -> Any: ...

    @property
    def success(self) -> bool: ...

    @property
    def errors(self) -> Sequence[str]: ...


@dataclass(frozen=True, slots=True)
class WriteOptions:
    """Options passed to grouped insert/update calls.

    ``all_or_nothing=False`` asks the backend to attempt every item and report
    each failure instead of stopping at the first one.
    """

    all_or_nothing: bool = False


@runtime_checkable
class TypeDescriptorService(Protocol):
    """Answers schema/capability questions about entity types."""

    def is_creatable(self, entity_type: EntityType) -> bool: ...

    def type_of(self, value: object) -> EntityType | None: ...


@runtime_checkable
class CheckpointService(Protocol):
    """Restore points in the backing transaction.

    Rolling back to a checkpoint undoes every write made since it was created
    and invalidates checkpoints created after it.
    """

    def create(self) -> Checkpoint: ...

    def rollback(self, checkpoint: Checkpoint) -> None: ...


@runtime_checkable
class BatchWriteService(Protocol):
    """Grouped persistence calls; results are ordered like the input."""

    def insert(
        self, entities: Sequence[EntityRef], options: WriteOptions
    ) -> Sequence[WriteOutcome]: ...

    def update(
        self, entities: Sequence[EntityRef], options: WriteOptions
    ) -> Sequence[WriteOutcome]: ...

    def delete(self, entities: Sequence[EntityRef]) -> Sequence[WriteOutcome]: ...


@dataclass(frozen=True, slots=True)
class UnitOfWorkServices:
    """Services one unit of work is wired to."""

    descriptors: TypeDescriptorService
    checkpoints: CheckpointService
    writer: BatchWriteService
