"""Pending foreign-key assignments between staged entities.

Each relationship also contributes one type-level edge ``child -> parent``.
Edges are kept in first-seen order so that ordering stays deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from unitwork.domain.model import EntityRef, EntityType


@dataclass(frozen=True, slots=True, eq=False)
class PendingRelationship:
    """``child.fields[field]`` receives ``parent.id`` once the parent is identified."""

    child: EntityRef
    field: str
    parent: EntityRef

    def backfill(self) -> None:
        self.child.set(self.field, self.parent.id)


@dataclass(slots=True)
class RelationshipGraph:
    _relationships: list[PendingRelationship] = field(
        default_factory=list["PendingRelationship"], repr=False
    )
    _dependencies: dict[EntityType, list[EntityType]] = field(
        default_factory=dict["EntityType", list["EntityType"]], repr=False
    )

    @property
    def relationships(self) -> tuple[PendingRelationship, ...]:
        return tuple(self._relationships)

    def register(
        self,
        child: EntityRef | None,
        field_name: str | None,
        parent: EntityRef | None,
    ) -> PendingRelationship | None:
        if child is None or field_name is None or parent is None:
            return None
        relationship = PendingRelationship(child=child, field=field_name, parent=parent)
        self._relationships.append(relationship)
        parents = self._dependencies.setdefault(child.entity_type, [])
        if parent.entity_type not in parents:
            parents.append(parent.entity_type)
        return relationship

    def dependencies_of(self, entity_type: EntityType) -> tuple[EntityType, ...]:
        return tuple(self._dependencies.get(entity_type, ()))

    def relationships_for_type(self, entity_type: EntityType) -> tuple[PendingRelationship, ...]:
        return tuple(rel for rel in self._relationships if rel.child.entity_type == entity_type)

    def relationships_for(self, child: EntityRef) -> tuple[PendingRelationship, ...]:
        return tuple(rel for rel in self._relationships if rel.child is child)

    def clear(self) -> None:
        self._relationships.clear()
        self._dependencies.clear()
