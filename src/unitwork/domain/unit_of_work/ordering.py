"""Dependency-correct insert order over staged entity types."""

from __future__ import annotations

from typing import TYPE_CHECKING

from unitwork.domain.errors import DependencyError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from unitwork.domain.model import EntityType


def resolve_insert_order(
    types: Sequence[EntityType],
    dependencies: Callable[[EntityType], Sequence[EntityType]],
) -> list[EntityType]:
    """Return ``types`` ordered so that every type follows the types it depends on.

    Only dependencies that are themselves in ``types`` count. Types without
    edges keep their relative first-seen order. A cycle, including a type
    depending on itself, raises :class:`DependencyError` before anything is
    written.
    """

    staged = set(types)
    ordered: list[EntityType] = []
    visited: set[EntityType] = set()
    visiting: set[EntityType] = set()

    def visit(entity_type: EntityType) -> None:
        if entity_type in visited:
            return
        if entity_type in visiting:
            raise DependencyError(f"circular dependency detected involving {entity_type}")
        visiting.add(entity_type)
        for parent in dependencies(entity_type):
            if parent in staged:
                visit(parent)
        visiting.discard(entity_type)
        visited.add(entity_type)
        ordered.append(entity_type)

    for entity_type in types:
        visit(entity_type)
    return ordered
