"""
Entity building blocks:
type descriptors and the tagged entity handle staged for writes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class EntityType:
    """Runtime descriptor of an entity's schema/type."""

    name: str

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("entity type name must not be blank")

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False, kw_only=True)
class EntityRef:
    """Handle to one domain record.

    ``id`` stays ``None`` until the record is persisted. Equality is identity:
    two handles with identical field values are still two different records.
    """

    entity_type: EntityType
    id: Any = None
    fields: dict[str, Any] = field(default_factory=dict[str, Any])

    @classmethod
    def new(cls, entity_type: EntityType, /, **fields: Any) -> EntityRef:
        return cls(entity_type=entity_type, fields=dict(fields))

    @classmethod
    def existing(cls, entity_type: EntityType, id: Any, /, **fields: Any) -> EntityRef:  # noqa: A002
        return cls(entity_type=entity_type, id=id, fields=dict(fields))

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def update(self, values: Mapping[str, Any]) -> None:
        self.fields.update(values)

    def __repr__(self) -> str:
        return f"EntityRef({self.entity_type}, id={self.id!r})"
