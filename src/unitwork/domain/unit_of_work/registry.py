"""Entities staged for insert, update and delete within one unit of work."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from unitwork.domain.errors import ValidationError
from unitwork.domain.model import EntityRef, EntityType

if TYPE_CHECKING:
    from unitwork.domain.ports import TypeDescriptorService

log = logging.getLogger(__name__)

type _Key = tuple[EntityType, Any]


def _key(entity: EntityRef) -> _Key:
    return (entity.entity_type, entity.id)


@dataclass(slots=True)
class EntityRegistry:
    """Staged-new bucket, dirty set and deleted set of one unit of work.

    All three collections keep registration order. Registration only does
    bookkeeping; it never touches the backing store.
    """

    descriptors: TypeDescriptorService
    _new_by_type: dict[EntityType, list[EntityRef]] = field(
        default_factory=dict[EntityType, list[EntityRef]], repr=False
    )
    _dirty: dict[_Key, EntityRef] = field(default_factory=dict[_Key, EntityRef], repr=False)
    _deleted: dict[_Key, EntityRef] = field(default_factory=dict[_Key, EntityRef], repr=False)

    @property
    def new_types(self) -> tuple[EntityType, ...]:
        return tuple(self._new_by_type)

    @property
    def dirty(self) -> tuple[EntityRef, ...]:
        return tuple(self._dirty.values())

    @property
    def deleted(self) -> tuple[EntityRef, ...]:
        return tuple(self._deleted.values())

    @property
    def is_empty(self) -> bool:
        return not (self._new_by_type or self._dirty or self._deleted)

    def new_for(self, entity_type: EntityType) -> tuple[EntityRef, ...]:
        return tuple(self._new_by_type.get(entity_type, ()))

    def is_staged_new(self, entity: EntityRef) -> bool:
        bucket = self._new_by_type.get(entity.entity_type, ())
        return any(staged is entity for staged in bucket)

    def is_dirty(self, entity: EntityRef) -> bool:
        return entity.id is not None and self._dirty.get(_key(entity)) is entity

    def register_new(
        self, entity: EntityRef | None, *, entity_type: EntityType | None = None
    ) -> None:
        checked = self._check(entity, entity_type=entity_type, action="register new")
        if not self.descriptors.is_creatable(checked.entity_type):
            raise ValidationError(f"{checked.entity_type} is not creatable")
        if checked.id is not None:
            raise ValidationError(
                f"only new records can be registered as new: {checked.entity_type} {checked.id}"
            )
        if self.is_staged_new(checked):
            return
        self._new_by_type.setdefault(checked.entity_type, []).append(checked)

    def register_dirty(
        self, entity: EntityRef | None, *, entity_type: EntityType | None = None
    ) -> None:
        checked = self._check(entity, entity_type=entity_type, action="register dirty")
        if self.is_staged_new(checked):
            # written by the pending insert
            return
        if checked.id is None:
            raise ValidationError(
                f"new records cannot be registered as dirty: {checked.entity_type}"
            )
        existing = self._dirty.get(_key(checked))
        if existing is not None and existing is not checked:
            log.debug("Merging fields of %r into staged dirty entity", checked)
            existing.update(checked.fields)
            return
        self._dirty[_key(checked)] = checked

    def register_deleted(
        self, entity: EntityRef | None, *, entity_type: EntityType | None = None
    ) -> None:
        checked = self._check(entity, entity_type=entity_type, action="register deleted")
        if checked.id is None:
            raise ValidationError(
                f"new records cannot be registered for deletion: {checked.entity_type}"
            )
        self._dirty.pop(_key(checked), None)
        self._deleted.setdefault(_key(checked), checked)

    def clear(self) -> None:
        self._new_by_type.clear()
        self._dirty.clear()
        self._deleted.clear()

    def _check(
        self,
        entity: EntityRef | None,
        *,
        entity_type: EntityType | None,
        action: str,
    ) -> EntityRef:
        if entity is None:
            raise ValidationError(f"cannot {action}: entity is None")
        if not isinstance(entity, EntityRef):
            raise ValidationError(  # noqa: TRY004
                f"cannot {action}: expected EntityRef, got {type(entity).__name__}"
            )
        described = self.descriptors.type_of(entity)
        if described is None:
            raise ValidationError(f"cannot {action}: unknown entity type {entity.entity_type}")
        if described != entity.entity_type:
            raise ValidationError(
                f"cannot {action}: {entity.entity_type} is not described as {described}"
            )
        if entity_type is not None and entity.entity_type != entity_type:
            raise ValidationError(
                f"cannot {action}: expected {entity_type}, got {entity.entity_type}"
            )
        return entity
