"""Type descriptors backed by SQLAlchemy table metadata."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import MetaData

from unitwork.config import SchemaConfig
from unitwork.domain.model import EntityRef, EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Column, Table
    from sqlalchemy.engine import Connection, Engine

log = logging.getLogger(__name__)


class UnknownEntityTypeError(ValueError):
    """Raised when no table backs the requested entity type."""


class SqlAlchemySchema:
    """Describe entity types as the tables of one ``MetaData``.

    Every table is one entity type named after the table. A type is creatable
    unless it is configured read-only or its table lacks the identifier column.
    """

    def __init__(self, metadata: MetaData, *, config: SchemaConfig | None = None) -> None:
        self.metadata = metadata
        self.config = config or SchemaConfig()

    @classmethod
    def reflect(
        cls, bind: Engine | Connection, *, config: SchemaConfig | None = None
    ) -> SqlAlchemySchema:
        metadata = MetaData()
        metadata.reflect(bind=bind)
        log.debug("Reflected %d table(s)", len(metadata.tables))
        return cls(metadata, config=config)

    @property
    def entity_types(self) -> tuple[EntityType, ...]:
        return tuple(EntityType(name) for name in self.metadata.tables)

    def entity_type(self, name: str) -> EntityType:
        if name not in self.metadata.tables:
            raise UnknownEntityTypeError(f"Unknown entity type: {name}")
        return EntityType(name)

    def is_creatable(self, entity_type: EntityType) -> bool:
        table = self.metadata.tables.get(entity_type.name)
        if table is None or entity_type.name in self.config.read_only_types:
            return False
        return self.config.identifier_column in table.c

    def type_of(self, value: object) -> EntityType | None:
        if not isinstance(value, EntityRef):
            return None
        if value.entity_type.name not in self.metadata.tables:
            return None
        return value.entity_type

    def table_for(self, entity_type: EntityType) -> Table:
        table = self.metadata.tables.get(entity_type.name)
        if table is None:
            raise UnknownEntityTypeError(f"Unknown entity type: {entity_type}")
        return table

    def identifier_column(self, table: Table) -> Column[object]:
        return table.c[self.config.identifier_column]

    def missing_required(self, table: Table, values: Mapping[str, object]) -> list[str]:
        """Names of non-nullable columns without defaults that ``values`` leaves empty."""

        missing: list[str] = []
        for column in table.columns:
            if column.primary_key or column.nullable:
                continue
            if column.default is not None or column.server_default is not None:
                continue
            if values.get(column.key) is None:
                missing.append(column.name)
        return missing
