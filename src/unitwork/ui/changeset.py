"""Pydantic models describing a changeset file.

A changeset names new records by a local ``ref`` so that relationships and
junctions can point at records that do not have an id yet::

    {
      "new": [
        {"ref": "acme", "type": "account", "fields": {"Name": "Acme"}},
        {"ref": "jane", "type": "contact", "fields": {"LastName": "Doe"}}
      ],
      "relationships": [{"child": "jane", "field": "AccountId", "parent": "acme"}]
    }
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from pathlib import Path


class ChangesetBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class RecordKey(ChangesetBaseModel):
    type: str
    id: int | str


class NewRecord(ChangesetBaseModel):
    ref: str
    type: str
    values: dict[str, Any] = Field(default_factory=dict[str, Any], alias="fields")


class DirtyRecord(RecordKey):
    ref: str | None = None
    values: dict[str, Any] = Field(default_factory=dict[str, Any], alias="fields")


type RecordPointer = str | RecordKey


class RelationshipModel(ChangesetBaseModel):
    child: str
    field: str
    parent: RecordPointer


class JunctionModel(ChangesetBaseModel):
    type: str
    source_field: str
    target_field: str
    source: RecordPointer
    target: RecordPointer
    ref: str | None = None


class Changeset(ChangesetBaseModel):
    new: list[NewRecord] = Field(default_factory=list[NewRecord])
    dirty: list[DirtyRecord] = Field(default_factory=list[DirtyRecord])
    deleted: list[RecordKey] = Field(default_factory=list[RecordKey])
    relationships: list[RelationshipModel] = Field(default_factory=list[RelationshipModel])
    junctions: list[JunctionModel] = Field(default_factory=list[JunctionModel])

    @model_validator(mode="after")
    def _check_refs(self) -> Changeset:
        refs: set[str] = set()
        declared = [record.ref for record in self.new]
        declared.extend(record.ref for record in self.dirty if record.ref is not None)
        declared.extend(junction.ref for junction in self.junctions if junction.ref is not None)
        for ref in declared:
            if ref in refs:
                raise ValueError(f"duplicate ref: {ref}")
            refs.add(ref)

        pointers: list[RecordPointer] = []
        for relationship in self.relationships:
            pointers.extend((relationship.child, relationship.parent))
        for junction in self.junctions:
            pointers.extend((junction.source, junction.target))
        for pointer in pointers:
            if isinstance(pointer, str) and pointer not in refs:
                raise ValueError(f"unknown ref: {pointer}")
        return self

    @classmethod
    def from_path(cls, path: Path) -> Changeset:
        with path.open(encoding="utf-8") as handle:
            return cls.model_validate(json.load(handle))
