from __future__ import annotations

import pytest

from tests.helpers.fakes import ACCOUNT, AUDIT_LOG, CONTACT, FakeStore
from unitwork.domain.errors import ValidationError
from unitwork.domain.model import EntityRef, EntityType
from unitwork.domain.unit_of_work import EntityRegistry


@pytest.fixture
def registry(store: FakeStore) -> EntityRegistry:
    return EntityRegistry(store)


def test_register_new_keeps_type_and_item_order(registry: EntityRegistry) -> None:
    first_contact = EntityRef.new(CONTACT, LastName="A")
    account = EntityRef.new(ACCOUNT, Name="Acme")
    second_contact = EntityRef.new(CONTACT, LastName="B")

    for entity in (first_contact, account, second_contact):
        registry.register_new(entity)

    assert registry.new_types == (CONTACT, ACCOUNT)
    assert registry.new_for(CONTACT) == (first_contact, second_contact)


def test_register_new_is_idempotent_per_reference(registry: EntityRegistry) -> None:
    account = EntityRef.new(ACCOUNT, Name="Acme")
    twin = EntityRef.new(ACCOUNT, Name="Acme")

    registry.register_new(account)
    registry.register_new(account)
    registry.register_new(twin)

    assert registry.new_for(ACCOUNT) == (account, twin)


def test_register_new_rejects_invalid_entities(registry: EntityRegistry) -> None:
    with pytest.raises(ValidationError, match="entity is None"):
        registry.register_new(None)
    with pytest.raises(ValidationError, match="is not creatable"):
        registry.register_new(EntityRef.new(AUDIT_LOG))
    with pytest.raises(ValidationError, match="only new records"):
        registry.register_new(EntityRef.existing(ACCOUNT, 1))
    with pytest.raises(ValidationError, match="expected contact, got account"):
        registry.register_new(EntityRef.new(ACCOUNT), entity_type=CONTACT)
    with pytest.raises(ValidationError, match="expected EntityRef"):
        registry.register_new({"Name": "Acme"})  # type: ignore[arg-type]


def test_register_rejects_types_unknown_to_descriptors() -> None:
    class NoTypes(FakeStore):
        def type_of(self, value: object) -> EntityType | None:
            _ = value
            return None

    registry = EntityRegistry(NoTypes())

    with pytest.raises(ValidationError, match="unknown entity type account"):
        registry.register_dirty(EntityRef.existing(ACCOUNT, 1))


def test_register_dirty_skips_entities_staged_as_new(registry: EntityRegistry) -> None:
    account = EntityRef.new(ACCOUNT, Name="Acme")
    registry.register_new(account)

    registry.register_dirty(account)

    assert registry.dirty == ()


def test_register_dirty_requires_identifier(registry: EntityRegistry) -> None:
    with pytest.raises(ValidationError, match="cannot be registered as dirty"):
        registry.register_dirty(EntityRef.new(ACCOUNT, Name="Acme"))


def test_register_dirty_merges_fields_for_same_identifier(registry: EntityRegistry) -> None:
    first = EntityRef.existing(ACCOUNT, 5, Name="Acme")
    second = EntityRef.existing(ACCOUNT, 5, Industry="Retail")

    registry.register_dirty(first)
    registry.register_dirty(second)

    assert registry.dirty == (first,)
    assert first.fields == {"Name": "Acme", "Industry": "Retail"}


def test_register_deleted_requires_identifier_and_drops_dirty(registry: EntityRegistry) -> None:
    account = EntityRef.existing(ACCOUNT, 5, Name="Acme")
    registry.register_dirty(account)

    registry.register_deleted(account)

    assert registry.dirty == ()
    assert registry.deleted == (account,)
    with pytest.raises(ValidationError, match="cannot be registered for deletion"):
        registry.register_deleted(EntityRef.new(ACCOUNT))


def test_clear_discards_everything(registry: EntityRegistry) -> None:
    registry.register_new(EntityRef.new(ACCOUNT, Name="Acme"))
    registry.register_dirty(EntityRef.existing(ACCOUNT, 1))
    registry.register_deleted(EntityRef.existing(ACCOUNT, 2))

    registry.clear()

    assert registry.is_empty
