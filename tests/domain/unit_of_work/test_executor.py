from __future__ import annotations

import pytest

from tests.helpers.fakes import ACCOUNT, CONTACT, FakeStore
from unitwork.domain.errors import AggregateError, DependencyError, PersistenceError
from unitwork.domain.model import DELETE_TAG, UPDATE_TAG, EntityRef, insert_tag
from unitwork.domain.unit_of_work import (
    BatchExecutor,
    EntityRegistry,
    ErrorAggregator,
    RelationshipGraph,
)
from unitwork.domain.unit_of_work.executor import BATCH_OPTIONS


@pytest.fixture
def registry(store: FakeStore) -> EntityRegistry:
    return EntityRegistry(store)


@pytest.fixture
def graph() -> RelationshipGraph:
    return RelationshipGraph()


@pytest.fixture
def aggregator() -> ErrorAggregator:
    return ErrorAggregator()


@pytest.fixture
def executor(
    store: FakeStore,
    registry: EntityRegistry,
    graph: RelationshipGraph,
    aggregator: ErrorAggregator,
) -> BatchExecutor:
    return BatchExecutor(writer=store, registry=registry, graph=graph, aggregator=aggregator)


def test_run_inserts_in_order_and_backfills_children(
    store: FakeStore,
    registry: EntityRegistry,
    graph: RelationshipGraph,
    aggregator: ErrorAggregator,
    executor: BatchExecutor,
) -> None:
    account = EntityRef.new(ACCOUNT, Name="Acme")
    contact = EntityRef.new(CONTACT, LastName="Doe")
    registry.register_new(contact)
    registry.register_new(account)
    graph.register(contact, "AccountId", account)

    results = executor.run([ACCOUNT, CONTACT])

    assert not aggregator.has_errors
    assert [call.entity_type for call in store.calls_of("insert")] == [ACCOUNT, CONTACT]
    assert all(call.options is BATCH_OPTIONS for call in store.calls_of("insert"))
    assert account.id is not None
    assert contact.get("AccountId") == account.id
    assert store.row(CONTACT, contact.id)["AccountId"] == account.id
    assert set(results) == {insert_tag(ACCOUNT), insert_tag(CONTACT)}


def test_run_skips_empty_phases(store: FakeStore, executor: BatchExecutor) -> None:
    assert executor.run([]) == {}
    assert store.calls == []


def test_failed_items_become_indexed_persistence_errors(
    store: FakeStore,
    registry: EntityRegistry,
    aggregator: ErrorAggregator,
    executor: BatchExecutor,
) -> None:
    ok = EntityRef.new(ACCOUNT, Name="Acme")
    bad = EntityRef.new(ACCOUNT)
    registry.register_new(ok)
    registry.register_new(bad)

    results = executor.run([ACCOUNT])

    assert [result.success for result in results[insert_tag(ACCOUNT)]] == [True, False]
    assert ok.id is not None
    assert bad.id is None
    assert store.count(ACCOUNT) == 1
    (error,) = aggregator.errors
    assert isinstance(error, PersistenceError)
    assert error.children[0].message == "Record 1: required fields are missing: [Name]"


def test_update_and_delete_run_after_inserts(
    store: FakeStore,
    registry: EntityRegistry,
    executor: BatchExecutor,
) -> None:
    kept = store.seed(ACCOUNT, Name="Old")
    doomed = store.seed(ACCOUNT, Name="Gone")
    kept.set("Name", "New")
    registry.register_new(EntityRef.new(ACCOUNT, Name="Fresh"))
    registry.register_dirty(kept)
    registry.register_deleted(doomed)

    results = executor.run([ACCOUNT])

    assert [call.operation for call in store.calls] == ["insert", "update", "delete"]
    assert store.row(ACCOUNT, kept.id)["Name"] == "New"
    assert doomed.id not in store.rows[ACCOUNT]
    assert results[UPDATE_TAG][0].id == kept.id
    assert results[DELETE_TAG][0].id == doomed.id


def test_dirty_children_are_backfilled_before_update(
    store: FakeStore,
    registry: EntityRegistry,
    graph: RelationshipGraph,
    executor: BatchExecutor,
) -> None:
    contact = store.seed(CONTACT, LastName="Doe")
    account = EntityRef.new(ACCOUNT, Name="Acme")
    registry.register_new(account)
    registry.register_dirty(contact)
    graph.register(contact, "AccountId", account)

    executor.run([ACCOUNT])

    assert store.row(CONTACT, contact.id)["AccountId"] == account.id


def test_unidentified_parent_is_a_dependency_error(
    store: FakeStore,
    registry: EntityRegistry,
    graph: RelationshipGraph,
    aggregator: ErrorAggregator,
    executor: BatchExecutor,
) -> None:
    contact = EntityRef.new(CONTACT, LastName="Doe")
    registry.register_new(contact)
    graph.register(contact, "AccountId", EntityRef.new(ACCOUNT, Name="never staged"))

    executor.run([CONTACT])

    (error,) = aggregator.errors
    assert isinstance(error, DependencyError)
    assert "contact.AccountId" in error.message
    assert store.calls == []


def test_unexpected_exceptions_are_collected_and_later_phases_still_run(
    store: FakeStore,
    registry: EntityRegistry,
    aggregator: ErrorAggregator,
    executor: BatchExecutor,
) -> None:
    store.explode_on.add("insert")
    registry.register_new(EntityRef.new(ACCOUNT, Name="Acme"))
    registry.register_deleted(store.seed(ACCOUNT, Name="Gone"))

    executor.run([ACCOUNT])

    assert [call.operation for call in store.calls] == ["insert", "delete"]
    error = aggregator.build()
    assert isinstance(error, AggregateError)
    assert error.children[0].message == "insert of account failed: insert backend unavailable"


def test_result_count_mismatch_is_reported(
    registry: EntityRegistry,
    graph: RelationshipGraph,
    aggregator: ErrorAggregator,
) -> None:
    class ShortWriter(FakeStore):
        def delete(self, entities):  # noqa: ANN001, ANN202
            return super().delete(entities)[:-1]

    writer = ShortWriter()
    executor = BatchExecutor(writer=writer, registry=registry, graph=graph, aggregator=aggregator)
    registry.register_deleted(writer.seed(ACCOUNT, Name="A"))
    registry.register_deleted(writer.seed(ACCOUNT, Name="B"))

    executor.run([])

    (error,) = aggregator.errors
    assert error.message == "delete returned 1 result(s) for 2 record(s)"
