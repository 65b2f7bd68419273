from __future__ import annotations

import pytest

from unitwork.domain.model import (
    DELETE_TAG,
    UPDATE_TAG,
    CommitSummary,
    EntityRef,
    EntityType,
    OperationResult,
    insert_tag,
)

ACCOUNT = EntityType("account")


def test_entity_type_rejects_blank_name() -> None:
    with pytest.raises(ValueError, match="must not be blank"):
        EntityType("  ")


def test_entity_refs_compare_by_identity() -> None:
    first = EntityRef.new(ACCOUNT, Name="Acme")
    second = EntityRef.new(ACCOUNT, Name="Acme")

    assert first != second
    assert first == first  # noqa: PLR0124
    assert EntityType("account") == ACCOUNT


def test_entity_ref_field_access() -> None:
    entity = EntityRef.existing(ACCOUNT, 7, Name="Acme")
    entity.set("Industry", "Retail")
    entity.update({"Name": "Acme Corp"})

    assert entity.is_persisted
    assert entity.get("Name") == "Acme Corp"
    assert entity.get("Missing", "fallback") == "fallback"
    assert entity.fields == {"Name": "Acme Corp", "Industry": "Retail"}


def test_operation_tags() -> None:
    assert insert_tag(ACCOUNT) == "insert:account"
    assert UPDATE_TAG == "update"
    assert DELETE_TAG == "delete"


def test_operation_result_wraps_foreign_outcomes() -> None:
    class Outcome:
        id = 3
        success = False
        errors = ["bad value"]

    result = OperationResult.wrap(Outcome())

    assert result == OperationResult(id=3, success=False, errors=("bad value",))
    assert result.detail == "bad value"
    assert OperationResult.failed().detail == "unknown error"


def test_commit_summary_lists_all_succeeded_ids() -> None:
    summary = CommitSummary(inserted_ids=(1, 2), updated_ids=(3,), deleted_ids=(4,))

    assert summary.succeeded_ids == (1, 2, 3, 4)
