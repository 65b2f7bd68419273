from __future__ import annotations

import json

import pytest

from unitwork.domain.errors import (
    AGGREGATE_MESSAGE,
    AggregateError,
    DependencyError,
    ErrorNode,
    PersistenceError,
    ValidationError,
)


def test_leaf_serializes_as_single_element_array() -> None:
    assert ErrorNode("Only message").to_json() == ["Only message"]


def test_parent_serializes_children_in_order() -> None:
    node = ErrorNode("Parent message", (ErrorNode("Child A"), ErrorNode("Child B")))

    assert node.dumps() == '["Parent message", [["Child A"], ["Child B"]]]'


def test_json_round_trip_preserves_messages_and_shape() -> None:
    node = ErrorNode(
        "root",
        (
            ErrorNode("first", (ErrorNode("first.a"), ErrorNode("first.b"))),
            ErrorNode("second"),
        ),
    )

    restored = ErrorNode.loads(json.dumps(node.to_json()))

    assert restored == node
    assert restored.messages() == ("root", "first", "first.a", "first.b", "second")
    assert [len(child.children) for child in restored.children] == [2, 0]


@pytest.mark.parametrize(
    "payload",
    [[], "message", [1], ["message", "not-a-list"], ["message", [], "extra"]],
)
def test_from_json_rejects_malformed_nodes(payload: object) -> None:
    with pytest.raises(ValueError, match="Invalid error"):
        ErrorNode.from_json(payload)


def test_render_indents_children() -> None:
    node = ErrorNode("top", (ErrorNode("middle", (ErrorNode("bottom"),)), ErrorNode("side")))

    assert node.render() == "top\n  middle\n    bottom\n  side"


def test_aggregate_error_collects_child_trees() -> None:
    errors = [
        PersistenceError.from_messages(["Record 0: broken", "Record 2: also broken"]),
        DependencyError("circular dependency detected involving account"),
    ]

    aggregate = AggregateError.from_errors(errors)

    assert str(aggregate) == AGGREGATE_MESSAGE
    assert aggregate.to_json() == [
        AGGREGATE_MESSAGE,
        [
            [
                "Record 0: broken; Record 2: also broken",
                [["Record 0: broken"], ["Record 2: also broken"]],
            ],
            ["circular dependency detected involving account"],
        ],
    ]


def test_aggregate_error_from_plain_exception() -> None:
    aggregate = AggregateError.from_exception(KeyError("missing"))

    assert aggregate.children == (ErrorNode("KeyError: 'missing'"),)


def test_error_nodes_are_immutable() -> None:
    error = ValidationError("bad input")

    with pytest.raises(AttributeError):
        error.node.message = "changed"  # type: ignore[misc]
