"""Structured errors raised by the unit-of-work engine.

Every engine error carries an immutable :class:`ErrorNode` tree. The tree is
built bottom-up (leaf messages first, the aggregate last) and never mutated
after construction, so rendering it as text or JSON is a pure function.

JSON encoding of a node:

- leaf: ``[message]``
- node with children: ``[message, [child, child, ...]]``
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

AGGREGATE_MESSAGE = "multiple errors occurred during transaction"

type ErrorJson = list[Any]


@dataclass(frozen=True, slots=True)
class ErrorNode:
    """One message in an error tree."""

    message: str
    children: tuple[ErrorNode, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator[ErrorNode]:
        """Yield this node and all descendants depth-first, parents first."""

        yield self
        for child in self.children:
            yield from child.walk()

    def messages(self) -> tuple[str, ...]:
        return tuple(node.message for node in self.walk())

    def render(self, *, indent: str = "  ") -> str:
        lines: list[str] = []
        _render_into(lines, self, depth=0, indent=indent)
        return "\n".join(lines)

    def to_json(self) -> ErrorJson:
        if not self.children:
            return [self.message]
        return [self.message, [child.to_json() for child in self.children]]

    @classmethod
    def from_json(cls, data: object) -> ErrorNode:
        if not isinstance(data, list) or not data:
            raise ValueError(f"Invalid error node: {data!r}")
        items = cast(list[object], data)
        message = items[0]
        if not isinstance(message, str):
            raise ValueError(f"Invalid error message: {message!r}")
        if len(items) == 1:
            return cls(message)
        if len(items) != 2 or not isinstance(items[1], list):  # noqa: PLR2004
            raise ValueError(f"Invalid error children for {message!r}")
        children = cast(list[object], items[1])
        return cls(message, tuple(cls.from_json(child) for child in children))

    def dumps(self) -> str:
        return json.dumps(self.to_json())

    @classmethod
    def loads(cls, payload: str) -> ErrorNode:
        return cls.from_json(json.loads(payload))


def _render_into(lines: list[str], node: ErrorNode, *, depth: int, indent: str) -> None:
    lines.append(f"{indent * depth}{node.message}")
    for child in node.children:
        _render_into(lines, child, depth=depth + 1, indent=indent)


class UnitOfWorkError(Exception):
    """Base class of all structured engine errors."""

    def __init__(self, message: str, *, children: Iterable[ErrorNode] = ()) -> None:
        super().__init__(message)
        self.node = ErrorNode(message, tuple(children))

    @property
    def message(self) -> str:
        return self.node.message

    @property
    def children(self) -> tuple[ErrorNode, ...]:
        return self.node.children

    def render(self) -> str:
        return self.node.render()

    def to_json(self) -> ErrorJson:
        return self.node.to_json()


class ValidationError(UnitOfWorkError):
    """Invalid argument or call made in an invalid state."""


class DependencyError(UnitOfWorkError):
    """Entity types cannot be written in a dependency-correct order."""


class PersistenceError(UnitOfWorkError):
    """One or more items failed in a backend batch call."""

    @classmethod
    def from_messages(cls, messages: Sequence[str]) -> PersistenceError:
        return cls("; ".join(messages), children=(ErrorNode(message) for message in messages))


class AggregateError(UnitOfWorkError):
    """All failures collected during one commit attempt."""

    def __init__(self, children: Iterable[ErrorNode] = ()) -> None:
        super().__init__(AGGREGATE_MESSAGE, children=children)

    @classmethod
    def from_errors(cls, errors: Iterable[UnitOfWorkError]) -> AggregateError:
        return cls(error.node for error in errors)

    @classmethod
    def from_exception(cls, exc: BaseException) -> AggregateError:
        detail = str(exc) or type(exc).__name__
        return cls((ErrorNode(f"{type(exc).__name__}: {detail}"),))


class AlreadyCommittedError(UnitOfWorkError):
    """Commit or registration attempted on an instance that is no longer pending."""
