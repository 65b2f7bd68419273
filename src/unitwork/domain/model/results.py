"""Per-item write results and commit summaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .enums import Phase

if TYPE_CHECKING:
    from unitwork.domain.ports.services import WriteOutcome

    from .entity import EntityType

UPDATE_TAG = str(Phase.UPDATE)
DELETE_TAG = str(Phase.DELETE)


def insert_tag(entity_type: EntityType) -> str:
    """Result key for the grouped insert of ``entity_type``."""

    return f"{Phase.INSERT}:{entity_type}"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of writing one entity in one batch call."""

    id: Any = None
    success: bool = True
    errors: tuple[str, ...] = ()

    @classmethod
    def wrap(cls, outcome: WriteOutcome) -> OperationResult:
        if isinstance(outcome, OperationResult):
            return outcome
        return cls(id=outcome.id, success=bool(outcome.success), errors=tuple(outcome.errors))

    @classmethod
    def failed(cls, *errors: str, id: Any = None) -> OperationResult:  # noqa: A002
        return cls(id=id, success=False, errors=errors)

    @property
    def detail(self) -> str:
        return "; ".join(self.errors) if self.errors else "unknown error"


@dataclass(frozen=True, slots=True)
class CommitSummary:
    """Identifiers written successfully by one committed unit of work."""

    inserted_ids: tuple[Any, ...] = ()
    updated_ids: tuple[Any, ...] = ()
    deleted_ids: tuple[Any, ...] = ()

    @property
    def succeeded_ids(self) -> tuple[Any, ...]:
        return (*self.inserted_ids, *self.updated_ids, *self.deleted_ids)
