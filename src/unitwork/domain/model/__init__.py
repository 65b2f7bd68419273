"""Entity model used by the unit-of-work engine."""

from __future__ import annotations

from .entity import EntityRef, EntityType
from .enums import CommitState, Phase
from .results import DELETE_TAG, UPDATE_TAG, CommitSummary, OperationResult, insert_tag

__all__ = [
    "DELETE_TAG",
    "UPDATE_TAG",
    "CommitState",
    "CommitSummary",
    "EntityRef",
    "EntityType",
    "OperationResult",
    "Phase",
    "insert_tag",
]
