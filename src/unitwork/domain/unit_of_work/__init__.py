"""Unit-of-work engine.

Flow of one commit:
1) establish (or join) the execution context checkpoint, then a local one
2) order staged-new entity types by their foreign-key dependencies
3) per type: backfill foreign keys, insert the type's batch
4) update the dirty set, delete the deleted set
5) raise one aggregate error if anything failed, after rolling back
"""

from __future__ import annotations

from .aggregate import ErrorAggregator
from .context import ExecutionContext
from .engine import UnitOfWork
from .executor import BatchExecutor
from .graph import PendingRelationship, RelationshipGraph
from .ordering import resolve_insert_order
from .registry import EntityRegistry

__all__ = [
    "BatchExecutor",
    "EntityRegistry",
    "ErrorAggregator",
    "ExecutionContext",
    "PendingRelationship",
    "RelationshipGraph",
    "UnitOfWork",
    "resolve_insert_order",
]
