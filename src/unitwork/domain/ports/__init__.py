"""Ports consumed by the unit-of-work engine."""

from __future__ import annotations

from .services import (
    BatchWriteService,
    Checkpoint,
    CheckpointService,
    TypeDescriptorService,
    UnitOfWorkServices,
    WriteOptions,
    WriteOutcome,
)

__all__ = [
    "BatchWriteService",
    "Checkpoint",
    "CheckpointService",
    "TypeDescriptorService",
    "UnitOfWorkServices",
    "WriteOptions",
    "WriteOutcome",
]
