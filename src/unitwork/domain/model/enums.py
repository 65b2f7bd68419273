"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class CommitState(StrEnum):
    """Lifecycle of one unit-of-work instance."""

    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class Phase(StrEnum):
    """Write phases executed during a commit."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
