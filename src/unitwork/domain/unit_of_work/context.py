"""Execution context shared by a root unit of work and its nested instances."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from unitwork.domain.errors import ValidationError

if TYPE_CHECKING:
    from unitwork.domain.model import EntityRef
    from unitwork.domain.ports import Checkpoint, CheckpointService

    from .engine import UnitOfWork

log = logging.getLogger(__name__)


@dataclass(slots=True, eq=False)
class ExecutionContext:
    """State of one logical execution (for example one inbound request).

    The first unit of work attached becomes the root. Later instances join as
    nested and share the context checkpoint and partial-success policy. Once
    the context checkpoint has been rolled back, or the root has finished, the
    context is closed and cannot be used again.
    """

    root: UnitOfWork | None = None
    checkpoint: Checkpoint | None = None
    allow_partial_success: bool = False
    nested_count: int = 0
    rolled_back: bool = False
    closed: bool = False
    inserted: list[EntityRef] = field(default_factory=list["EntityRef"], repr=False)

    @property
    def is_active(self) -> bool:
        return not (self.closed or self.rolled_back)

    def attach(self, uow: UnitOfWork) -> bool:
        """Attach ``uow``; return whether it became the root."""

        self.require_active()
        if self.root is None:
            self.root = uow
            self.allow_partial_success = False
            return True
        self.nested_count += 1
        return False

    def is_root(self, uow: UnitOfWork) -> bool:
        return self.root is uow

    def enable_partial_success(self, uow: UnitOfWork) -> None:
        if not self.is_root(uow):
            raise ValidationError("only the root may allow partial success")
        if self.nested_count:
            raise ValidationError(
                "partial success must be allowed before nested units of work join the context"
            )
        self.allow_partial_success = True

    def ensure_checkpoint(self, checkpoints: CheckpointService) -> Checkpoint:
        self.require_active()
        if self.checkpoint is None:
            self.checkpoint = checkpoints.create()
            log.debug("Established context checkpoint %r", self.checkpoint)
        return self.checkpoint

    def roll_back(self, checkpoints: CheckpointService) -> None:
        """Undo everything written in this context and clear it."""

        if self.checkpoint is not None and not self.rolled_back:
            log.info("Rolling back execution context")
            checkpoints.rollback(self.checkpoint)
        for entity in self.inserted:
            entity.id = None
        self.rolled_back = True
        self.clear()

    def clear(self) -> None:
        self.root = None
        self.checkpoint = None
        self.allow_partial_success = False
        self.inserted.clear()
        self.closed = True

    def require_active(self) -> None:
        if self.rolled_back:
            raise ValidationError("execution context was rolled back")
        if self.closed:
            raise ValidationError("execution context is closed")
