"""Checkpoints implemented as SQL savepoints on a session."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)

_savepoint_ids = itertools.count(1)


@dataclass(frozen=True, slots=True)
class Savepoint:
    name: str


class SqlAlchemyCheckpoints:
    """Issue ``SAVEPOINT`` statements directly.

    Rolling back to a savepoint keeps it usable and discards every savepoint
    created after it, which is exactly the checkpoint contract the engine
    expects.
    """

    def __init__(self, session: Session, *, prefix: str = "uow") -> None:
        self.session = session
        self.prefix = prefix

    def create(self) -> Savepoint:
        savepoint = Savepoint(f"{self.prefix}_{next(_savepoint_ids)}")
        self.session.execute(text(f"SAVEPOINT {savepoint.name}"))
        log.debug("Created savepoint %s", savepoint.name)
        return savepoint

    def rollback(self, checkpoint: object) -> None:
        savepoint = _require_savepoint(checkpoint)
        self.session.execute(text(f"ROLLBACK TO SAVEPOINT {savepoint.name}"))
        log.debug("Rolled back to savepoint %s", savepoint.name)

    def release(self, checkpoint: object) -> None:
        savepoint = _require_savepoint(checkpoint)
        self.session.execute(text(f"RELEASE SAVEPOINT {savepoint.name}"))


def _require_savepoint(checkpoint: object) -> Savepoint:
    if not isinstance(checkpoint, Savepoint):
        raise TypeError(f"Expected Savepoint, got {type(checkpoint).__name__}")
    return checkpoint
