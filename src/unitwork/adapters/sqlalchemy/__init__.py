"""SQLAlchemy adapter package for unitwork."""

from __future__ import annotations

from .checkpoints import Savepoint, SqlAlchemyCheckpoints
from .schema import SqlAlchemySchema, UnknownEntityTypeError
from .unit_of_work import (
    SqlAlchemyTransaction,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from .writer import RowRejectedError, SqlAlchemyBatchWriter

__all__ = [
    "RowRejectedError",
    "Savepoint",
    "SqlAlchemyBatchWriter",
    "SqlAlchemyCheckpoints",
    "SqlAlchemySchema",
    "SqlAlchemyTransaction",
    "StartupError",
    "UnknownEntityTypeError",
    "configured_engine",
    "is_started",
    "shutdown",
    "startup",
]
