"""Collect failures of one commit attempt into a single aggregate error."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from unitwork.domain.errors import AggregateError, PersistenceError, UnitOfWorkError

if TYPE_CHECKING:
    from collections.abc import Iterator

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ErrorAggregator:
    _errors: list[UnitOfWorkError] = field(default_factory=list[UnitOfWorkError])

    @property
    def errors(self) -> tuple[UnitOfWorkError, ...]:
        return tuple(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def add(self, error: UnitOfWorkError) -> None:
        self._errors.append(error)

    @contextmanager
    def capture(self, phase: str) -> Iterator[None]:
        """Fold any failure raised inside the block into the collection."""

        try:
            yield
        except UnitOfWorkError as exc:
            log.debug("Collected %s during %s", type(exc).__name__, phase)
            self.add(exc)
        except Exception as exc:  # noqa: BLE001
            log.warning("Unexpected failure during %s: %s", phase, exc)
            self.add(PersistenceError(f"{phase} failed: {exc}"))

    def build(self) -> AggregateError | None:
        if not self._errors:
            return None
        return AggregateError.from_errors(self._errors)

    def raise_if_any(self) -> None:
        error = self.build()
        if error is not None:
            raise error
