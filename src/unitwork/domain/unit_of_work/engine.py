"""The unit-of-work engine: registration, commit and checkpoint coordination."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING

from unitwork.domain.errors import (
    AggregateError,
    AlreadyCommittedError,
    ErrorNode,
    UnitOfWorkError,
    ValidationError,
)
from unitwork.domain.model import (
    DELETE_TAG,
    UPDATE_TAG,
    CommitState,
    CommitSummary,
    EntityRef,
    OperationResult,
    Phase,
)

from .aggregate import ErrorAggregator
from .context import ExecutionContext
from .executor import BatchExecutor
from .graph import RelationshipGraph
from .ordering import resolve_insert_order
from .registry import EntityRegistry

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from concurrent.futures import Executor

    from unitwork.domain.model import EntityType
    from unitwork.domain.ports import Checkpoint, UnitOfWorkServices

    type PreCommitHook = Callable[[UnitOfWork], bool]
    type PostCommitHook = Callable[[UnitOfWork], None]
    type CommitNotifier = Callable[[CommitSummary], object]

log = logging.getLogger(__name__)


class UnitOfWork:
    """Stage entity writes and commit them in dependency order.

    An instance created without ``context`` starts a fresh execution context
    and is its root. Instances created with a context join it; the first one
    attached to an empty context becomes the root. A failing commit rolls back
    its own work and, unless the root allowed partial success, the work of
    the whole context.
    """

    def __init__(
        self,
        services: UnitOfWorkServices,
        *,
        context: ExecutionContext | None = None,
        pre_commit: PreCommitHook | None = None,
        post_commit: PostCommitHook | None = None,
        notify: CommitNotifier | None = None,
        notify_executor: Executor | None = None,
    ) -> None:
        self._state = CommitState.UNINITIALIZED
        self._services = services
        self._pre_commit = pre_commit
        self._post_commit = post_commit
        self._notify = notify
        self._notify_executor = notify_executor
        self._registry = EntityRegistry(services.descriptors)
        self._graph = RelationshipGraph()
        self._results: dict[str, tuple[OperationResult, ...]] = {}
        self._local_checkpoint: Checkpoint | None = None

        self.context = context if context is not None else ExecutionContext()
        self._is_root = self.context.attach(self)
        self._state = CommitState.PENDING

    @property
    def state(self) -> CommitState:
        return self._state

    @property
    def is_root(self) -> bool:
        return self._is_root

    @property
    def results(self) -> Mapping[str, tuple[OperationResult, ...]]:
        return MappingProxyType(self._results)

    def results_for(self, tag: str) -> tuple[OperationResult, ...]:
        return self._results.get(tag, ())

    # Registration ------------------------------------------------------------

    def register_new(
        self,
        entities: EntityRef | Iterable[EntityRef] | None,
        *,
        entity_type: EntityType | None = None,
    ) -> None:
        self._require_pending()
        for entity in _as_sequence(entities):
            self._registry.register_new(entity, entity_type=entity_type)

    def register_dirty(
        self,
        entities: EntityRef | Iterable[EntityRef] | None,
        *,
        entity_type: EntityType | None = None,
    ) -> None:
        self._require_pending()
        for entity in _as_sequence(entities):
            self._registry.register_dirty(entity, entity_type=entity_type)

    def register_deleted(
        self,
        entities: EntityRef | Iterable[EntityRef] | None,
        *,
        entity_type: EntityType | None = None,
    ) -> None:
        self._require_pending()
        for entity in _as_sequence(entities):
            self._registry.register_deleted(entity, entity_type=entity_type)

    def register_relationship(
        self,
        child: EntityRef | None,
        field: str | None,
        parent: EntityRef | None,
    ) -> None:
        self._require_pending()
        self._graph.register(child, field, parent)

    def register_junction(  # noqa: PLR0913
        self,
        junction_type: EntityType,
        source_field: str,
        target_field: str,
        source: EntityRef,
        target: EntityRef,
        existing: EntityRef | None = None,
    ) -> EntityRef:
        """Link ``source`` and ``target`` through a junction record and return it."""

        self._require_pending()
        junction = existing
        if junction is None:
            junction = EntityRef(entity_type=junction_type)
            self._registry.register_new(junction, entity_type=junction_type)
        self._graph.register(junction, source_field, source)
        self._graph.register(junction, target_field, target)
        return junction

    def allow_partial_success(self) -> None:
        self.context.enable_partial_success(self)

    # Commit ------------------------------------------------------------------

    def commit(self) -> None:
        if self._state is CommitState.COMMITTING:
            raise AlreadyCommittedError("commit already in progress")
        if self._state is not CommitState.PENDING:
            raise AlreadyCommittedError("already committed")

        self._state = CommitState.COMMITTING
        log.info("Committing unit of work (root=%s)", self._is_root)
        try:
            self._commit()
        except Exception as exc:
            self._state = CommitState.FAILED
            log.info("Unit of work failed: %s", exc)
            try:
                self._roll_back()
            except Exception as rollback_exc:
                log.exception("Rollback after failed commit failed")
                if isinstance(exc, UnitOfWorkError):
                    failure = exc.node
                else:
                    failure = ErrorNode(f"{type(exc).__name__}: {exc}")
                raise AggregateError(
                    (failure, ErrorNode(f"rollback failed: {rollback_exc}"))
                ) from exc
            if isinstance(exc, UnitOfWorkError):
                raise
            raise AggregateError.from_exception(exc) from exc
        else:
            self._state = CommitState.COMMITTED
            log.info("Unit of work committed")
            self.context.inserted.extend(self._staged_new())
            self._dispatch_notification()
        finally:
            if self._is_root:
                self.context.clear()
            self._registry.clear()
            self._graph.clear()

    def _commit(self) -> None:
        self.context.require_active()
        if self._pre_commit is not None and not self._pre_commit(self):
            raise ValidationError("pre-commit check rejected the unit of work")

        checkpoints = self._services.checkpoints
        self.context.ensure_checkpoint(checkpoints)
        self._local_checkpoint = checkpoints.create()

        order = resolve_insert_order(self._registry.new_types, self._graph.dependencies_of)
        log.debug("Insert order: %s", ", ".join(map(str, order)) or "<none>")

        aggregator = ErrorAggregator()
        executor = BatchExecutor(
            writer=self._services.writer,
            registry=self._registry,
            graph=self._graph,
            aggregator=aggregator,
            results=self._results,
        )
        executor.run(order)
        aggregator.raise_if_any()

        if self._post_commit is not None:
            self._post_commit(self)
        # a nested failure may have undone this instance's writes
        self.context.require_active()

    def _roll_back(self) -> None:
        for entity in self._staged_new():
            entity.id = None
        if self.context.rolled_back:
            # the context rollback already undid this instance's writes
            return
        checkpoints = self._services.checkpoints
        if self._local_checkpoint is not None:
            checkpoints.rollback(self._local_checkpoint)
        if not self.context.allow_partial_success:
            self.context.roll_back(checkpoints)

    def _staged_new(self) -> list[EntityRef]:
        return [
            entity
            for entity_type in self._registry.new_types
            for entity in self._registry.new_for(entity_type)
        ]

    def _dispatch_notification(self) -> None:
        if self._notify is None:
            return
        summary = self.summary()
        if self._notify_executor is not None:
            self._notify_executor.submit(_notify_safely, self._notify, summary)
            return
        _notify_safely(self._notify, summary)

    def summary(self) -> CommitSummary:
        inserted = tuple(
            result.id
            for tag, results in self._results.items()
            if tag.startswith(f"{Phase.INSERT}:")
            for result in results
            if result.success
        )
        return CommitSummary(
            inserted_ids=inserted,
            updated_ids=_succeeded_ids(self._results.get(UPDATE_TAG, ())),
            deleted_ids=_succeeded_ids(self._results.get(DELETE_TAG, ())),
        )

    def _require_pending(self) -> None:
        if self._state is not CommitState.PENDING:
            raise AlreadyCommittedError(f"unit of work is {self._state}, not pending")


def _as_sequence(entities: EntityRef | Iterable[EntityRef] | None) -> tuple[EntityRef | None, ...]:
    if entities is None or isinstance(entities, EntityRef):
        return (entities,)
    return tuple(entities)


def _succeeded_ids(results: Iterable[OperationResult]) -> tuple[object, ...]:
    return tuple(result.id for result in results if result.success)


def _notify_safely(notify: CommitNotifier, summary: CommitSummary) -> None:
    try:
        notify(summary)
    except Exception:
        log.exception("Post-commit notification failed")
