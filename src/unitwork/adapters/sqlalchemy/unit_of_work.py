"""SQLAlchemy-backed transactions handing out units of work."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from unitwork.config import get_database_config, get_schema_config
from unitwork.domain.ports import UnitOfWorkServices
from unitwork.domain.unit_of_work import UnitOfWork

from .checkpoints import SqlAlchemyCheckpoints
from .schema import SqlAlchemySchema
from .writer import SqlAlchemyBatchWriter

if TYPE_CHECKING:
    from collections.abc import Callable
    from concurrent.futures import Executor
    from types import TracebackType

    from sqlalchemy import MetaData
    from sqlalchemy.engine import Engine

    from unitwork.config import SchemaConfig
    from unitwork.domain.model import CommitSummary
    from unitwork.domain.unit_of_work import ExecutionContext


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None
    schema: SqlAlchemySchema | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None or self.schema is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call unitwork.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a transaction."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(  # noqa: PLR0913
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    metadata: MetaData | None = None,
    schema_config: SchemaConfig | None = None,
    create_tables: bool = False,
    force: bool = False,
) -> None:
    """Initialise the engine and the schema used to describe entity types.

    Without ``metadata`` the tables are reflected from the database.
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    config = schema_config or get_schema_config()
    if metadata is None:
        schema = SqlAlchemySchema.reflect(resolved_engine, config=config)
    else:
        if create_tables:
            metadata.create_all(resolved_engine)
        schema = SqlAlchemySchema(metadata, config=config)

    _STATE.engine = resolved_engine
    _STATE.schema = schema


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.schema = None


class SqlAlchemyTransaction:
    """One database session plus the services units of work write through.

    Units of work only move savepoints around; making their writes durable
    is up to :meth:`commit`. Leaving the block with an exception rolls the
    whole session back.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self.schema: SqlAlchemySchema = _require_schema()
        self._session: Session | None = None
        self._services: UnitOfWorkServices | None = None

    def __enter__(self) -> SqlAlchemyTransaction:
        self.session = self.session_factory()
        self._services = UnitOfWorkServices(
            descriptors=self.schema,
            checkpoints=SqlAlchemyCheckpoints(self.session),
            writer=SqlAlchemyBatchWriter(self.session, self.schema),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._services = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Transaction session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Transaction session already initialised")
        self._session = session

    @property
    def services(self) -> UnitOfWorkServices:
        if self._services is None:
            raise StartupError("Transaction session not initialised")
        return self._services

    def unit_of_work(
        self,
        *,
        context: ExecutionContext | None = None,
        pre_commit: Callable[[UnitOfWork], bool] | None = None,
        post_commit: Callable[[UnitOfWork], None] | None = None,
        notify: Callable[[CommitSummary], object] | None = None,
        notify_executor: Executor | None = None,
    ) -> UnitOfWork:
        return UnitOfWork(
            self.services,
            context=context,
            pre_commit=pre_commit,
            post_commit=post_commit,
            notify=notify,
            notify_executor=notify_executor,
        )

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


def _require_schema() -> SqlAlchemySchema:
    if _STATE.schema is None:
        raise StartupError("SQLAlchemy adapter not initialised")
    return _STATE.schema
