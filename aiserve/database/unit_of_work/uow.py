# ==============================================================================
# UNIT OF WORK - Request-Scoped Transaction Handle
# ==============================================================================
# One session, one connection, one transaction per request or task
# open -> (committed | rolledback) -> closed, exactly once
# ==============================================================================

from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Type, TypeVar
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aiserve.core.exceptions import PersistenceError, ProgrammingError

if TYPE_CHECKING:
    from aiserve.database.repositories.base_repository import BaseRepository

RepositoryT = TypeVar("RepositoryT", bound="BaseRepository")


class UnitOfWorkState(str, Enum):
    """Lifecycle states of a unit of work."""
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolledback"
    CLOSED = "closed"


class Outcome(str, Enum):
    """Outcome tag passed to UnitOfWorkManager.release()."""
    SUCCESS = "success"
    FAILURE = "failure"


# Allowed transitions; CLOSED is terminal
_TRANSITIONS: Dict[UnitOfWorkState, frozenset] = {
    UnitOfWorkState.OPEN: frozenset(
        {UnitOfWorkState.COMMITTED, UnitOfWorkState.ROLLED_BACK}
    ),
    UnitOfWorkState.COMMITTED: frozenset({UnitOfWorkState.CLOSED}),
    UnitOfWorkState.ROLLED_BACK: frozenset({UnitOfWorkState.CLOSED}),
    UnitOfWorkState.CLOSED: frozenset(),
}


class UnitOfWork:
    """
    Handle for one open connection/transaction scope.

    Instances are created by ``UnitOfWorkManager.acquire()`` and must be
    handed back exactly once through ``UnitOfWorkManager.release()``
    (or, preferably, used through ``UnitOfWorkManager.scope()``).
    A unit of work belongs to the single request-handling flow that
    acquired it and is never shared or reused.

    Attributes:
        id: Short identifier used in log lines
        state: Current lifecycle state
        outcome: COMMITTED or ROLLED_BACK once released, else None
        acquired_at: Monotonic timestamp of acquisition

    Example:
        >>> async with manager.scope() as uow:
        ...     uow.add(ModelEndpoint(name="sentiment", framework="onnx", owner_id="c1"))
        ...     # Commits automatically on successful exit
    """

    def __init__(self, session: AsyncSession) -> None:
        self.id = uuid4().hex[:8]
        self.acquired_at = time.monotonic()
        self._session: Optional[AsyncSession] = session
        self._state = UnitOfWorkState.OPEN
        self._outcome: Optional[UnitOfWorkState] = None
        self._repositories: Dict[str, BaseRepository] = {}

    # ==========================================================================
    # STATE
    # ==========================================================================

    @property
    def state(self) -> UnitOfWorkState:
        return self._state

    @property
    def outcome(self) -> Optional[UnitOfWorkState]:
        return self._outcome

    @property
    def is_open(self) -> bool:
        return self._state is UnitOfWorkState.OPEN

    @property
    def is_closed(self) -> bool:
        return self._state is UnitOfWorkState.CLOSED

    @property
    def held_seconds(self) -> float:
        """Seconds since acquisition."""
        return time.monotonic() - self.acquired_at

    def _transition(self, target: UnitOfWorkState) -> None:
        """
        Move to ``target`` or raise ProgrammingError.

        Called only by UnitOfWorkManager.
        """
        if target not in _TRANSITIONS[self._state]:
            raise ProgrammingError(
                message=(
                    f"Illegal unit of work transition "
                    f"{self._state.value} -> {target.value}"
                ),
                details={"uow_id": self.id},
            )
        self._state = target
        if target in (UnitOfWorkState.COMMITTED, UnitOfWorkState.ROLLED_BACK):
            self._outcome = target
        elif target is UnitOfWorkState.CLOSED:
            self._session = None
            self._repositories.clear()

    def _ensure_open(self) -> AsyncSession:
        if self._state is not UnitOfWorkState.OPEN or self._session is None:
            raise ProgrammingError(
                message=f"Unit of work {self.id} is {self._state.value}; no operation allowed",
                details={"uow_id": self.id, "state": self._state.value},
            )
        return self._session

    # ==========================================================================
    # SESSION ACCESS
    # ==========================================================================

    @property
    def session(self) -> AsyncSession:
        """
        The underlying AsyncSession.

        Raises:
            ProgrammingError: If the unit of work is no longer open
        """
        return self._ensure_open()

    async def execute(
        self,
        statement: Any,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Execute a statement in this unit of work's transaction.

        Raises:
            ProgrammingError: If the unit of work is no longer open
            PersistenceError: If the database rejects the statement
        """
        session = self._ensure_open()
        try:
            return await session.execute(statement, params)
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "query") from e

    async def scalar(self, statement: Any) -> Any:
        """Execute and return the first column of the first row."""
        session = self._ensure_open()
        try:
            return await session.scalar(statement)
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "query") from e

    async def scalars(self, statement: Any) -> List[Any]:
        """Execute and return all first-column values."""
        session = self._ensure_open()
        try:
            result = await session.scalars(statement)
            return list(result.all())
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "query") from e

    async def get(self, model: Type[Any], ident: Any) -> Any:
        """Load an entity by primary key, or None."""
        session = self._ensure_open()
        try:
            return await session.get(model, ident)
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "query") from e

    def add(self, instance: Any) -> None:
        """Stage a new or modified entity for the pending commit."""
        self._ensure_open().add(instance)

    async def delete(self, instance: Any) -> None:
        """Stage an entity for deletion."""
        session = self._ensure_open()
        try:
            await session.delete(instance)
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "delete") from e

    async def flush(self) -> None:
        """
        Send pending changes without committing.

        Raises:
            PersistenceError: If a constraint is violated
        """
        session = self._ensure_open()
        try:
            await session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "flush") from e

    async def refresh(self, instance: Any) -> None:
        """Reload server-generated column values."""
        session = self._ensure_open()
        try:
            await session.refresh(instance)
        except SQLAlchemyError as e:
            raise PersistenceError.from_exception(e, "query") from e

    # ==========================================================================
    # REPOSITORY MANAGEMENT
    # ==========================================================================

    def register_repository(
        self,
        name: str,
        repository_class: Type[RepositoryT],
    ) -> RepositoryT:
        """
        Register a repository bound to this unit of work.

        Args:
            name: Repository identifier for later retrieval
            repository_class: Repository class to instantiate

        Returns:
            Registered repository instance
        """
        self._ensure_open()
        repo = repository_class(self)
        self._repositories[name] = repo
        return repo

    def get_repository(self, name: str) -> "BaseRepository":
        """
        Get a registered repository.

        Raises:
            ValueError: If repository not registered
            ProgrammingError: If the unit of work is no longer open
        """
        self._ensure_open()
        if name not in self._repositories:
            raise ValueError(
                f"Repository '{name}' not registered. "
                f"Available: {list(self._repositories.keys())}"
            )
        return self._repositories[name]

    def has_repository(self, name: str) -> bool:
        """Check if repository is registered."""
        return name in self._repositories

    def __repr__(self) -> str:
        return f"<UnitOfWork(id={self.id}, state={self._state.value})>"
