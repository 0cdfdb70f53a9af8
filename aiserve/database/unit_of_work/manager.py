# ==============================================================================
# UNIT OF WORK MANAGER - Scoped Acquisition & Guaranteed Release
# ==============================================================================
# acquire() -> UnitOfWork, release(uow, outcome), scope(), run(func)
# Every acquired unit of work reaches CLOSED on every exit path
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Type,
    TypeVar,
)

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from aiserve.core.exceptions import (
    ConnectionError,
    DatabaseError,
    PersistenceError,
    ProgrammingError,
)
from aiserve.database.repositories.base_repository import BaseRepository
from aiserve.database.unit_of_work.uow import Outcome, UnitOfWork, UnitOfWorkState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class UnitOfWorkStats:
    """
    Lifetime counters of a UnitOfWorkManager.

    Only mutated from the event loop thread, so plain increments are safe.
    """
    acquired: int = 0
    committed: int = 0
    rolled_back: int = 0
    closed: int = 0
    acquire_failures: int = 0
    commit_failures: int = 0
    misuse: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class UnitOfWorkManager:
    """
    Hands out request-scoped units of work over a shared connection pool.

    The manager holds no per-request state; the engine's pool is the only
    shared mutable structure and serializes checkout/checkin internally.

    Features:
        - Eager connection checkout with bounded wait (engine pool_timeout)
        - Commit on success, rollback on failure, close always
        - Double release and use-after-close reported as ProgrammingError
        - Scoped acquisition as async context manager or callback
        - Pool occupancy and lifetime counters for health endpoints

    Example:
        >>> manager = UnitOfWorkManager(engine)
        >>> async with manager.scope() as uow:
        ...     await uow.execute(text("SELECT 1"))
        >>> await manager.run(create_prediction, payload)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        repositories: Optional[Mapping[str, Type[BaseRepository]]] = None,
    ) -> None:
        """
        Initialize manager.

        Args:
            engine: Async engine owning the connection pool
            session_factory: Session factory (defaults to one bound to engine)
            repositories: Repositories registered on every new unit of work
        """
        self._engine = engine
        self._session_factory = session_factory or async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._repositories: Dict[str, Type[BaseRepository]] = dict(repositories or {})
        self.stats = UnitOfWorkStats()

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ==========================================================================
    # ACQUIRE / RELEASE
    # ==========================================================================

    async def acquire(self) -> UnitOfWork:
        """
        Open a new unit of work with its own pooled connection.

        Suspends while the pool has no free connection, bounded by the
        engine's pool timeout. Does not retry.

        Returns:
            An OPEN UnitOfWork

        Raises:
            ConnectionError: Pool exhausted or connection could not be made
        """
        session: AsyncSession = self._session_factory()
        try:
            # Checks out a connection and begins the transaction
            await session.connection()
        except sa_exc.TimeoutError as e:
            await session.close()
            self.stats.acquire_failures += 1
            logger.warning(f"Connection pool exhausted: {e}")
            raise ConnectionError(
                message="No database connection available within the pool timeout",
                details={"pool": self.pool_status()},
            ) from e
        except (sa_exc.DBAPIError, OSError) as e:
            await session.close()
            self.stats.acquire_failures += 1
            logger.warning(f"Database connection failed: {e}")
            raise ConnectionError(
                message=f"Failed to connect to database: {e}",
            ) from e
        except BaseException:
            await session.close()
            raise

        uow = UnitOfWork(session)
        for name, repository_class in self._repositories.items():
            uow.register_repository(name, repository_class)

        self.stats.acquired += 1
        logger.debug(f"Acquired unit of work {uow.id}")
        return uow

    async def release(self, uow: UnitOfWork, outcome: Outcome | str) -> None:
        """
        Finish a unit of work and return its connection to the pool.

        Commits on SUCCESS, rolls back on FAILURE, then closes the session.
        The unit of work is CLOSED when this returns or raises.

        Args:
            uow: Unit of work obtained from acquire()
            outcome: Outcome.SUCCESS or Outcome.FAILURE

        Raises:
            ProgrammingError: If uow was already released
            PersistenceError: If the commit failed (the transaction is rolled back)
        """
        outcome = Outcome(outcome)
        if not uow.is_open:
            self.stats.misuse += 1
            logger.error(
                f"Unit of work {uow.id} released twice "
                f"(state={uow.state.value}, outcome={outcome.value})"
            )
            raise ProgrammingError(
                message=f"Unit of work {uow.id} has already been released",
                details={"uow_id": uow.id, "state": uow.state.value},
            )

        session = uow.session
        try:
            if outcome is Outcome.SUCCESS:
                await self._commit(uow, session)
            else:
                await self._rollback(uow, session)
        finally:
            await self._close(uow, session)

    async def _commit(self, uow: UnitOfWork, session: AsyncSession) -> None:
        try:
            await session.commit()
        except BaseException as e:
            self.stats.commit_failures += 1
            logger.warning(f"Commit of unit of work {uow.id} failed: {e!r}")
            try:
                await self._rollback(uow, session)
            except Exception:
                logger.exception(f"Rollback after failed commit of {uow.id} failed")
            if isinstance(e, sa_exc.SQLAlchemyError):
                raise PersistenceError.from_exception(e, "commit") from e
            raise
        uow._transition(UnitOfWorkState.COMMITTED)
        self.stats.committed += 1
        logger.debug(f"Committed unit of work {uow.id}")

    async def _rollback(self, uow: UnitOfWork, session: AsyncSession) -> None:
        try:
            await session.rollback()
        finally:
            if uow.is_open:
                uow._transition(UnitOfWorkState.ROLLED_BACK)
                self.stats.rolled_back += 1
                logger.debug(f"Rolled back unit of work {uow.id}")

    async def _close(self, uow: UnitOfWork, session: AsyncSession) -> None:
        held = uow.held_seconds
        try:
            await session.close()
        finally:
            uow._transition(UnitOfWorkState.CLOSED)
            self.stats.closed += 1
            logger.debug(
                f"Closed unit of work {uow.id} "
                f"({uow.outcome.value if uow.outcome else 'n/a'}, held {held * 1000:.1f}ms)"
            )

    # ==========================================================================
    # SCOPED ACQUISITION
    # ==========================================================================

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[UnitOfWork]:
        """
        Acquire a unit of work for the duration of a block.

        Normal completion (including an early return from the block)
        commits. Any exception, cancellation included, rolls back and
        is re-raised unchanged once the unit of work is closed.

        Yields:
            An OPEN UnitOfWork
        """
        uow = await self.acquire()
        try:
            yield uow
        except BaseException as error:
            await self._release_after_error(uow, error)
            raise
        await self.release(uow, Outcome.SUCCESS)

    async def _release_after_error(
        self,
        uow: UnitOfWork,
        error: BaseException,
    ) -> None:
        """
        Roll back; a failure here is logged so ``error`` still propagates.

        A cancellation arriving during the rollback is logged as well:
        the caller re-raises ``error``, which ends the task either way.
        """
        try:
            await self.release(uow, Outcome.FAILURE)
        except (Exception, asyncio.CancelledError):
            logger.exception(
                f"Releasing unit of work {uow.id} after "
                f"{type(error).__name__} failed"
            )

    async def run(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run ``func(uow, *args, **kwargs)`` inside a scope.

        Returns:
            Whatever ``func`` returns, after a successful commit
        """
        async with self.scope() as uow:
            return await func(uow, *args, **kwargs)

    # ==========================================================================
    # INTROSPECTION
    # ==========================================================================

    def pool_status(self) -> Dict[str, int]:
        """
        Snapshot of pool occupancy.

        Returns:
            size, max_overflow, checked_out, checked_in, overflow, available
        """
        pool = self._engine.sync_engine.pool
        size = pool.size()
        # QueuePool keeps its overflow limit only as a private attribute
        max_overflow = max(getattr(pool, "_max_overflow", 0), 0)
        checked_out = pool.checkedout()
        return {
            "size": size,
            "max_overflow": max_overflow,
            "checked_out": checked_out,
            "checked_in": pool.checkedin(),
            "overflow": max(pool.overflow(), 0),
            "available": max(size + max_overflow - checked_out, 0),
        }

    async def health_check(self) -> bool:
        """
        Verify that a connection can be acquired and used.

        Returns:
            True if ``SELECT 1`` succeeded
        """
        try:
            async with self.scope() as uow:
                await uow.execute(text("SELECT 1"))
            return True
        except DatabaseError as e:
            logger.warning(f"Database health check failed: {e.message}")
            return False

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self._engine.dispose()
        logger.info("Connection pool disposed")
