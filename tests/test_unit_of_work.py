# ==============================================================================
# UNIT OF WORK TESTS
# ==============================================================================
# Lifecycle, release guarantees and pool behaviour of UnitOfWorkManager
# ==============================================================================

import asyncio
import time

import pytest
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import func, select, text

from aiserve.core.exceptions import ConnectionError, PersistenceError, ProgrammingError
from aiserve.database.engine import build_engine
from aiserve.database.repositories import ModelEndpointRepository
from aiserve.database.unit_of_work import Outcome, UnitOfWorkManager, UnitOfWorkState
from aiserve.domain_models import ModelEndpoint


def _endpoint(name: str = "sentiment", owner_id: str = "client_a") -> ModelEndpoint:
    return ModelEndpoint(name=name, framework="onnx", owner_id=owner_id)


async def _count_endpoints(manager) -> int:
    async with manager.scope() as uow:
        return await uow.scalar(select(func.count()).select_from(ModelEndpoint))


class Boom(Exception):
    """Raised by test handlers."""


class TestAcquireRelease:
    """Tests for explicit acquire()/release()."""

    @pytest.mark.asyncio
    async def test_acquire_returns_open_unit_of_work(self, manager):
        """Test a fresh unit of work is open and holds a connection."""
        uow = await manager.acquire()

        assert uow.state is UnitOfWorkState.OPEN
        assert uow.outcome is None
        assert manager.pool_status()["checked_out"] == 1

        await manager.release(uow, Outcome.SUCCESS)

    @pytest.mark.asyncio
    async def test_release_success_commits_and_closes(self, manager):
        """Test SUCCESS commits, closes and returns the connection."""
        uow = await manager.acquire()
        uow.add(_endpoint())

        await manager.release(uow, Outcome.SUCCESS)

        assert uow.state is UnitOfWorkState.CLOSED
        assert uow.outcome is UnitOfWorkState.COMMITTED
        assert manager.pool_status()["checked_out"] == 0
        assert await _count_endpoints(manager) == 1

    @pytest.mark.asyncio
    async def test_release_failure_rolls_back(self, manager):
        """Test FAILURE discards staged changes."""
        uow = await manager.acquire()
        uow.add(_endpoint())
        await uow.flush()

        await manager.release(uow, "failure")

        assert uow.state is UnitOfWorkState.CLOSED
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert await _count_endpoints(manager) == 0

    @pytest.mark.asyncio
    async def test_double_release_raises_programming_error(self, manager):
        """Test a second release is rejected and does not commit again."""
        uow = await manager.acquire()
        await manager.release(uow, Outcome.SUCCESS)

        with pytest.raises(ProgrammingError):
            await manager.release(uow, Outcome.SUCCESS)

        assert manager.stats.committed == 1
        assert manager.stats.closed == 1
        assert manager.stats.misuse == 1
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_use_after_close_raises_programming_error(self, manager):
        """Test a closed unit of work refuses further operations."""
        uow = await manager.acquire()
        await manager.release(uow, Outcome.FAILURE)

        with pytest.raises(ProgrammingError):
            await uow.execute(text("SELECT 1"))
        with pytest.raises(ProgrammingError):
            uow.add(_endpoint())
        with pytest.raises(ProgrammingError):
            uow.session

    @pytest.mark.asyncio
    async def test_invalid_outcome_rejected(self, manager):
        """Test an unknown outcome tag is a ValueError and leaves uow open."""
        uow = await manager.acquire()

        with pytest.raises(ValueError):
            await manager.release(uow, "maybe")

        assert uow.is_open
        await manager.release(uow, Outcome.FAILURE)


class TestScope:
    """Tests for scoped acquisition."""

    @pytest.mark.asyncio
    async def test_scope_commits_on_normal_exit(self, manager):
        """Test normal completion commits."""
        async with manager.scope() as uow:
            uow.add(_endpoint())

        assert uow.outcome is UnitOfWorkState.COMMITTED
        assert uow.is_closed
        assert await _count_endpoints(manager) == 1

    @pytest.mark.asyncio
    async def test_scope_reraises_original_error(self, manager):
        """Test the handler's exception propagates unchanged."""
        error = Boom("handler failed")

        with pytest.raises(Boom) as excinfo:
            async with manager.scope() as uow:
                uow.add(_endpoint())
                await uow.flush()
                raise error

        assert excinfo.value is error
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert uow.is_closed
        assert manager.pool_status()["checked_out"] == 0
        assert await _count_endpoints(manager) == 0

    @pytest.mark.asyncio
    async def test_validation_error_rolls_back(self, manager):
        """Test a pydantic validation failure inside the scope rolls back."""

        class Payload(BaseModel):
            score: float = Field(..., ge=0, le=1)

        with pytest.raises(ValidationError):
            async with manager.scope() as uow:
                uow.add(_endpoint())
                Payload(score=4.2)

        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert await _count_endpoints(manager) == 0

    @pytest.mark.asyncio
    async def test_early_return_commits(self, manager):
        """Test returning from inside the scope counts as success."""

        async def register(name: str) -> str:
            async with manager.scope() as uow:
                endpoint = _endpoint(name)
                uow.add(endpoint)
                await uow.flush()
                return endpoint.id

        endpoint_id = await register("early")

        async with manager.scope() as uow:
            loaded = await uow.get(ModelEndpoint, endpoint_id)
            assert loaded is not None
            assert loaded.name == "early"

    @pytest.mark.asyncio
    async def test_run_returns_result(self, manager):
        """Test run() passes the unit of work and returns the result."""

        async def create(uow, name):
            endpoint = _endpoint(name)
            uow.add(endpoint)
            await uow.flush()
            return endpoint.name

        result = await manager.run(create, "via-run")

        assert result == "via-run"
        assert await _count_endpoints(manager) == 1
        assert manager.stats.committed >= 1

    @pytest.mark.asyncio
    async def test_releasing_inside_scope_is_misuse(self, manager):
        """Test an explicit release inside a scope surfaces as ProgrammingError."""
        with pytest.raises(ProgrammingError):
            async with manager.scope() as uow:
                await manager.release(uow, Outcome.SUCCESS)

        assert uow.is_closed
        assert manager.stats.committed == 1
        assert manager.pool_status()["checked_out"] == 0


class TestFailures:
    """Tests for query and commit failures."""

    @pytest.mark.asyncio
    async def test_commit_integrity_error_raises_persistence_error(self, manager):
        """Test a constraint violation at commit is rolled back and reported."""
        async with manager.scope() as uow:
            uow.add(_endpoint("duplicate"))

        with pytest.raises(PersistenceError) as excinfo:
            async with manager.scope() as uow:
                uow.add(_endpoint("duplicate", owner_id="client_b"))

        error = excinfo.value
        assert error.integrity_violation is True
        assert error.status_code == 409
        assert error.__cause__ is not None
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert uow.is_closed
        assert manager.stats.commit_failures == 1
        assert manager.pool_status()["checked_out"] == 0
        assert await _count_endpoints(manager) == 1

    @pytest.mark.asyncio
    async def test_query_error_raises_persistence_error(self, manager):
        """Test a rejected statement maps to PersistenceError and rolls back."""
        with pytest.raises(PersistenceError) as excinfo:
            async with manager.scope() as uow:
                await uow.execute(text("SELECT * FROM no_such_table"))

        assert excinfo.value.status_code == 500
        assert excinfo.value.details["stage"] == "query"
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_delete_error_raises_persistence_error(self, manager):
        """Test deleting an entity that was never stored maps to PersistenceError."""
        with pytest.raises(PersistenceError) as excinfo:
            async with manager.scope() as uow:
                await uow.delete(_endpoint("never-stored"))

        assert excinfo.value.details["stage"] == "delete"
        assert excinfo.value.__cause__ is not None
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_cancelled_rollback_keeps_original_error(self, manager, monkeypatch):
        """Test a cancellation during the failure-path rollback does not mask the error."""
        error = Boom("handler failed")

        async def cancelled_rollback():
            raise asyncio.CancelledError()

        with pytest.raises(Boom) as excinfo:
            async with manager.scope() as uow:
                monkeypatch.setattr(uow.session, "rollback", cancelled_rollback)
                raise error

        assert excinfo.value is error
        assert uow.is_closed
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert manager.pool_status()["checked_out"] == 0


class TestPool:
    """Tests for pool exhaustion, cancellation and serialization."""

    @pytest.mark.asyncio
    async def test_pool_returns_to_baseline(self, manager_factory):
        """Test mixed outcomes leave no connection checked out."""
        manager = await manager_factory(pool_size=3, pool_timeout=2.0)

        async def succeed(i):
            async with manager.scope() as uow:
                await uow.execute(text("SELECT 1"))
                await asyncio.sleep(0.01)

        async def fail(i):
            async with manager.scope() as uow:
                await uow.execute(text("SELECT 1"))
                raise Boom(str(i))

        results = await asyncio.gather(
            *(succeed(i) if i % 2 else fail(i) for i in range(10)),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Boom) for r in results) == 5
        assert manager.pool_status()["checked_out"] == 0
        assert manager.stats.acquired == manager.stats.closed == 10
        assert manager.stats.committed == 5
        assert manager.stats.rolled_back == 5

    @pytest.mark.asyncio
    async def test_exhaustion_then_recovery(self, manager):
        """Test acquire times out while the only connection is held."""
        held = await manager.acquire()

        started = time.monotonic()
        with pytest.raises(ConnectionError) as excinfo:
            await manager.acquire()
        waited = time.monotonic() - started

        assert excinfo.value.retryable is True
        assert excinfo.value.status_code == 503
        assert waited >= 0.15
        assert manager.stats.acquire_failures == 1
        assert manager.pool_status()["checked_out"] == 1

        await manager.release(held, Outcome.SUCCESS)

        async with manager.scope() as uow:
            await uow.execute(text("SELECT 1"))
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back_and_releases(self, manager):
        """Test a cancelled handler still rolls back and returns its connection."""
        entered = asyncio.Event()
        seen = {}

        async def handler():
            async with manager.scope() as uow:
                seen["uow"] = uow
                uow.add(_endpoint("cancelled"))
                await uow.flush()
                entered.set()
                await asyncio.sleep(60)

        task = asyncio.create_task(handler())
        await entered.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        uow = seen["uow"]
        assert uow.is_closed
        assert uow.outcome is UnitOfWorkState.ROLLED_BACK
        assert manager.pool_status()["checked_out"] == 0
        assert await _count_endpoints(manager) == 0

    @pytest.mark.asyncio
    async def test_single_connection_serializes_handlers(self, manager_factory):
        """Test pool_size=1 runs concurrent handlers one at a time."""
        manager = await manager_factory(pool_size=1, pool_timeout=5.0)
        hold = 0.15
        active = 0
        peak = 0

        async def handler():
            nonlocal active, peak
            async with manager.scope() as uow:
                active += 1
                peak = max(peak, active)
                await uow.execute(text("SELECT 1"))
                await asyncio.sleep(hold)
                active -= 1

        started = time.monotonic()
        await asyncio.gather(*(handler() for _ in range(3)))
        elapsed = time.monotonic() - started

        assert peak == 1
        assert elapsed >= hold * 3 * 0.9
        assert manager.stats.committed == 3
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_pool_status_reports_availability(self, manager_factory):
        """Test available counts pool_size plus overflow minus checked out."""
        manager = await manager_factory(pool_size=2, max_overflow=1)

        uow = await manager.acquire()
        status = manager.pool_status()

        assert status["size"] == 2
        assert status["max_overflow"] == 1
        assert status["checked_out"] == 1
        assert status["available"] == 2

        await manager.release(uow, Outcome.SUCCESS)
        assert manager.pool_status()["available"] == 3

    @pytest.mark.asyncio
    async def test_pool_status_reads_overflow_from_engine(self, manager_factory):
        """Test available reflects the engine's overflow limit."""
        manager = await manager_factory(pool_size=2, max_overflow=3, pool_timeout=2.0)

        held = [await manager.acquire() for _ in range(4)]
        status = manager.pool_status()

        assert status["max_overflow"] == 3
        assert status["checked_out"] == 4
        assert status["overflow"] == 2
        assert status["available"] == 1

        for uow in held:
            await manager.release(uow, Outcome.SUCCESS)
        assert manager.pool_status()["checked_out"] == 0

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_connection_error(self, tmp_path):
        """Test a connection that cannot be opened maps to ConnectionError."""
        engine = build_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'uow.db'}",
            pool_size=1,
            max_overflow=0,
            pool_timeout=0.2,
        )
        manager = UnitOfWorkManager(engine)
        try:
            with pytest.raises(ConnectionError) as excinfo:
                await manager.acquire()

            assert excinfo.value.retryable is True
            assert excinfo.value.__cause__ is not None
            assert manager.stats.acquire_failures == 1
            assert manager.stats.acquired == 0
            assert manager.pool_status()["checked_out"] == 0
        finally:
            await manager.dispose()

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_connection(self, manager_factory):
        """Test cancelling a task blocked in acquire() leaves the pool intact."""
        manager = await manager_factory(pool_size=1, pool_timeout=5.0)
        held = await manager.acquire()

        waiter = asyncio.create_task(manager.acquire())
        await asyncio.sleep(0.05)
        assert not waiter.done()
        waiter.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert manager.stats.acquired == 1
        assert manager.pool_status()["checked_out"] == 1

        await manager.release(held, Outcome.SUCCESS)
        assert manager.pool_status()["checked_out"] == 0

        async with manager.scope() as uow:
            await uow.execute(text("SELECT 1"))
        assert manager.pool_status()["checked_out"] == 0


class TestRepositories:
    """Tests for repository registration on units of work."""

    @pytest.mark.asyncio
    async def test_registered_repositories_available(self, manager):
        """Test every unit of work gets its own repositories."""
        async with manager.scope() as uow:
            repo = uow.get_repository("model_endpoints")
            assert isinstance(repo, ModelEndpointRepository)
            assert uow.has_repository("predictions")

            await repo.create({"name": "repo-created", "framework": "onnx", "owner_id": "c"})
            assert (await repo.get_by_name("repo-created")) is not None

            with pytest.raises(ValueError):
                uow.get_repository("unknown")

        with pytest.raises(ProgrammingError):
            uow.get_repository("model_endpoints")

    @pytest.mark.asyncio
    async def test_health_check(self, manager):
        """Test health check succeeds and leaves the pool at baseline."""
        assert await manager.health_check() is True
        assert manager.pool_status()["checked_out"] == 0
